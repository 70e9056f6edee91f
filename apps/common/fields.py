from email_validator import EmailNotValidError, validate_email
from flask import request
from werkzeug.datastructures import MultiDict
import wtforms
from wtforms import Field, ValidationError
from wtforms.utils import unset_value
from wtforms.validators import StopValidation
from wtforms.widgets import PasswordInput


def json_body() -> dict | None:
    """The request's JSON object, if it has one. Flask-WTF flattens lists into repeated values."""
    body = request.get_json(silent=True) if request.is_json else None
    return body if isinstance(body, dict) else None


class StringField(wtforms.StringField):
    """A StringField for JSON bodies, where values needn't be strings.

    Non-string values are a field error rather than being coerced, a JSON
    ``null`` counts as missing, and surrounding whitespace is trimmed before
    the validators see the value.
    """

    strip = True

    def process_formdata(self, valuelist):
        if not valuelist or valuelist[0] is None:
            return
        value = valuelist[0]
        if not isinstance(value, str):
            raise ValueError(f"The {self.name} field must be a string.")
        self.data = value.strip() if self.strip else value

    def pre_validate(self, form):
        if self.process_errors:
            raise StopValidation()
        body = json_body()
        if body is not None and not isinstance(body.get(self.name), str | None):
            raise StopValidation(f"The {self.name} field must be a string.")


class PasswordField(StringField):
    strip = False
    widget = PasswordInput(hide_value=True)


class EmailField(StringField):
    """Email field using the email_validator package to perform
    enhanced email validation.

    You don't need to provide additional validators to this field.
    """

    def pre_validate(self, form):
        super().pre_validate(form)
        if not self.data:
            # Missing values are reported by the required validator
            return
        try:
            result = validate_email(self.data, check_deliverability=False)
            # Replace data with normalised version of email
            self.data = result.normalized
        except EmailNotValidError as e:
            raise ValidationError(str(e)) from e


class StringListField(Field):
    """A list of strings, from a JSON array or repeated form values (``tags`` or ``tags[]``).

    Blank entries are dropped. Each entry is checked against `max_length`.
    """

    def __init__(self, label=None, validators=None, max_length=255, **kwargs):
        super().__init__(label, validators, **kwargs)
        self.max_length = max_length

    def process(self, formdata, data=unset_value, extra_filters=None):
        # Multipart clients may send bracketed `tags[]` keys
        if formdata is not None and self.name not in formdata and f"{self.name}[]" in formdata:
            formdata = MultiDict({self.name: formdata.getlist(f"{self.name}[]")})
        super().process(formdata, data, extra_filters)

    def process_formdata(self, valuelist):
        if any(v is not None and not isinstance(v, str) for v in valuelist):
            raise ValueError(f"Each {self.name} entry must be a string.")
        self.data = [v.strip() for v in valuelist if v is not None and v.strip()]

    def _value(self):
        return ",".join(self.data or [])

    def pre_validate(self, form):
        if self.process_errors:
            raise StopValidation()
        # A JSON scalar arrives as a single value, indistinguishable from a one-item list
        body = json_body()
        if body is not None and body.get(self.name) is not None and not isinstance(body[self.name], list):
            raise StopValidation(f"The {self.name} field must be an array.")
        for value in self.data or []:
            if len(value) > self.max_length:
                raise ValidationError(f"Each entry may not be greater than {self.max_length} characters.")


class IntegerField(wtforms.IntegerField):
    """An IntegerField which treats a JSON ``null`` as missing, and won't truncate
    fractional numbers or accept booleans."""

    def process_formdata(self, valuelist):
        if not valuelist or valuelist[0] is None:
            return
        value = valuelist[0]
        if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
            raise ValueError(f"The {self.name} field must be an integer.")
        try:
            self.data = int(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"The {self.name} field must be an integer.") from e

    def pre_validate(self, form):
        if self.process_errors:
            raise StopValidation()
        body = json_body()
        if body is not None and isinstance(body.get(self.name), list | dict):
            raise StopValidation(f"The {self.name} field must be an integer.")
