"""Request validation.

Forms are bound to the current request by Flask-WTF (JSON bodies, form fields
and uploaded files alike) and only used as validators: handlers call
`validate_or_raise` and read `form.<field>.data`.
"""

from flask import request
from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField, FileSize
from wtforms import BooleanField, ValidationError
from wtforms.validators import AnyOf, DataRequired, InputRequired, Length, Optional, StopValidation

from models.proposal import MAX_TITLE_LENGTH, ProposalStatus
from models.review import ReviewRating
from models.tag import MAX_TAG_LENGTH
from models.user import User, UserRole

from .errors import ValidationFailed
from .fields import EmailField, IntegerField, PasswordField, StringField, StringListField

MAX_UPLOAD_KB = 4096
MIN_PASSWORD_LENGTH = 8


class Form(FlaskForm):
    """
    Re-override these back to their wtforms defaults
    """

    class Meta(FlaskForm.Meta):
        csrf = False
        csrf_class = None
        csrf_context = None


def validate_or_raise(form: Form) -> Form:
    if not form.validate():
        raise ValidationFailed(form.errors)
    return form


def field_supplied(name: str) -> bool:
    """Whether the request body mentions `name` at all, even with an empty value."""
    if request.is_json:
        body = request.get_json(silent=True)
        return isinstance(body, dict) and name in body
    return name in request.form or f"{name}[]" in request.form or name in request.files


def required(field_name: str):
    """Reject missing values, and strings that are blank once trimmed."""
    return DataRequired(message=f"The {field_name} field is required.")


def present(field_name: str):
    """Reject missing values only. For fields that aren't trimmed or aren't strings."""
    return InputRequired(message=f"The {field_name} field is required.")


def max_length(field_name: str, length: int):
    return Length(max=length, message=f"The {field_name} field must not be greater than {length} characters.")


class RequiredIfPresent:
    """Allow a field to be left out entirely, but not sent blank."""

    def __init__(self, field_name: str):
        self.message = f"The {field_name} field is required."

    def __call__(self, form, field):
        if not field_supplied(field.name):
            field.errors[:] = []
            raise StopValidation()
        if field.data is None or (isinstance(field.data, str) and not field.data.strip()):
            raise StopValidation(self.message)


class PDFContent:
    """Check the upload actually looks like a PDF, not just that it's named like one."""

    message = "The file field must be a file of type: pdf."

    def __call__(self, form, field):
        upload = field.data
        if not upload:
            return
        if upload.mimetype not in ("application/pdf", "application/x-pdf"):
            raise ValidationError(self.message)
        head = upload.stream.read(5)
        upload.stream.seek(0)
        if head != b"%PDF-":
            raise ValidationError(self.message)


def pdf_validators():
    return [
        Optional(),
        FileAllowed(["pdf"], message=PDFContent.message),
        FileSize(
            max_size=MAX_UPLOAD_KB * 1024,
            message=f"The file field must not be greater than {MAX_UPLOAD_KB} kilobytes.",
        ),
        PDFContent(),
    ]


class RegisterForm(Form):
    name = StringField("Name", [required("name"), max_length("name", 255)])
    email = EmailField("Email", [required("email"), max_length("email", 255)])
    password = PasswordField(
        "Password",
        [
            present("password"),
            Length(
                min=MIN_PASSWORD_LENGTH,
                message=f"The password field must be at least {MIN_PASSWORD_LENGTH} characters.",
            ),
        ],
    )
    password_confirmation = PasswordField("Confirm password")
    role = StringField(
        "Role",
        [required("role"), AnyOf(UserRole.registration_roles(), message="The selected role is invalid.")],
    )

    def validate_email(form, field):
        if User.does_user_exist(field.data):
            raise ValidationError("The email has already been taken.")

    def validate_password(form, field):
        if field.data != form.password_confirmation.data:
            raise ValidationError("The password field confirmation does not match.")


class LoginForm(Form):
    email = EmailField("Email", [required("email")])
    password = PasswordField("Password", [present("password")])
    remember = BooleanField("Remember me")


class ProposalForm(Form):
    title = StringField("Title", [required("title"), max_length("title", MAX_TITLE_LENGTH)])
    description = StringField("Description", [required("description")])
    file = FileField("File", pdf_validators())
    tags = StringListField("Tags", max_length=MAX_TAG_LENGTH)


class ProposalUpdateForm(Form):
    title = StringField("Title", [RequiredIfPresent("title"), max_length("title", MAX_TITLE_LENGTH)])
    description = StringField("Description", [RequiredIfPresent("description")])
    file = FileField("File", pdf_validators())
    tags = StringListField("Tags", max_length=MAX_TAG_LENGTH)


class ReviewForm(Form):
    rating = IntegerField(
        "Rating",
        [
            present("rating"),
            AnyOf(
                ReviewRating.values(),
                message="The selected rating is invalid. Allowed values: "
                + ", ".join(str(v) for v in ReviewRating.values())
                + ".",
            ),
        ],
    )
    comment = StringField("Comment", [Optional()])


class TagForm(Form):
    name = StringField("Name", [required("name"), max_length("name", MAX_TAG_LENGTH)])


class StatusForm(Form):
    status = StringField(
        "Status",
        [required("status"), AnyOf(ProposalStatus.values(), message="The selected status is invalid.")],
    )
