import logging

from decorator import decorator
from flask import current_app as app
from flask import jsonify
from flask_limiter.errors import RateLimitExceeded
from flask_login import current_user
from werkzeug.exceptions import HTTPException

from main import db

from .errors import ApiError, ServerError

logger = logging.getLogger(__name__)

HTTP_ERROR_MESSAGES = {
    400: "Bad request",
    401: "Unauthenticated",
    403: "Unauthorized",
    404: "Resource not found",
    405: "Method not allowed",
    413: "Uploaded file is too large",
    415: "Unsupported media type",
}


def success(message: str, data=None, code: int = 200, headers: dict | None = None):
    """Build the success envelope as a Flask-RESTful return value."""
    body = {"status": "success", "message": message}
    if data is not None:
        body["data"] = data
    if headers:
        return body, code, headers
    return body, code


def error_body(message: str, errors: dict | None = None) -> dict:
    body = {"status": "error", "message": message}
    if errors is not None:
        body["errors"] = errors
    return body


def render_error(e: Exception):
    """Render any exception as the error envelope.

    Unexpected exceptions are logged with a traceback and reported as a
    generic 500 so internal details never reach the client.
    """
    if isinstance(e, ApiError):
        code, body = e.code, error_body(e.message, e.errors)
    elif isinstance(e, RateLimitExceeded):
        code, body = 429, error_body(e.description)
    elif isinstance(e, HTTPException):
        code = e.code or 500
        body = error_body(HTTP_ERROR_MESSAGES.get(code, e.name))
    else:
        logger.exception("Unhandled exception during API request: %r", e)
        code, body = 500, error_body(ServerError.message)

    response = jsonify(body)
    response.status_code = code
    if isinstance(e, HTTPException) and e.code == 405 and e.valid_methods:
        response.headers["Allow"] = ", ".join(e.valid_methods)
    return response


def register_error_handlers(app_obj):
    """Render errors outside the API blueprint (unknown routes etc.) with the same envelope."""

    @app_obj.errorhandler(ApiError)
    def handle_api_error(e):
        return render_error(e)

    @app_obj.errorhandler(HTTPException)
    def handle_http_error(e):
        if e.code == 500 and getattr(e, "original_exception", None) is not None:
            return render_error(e.original_exception)
        return render_error(e)


@decorator
def require_login(f, *args, **kwargs):
    if not current_user.is_authenticated:
        return app.login_manager.unauthorized()
    return f(*args, **kwargs)


def failure_message(message: str):
    """Roll back and report `message` as a 500 if the wrapped handler fails unexpectedly.

    Errors the handler raises deliberately (`ApiError`, HTTP errors) pass
    through unchanged, after the session has been rolled back.
    """

    def call(f, *args, **kwargs):
        try:
            return f(*args, **kwargs)
        except (ApiError, HTTPException):
            db.session.rollback()
            raise
        except Exception as e:
            db.session.rollback()
            logger.exception("%s: %r", message, e)
            raise ServerError(message)

    return decorator(call)


def clamp_int(value, default: int, minimum: int, maximum: int) -> int:
    """Parse a query-string integer, falling back to `default` and clamping to the given range."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = default
    return max(minimum, min(maximum, number))
