"""Request quotas, applied to Flask-RESTful resources through their `decorators` list.

Limits are read from the app config on each request, so deployments can
tune them without code changes.
"""

from flask import current_app as app
from flask import request
from flask_limiter.util import get_remote_address
from flask_login import current_user

from main import limiter


def user_or_ip() -> str:
    if current_user.is_authenticated:
        return f"user:{current_user.id}"
    return f"ip:{get_remote_address()}"


def _upload_limit() -> str:
    if current_user.is_authenticated:
        return app.config["RATE_LIMIT_UPLOADS_USER"]
    return app.config["RATE_LIMIT_UPLOADS_IP"]


def _no_upload() -> bool:
    return "file" not in request.files


auth_limit = limiter.shared_limit(
    lambda: app.config["RATE_LIMIT_AUTH"],
    scope="auth",
    key_func=get_remote_address,
    methods=["POST"],
    error_message="Too many authentication attempts. Please try again later.",
)

proposal_submission_limit = limiter.limit(
    lambda: app.config["RATE_LIMIT_PROPOSALS"],
    key_func=user_or_ip,
    methods=["POST"],
    error_message="Too many proposal submissions. Please try again later.",
)

upload_limit = limiter.shared_limit(
    _upload_limit,
    scope="uploads",
    key_func=user_or_ip,
    methods=["POST", "PUT", "PATCH"],
    exempt_when=_no_upload,
    error_message="Too many file uploads. Please try again later.",
)
