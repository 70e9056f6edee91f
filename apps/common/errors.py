"""Exceptions raised by request handlers.

Each carries the HTTP status and the message rendered in the error envelope;
`apps.api.ProposalsApi.handle_error` turns them into responses.
"""


class ApiError(Exception):
    code = 400
    message = "Bad request"

    def __init__(self, message: str | None = None, errors: dict[str, list[str]] | None = None):
        if message is not None:
            self.message = message
        self.errors = errors
        super().__init__(self.message)


class ValidationFailed(ApiError):
    code = 422
    message = "Validation failed"

    def __init__(self, errors: dict[str, list[str]], message: str | None = None):
        super().__init__(message, errors)


class Unauthenticated(ApiError):
    code = 401
    message = "Unauthenticated"


class InvalidCredentials(ApiError):
    code = 401
    message = "Invalid credentials"


class Forbidden(ApiError):
    code = 403
    message = "Unauthorized"


class ProposalNotFound(ApiError):
    code = 404
    message = "Proposal not found"


class ReviewNotFound(ApiError):
    code = 404
    message = "Review not found for this proposal"


class ProposalFileNotFound(ApiError):
    code = 404
    message = "Proposal file not found"


class DuplicateReview(ApiError):
    code = 422
    message = "You have already reviewed this proposal"


class ServerError(ApiError):
    code = 500
    message = "Internal server error"
