"""Service-level errors. Each carries the HTTP status the API layer renders it with."""

from usergate.schemas.common import ErrorDetail


class UsergateError(Exception):
    """Base class for errors surfaced to clients in the response envelope."""

    status_code = 500
    default_message = "Something went wrong!"

    def __init__(
        self,
        message: str | None = None,
        errors: list[ErrorDetail] | None = None,
    ) -> None:
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class InvalidInputError(UsergateError):
    """Missing or malformed fields, or a password that fails the policy."""

    status_code = 400
    default_message = "Validation failed"


class DuplicateEmailError(UsergateError):
    status_code = 409
    default_message = "Email already exists"


class InvalidCredentialsError(UsergateError):
    """Same message for unknown email and wrong password."""

    status_code = 401
    default_message = "Invalid email or password"


class NoTokenError(UsergateError):
    status_code = 401
    default_message = "No token provided"


class TokenRejectedError(UsergateError):
    """An access token was presented but failed verification."""

    status_code = 403
    default_message = "Invalid token"


class InvalidRefreshTokenError(UsergateError):
    status_code = 401
    default_message = "Invalid refresh token"


class InsufficientPermissionsError(UsergateError):
    status_code = 403
    default_message = "Access denied: insufficient permissions"


class NotFoundError(UsergateError):
    status_code = 404
    default_message = "User not found"
