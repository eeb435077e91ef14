"""Error taxonomy for the portal API.

Every error raised by the services inherits from PortalError and carries
the HTTP status it maps to. The exception handlers in main.py turn them
into the standard response envelope:

- ValidationError (400): malformed input, weak or wrong current password
- AuthenticationError (401): missing/invalid token, bad credentials
- AuthorizationError (403): role mismatch
- NotFoundError (404)
- ConflictError (400): duplicate email
- RateLimitedError (429)
- InternalError (500): misconfiguration and other server faults
"""


class PortalError(Exception):
    """Base exception for all portal errors.

    Attributes:
        message: Client-safe error description.
        status_code: HTTP status the error maps to.
    """

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PortalError):
    status_code = 400
    default_message = "Invalid request"


class WeakPasswordError(ValidationError):
    default_message = "Password must be at least 6 characters long"


class InvalidCurrentPasswordError(ValidationError):
    default_message = "Current password is incorrect"


class AuthenticationError(PortalError):
    status_code = 401
    default_message = "Authentication failed"


class NotAuthenticatedError(AuthenticationError):
    default_message = "User not authenticated"


class InvalidTokenError(AuthenticationError):
    default_message = "Invalid or expired access token"


class InvalidCredentialsError(AuthenticationError):
    default_message = "Invalid email or password"


class AccountDeactivatedError(AuthenticationError):
    default_message = "Account is deactivated"


class InvalidRefreshTokenError(AuthenticationError):
    default_message = "Invalid refresh token"


class AuthorizationError(PortalError):
    status_code = 403
    default_message = "Insufficient permissions"


class NotFoundError(PortalError):
    status_code = 404
    default_message = "Not Found"


class ConflictError(PortalError):
    status_code = 400
    default_message = "Resource already exists"


class AccountExistsError(ConflictError):
    default_message = "User already exists with this email"


class RateLimitedError(PortalError):
    status_code = 429
    default_message = "Too many requests, please try again later."


class InternalError(PortalError):
    status_code = 500


class TokenConfigurationError(InternalError):
    default_message = "Token signing secret is not configured"
