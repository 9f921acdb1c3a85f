from typing import Any


class AppError(Exception):
    """Base of every error a route handler may surface to the client.

    Carries the HTTP status, a stable machine readable `code`, a client safe
    `message` and optional field-level `details` / `retry_after` seconds.
    """
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Something went wrong"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        details: list[dict[str, Any]] | None = None,
        retry_after: int | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.message
        self.code = code or self.code
        self.details = details
        self.retry_after = retry_after
        self.extra = extra or {}
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Validation error"

    @classmethod
    def for_field(cls, field: str, message: str, **kwargs: Any) -> "ValidationError":
        return cls(message, details=[{"field": field, "message": message}], **kwargs)


class InvalidAlias(ValidationError):
    code = "INVALID_ALIAS"
    message = "Custom alias must be 3-50 alphanumeric characters"


class EncodingFailed(ValidationError):
    code = "ENCODING_FAILED"
    message = "Could not encode the given URL"


class PasswordReused(ValidationError):
    code = "PASSWORD_REUSED"
    message = "New password must not match any of your recent passwords"


class InvalidCredentials(ValidationError):
    code = "INVALID_CREDENTIALS"
    message = "Current password is incorrect"


class IncompleteProfile(ValidationError):
    code = "INCOMPLETE_PROFILE"
    message = "Incomplete identity profile information"


class AuthenticationError(AppError):
    status_code = 401
    code = "AUTHENTICATION_FAILED"
    message = "Could not validate credentials"


class AuthFailed(AuthenticationError):
    code = "INVALID_CREDENTIALS"
    message = "Invalid credentials"


class AccountLocked(AuthenticationError):
    status_code = 423
    code = "ACCOUNT_LOCKED"
    message = "Account temporarily locked due to too many failed login attempts"


class AuthorizationError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    message = "Forbidden"


class CsrfValidationFailed(AppError):
    status_code = 403
    code = "CSRF_TOKEN_INVALID"
    message = "Request rejected for security reasons"


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Not found"


class NotFoundOrForbidden(NotFound):
    """Raised alike for missing resources and resources owned by someone else."""


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    message = "Conflict"


class AliasTaken(ConflictError):
    code = "ALIAS_TAKEN"
    message = "Custom alias is already in use"


class EmailInUse(ConflictError):
    code = "EMAIL_IN_USE"
    message = "Email already in use"


class FederatedIdConflict(ConflictError):
    code = "FEDERATED_ID_CONFLICT"
    message = "This identity is already linked to a different account"


class RateLimited(AppError):
    status_code = 429
    code = "RATE_LIMITED"
    message = "Too many requests, please slow down."


class TransientInfrastructureError(AppError):
    status_code = 503
    code = "SERVICE_UNAVAILABLE"
    message = "Service temporarily unavailable, please retry"
