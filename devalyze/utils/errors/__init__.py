from devalyze.utils.errors.exceptions import (
    AccountLocked,
    AliasTaken,
    AppError,
    AuthenticationError,
    AuthFailed,
    AuthorizationError,
    ConflictError,
    CsrfValidationFailed,
    EmailInUse,
    EncodingFailed,
    FederatedIdConflict,
    IncompleteProfile,
    InvalidAlias,
    InvalidCredentials,
    NotFound,
    NotFoundOrForbidden,
    PasswordReused,
    RateLimited,
    TransientInfrastructureError,
    ValidationError,
)
