from devalyze.services.auth.credentials import CredentialHasher, hasher
from devalyze.services.auth.tokens import (
    SessionToken,
    bearer_scheme,
    create_token,
    get_current_user,
    issue_session_token,
    user_from_token,
)
from devalyze.services.auth.accounts import (
    authenticate,
    change_password,
    confirm_email,
    issue_reset_token,
    issue_verification_token,
    logout,
    register,
    reset_password,
    update_profile,
)
from devalyze.services.auth.federated import (
    GoogleIdentityVerifier,
    IdentityVerifier,
    authenticate_federated,
    get_identity_verifier,
)
