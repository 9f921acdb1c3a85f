from datetime import timedelta

from bson.objectid import ObjectId
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from devalyze.models.user import User
from devalyze.utils.base import utcnow
from devalyze.utils.config import settings
from devalyze.utils.errors import AuthenticationError


SESSION_TOKEN_TYPE = "session"

bearer_scheme = HTTPBearer(auto_error=False)


class SessionToken(BaseModel):
    """Bearer credential handed to the client after any successful login."""
    token: str
    token_type: str = "bearer"
    expires_in: int


def create_token(subject: str, email: str, token_version: int, expires_delta: timedelta, token_type: str = SESSION_TOKEN_TYPE) -> str:
    """Create a signed JWT with subject, email, token version, expiration and type."""
    now = utcnow()
    payload = {
        "sub": subject,
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
        "tv": token_version,
        "typ": token_type,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def issue_session_token(user: User) -> SessionToken:
    lifetime = timedelta(days=settings.session_token_expires_days)
    token = create_token(
        subject=str(user.id),
        email=user.email,
        token_version=user.token_version,
        expires_delta=lifetime,
    )
    return SessionToken(token=token, expires_in=int(lifetime.total_seconds()))


def user_from_token(token: str) -> User:
    """Validate a session token and return its user.

    Rejects bad signatures, expired tokens, foreign token types and tokens
    minted under an older `token_version` (password change, logout).
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise AuthenticationError("Invalid or expired token")

    user_id = payload.get("sub")
    token_version = payload.get("tv")
    if not user_id or token_version is None or payload.get("typ") != SESSION_TOKEN_TYPE:
        raise AuthenticationError("Invalid or expired token")
    if not ObjectId.is_valid(user_id):
        raise AuthenticationError("Invalid or expired token")

    user = User.objects(id=user_id).first()
    if not user or user.token_version != token_version:
        raise AuthenticationError("Invalid or expired token")
    return user


def get_current_user(credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme)) -> User:
    """Auth dependency: resolves `Authorization: Bearer <token>` to the current user."""
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise AuthenticationError("No token provided")
    return user_from_token(credentials.credentials)
