import json
import logging
from typing import Any, Protocol

import requests
from jose import JWTError, jwt
from mongoengine.errors import NotUniqueError

from devalyze.models.user import User
from devalyze.services.auth.accounts import split_full_name
from devalyze.services.auth.tokens import SessionToken, issue_session_token
from devalyze.services.cache import cache_get, cache_set
from devalyze.utils.base import utcnow
from devalyze.utils.config import settings
from devalyze.utils.errors import (
    AuthenticationError,
    FederatedIdConflict,
    IncompleteProfile,
    TransientInfrastructureError,
)


logger = logging.getLogger(__name__)

GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")
JWKS_CACHE_KEY = "auth:google:jwks"


class IdentityVerifier(Protocol):
    def verify(self, identity_token: str) -> dict[str, Any]:
        ...


class GoogleIdentityVerifier:
    """Verifies Google ID tokens: RS256 signature against Google's published keys, audience and issuer."""

    def __init__(self, client_id: str | None, certs_url: str, timeout: float, cache_seconds: int) -> None:
        self.client_id = client_id
        self.certs_url = certs_url
        self.timeout = timeout
        self.cache_seconds = cache_seconds

    def _fetch_keys(self) -> dict:
        cached = cache_get(JWKS_CACHE_KEY)
        if cached:
            return json.loads(cached)
        try:
            res = requests.get(self.certs_url, headers={"Accept": "application/json"}, timeout=self.timeout)
            res.raise_for_status()
            keys = res.json()
        except (requests.RequestException, ValueError) as exc:
            logger.error("Fetching identity provider keys failed: %s", exc)
            raise TransientInfrastructureError("Identity provider unavailable, please retry")
        cache_set(JWKS_CACHE_KEY, json.dumps(keys), ttl_seconds=self.cache_seconds)
        return keys

    def verify(self, identity_token: str) -> dict[str, Any]:
        if not self.client_id:
            raise TransientInfrastructureError("Google sign-in is not configured")
        keys = self._fetch_keys()
        try:
            claims = jwt.decode(
                identity_token,
                keys,
                algorithms=["RS256"],
                audience=self.client_id,
                options={"verify_at_hash": False},
            )
        except JWTError:
            raise AuthenticationError("Invalid Google token")
        if claims.get("iss") not in GOOGLE_ISSUERS:
            raise AuthenticationError("Invalid Google token")
        if claims.get("email") and claims.get("email_verified") is False:
            raise AuthenticationError("Google account email is not verified")
        return claims


def get_identity_verifier() -> IdentityVerifier:
    return GoogleIdentityVerifier(
        client_id=settings.google_client_id,
        certs_url=settings.google_certs_url,
        timeout=settings.google_timeout_seconds,
        cache_seconds=settings.google_certs_cache_seconds,
    )


def authenticate_federated(identity_token: str, verifier: IdentityVerifier) -> tuple[User, SessionToken, bool]:
    """Sign in (or up) with an external identity.

    Unknown email -> new verified, password-less user. Known email without a
    linked identity -> link (account merge, audit logged). Linked -> login.
    An identity bound to another account -> `FederatedIdConflict`.
    """
    claims = verifier.verify(identity_token)
    email = (claims.get("email") or "").strip().lower()
    name = (claims.get("name") or "").strip()[:100]
    subject = claims.get("sub")
    picture = claims.get("picture") or ""
    if not email or not name or not subject:
        raise IncompleteProfile()

    by_subject: User | None = User.objects(google_id=subject).first()
    by_email: User | None = User.objects(email=email).first()
    if by_subject and by_email and by_subject.id != by_email.id:
        raise FederatedIdConflict()
    if by_email and by_email.google_id and by_email.google_id != subject:
        raise FederatedIdConflict()

    user = by_email or by_subject
    is_new = False
    if user is None:
        surname, other_names = split_full_name(name)
        user = User(
            full_name=name,
            surname=surname,
            other_names=other_names,
            email=email,
            google_id=subject,
            profile_picture=picture,
            is_verified=True,
        )
        try:
            user.save(force_insert=True)
            is_new = True
            logger.info("New user %s created via Google sign-in", user.id)
        except NotUniqueError:
            # Lost a race with a concurrent first login for the same identity.
            user = User.objects(google_id=subject).first() or User.objects(email=email).first()
            if user is None or (user.google_id and user.google_id != subject):
                raise FederatedIdConflict()
    elif not user.google_id:
        user.google_id = subject
        user.is_verified = True
        if not user.profile_picture:
            user.profile_picture = picture
        try:
            user.save()
        except NotUniqueError:
            raise FederatedIdConflict()
        logger.warning("AUDIT: Google identity %s linked to existing account %s", subject, user.id)
    else:
        logger.info("Google sign-in for user %s", user.id)

    now = utcnow()
    User.objects(id=user.id).update_one(set__last_login=now, set__login_attempts=0, set__lock_until=None)
    user.last_login = now
    return user, issue_session_token(user), is_new
