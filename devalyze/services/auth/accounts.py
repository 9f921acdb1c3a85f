import logging
import math
from datetime import timedelta
from typing import NoReturn

from mongoengine.errors import NotUniqueError

from devalyze.models.user import PasswordHistoryEntry, User
from devalyze.services.auth.credentials import CredentialHasher, hasher as default_hasher
from devalyze.services.auth.passwords import enforce_policy
from devalyze.services.auth.tokens import SessionToken, issue_session_token
from devalyze.utils.base import as_utc, utcnow
from devalyze.utils.config import settings
from devalyze.utils.errors import (
    AccountLocked,
    AuthFailed,
    EmailInUse,
    InvalidCredentials,
    PasswordReused,
    ValidationError,
)


logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("full_name", "surname", "other_names", "language", "country")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def split_full_name(full_name: str) -> tuple[str, str]:
    parts = full_name.strip().split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def register(full_name: str, email: str, password: str, hasher: CredentialHasher = default_hasher) -> tuple[User, SessionToken]:
    enforce_policy(password)
    email = normalize_email(email)
    # Hash before the existence check so both outcomes cost the same.
    digest = hasher.hash(password)
    if User.objects(email=email).only("id").first():
        raise EmailInUse()

    surname, other_names = split_full_name(full_name)
    user = User(
        full_name=full_name.strip(),
        surname=surname,
        other_names=other_names,
        email=email,
        password=digest,
    )
    try:
        user.save(force_insert=True)
    except NotUniqueError:
        raise EmailInUse()
    logger.info("Registered user %s", user.id)
    return user, issue_session_token(user)


def _lock_retry_after(lock_until) -> int:
    return max(1, math.ceil((lock_until - utcnow()).total_seconds()))


def _fail_attempt(user: User) -> NoReturn:
    updated: User | None = User.objects(id=user.id).modify(new=True, inc__login_attempts=1)
    attempts = updated.login_attempts if updated else user.login_attempts + 1
    if attempts >= settings.max_login_attempts:
        lock_until = utcnow() + timedelta(minutes=settings.lockout_minutes)
        User.objects(id=user.id).update_one(set__lock_until=lock_until)
        logger.warning("User %s locked out after %s failed login attempts", user.id, attempts)
        raise AccountLocked(retry_after=_lock_retry_after(lock_until))
    raise AuthFailed()


def authenticate(email: str, password: str, hasher: CredentialHasher = default_hasher) -> tuple[User, SessionToken]:
    """Password login with lockout.

    Unlocked -> failed attempts counted atomically -> Locked for
    `lockout_minutes` at `max_login_attempts`. While locked, even the right
    password is refused. An expired lock is cleared before the attempt is
    evaluated.
    """
    user: User | None = User.objects(email=normalize_email(email)).first()
    if not user or not user.password:
        hasher.dummy_verify(password)
        if user:
            _fail_attempt(user)
        raise AuthFailed()

    now = utcnow()
    lock_until = as_utc(user.lock_until)
    if lock_until and lock_until > now:
        raise AccountLocked(retry_after=_lock_retry_after(lock_until))
    if lock_until:
        User.objects(id=user.id).update_one(set__login_attempts=0, set__lock_until=None)
        user.login_attempts = 0
        user.lock_until = None

    if not hasher.verify(password, user.password):
        _fail_attempt(user)

    User.objects(id=user.id).update_one(set__login_attempts=0, set__lock_until=None, set__last_login=now)
    user.login_attempts = 0
    user.lock_until = None
    user.last_login = now
    return user, issue_session_token(user)


def _ensure_not_reused(user: User, new_password: str, hasher: CredentialHasher) -> None:
    """Reject any of the last `password_history_size` passwords, the current one included."""
    used = [entry.hash for entry in (user.password_history or [])]
    if user.password:
        used.append(user.password)
    for digest in used[-settings.password_history_size:]:
        if digest and hasher.verify(new_password, digest):
            raise PasswordReused(details=[{"field": "newPassword", "message": PasswordReused.message}])


def _rotate_password(user: User, new_password: str, hasher: CredentialHasher, **extra_updates) -> None:
    """Retire the current hash into history, store the new one and invalidate issued tokens."""
    history = list(user.password_history or [])
    if user.password:
        history.append(PasswordHistoryEntry(hash=user.password, changed_at=utcnow()))
    history = history[-settings.password_history_size:]

    User.objects(id=user.id).update_one(
        set__password=hasher.hash(new_password),
        set__password_history=history,
        inc__token_version=1,
        **extra_updates,
    )
    user.reload()


def change_password(user: User, current_password: str, new_password: str, hasher: CredentialHasher = default_hasher) -> SessionToken:
    if new_password == current_password:
        raise ValidationError.for_field("newPassword", "New password must be different from the current password")
    if not hasher.verify(current_password, user.password):
        raise InvalidCredentials()
    enforce_policy(new_password, field="newPassword")
    _ensure_not_reused(user, new_password, hasher)
    _rotate_password(user, new_password, hasher)
    logger.info("Password changed for user %s", user.id)
    return issue_session_token(user)


def issue_verification_token(user: User, hasher: CredentialHasher = default_hasher) -> str:
    """Store the digest of a fresh email verification token and return the raw value for delivery."""
    raw = hasher.new_token()
    User.objects(id=user.id).update_one(
        set__verification_token_hash=hasher.digest_token(raw),
        set__verification_token_expires=utcnow() + timedelta(hours=settings.verification_token_expires_hours),
    )
    return raw


def confirm_email(raw_token: str, hasher: CredentialHasher = default_hasher) -> User:
    user: User | None = User.objects(verification_token_hash=hasher.digest_token(raw_token)).first()
    expires = as_utc(user.verification_token_expires) if user else None
    if not user or not expires or expires < utcnow():
        raise ValidationError.for_field("token", "Invalid or expired token")
    User.objects(id=user.id).update_one(
        set__is_verified=True,
        unset__verification_token_hash=True,
        unset__verification_token_expires=True,
    )
    user.reload()
    return user


def issue_reset_token(email: str, hasher: CredentialHasher = default_hasher) -> str | None:
    """Return a raw reset token, or None for unknown emails (callers answer both cases alike)."""
    user: User | None = User.objects(email=normalize_email(email)).first()
    if not user:
        return None
    raw = hasher.new_token()
    User.objects(id=user.id).update_one(
        set__reset_token_hash=hasher.digest_token(raw),
        set__reset_token_expires=utcnow() + timedelta(minutes=settings.reset_token_expires_minutes),
    )
    return raw


def reset_password(raw_token: str, new_password: str, hasher: CredentialHasher = default_hasher) -> User:
    user: User | None = User.objects(reset_token_hash=hasher.digest_token(raw_token)).first()
    expires = as_utc(user.reset_token_expires) if user else None
    if not user or not expires or expires < utcnow():
        raise ValidationError.for_field("token", "Invalid or expired token")
    enforce_policy(new_password, field="newPassword")
    _ensure_not_reused(user, new_password, hasher)
    _rotate_password(
        user,
        new_password,
        hasher,
        unset__reset_token_hash=True,
        unset__reset_token_expires=True,
        set__login_attempts=0,
        set__lock_until=None,
    )
    logger.info("Password reset for user %s", user.id)
    return user


def update_profile(user: User, changes: dict) -> User:
    updates = {k: v.strip() if isinstance(v, str) else v for k, v in changes.items() if k in PROFILE_FIELDS and v is not None}
    if "full_name" in updates and "surname" not in updates and "other_names" not in updates:
        updates["surname"], updates["other_names"] = split_full_name(updates["full_name"])
    for field, value in updates.items():
        setattr(user, field, value)
    user.save()
    return user


def logout(user: User) -> None:
    """Invalidate every token issued so far for this user."""
    User.objects(id=user.id).update_one(inc__token_version=1)
