import hashlib
import secrets
from functools import cached_property

from passlib.context import CryptContext

from devalyze.utils.config import settings


class CredentialHasher:
    """Single place where secrets are hashed and compared.

    Passwords go through bcrypt (slow, salted). One-time tokens are high
    entropy already, so they are stored as a SHA-256 digest that can be
    looked up directly.
    """

    def __init__(self, rounds: int = 12) -> None:
        self.context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, plain: str) -> str:
        """Hash a plaintext password using bcrypt."""
        return self.context.hash(plain)

    def verify(self, plain: str, digest: str | None) -> bool:
        """Verify plaintext password against a bcrypt hash."""
        if not digest:
            return False
        return self.context.verify(plain, digest)

    @cached_property
    def _dummy_digest(self) -> str:
        return self.context.hash(secrets.token_urlsafe(16))

    def dummy_verify(self, plain: str) -> bool:
        """Spend the same time as a real check so unknown accounts are not distinguishable."""
        self.context.verify(plain, self._dummy_digest)
        return False

    @staticmethod
    def new_token() -> str:
        return secrets.token_urlsafe(32)

    @staticmethod
    def digest_token(raw: str) -> str:
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()


hasher = CredentialHasher(rounds=settings.bcrypt_rounds)
