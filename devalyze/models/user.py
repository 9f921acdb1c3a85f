from mongoengine import (
    BooleanField,
    DateTimeField,
    EmailField,
    EmbeddedDocumentField,
    IntField,
    ListField,
    StringField,
    ValidationError,
)

from devalyze.models.base import BaseDocument, BaseEmbeddedDocument
from devalyze.utils.base import utcnow


class PasswordHistoryEntry(BaseEmbeddedDocument):
    """Embedded: a previously used password hash and when it was retired."""
    hash = StringField(required=True, null=False)
    changed_at = DateTimeField(default=utcnow, null=False)


class User(BaseDocument):
    """User document.

    Fields:
    - full_name/surname/other_names (str)
    - email (str, unique): stored lower-cased, login identifier
    - password (str|None): bcrypt hash, absent for federated-only accounts
    - google_id (str|None, unique): federated identity subject
    - is_verified (bool)
    - login_attempts/lock_until: lockout state
    - password_history (list[PasswordHistoryEntry]): last retired hashes
    - token_version (int): bumped on password change / logout to invalidate tokens
    - verification_token_hash/reset_token_hash (+ expiry): one-time token digests
    Validate enforces that a password or a federated identity is present.
    """
    full_name = StringField(required=True, null=False, max_length=100)
    surname = StringField(required=False, default="", max_length=100)
    other_names = StringField(required=False, default="", max_length=100)
    email = EmailField(required=True, null=False, unique=True, allow_utf8_user=True)
    password = StringField(required=False)
    google_id = StringField(required=False)
    profile_picture = StringField(required=False, default="")
    is_verified = BooleanField(required=True, null=False, default=False)
    language = StringField(required=False, default="", max_length=50)
    country = StringField(required=False, default="", max_length=100)

    login_attempts = IntField(required=True, null=False, default=0, min_value=0)
    lock_until = DateTimeField(required=False, null=True)
    last_login = DateTimeField(required=False, null=True)

    password_history = ListField(EmbeddedDocumentField(PasswordHistoryEntry), null=False, default=list)
    token_version = IntField(required=True, null=False, default=0, min_value=0)

    verification_token_hash = StringField(required=False)
    verification_token_expires = DateTimeField(required=False, null=True)
    reset_token_hash = StringField(required=False)
    reset_token_expires = DateTimeField(required=False, null=True)

    meta = {
        "collection": "users",
        "indexes": [
            {"fields": ["email"], "unique": True},
            {"fields": ["google_id"], "unique": True, "sparse": True},
            {"fields": ["verification_token_hash"], "sparse": True},
            {"fields": ["reset_token_hash"], "sparse": True},
        ],
    }

    PRIVATE_FIELDS = (
        "password",
        "password_history",
        "token_version",
        "login_attempts",
        "lock_until",
        "verification_token_hash",
        "verification_token_expires",
        "reset_token_hash",
        "reset_token_expires",
        "metadata",
    )

    def clean(self):
        if self.email:
            self.email = self.email.strip().lower()

    def validate(self, clean=True):
        super().validate(clean)
        if not self.password and not self.google_id:
            raise ValidationError("User needs a password or a linked federated identity")

    def to_public(self) -> dict:
        return self.to_output(exclude=self.PRIVATE_FIELDS)
