import secrets
import string

from devalyze.utils.config import settings


# 64 URL-safe symbols; 7 characters give ~2^42 codes.
ALPHABET = string.digits + string.ascii_uppercase + string.ascii_lowercase + "_-"

# Single path segments already served by routes, never handed out as codes.
RESERVED_CODES = frozenset({
    "api", "health", "shorten", "my-urls", "qr", "docs", "redoc",
    "openapi.json", "favicon.ico", "robots.txt", "static", "admin",
})


def is_reserved(code: str) -> bool:
    return code.lower() in RESERVED_CODES


def generate(length: int | None = None) -> str:
    """Return a random short code. Uniqueness is checked by the caller against the store."""
    length = length or settings.short_code_length
    while True:
        code = "".join(secrets.choice(ALPHABET) for _ in range(length))
        if not is_reserved(code):
            return code
