import re

from devalyze.utils.config import settings
from devalyze.utils.errors import ValidationError


SYMBOLS = "@$!%*?&"


def policy_violations(password: str) -> list[str]:
    """Return human readable reasons `password` fails the configured policy (empty when it passes)."""
    problems = []
    if len(password) < settings.password_min_length:
        problems.append(f"must be at least {settings.password_min_length} characters")
    if len(password) > settings.password_max_length:
        problems.append(f"must be at most {settings.password_max_length} characters")
    if settings.password_require_mixed_case and not (re.search(r"[a-z]", password) and re.search(r"[A-Z]", password)):
        problems.append("must contain upper and lower case letters")
    if settings.password_require_digit and not re.search(r"\d", password):
        problems.append("must contain a digit")
    if settings.password_require_symbol and not any(ch in SYMBOLS for ch in password):
        problems.append(f"must contain one of {SYMBOLS}")
    return problems


def enforce_policy(password: str, field: str = "password") -> None:
    problems = policy_violations(password)
    if problems:
        raise ValidationError(
            "Password does not meet requirements",
            details=[{"field": field, "message": f"Password {p}"} for p in problems],
        )
