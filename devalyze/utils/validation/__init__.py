"""Declarative boundary validation.

Request payloads are described by pydantic models. `check` runs a model
against raw data and returns either `Ok(value)` or `Invalid(errors)` where
errors is a flat list of `FieldError`, the same shape returned to clients.
"""
from dataclasses import dataclass
from typing import Any, Generic, Iterable, TypeVar, Union
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel


T = TypeVar("T")


class CamelModel(BaseModel):
    """Request body whose fields are spelled camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Invalid:
    errors: list[FieldError]


Validated = Union[Ok[T], Invalid]


def field_errors(errors: Iterable[dict[str, Any]], skip_locations: tuple[str, ...] = ("body", "query", "path")) -> list[FieldError]:
    """Flatten pydantic error dicts into `FieldError`s, dropping the request location prefix."""
    out: list[FieldError] = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in skip_locations:
            loc = loc[1:]
        out.append(FieldError(field=".".join(loc), message=err.get("msg", "Invalid value")))
    return out


def check(schema: type[BaseModel], data: Any) -> Validated:
    try:
        return Ok(schema.model_validate(data))
    except PydanticValidationError as exc:
        return Invalid(field_errors(exc.errors()))


MAX_URL_LENGTH = 2048


def is_http_url(value: Any, max_length: int = MAX_URL_LENGTH) -> bool:
    """Absolute http(s) URL with a host, no whitespace, at most `max_length` chars."""
    if not isinstance(value, str) or not value or len(value) > max_length:
        return False
    if any(ch.isspace() for ch in value):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.hostname)
