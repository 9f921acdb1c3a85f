from fastapi import FastAPI
from fastapi.testclient import TestClient
from mongoengine.errors import ValidationError as DocumentValidationError
from pydantic import BaseModel, Field

from devalyze.models.user import User
from devalyze.utils.errors import AccountLocked, AliasTaken, ConflictError, RateLimited, ValidationError
from devalyze.utils.errors.handlers import document_error_details, error_response, register_exception_handlers
from devalyze.utils.validation import Invalid, Ok, check, is_http_url


class Sample(BaseModel):
    name: str = Field(min_length=2)
    age: int


def test_error_response_shape():
    res = error_response(RateLimited(retry_after=30))
    assert res.status_code == 429
    assert res.headers["Retry-After"] == "30"
    assert res.body == b'{"success":false,"error":"Too many requests, please slow down.","code":"RATE_LIMITED","retryAfter":30}'


def test_subclasses_keep_parent_status():
    assert AliasTaken().status_code == 409
    assert isinstance(AliasTaken(), ConflictError)
    assert AccountLocked().status_code == 423


def test_for_field_builds_details():
    err = ValidationError.for_field("longUrl", "bad")
    assert err.details == [{"field": "longUrl", "message": "bad"}]


def test_check_returns_ok_or_invalid():
    assert check(Sample, {"name": "Ada", "age": 36}) == Ok(Sample(name="Ada", age=36))

    result = check(Sample, {"name": "A"})
    assert isinstance(result, Invalid)
    assert {e.field for e in result.errors} == {"name", "age"}


def test_is_http_url():
    assert is_http_url("https://example.com/path?q=1")
    assert is_http_url("http://localhost:8000")
    assert not is_http_url("https://exa mple.com")
    assert not is_http_url("//example.com")
    assert not is_http_url(None)


def test_document_validation_errors_map_to_400():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/broken")
    def broken():
        User(full_name="Ada", email="not-an-email", password="x").validate()

    res = TestClient(app).get("/broken")
    assert res.status_code == 400
    body = res.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert {d["field"] for d in body["details"]} == {"email"}


def test_document_error_details_are_flattened_and_camel_cased():
    exc = DocumentValidationError(
        "ValidationError",
        errors={"profile_name": DocumentValidationError("too long"), "links": {"0": {"url": DocumentValidationError("bad url")}}},
    )
    assert document_error_details(exc) == [
        {"field": "profileName", "message": "too long"},
        {"field": "links.0.url", "message": "bad url"},
    ]
