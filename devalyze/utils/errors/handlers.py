import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from mongoengine.errors import ValidationError as DocumentValidationError
from pydantic.alias_generators import to_camel
from pymongo.errors import ConnectionFailure
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from devalyze.utils.config import settings
from devalyze.utils.errors.exceptions import AppError, TransientInfrastructureError, ValidationError
from devalyze.utils.validation import field_errors


logger = logging.getLogger(__name__)


def error_response(exc: AppError) -> JSONResponse:
    body = {"success": False, "error": exc.message, "code": exc.code}
    if exc.details:
        body["details"] = exc.details
    if exc.retry_after is not None:
        body["retryAfter"] = exc.retry_after
    body.update(exc.extra)

    headers = {}
    if exc.retry_after is not None:
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [e.to_dict() for e in field_errors(exc.errors())]
    logger.info("Validation failed for %s %s: %s", request.method, request.url.path, details)
    return error_response(ValidationError(details=details))


def document_error_details(exc: DocumentValidationError) -> list[dict[str, str]]:
    """Flatten mongoengine's nested error dict into camelCase `{field, message}` pairs."""
    details: list[dict[str, str]] = []

    def walk(errors, path):
        if isinstance(errors, dict):
            for name, error in errors.items():
                walk(error, [*path, to_camel(str(name))])
        else:
            details.append({"field": ".".join(path), "message": str(errors)})

    walk(exc.to_dict(), [])
    if not details:
        details.append({"field": "", "message": exc.message or "Invalid value"})
    return details


async def document_validation_handler(request: Request, exc: DocumentValidationError) -> JSONResponse:
    details = document_error_details(exc)
    logger.info("Document validation failed for %s %s: %s", request.method, request.url.path, details)
    return error_response(ValidationError(details=details))


async def infrastructure_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Infrastructure failure on %s %s", request.method, request.url.path)
    error = TransientInfrastructureError()
    if settings.is_development:
        error.extra = {"message": str(exc)}
    return error_response(error)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal server error",
            "code": "INTERNAL_ERROR",
            "message": str(exc) if settings.is_development else "Something went wrong",
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(DocumentValidationError, document_validation_handler)
    for exc_type in (ConnectionFailure, RedisConnectionError, RedisTimeoutError):
        app.add_exception_handler(exc_type, infrastructure_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
