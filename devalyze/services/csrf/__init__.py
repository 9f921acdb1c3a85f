"""Double-submit cookie CSRF protection.

The token lives in an http-only cookie; the client fetches it from
`GET /api/csrf-token` and echoes it in the `X-CSRF-Token` header (or a
`_csrf` body field) on every state-changing request.
"""
import hmac
import json
import logging
import secrets

from fastapi import Request, Response

from devalyze.utils.config import settings
from devalyze.utils.errors import CsrfValidationFailed


logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class CsrfGuard:
    def __init__(
        self,
        cookie_name: str,
        header_name: str,
        form_field: str,
        max_age: int,
        secure: bool,
    ) -> None:
        self.cookie_name = cookie_name
        self.header_name = header_name
        self.form_field = form_field
        self.max_age = max_age
        self.secure = secure

    @staticmethod
    def mint() -> str:
        return secrets.token_hex(32)

    def set_cookie(self, response: Response, token: str) -> None:
        response.set_cookie(
            key=self.cookie_name,
            value=token,
            max_age=self.max_age,
            path="/",
            httponly=True,
            samesite="lax",
            secure=self.secure,
        )

    def clear_cookie(self, response: Response) -> None:
        response.delete_cookie(
            key=self.cookie_name,
            path="/",
            httponly=True,
            samesite="lax",
            secure=self.secure,
        )

    async def submitted_token(self, request: Request) -> str | None:
        token = request.headers.get(self.header_name)
        if token:
            return token
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            try:
                body = json.loads(await request.body() or b"null")
            except ValueError:
                return None
            if isinstance(body, dict) and isinstance(body.get(self.form_field), str):
                return body[self.form_field]
        elif content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
            form = await request.form()
            value = form.get(self.form_field)
            if isinstance(value, str):
                return value
        return None

    async def protect(self, request: Request, response: Response) -> str:
        """Ensure the client holds a token; validate it on unsafe methods. Returns the session's token."""
        cookie_token = request.cookies.get(self.cookie_name)
        if not cookie_token:
            cookie_token = self.mint()
            self.set_cookie(response, cookie_token)
            fresh = True
        else:
            fresh = False

        if request.method in SAFE_METHODS:
            return cookie_token

        submitted = await self.submitted_token(request)
        if fresh or not submitted:
            logger.warning("CSRF token missing on %s %s", request.method, request.url.path)
            raise CsrfValidationFailed("CSRF token missing", code="CSRF_TOKEN_REQUIRED")
        if not hmac.compare_digest(submitted.encode("utf-8"), cookie_token.encode("utf-8")):
            logger.warning("CSRF token mismatch on %s %s", request.method, request.url.path)
            raise CsrfValidationFailed("Invalid CSRF token", code="CSRF_TOKEN_INVALID")
        return cookie_token


guard = CsrfGuard(
    cookie_name=settings.csrf_cookie_name,
    header_name=settings.csrf_header_name,
    form_field=settings.csrf_form_field,
    max_age=settings.csrf_cookie_max_age,
    secure=settings.is_production,
)


async def csrf_protect(request: Request, response: Response) -> str:
    """App-wide dependency; route handlers that need the token declare it again and get the cached value."""
    return await guard.protect(request, response)


def clear_token(response: Response) -> None:
    guard.clear_cookie(response)
