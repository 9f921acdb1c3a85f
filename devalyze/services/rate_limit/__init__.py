from __future__ import annotations

import hmac
import logging

from fastapi import Request

from devalyze.services.cache import incr_window
from devalyze.utils.config import settings
from devalyze.utils.errors import RateLimited


logger = logging.getLogger(__name__)

ADMIN_KEY_HEADER = "X-API-Key"

SCOPE_MESSAGES = {
    "general": "Too many requests, please slow down.",
    "auth": "Too many authentication attempts, please try again later.",
    "shorten": "Too many links created, please try again later.",
    "qr": "Too many QR codes generated, please try again later.",
    "password": "Too many password change attempts, please try again later.",
    "reset": "Too many password reset requests, please try again later.",
}


def client_ip(request: Request) -> str:
    """Address the request came from.

    `X-Forwarded-For` is read only when the socket peer is listed in
    `settings.trusted_proxies`; hops added by trusted proxies are skipped
    from the right and the first untrusted one is the client.
    """
    peer = request.client.host if request.client else "unknown"
    trusted = settings.trusted_proxies
    if peer not in trusted:
        return peer
    hops = [hop.strip() for hop in request.headers.get("x-forwarded-for", "").split(",") if hop.strip()]
    for hop in reversed(hops):
        if hop not in trusted:
            return hop
    return hops[0] if hops else peer


def is_admin(request: Request) -> bool:
    supplied = request.headers.get(ADMIN_KEY_HEADER)
    if not supplied or not settings.admin_api_key:
        return False
    return hmac.compare_digest(supplied, settings.admin_api_key)


def limit_requests(scope: str):
    """Return a FastAPI dependency that allows N requests per client IP per window for `scope`.

    Fixed window counted in Redis (`INCR`, `EXPIRE` on the first hit). Limits
    come from `settings.rate_limits[scope]` as (max requests, window seconds).
    """
    if scope not in settings.rate_limits:
        raise KeyError(f"Unknown rate limit scope: {scope}")

    def _dependency(request: Request) -> None:
        if not settings.rate_limit_enabled or is_admin(request):
            return
        max_requests, window = settings.rate_limits[scope]
        ip = client_ip(request)
        hits, ttl = incr_window(f"rl:{scope}:{ip}", window)
        if hits > max_requests:
            logger.warning("Rate limit '%s' exceeded by %s on %s", scope, ip, request.url.path)
            raise RateLimited(SCOPE_MESSAGES.get(scope), retry_after=max(ttl, 1))

    return _dependency
