import logging
from contextlib import AsyncExitStack

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from devalyze.connections import mongo_lifespan, redis_lifespan
from devalyze.api.analytics import router as analytics_router
from devalyze.api.auth import router as auth_router
from devalyze.api.csrf import router as csrf_router
from devalyze.api.page import router as page_router
from devalyze.api.qr import router as qr_router
from devalyze.api.url import router as url_router
from devalyze.api.user import router as user_router
from devalyze.services.csrf import csrf_protect
from devalyze.services.rate_limit import limit_requests
from devalyze.utils.base import utcnow
from devalyze.utils.config import settings
from devalyze.utils.errors.handlers import register_exception_handlers


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
}


async def combined_lifespan(app: FastAPI):
    async with AsyncExitStack() as stack:
        await stack.enter_async_context(mongo_lifespan(app))
        await stack.enter_async_context(redis_lifespan(app))

        yield


app = FastAPI(
    title="Devalyze",
    version="0.1.0",
    lifespan=combined_lifespan,
    dependencies=[Depends(csrf_protect)],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", settings.csrf_header_name, "X-API-Key"],
)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    if settings.is_production:
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


register_exception_handlers(app)


@app.get("/health")
def health() -> dict:
    """PUBLIC: Liveness probe."""
    return {"status": "healthy", "timestamp": utcnow().isoformat(), "csrf": "enabled", "rateLimit": settings.rate_limit_enabled}


general_limit = [Depends(limit_requests("general"))]

app.include_router(csrf_router, prefix="/api", dependencies=general_limit)
app.include_router(auth_router, prefix="/api/auth", dependencies=general_limit)
app.include_router(user_router, prefix="/api/users", dependencies=general_limit)
app.include_router(qr_router, prefix="/api/qr", dependencies=general_limit)
app.include_router(page_router, prefix="/api/pages", dependencies=general_limit)
app.include_router(analytics_router, prefix="/api/analytics", dependencies=general_limit)
# Catch-all `/{short_code}` must come last.
app.include_router(url_router)


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
