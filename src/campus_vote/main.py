# src/campus_vote/main.py
"""Main entry point for the Campus Vote application."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from campus_vote.api.v1 import otp_router, system_router, votes_router
from campus_vote.core.errors import ServiceUnavailableError, VotingError
from campus_vote.core.settings import settings
from campus_vote.db.session import SessionLocal
from campus_vote.services.reaper import ExpiryReaper
from campus_vote.services.sms import SmsGateway, build_sms_gateway
from campus_vote.services.throttle import build_throttle_store

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
}

# Initialize FastAPI app
app = FastAPI(
    title="Campus Vote API",
    description="OTP-gated anonymous voting API",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)


@app.middleware("http")
async def add_security_headers(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    if settings.is_production:
        response.headers.setdefault(
            "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
        )
    return response


@app.exception_handler(VotingError)
async def voting_error_handler(request: Request, exc: VotingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    error = ServiceUnavailableError()
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=error.to_dict())


# Include API routers
app.include_router(otp_router, prefix="/api/v1")
app.include_router(votes_router, prefix="/api/v1")
app.include_router(system_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    app.state.throttle_store = build_throttle_store(settings)
    app.state.sms_gateway = build_sms_gateway(settings)
    logger.info(
        "Campus Vote starting (throttle=%s, sms=%s)",
        settings.throttle_backend,
        app.state.sms_gateway.provider,
    )
    if settings.reaper_enabled:
        reaper = ExpiryReaper(
            SessionLocal,
            interval_seconds=settings.reaper_interval_seconds,
            grace_seconds=settings.reaper_grace_seconds,
        )
        await reaper.start()
        app.state.reaper = reaper
    else:
        app.state.reaper = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    reaper: ExpiryReaper | None = getattr(app.state, "reaper", None)
    if reaper:
        await reaper.stop()
    gateway: SmsGateway | None = getattr(app.state, "sms_gateway", None)
    if gateway:
        gateway.close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": "Campus Vote API",
        "version": settings.app_version,
        "description": "OTP-gated anonymous voting API",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("campus_vote.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
