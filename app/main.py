"""Compliance Gateway - Main Application."""
import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.dependencies import init_auth_gate
from app.domain.auth import AuthConfigurationError
from app.domain.encryption import field_cipher
from app.domain.encryption.field_cipher import EncryptionConfigError
from app.logging_hardening import setup_logging
from app.middleware.observability import RequestLoggingMiddleware
from app.routers import health
from app.settings import settings

logger = logging.getLogger(__name__)

# Initialize logging and redaction filters early
setup_logging(settings.LOG_LEVEL)

GENERIC_ERROR_MESSAGE = "Internal server error"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: both components must be usable before any request is served
    try:
        field_cipher.initialize(settings.ENCRYPTION_KEY, settings.ENCRYPTION_SALT)
        init_auth_gate(settings)
    except (EncryptionConfigError, AuthConfigurationError) as e:
        logger.critical(f"CRITICAL STARTUP ERROR: {e}")
        sys.exit(1)

    yield

    logger.info("Shutdown complete.")


app = FastAPI(
    title="Compliance Gateway",
    description="Security core for the contractor compliance backend",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    # Avoid leaking internals from 5xx errors in production
    if settings.is_production and exc.status_code >= 500:
        detail = GENERIC_ERROR_MESSAGE

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": detail},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": GENERIC_ERROR_MESSAGE})
    return JSONResponse(status_code=500, content={"detail": str(exc) or GENERIC_ERROR_MESSAGE})


# Mount routers
app.include_router(health.router, tags=["Health"])
