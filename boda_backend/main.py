"""ASGI application: routes, error envelope, middleware and lifespan."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager, suppress
from datetime import UTC, datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError

from boda_backend.api.v1.router import api_router
from boda_backend.config import settings
from boda_backend.core.background_tasks import (
    start_drift_check_scheduler,
    stop_drift_check_scheduler,
)
from boda_backend.core.exceptions import AppException, ServiceUnavailable, ValidationError
from boda_backend.core.immutability import register_immutability_enforcement
from boda_backend.core.middleware import (
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from boda_backend.database import close_db, init_db
from boda_backend.services.notification_service import notification_service
from boda_backend.services.projection_service import projection_broadcaster

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    if settings.debug:
        await init_db()

    drift_task = None
    if settings.environment != "test":
        drift_task = asyncio.create_task(start_drift_check_scheduler())

    yield

    stop_drift_check_scheduler()
    if drift_task is not None:
        drift_task.cancel()
        with suppress(asyncio.CancelledError):
            await drift_task

    await notification_service.close()
    await close_db()


def _envelope(error: AppException) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content=error.to_dict(), headers=error.headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Every failure leaves the API as ``{"success": false, "error": {code, message}}``."""

    @app.exception_handler(AppException)
    async def app_error(request: Request, exc: AppException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.detail}")
        return _envelope(exc)

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = first.get("msg", "Validation failed")
        return _envelope(ValidationError(f"{field}: {message}" if field else message))

    @app.exception_handler(DBAPIError)
    async def database_down(request: Request, exc: DBAPIError) -> JSONResponse:
        logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
        return _envelope(ServiceUnavailable())

    @app.exception_handler(Exception)
    async def unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return _envelope(AppException())


def create_application() -> FastAPI:
    configure_logging()
    register_immutability_enforcement()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Supplier booking lifecycle and supplier dashboard API",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    register_exception_handlers(app)

    # Added last runs first: gzip is innermost, security headers outermost.
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    if settings.environment in ("staging", "production"):
        app.add_middleware(RateLimitMiddleware, requests_per_minute=settings.rate_limit_per_minute)
    app.add_middleware(SecurityHeadersMiddleware)

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "live_view_streams": projection_broadcaster.stream_count,
            "timestamp": datetime.now(UTC).isoformat(),
        }

    return app


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "boda_backend.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        workers=1 if settings.debug else settings.workers,
    )
