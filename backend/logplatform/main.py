from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from logplatform.api.routes.admin import router as admin_router
from logplatform.api.routes.logs import router as logs_router
from logplatform.api.routes.services import router as services_router
from logplatform.core.config import Settings, settings as default_settings
from logplatform.core.errors import LogPlatformError, StorageError
from logplatform.core.logging import configure_logging
from logplatform.services.platform import build_platform
from logplatform.utils.timeutil import iso_z, utcnow

logger = logging.getLogger("logplatform")


# -------------------------
# Response helpers
# -------------------------
def fail(message: str, status_code: int, **extra: Any) -> ORJSONResponse:
    body: Dict[str, Any] = {"error": message}
    body.update(extra)
    return ORJSONResponse(status_code=status_code, content=body)


# -------------------------
# App factory
# -------------------------
def create_app(
    settings: Optional[Settings] = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    settings = settings or default_settings
    platform = build_platform(settings, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.LOG_LEVEL)
        await platform.startup()
        logger.info("Logging platform backend ready (env=%s)", settings.ENV)
        try:
            yield
        finally:
            await platform.shutdown()

    app = FastAPI(
        title="Loggplattform API",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    app.state.platform = platform

    # -------------------------
    # Middleware
    # -------------------------
    app.add_middleware(GZipMiddleware, minimum_size=1024)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials="*" not in settings.CORS_ALLOW_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request-id + timing + body-size guard
    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        start = time.perf_counter()

        content_length = request.headers.get("content-length")
        if content_length is not None:
            try:
                if int(content_length) > settings.MAX_BODY_BYTES:
                    return fail(
                        f"Request body too large. Max is {settings.MAX_BODY_MB} MB.",
                        413,
                        request_id=request_id,
                    )
            except ValueError:
                pass

        response = await call_next(request)

        response.headers["x-request-id"] = request_id
        response.headers["x-response-ms"] = f"{(time.perf_counter() - start) * 1000:.2f}"
        return response

    # -------------------------
    # Routes
    # -------------------------
    @app.get("/health")
    async def health():
        try:
            await platform.hot_store.ping()
        except StorageError as exc:
            return ORJSONResponse(
                status_code=503,
                content={
                    "status": "error",
                    "database": "disconnected",
                    "error": exc.message,
                    "timestamp": iso_z(utcnow()),
                },
            )
        return {"status": "ok", "database": "connected", "timestamp": iso_z(utcnow())}

    app.include_router(logs_router, tags=["logs"])
    app.include_router(services_router, tags=["services"])
    app.include_router(admin_router, tags=["admin"])

    # -------------------------
    # Error handling
    # -------------------------
    @app.exception_handler(LogPlatformError)
    async def platform_error_handler(request: Request, exc: LogPlatformError):
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
        return ORJSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return fail(str(exc.detail), exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
            for err in exc.errors()
        ]
        return fail("Invalid request", 400, details=details)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

        # Show minimal debug info only in dev
        extra: Dict[str, Any] = {}
        if settings.ENV == "dev":
            extra["details"] = {"type": exc.__class__.__name__, "message": str(exc)}
        return fail("Internal server error", 500, **extra)

    return app


app = create_app()
