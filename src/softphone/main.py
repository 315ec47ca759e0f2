"""
FastAPI application entry point.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from softphone import __version__
from softphone.accounts.router import router as accounts_router
from softphone.calls.router import router as calls_router
from softphone.config import get_settings
from softphone.messaging.router import router as messaging_router
from softphone.numbers.router import router as numbers_router
from softphone.shared.database import get_database_manager
from softphone.shared.exceptions import (
    AppException,
    AuthenticationError,
    error_body,
    status_code_for,
)
from softphone.shared.logging import correlation_id_var, get_logger, setup_logging
from softphone.telephony.router import router as telephony_router
from softphone.telephony.webhooks.router import router as telephony_webhooks_router

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    settings = get_settings()

    logger.info("Application starting", extra={"env": settings.app_env})

    if settings.database_auto_create:
        await get_database_manager().create_all()
        logger.info("Database tables ensured")

    yield

    logger.info("Shutting down application")
    await get_database_manager().close()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Softphone Gateway API",
        description="Browser softphone backend: tokens, calls, messages and provider webhooks",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next):
        correlation_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = correlation_id_var.set(correlation_id)
        try:
            response = await call_next(request)
        finally:
            correlation_id_var.reset(token)
        response.headers[REQUEST_ID_HEADER] = correlation_id
        return response

    # Map domain exceptions to HTTP responses
    @app.exception_handler(AppException)
    async def _app_exception(request: Request, exc: AppException) -> JSONResponse:
        status_code = status_code_for(exc)
        logger.warning(
            "Request failed",
            extra={
                "endpoint": request.url.path,
                "code": exc.code,
                "status_code": status_code,
            },
        )
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
        return JSONResponse(status_code=status_code, content=error_body(exc), headers=headers)

    # Request validation (FastAPI/Pydantic) -> consistent 422 payload
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append(
                {
                    "field": field,
                    "message": error["msg"],
                    "type": error["type"],
                }
            )
        return JSONResponse(
            status_code=422,
            content={
                "detail": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "errors": errors,
                }
            },
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(accounts_router)
    app.include_router(telephony_router)
    app.include_router(calls_router)
    app.include_router(messaging_router)
    app.include_router(numbers_router)
    app.include_router(telephony_webhooks_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
