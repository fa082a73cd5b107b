"""FastAPI application setup."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coursereg import __version__
from coursereg.advisor import AdvisorClient
from coursereg.api.dependencies import (
    close_authenticator,
    close_registrar,
    close_store,
    init_authenticator,
    init_registrar,
    init_store,
)
from coursereg.api.models import error_response
from coursereg.api.routes import advisor, auth, courses, enrollments, users
from coursereg.auth import TokenAuthenticator, TokenService
from coursereg.config import Settings, load_settings
from coursereg.registrar import Registrar
from coursereg.rules import (
    AuthenticationError,
    CapacityError,
    ConflictError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    RegistrarError,
    StateError,
    ValidationError,
    field_errors,
)
from coursereg.store import StoreError

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = logging.getLogger("coursereg.api")

API_PREFIX = "/api/v1"

ERROR_STATUS: dict[type[RegistrarError], int] = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    ConflictError: status.HTTP_400_BAD_REQUEST,
    StateError: status.HTTP_400_BAD_REQUEST,
    CapacityError: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    ForbiddenError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InternalError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

REQUEST_SOURCES = frozenset({"body", "query", "path", "header", "cookie"})


def status_for(exc: RegistrarError) -> int:
    """HTTP status for a taxonomy error, resolved through its class hierarchy."""
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS:
            return ERROR_STATUS[cls]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def install_exception_handlers(app: FastAPI) -> None:
    """Map the error taxonomy, request validation and unexpected failures to envelopes."""

    @app.exception_handler(RegistrarError)
    async def registrar_error_handler(_request: Request, exc: RegistrarError) -> JSONResponse:
        details = exc.details if isinstance(exc, ValidationError) else None
        return JSONResponse(
            status_code=status_for(exc), content=error_response(exc.message, details)
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = field_errors(exc.errors(), sources=REQUEST_SOURCES)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_response("Validation failed", details),
        )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error(
            "Store error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response("Internal server error"),
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_response("Internal server error"),
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings

    # Startup
    store = init_store(settings.db_path)
    tokens = TokenService(settings.secret_key, settings.token_ttl_seconds)
    advisor_client = AdvisorClient(
        api_key=settings.advisor.api_key,
        model=settings.advisor.model,
        base_url=settings.advisor.base_url,
        max_words=settings.advisor.max_words,
        timeout=settings.advisor.timeout,
    )
    init_registrar(Registrar(store, tokens, advisor_client))
    init_authenticator(TokenAuthenticator(store, tokens))
    logger.info("coursereg %s started with database %s", __version__, settings.db_path)

    yield
    # Shutdown
    close_authenticator()
    close_registrar()
    advisor_client.close()
    close_store()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = load_settings()

    app = FastAPI(
        title="coursereg API",
        description="REST API for course registration and enrollment",
        version=__version__,
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_exception_handlers(app)

    app.include_router(auth.router, prefix=API_PREFIX)
    app.include_router(courses.router, prefix=API_PREFIX)
    app.include_router(enrollments.router, prefix=API_PREFIX)
    app.include_router(users.router, prefix=API_PREFIX)
    app.include_router(advisor.router, prefix=API_PREFIX)

    return app


# Default app instance
app = create_app()
