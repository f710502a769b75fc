"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from folio_api.config import Settings, get_settings
from folio_api.dependencies import close_clients
from folio_api.routes import documents, health, project_types, projects
from folio_core.errors import AuthorizationError, InvalidTransitionError, WorkflowIntegrityError
from folio_core.log_config import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup/shutdown events."""
    settings = get_settings()
    configure_logging(settings.debug)
    logger.info("api_starting", app_env=settings.app_env)

    yield

    await close_clients()
    logger.info("api_stopped")


# ============================================================
# Domain error mapping
# ============================================================


async def authorization_error_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    # Denied and missing look the same to the caller
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": exc.message})


async def workflow_integrity_error_handler(
    request: Request, exc: WorkflowIntegrityError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.message, "missing_keys": exc.missing_keys},
    )


async def invalid_transition_error_handler(
    request: Request, exc: InvalidTransitionError
) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"detail": exc.message})


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Folio API",
        description="Multi-tenant document workspace with AI-generated deliverables",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AuthorizationError, authorization_error_handler)
    app.add_exception_handler(WorkflowIntegrityError, workflow_integrity_error_handler)
    app.add_exception_handler(InvalidTransitionError, invalid_transition_error_handler)

    # Register routes
    app.include_router(health.router, tags=["Health"])
    app.include_router(documents.router)
    app.include_router(projects.router)
    app.include_router(project_types.router)

    return app
