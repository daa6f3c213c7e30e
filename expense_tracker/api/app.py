"""
FastAPI application factory.

The app holds one AppComponents instance on ``app.state``; every route
reaches the flows through it. Startup creates indexes and seeds roles.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from expense_tracker import __version__
from expense_tracker.api.routers import ROUTERS
from expense_tracker.config import get_settings
from expense_tracker.orchestrator import AppComponents, create_app_components
from expense_tracker.validation import field_errors, summarize


logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await app.state.components.bootstrap()
    logger.info("app_started", environment=get_settings().app.app_environment)
    yield
    await app.state.components.shutdown()
    logger.info("app_stopped")


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Framework-level validation failures get the same 400 field map as the flows."""
    errors = field_errors(exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": summarize(errors), "errors": errors},
    )


def create_app(components: Optional[AppComponents] = None) -> FastAPI:
    """
    Build the API.

    Args:
        components: Pre-wired components (tests pass an in-memory setup).
                    Defaults to create_app_components().
    """
    app_settings = get_settings().app

    app = FastAPI(
        title="Expense Tracker API",
        version=__version__,
        debug=app_settings.debug_mode,
        lifespan=lifespan,
    )
    app.state.components = components or create_app_components()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok", "message": "Server is running"}

    for router in ROUTERS:
        app.include_router(router)

    return app
