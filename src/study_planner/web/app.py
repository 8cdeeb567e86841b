"""FastAPI application exposing the planner as a JSON API."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from study_planner import __version__
from study_planner.core.config import get_config
from study_planner.core.errors import StorageFault, ValidationError
from study_planner.planner.service import StudyPlanner

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    logger.info("Starting Study Planner API...")

    yield

    # Shutdown
    close = getattr(app.state.planner.store.medium, "close", None)
    if close:
        close()
    logger.info("API shutdown complete")


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def storage_fault_handler(request: Request, exc: StorageFault) -> JSONResponse:
    logger.error(f"Storage fault on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


def create_app(planner: StudyPlanner | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        planner: Planner to serve; defaults to one bound to the configured
            SQLite storage.
    """
    config = get_config()

    app = FastAPI(
        title="Study Planner",
        description="Tasks, habits and Pomodoro statistics",
        version=__version__,
        lifespan=lifespan,
    )

    # Add CORS middleware for a browser front end
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.planner = planner or StudyPlanner.from_config(config)

    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(StorageFault, storage_fault_handler)

    from study_planner.web.routes import api

    app.include_router(api.router, prefix="/api")

    return app


def run_server(host: str | None = None, port: int | None = None) -> None:
    """Run the web server, defaulting to the configured address."""
    import uvicorn

    config = get_config()
    host = host or config.web.host
    port = port or config.web.port

    logger.info(f"Starting API at http://{host}:{port}")

    uvicorn.run(
        "study_planner.web.app:create_app",
        host=host,
        port=port,
        factory=True,
        log_level="info",
    )
