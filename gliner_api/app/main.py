"""Main application module for the Gliner API service."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from gliner_api.app.api.routes import router
from gliner_api.app.config import settings
from gliner_api.app.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from gliner_api.app.prometheus import setup_prometheus
from gliner_api.app.services.engine import get_engine
from gliner_api.app.services.orchestrator import DetectionOrchestrator
from gliner_api.app.telemetry import setup_telemetry, shutdown_telemetry

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan events."""
    await startup_event(app)
    yield
    await shutdown_event(app)


async def startup_event(app: FastAPI) -> None:
    """Build the shared engine and orchestrator."""
    logger.info("Application startup")

    try:
        engine = get_engine()
        if settings.ENGINE_PRELOAD:
            logger.info("Preloading entity extraction engine...")
            await run_in_threadpool(engine.warm_up)
    except Exception as e:
        logger.error("Failed to initialize entity extraction engine: %s", str(e))
        raise

    app.state.engine = engine
    app.state.orchestrator = DetectionOrchestrator(
        engine,
        labels=settings.label_set,
        segment_strategy=settings.SEGMENT_STRATEGY,
        max_text_length=settings.MAX_TEXT_LENGTH,
    )
    logger.info(
        "Application startup complete (backend=%s, labels=%s)",
        settings.ENGINE_BACKEND,
        ",".join(sorted(settings.label_set)),
    )


async def shutdown_event(app: FastAPI) -> None:
    """Perform shutdown activities."""
    logger.info("Application shutdown")
    shutdown_telemetry()


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render routing errors as structured JSON.

    An unsupported method on a known path is reported as Not Found, the same
    as an unknown path.
    """
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": "Not Found", "path": request.url.path},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "path": request.url.path},
        headers=getattr(exc, "headers", None),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured FastAPI application instance.
    """
    app = FastAPI(
        title="Gliner API",
        description="Detects personally identifiable information in free-form text",
        version=settings.API_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
        lifespan=lifespan,
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.include_router(router)

    setup_prometheus(app)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
            max_age=86400,
        )

    setup_telemetry(app)
    return app


app = create_app()
