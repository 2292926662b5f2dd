"""Main application module for the prose FastAPI service."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prose_fastapi import __version__
from prose_fastapi.app import telemetry
from prose_fastapi.app.api.routes import router
from prose_fastapi.app.config import Settings, get_settings
from prose_fastapi.app.exceptions import register_exception_handlers
from prose_fastapi.app.middleware import APIKeyMiddleware, SecurityHeadersMiddleware
from prose_fastapi.app.prometheus import setup_prometheus
from prose_fastapi.app.services.adapter import AnalysisAdapter
from prose_fastapi.app.services.analyzer import DocumentAnalyzer, get_analyzer

logger = logging.getLogger(__name__)


def _enabled_analyses(settings: Settings) -> list[str]:
    toggles = {
        "tokens": settings.ANALYZE_TOKENS,
        "sentences": settings.ANALYZE_SENTENCES,
        "entities": settings.ANALYZE_ENTITIES,
    }
    return [kind for kind, enabled in toggles.items() if enabled]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan events."""
    await startup_event(app)
    yield
    await shutdown_event(app)


async def startup_event(app: FastAPI) -> None:
    """Load the analyzer unless one was injected into create_app."""
    logger.info("Application startup")
    settings: Settings = app.state.settings

    analyzer = getattr(app.state, "analyzer", None)
    if analyzer is None:
        try:
            logger.info("Initializing analyzer...")
            analyzer = get_analyzer(settings)
            app.state.analyzer = analyzer
            logger.info("Analyzer initialization complete")
        except Exception as e:
            logger.error("Failed to initialize analyzer: %s", str(e))
            raise

    app.state.adapter = AnalysisAdapter(
        analyzer,
        timeout=settings.ANALYSIS_TIMEOUT,
        max_workers=settings.ANALYSIS_MAX_WORKERS,
        enabled=_enabled_analyses(settings),
    )

    if not settings.auth_configured:
        logger.warning("API_KEY is not set; every request except /health will be denied")

    logger.info("Application startup complete")


async def shutdown_event(app: FastAPI) -> None:
    """Perform shutdown activities."""
    logger.info("Application shutdown")
    telemetry.shutdown_telemetry()


def create_app(
    settings: Settings | None = None,
    analyzer: DocumentAnalyzer | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Configuration for this application. Defaults to the
            process-wide settings read from the environment.
        analyzer: Document analyzer to serve. When omitted the NLP engine
            described by ``settings`` is loaded at startup.

    Returns:
        FastAPI: The configured FastAPI application instance.
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title="Prose Analyzer API",
        description="Tokenization, sentence segmentation, POS tagging and "
        "named-entity extraction over HTTP",
        version=__version__,
        docs_url=f"/api/{settings.API_VERSION}/docs",
        redoc_url=f"/api/{settings.API_VERSION}/redoc",
        openapi_url=f"/api/{settings.API_VERSION}/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.analyzer = analyzer

    app.include_router(router)
    register_exception_handlers(app)

    # Last added runs first: CORS preflight, metrics, headers, then auth.
    app.add_middleware(
        APIKeyMiddleware,
        api_key=settings.API_KEY,
        header_name=settings.API_KEY_HEADER,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    if settings.PROMETHEUS_ENABLED:
        setup_prometheus(app, settings.monitored_paths)
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["Content-Type", settings.API_KEY_HEADER],
            max_age=86400,
        )

    telemetry.setup_telemetry(app, settings)

    return app
