"""Furniture Vectors FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, and serves the single-page frontend.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI, WebSocket
from fastapi.responses import FileResponse

from src.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from src.api.routes import APP_VERSION
from src.api.routes import router as api_router
from src.api.websocket import websocket_batch_progress
from src.config.loader import load_config
from src.config.settings import Settings
from src.pipeline.batch_controller import BatchController
from src.pipeline.progress_tracker import ProgressTracker
from src.providers.catalog.supabase_catalog_provider import SupabaseCatalogProvider
from src.providers.description.openrouter_description_provider import (
    OpenRouterDescriptionProvider,
    build_openrouter_client,
)
from src.providers.embedding.openrouter_embedding_provider import OpenRouterEmbeddingProvider
from src.services.furniture_pipeline import FurniturePipeline
from src.services.ingestion_service import IngestionService
from src.services.search_service import SearchService
from src.utils.image_normalizer import ImageNormalizer
from src.utils.logging import configure_logging, get_logger
from src.utils.preview_store import PreviewStore

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_FRONTEND_DIR = Path(__file__).resolve().parent.parent / "frontend"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, app_config: dict[str, Any]) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    normalizer_cfg = app_config.get("normalizer", {})
    search_cfg = app_config.get("search", {})
    batch_cfg = app_config.get("batch", {})

    # -- Shared resources --
    openrouter_client = build_openrouter_client(app_settings)
    preview_store = PreviewStore()
    progress_tracker = ProgressTracker()

    # -- Providers --
    description_provider = OpenRouterDescriptionProvider(app_settings, client=openrouter_client)
    embedding_provider = OpenRouterEmbeddingProvider(app_settings, client=openrouter_client)
    catalog_provider = SupabaseCatalogProvider(app_settings)

    # -- Services --
    normalizer = ImageNormalizer(
        preview_store,
        target_size=normalizer_cfg.get("target_size", 200),
        jpeg_quality=normalizer_cfg.get("jpeg_quality", 82),
        background=normalizer_cfg.get("background", "#ffffff"),
    )
    ingestion_service = IngestionService(catalog_provider)
    search_service = SearchService(
        catalog_provider,
        default_limit=search_cfg.get("default_limit", 3),
        default_threshold=search_cfg.get("default_threshold", 0.0),
    )
    furniture_pipeline = FurniturePipeline(
        description_provider=description_provider,
        embedding_provider=embedding_provider,
        normalizer=normalizer,
        ingestion_service=ingestion_service,
    )
    batch_controller = BatchController(
        furniture_pipeline,
        progress_tracker,
        pacing_seconds=batch_cfg.get("pacing_seconds", 0.0),
        max_finished_runs=batch_cfg.get("max_finished_runs", 20),
    )

    return {
        "settings": app_settings,
        "config": app_config,
        "openrouter_client": openrouter_client,
        "preview_store": preview_store,
        "progress_tracker": progress_tracker,
        "description_provider": description_provider,
        "embedding_provider": embedding_provider,
        "catalog_provider": catalog_provider,
        "normalizer": normalizer,
        "ingestion_service": ingestion_service,
        "search_service": search_service,
        "furniture_pipeline": furniture_pipeline,
        "batch_controller": batch_controller,
    }


def _warn_missing_configuration(app_settings: Settings) -> None:
    """Log one warning per external service whose credentials are absent."""
    for service, configured in app_settings.get_configured_services().items():
        if not configured:
            _logger.warning(
                "service_not_configured",
                service=service,
                missing=app_settings.missing_for(service),
                msg="Routes that call this service will fail until it is configured.",
            )


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = _build_all(settings, config)

    for key, value in components.items():
        setattr(application.state, key, value)

    _warn_missing_configuration(settings)
    _logger.info(
        "app_startup",
        version=APP_VERSION,
        environment=settings.app_env,
        vision_model=settings.openrouter_vision_model,
        embed_model=settings.openrouter_embed_model,
        services=settings.get_configured_services(),
    )

    yield

    # -- Shutdown: close network clients --
    await components["catalog_provider"].close()
    await components["openrouter_client"].close()
    _logger.info("app_shutdown", message="HTTP clients closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Furniture Vectors API",
        version=APP_VERSION,
        description=(
            "Describe furniture photos with a vision model, embed the "
            "descriptions, store them with a 200x200 preview in a vector "
            "catalog, and search the catalog by similarity."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    # -- API routes --
    application.include_router(api_router)

    # -- WebSocket --
    @application.websocket("/ws/batches/{run_id}")
    async def ws_batch_progress(websocket: WebSocket, run_id: str) -> None:
        await websocket_batch_progress(websocket, run_id)

    # -- Frontend --
    if (_FRONTEND_DIR / "index.html").exists():

        @application.get("/", include_in_schema=False)
        async def serve_index() -> FileResponse:
            return FileResponse(str(_FRONTEND_DIR / "index.html"))

    return application


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
