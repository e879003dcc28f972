"""FastAPI API routes for Furniture Vectors.

Thin HTTP wrappers around the description, embedding, ingestion and search
services plus the batch controller.  Service dependencies are resolved from
``app.state`` via FastAPI's ``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                          Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/describe                     POST    image → structured description
# /api/embed                        POST    description → embedding
# /api/ingest                       POST    description + embedding (+ preview) → row
# /api/search                       POST    embedding → ranked matches
# /api/ingest/image                 POST    image → describe, embed, preview, ingest
# /api/search/image                 POST    image → describe, embed, search
# /api/batches                      POST    folder upload → queued batch run (202)
# /api/batches/{run_id}             GET     latest batch snapshot
# /api/batches/{run_id}/cancel      POST    stop before the next item
# /api/previews/{token}             GET     transient JPEG preview
# /api/health                       GET     health + configured services
#
# Every route that talks to an external service checks its credentials
# first and fails with ConfigurationError (500) before any network call.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
from typing import Annotated, Any

import structlog
from pydantic import ValidationError
from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    File,
    Form,
    Request,
    Response,
    UploadFile,
)

from src.api.schemas import (
    DescribeResponse,
    EmbedRequest,
    EmbedResponse,
    ErrorResponse,
    HealthResponse,
    IngestImageResponse,
    IngestRequest,
    IngestResponse,
    SearchImageResponse,
    SearchRequest,
    SearchResponse,
)
from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.batch import BatchRunSnapshot, SelectedImage
from src.models.furniture import FurnitureDescription
from src.pipeline.batch_controller import BatchController
from src.services.furniture_pipeline import FurniturePipeline, SourceImage
from src.services.ingestion_service import IngestionService
from src.services.search_service import SearchService
from src.utils.errors import ConfigurationError, InputValidationError, NotFoundError
from src.utils.logging import get_logger
from src.utils.preview_store import PreviewStore

_logger: structlog.BoundLogger = get_logger(__name__)

APP_VERSION = "0.1.0"

router = APIRouter(prefix="/api")

_ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Dependency helpers
# ---------------------------------------------------------------------------


def _get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _get_pipeline(request: Request) -> FurniturePipeline:
    return request.app.state.furniture_pipeline


def _get_embedding_provider(request: Request) -> IEmbeddingProvider:
    return request.app.state.embedding_provider


def _get_ingestion_service(request: Request) -> IngestionService:
    return request.app.state.ingestion_service


def _get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


def _get_batch_controller(request: Request) -> BatchController:
    return request.app.state.batch_controller


def _get_preview_store(request: Request) -> PreviewStore:
    return request.app.state.preview_store


SettingsDep = Annotated[Settings, Depends(_get_settings)]
PipelineDep = Annotated[FurniturePipeline, Depends(_get_pipeline)]
EmbeddingDep = Annotated[IEmbeddingProvider, Depends(_get_embedding_provider)]
IngestionDep = Annotated[IngestionService, Depends(_get_ingestion_service)]
SearchDep = Annotated[SearchService, Depends(_get_search_service)]
BatchDep = Annotated[BatchController, Depends(_get_batch_controller)]
PreviewStoreDep = Annotated[PreviewStore, Depends(_get_preview_store)]


def require_configured(settings: Settings, *services: str) -> None:
    """Raise :class:`ConfigurationError` if any of *services* lacks credentials."""
    for service in services:
        missing = settings.missing_for(service)
        if missing:
            raise ConfigurationError(
                message=f"Missing {', '.join(missing)} in environment",
                provider_name=service,
            )


def _check_description(payload: dict[str, Any]) -> None:
    """Reject a description that does not match the furniture schema.

    The payload itself is passed on unchanged.
    """
    try:
        FurnitureDescription.model_validate(payload)
    except ValidationError as exc:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
        raise InputValidationError(
            f"description does not match the furniture schema: {', '.join(fields)}"
        ) from exc


async def _read_image(upload: UploadFile | None) -> SourceImage:
    if upload is None:
        raise InputValidationError("image file required")
    data = await upload.read()
    if not data:
        raise InputValidationError("image file required")
    return SourceImage(
        filename=upload.filename or "image",
        data=data,
        content_type=upload.content_type or "",
    )


# ---------------------------------------------------------------------------
# Describe / embed / ingest / search
# ---------------------------------------------------------------------------


@router.post(
    "/describe",
    response_model=DescribeResponse,
    responses=_ERROR_RESPONSES,
    summary="Describe a furniture image as structured JSON",
)
async def describe_image(
    settings: SettingsDep,
    pipeline: PipelineDep,
    image: Annotated[UploadFile | None, File()] = None,
) -> DescribeResponse:
    require_configured(settings, "openrouter")
    source = await _read_image(image)
    description = await pipeline.describe(source)
    return DescribeResponse(description=description.to_payload())


@router.post(
    "/embed",
    response_model=EmbedResponse,
    responses=_ERROR_RESPONSES,
    summary="Embed a furniture description",
)
async def embed_description(
    body: EmbedRequest,
    settings: SettingsDep,
    embedder: EmbeddingDep,
) -> EmbedResponse:
    require_configured(settings, "openrouter")
    if not body.description:
        raise InputValidationError("description payload required")
    _check_description(body.description)
    # Embed the description exactly as the client sent it.
    text = json.dumps(body.description, separators=(",", ":"), ensure_ascii=False)
    embedding = await embedder.embed_text(text)
    return EmbedResponse(embedding=embedding)


@router.post(
    "/ingest",
    response_model=IngestResponse,
    responses=_ERROR_RESPONSES,
    summary="Store a described and embedded piece in the catalog",
)
async def ingest_item(
    body: IngestRequest,
    settings: SettingsDep,
    ingestion: IngestionDep,
) -> IngestResponse:
    require_configured(settings, "supabase")
    if not body.description or not body.embedding:
        raise InputValidationError("description and embedding are required")
    _check_description(body.description)
    item = await ingestion.ingest(
        name=body.name,
        image_url=body.image_url,
        image_base64=body.image_base64,
        image_name=body.image_name,
        description=body.description,
        embedding=body.embedding,
    )
    return IngestResponse(item=item)


@router.post(
    "/search",
    response_model=SearchResponse,
    responses=_ERROR_RESPONSES,
    summary="Find the closest catalog items to an embedding",
)
async def search_catalog(
    body: SearchRequest,
    settings: SettingsDep,
    search: SearchDep,
) -> SearchResponse:
    require_configured(settings, "supabase")
    if not body.embedding:
        raise InputValidationError("embedding vector required")
    matches = await search.search(body.embedding, limit=body.limit, threshold=body.threshold)
    return SearchResponse(matches=matches)


@router.post(
    "/ingest/image",
    response_model=IngestImageResponse,
    responses={**_ERROR_RESPONSES, 422: {"model": ErrorResponse}},
    summary="Describe, embed, normalize and ingest one image",
)
async def ingest_image(
    settings: SettingsDep,
    pipeline: PipelineDep,
    image: Annotated[UploadFile | None, File()] = None,
    name: Annotated[str | None, Form()] = None,
) -> IngestImageResponse:
    require_configured(settings, "openrouter", "supabase")
    source = await _read_image(image)
    outcome = await pipeline.process(source, name=name or None)
    return IngestImageResponse(
        item=outcome.item,
        description=outcome.description.to_payload(),
        embedding=outcome.embedding,
        thumbnail_base64=outcome.thumbnail_base64,
    )


@router.post(
    "/search/image",
    response_model=SearchImageResponse,
    responses=_ERROR_RESPONSES,
    summary="Describe an image and search the catalog with it",
)
async def search_by_image(
    settings: SettingsDep,
    pipeline: PipelineDep,
    embedder: EmbeddingDep,
    search: SearchDep,
    image: Annotated[UploadFile | None, File()] = None,
    limit: Annotated[int | None, Form()] = None,
) -> SearchImageResponse:
    require_configured(settings, "openrouter", "supabase")
    source = await _read_image(image)
    description = await pipeline.describe(source)
    embedding = await embedder.embed_description(description)
    matches = await search.search(embedding, limit=limit)
    return SearchImageResponse(description=description.to_payload(), matches=matches)


# ---------------------------------------------------------------------------
# Batch runs
# ---------------------------------------------------------------------------


@router.post(
    "/batches",
    response_model=BatchRunSnapshot,
    status_code=202,
    responses=_ERROR_RESPONSES,
    summary="Queue a folder of images for sequential ingestion",
)
async def create_batch(
    settings: SettingsDep,
    controller: BatchDep,
    background_tasks: BackgroundTasks,
    files: Annotated[list[UploadFile] | None, File()] = None,
    paths: Annotated[list[str] | None, Form()] = None,
) -> BatchRunSnapshot:
    require_configured(settings, "openrouter", "supabase")
    if not files:
        raise InputValidationError("Select a folder with images before running the batch.")

    relative_paths = paths or []
    selected = []
    for index, upload in enumerate(files):
        selected.append(
            SelectedImage(
                filename=upload.filename or f"image-{index}",
                data=await upload.read(),
                content_type=upload.content_type or "",
                relative_path=relative_paths[index] if index < len(relative_paths) else "",
            )
        )

    snapshot = await controller.create_run(selected)
    background_tasks.add_task(controller.run, snapshot.run_id)
    return snapshot


@router.get(
    "/batches/{run_id}",
    response_model=BatchRunSnapshot,
    responses={404: {"model": ErrorResponse}},
    summary="Latest state of a batch run",
)
async def get_batch(run_id: str, controller: BatchDep) -> BatchRunSnapshot:
    try:
        return controller.get_snapshot(run_id)
    except KeyError:
        raise NotFoundError(f"Batch not found: {run_id}") from None


@router.post(
    "/batches/{run_id}/cancel",
    response_model=BatchRunSnapshot,
    responses={404: {"model": ErrorResponse}},
    summary="Stop a batch run before its next item",
)
async def cancel_batch(run_id: str, controller: BatchDep) -> BatchRunSnapshot:
    try:
        return await controller.cancel(run_id)
    except KeyError:
        raise NotFoundError(f"Batch not found: {run_id}") from None


# ---------------------------------------------------------------------------
# Previews / health
# ---------------------------------------------------------------------------


@router.get(
    "/previews/{token}",
    responses={404: {"model": ErrorResponse}},
    summary="Fetch a transient JPEG preview",
)
async def get_preview(token: str, previews: PreviewStoreDep) -> Response:
    found = previews.get(token)
    if found is None:
        raise NotFoundError("Preview not found")
    data, content_type = found
    return Response(content=data, media_type=content_type, headers={"Cache-Control": "no-store"})


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(settings: SettingsDep) -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=APP_VERSION,
        services=settings.get_configured_services(),
    )
