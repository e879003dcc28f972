"""Single-image pipeline: describe, embed, normalize, ingest.

This is the unit of work the batch controller runs once per item and the
``/api/ingest/image`` route runs once per request:

    image bytes ──▶ description ──▶ embedding ──▶ 200x200 JPEG ──▶ catalog row

Stages run strictly in that order and the first failure propagates to the
caller unchanged.  The JPEG preview registered by the normalizer is always
released before :meth:`FurniturePipeline.process` returns or raises.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any

import structlog

from src.interfaces.description_provider import IDescriptionProvider
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.furniture import CatalogItem, FurnitureDescription
from src.services.ingestion_service import IngestionService
from src.utils.image_normalizer import ImageNormalizer, NormalizedImage, detect_media_type
from src.utils.logging import get_logger
from src.utils.preview_store import PreviewHandle

STAGE_EMBEDDING = "Embedding description..."
STAGE_PREVIEW = "Preparing 200x200 JPEG preview..."
STAGE_SAVING = "Saving to catalog..."

# on_stage(message, preview) may be sync or async.
StageCallback = Callable[[str, "PreviewHandle | None"], "Awaitable[None] | None"]


@dataclass(frozen=True)
class SourceImage:
    """An uploaded image before any processing."""

    filename: str
    data: bytes
    content_type: str = ""

    @property
    def stem(self) -> str:
        return PurePath(self.filename or "").stem or "image"

    @property
    def media_type(self) -> str:
        if self.content_type.startswith("image/"):
            return self.content_type
        return detect_media_type(self.data)


@dataclass(frozen=True)
class IngestOutcome:
    """Everything produced for one successfully ingested image."""

    description: FurnitureDescription
    embedding: list[float]
    item: CatalogItem
    thumbnail_base64: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "description": self.description.to_payload(),
            "embedding": self.embedding,
            "item": self.item.model_dump(mode="json"),
            "thumbnail_base64": self.thumbnail_base64,
        }


class FurniturePipeline:
    """Chains the description, embedding, normalizer and ingestion stages."""

    def __init__(
        self,
        description_provider: IDescriptionProvider,
        embedding_provider: IEmbeddingProvider,
        normalizer: ImageNormalizer,
        ingestion_service: IngestionService,
    ) -> None:
        self._describer = description_provider
        self._embedder = embedding_provider
        self._normalizer = normalizer
        self._ingestion = ingestion_service
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def describe(self, image: SourceImage) -> FurnitureDescription:
        return await self._describer.describe(image.data, image.media_type)

    async def process(
        self,
        image: SourceImage,
        name: str | None = None,
        on_stage: StageCallback | None = None,
    ) -> IngestOutcome:
        """Run all four stages for *image* and return the stored row.

        ``name`` defaults to the file stem.  ``on_stage`` is called before the
        embedding, preview and saving stages; the saving call also receives
        the preview handle, which stays valid until this method returns.
        """
        normalized: NormalizedImage | None = None
        try:
            description = await self.describe(image)

            await self._emit(on_stage, STAGE_EMBEDDING)
            embedding = await self._embedder.embed_description(description)

            await self._emit(on_stage, STAGE_PREVIEW)
            normalized = self._normalizer.normalize(image.data, image.filename)

            await self._emit(on_stage, STAGE_SAVING, normalized.preview)
            public_url = await self._ingestion.upload_preview(
                normalized.encoded_bytes, normalized.filename
            )
            item = await self._ingestion.ingest(
                name=name or image.stem,
                image_url=public_url,
                description=description.to_payload(),
                embedding=embedding,
            )
        finally:
            if normalized is not None:
                self._normalizer.release(normalized)

        self._logger.info("pipeline_item_complete", filename=image.filename, item_id=item.id)
        return IngestOutcome(
            description=description,
            embedding=embedding,
            item=item,
            thumbnail_base64=normalized.base64,
        )

    @staticmethod
    async def _emit(
        on_stage: StageCallback | None,
        message: str,
        preview: PreviewHandle | None = None,
    ) -> None:
        if on_stage is None:
            return
        result = on_stage(message, preview)
        if asyncio.iscoroutine(result):
            await result
