"""Unit tests for the single-image describe/embed/normalize/ingest pipeline."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.interfaces.catalog_provider import ICatalogProvider
from src.models.furniture import CatalogItem
from src.services.furniture_pipeline import (
    STAGE_EMBEDDING,
    STAGE_PREVIEW,
    STAGE_SAVING,
    FurniturePipeline,
    SourceImage,
)
from src.services.ingestion_service import IngestionService
from src.utils.errors import (
    CanvasUnavailableError,
    MalformedUpstreamResponseError,
    UpstreamRequestError,
)
from src.utils.image_normalizer import ImageNormalizer
from src.utils.preview_store import PreviewHandle, PreviewStore


@pytest.fixture()
def store() -> PreviewStore:
    return PreviewStore()


@pytest.fixture()
def catalog() -> MagicMock:
    provider = MagicMock(spec=ICatalogProvider)
    provider.upload_image = AsyncMock(
        side_effect=lambda path, data, content_type: f"https://cdn.test/{path}"
    )
    provider.insert_item = AsyncMock(
        side_effect=lambda name, image_url, description, embedding: CatalogItem(
            id="row-1", name=name, image_url=image_url, description=description, embedding=embedding
        )
    )
    return provider


@pytest.fixture()
def pipeline(
    mock_description_provider: MagicMock,
    mock_embedding_provider: MagicMock,
    store: PreviewStore,
    catalog: MagicMock,
) -> FurniturePipeline:
    return FurniturePipeline(
        description_provider=mock_description_provider,
        embedding_provider=mock_embedding_provider,
        normalizer=ImageNormalizer(store),
        ingestion_service=IngestionService(catalog),
    )


class TestSourceImage:
    def test_stem(self) -> None:
        assert SourceImage("dir/Eames Chair.png", b"").stem == "Eames Chair"
        assert SourceImage("", b"").stem == "image"

    def test_media_type_from_content_type(self) -> None:
        assert SourceImage("a", b"", "image/webp").media_type == "image/webp"

    def test_media_type_sniffed(self, png_bytes: bytes) -> None:
        assert SourceImage("a", png_bytes, "application/octet-stream").media_type == "image/png"


class TestProcess:
    @pytest.mark.asyncio
    async def test_runs_stages_in_order(
        self,
        pipeline: FurniturePipeline,
        png_bytes: bytes,
        catalog: MagicMock,
        sample_embedding: list[float],
        description_payload: dict[str, Any],
    ) -> None:
        stages: list[tuple[str, PreviewHandle | None]] = []

        outcome = await pipeline.process(
            SourceImage("chair.png", png_bytes, "image/png"),
            on_stage=lambda message, preview: stages.append((message, preview)),
        )

        assert [message for message, _ in stages] == [STAGE_EMBEDDING, STAGE_PREVIEW, STAGE_SAVING]
        assert stages[0][1] is None
        assert isinstance(stages[2][1], PreviewHandle)

        path = catalog.upload_image.await_args.args[0]
        assert path.endswith("-chair.jpg")
        catalog.insert_item.assert_awaited_once_with(
            name="chair",
            image_url=f"https://cdn.test/{path}",
            description=description_payload,
            embedding=sample_embedding,
        )
        assert outcome.item.id == "row-1"
        assert outcome.embedding == sample_embedding
        assert outcome.thumbnail_base64

    @pytest.mark.asyncio
    async def test_explicit_name(
        self, pipeline: FurniturePipeline, png_bytes: bytes, catalog: MagicMock
    ) -> None:
        await pipeline.process(SourceImage("IMG_0001.png", png_bytes), name="Walnut lounge chair")
        assert catalog.insert_item.await_args.kwargs["name"] == "Walnut lounge chair"

    @pytest.mark.asyncio
    async def test_async_stage_callback(self, pipeline: FurniturePipeline, png_bytes: bytes) -> None:
        callback = AsyncMock()
        await pipeline.process(SourceImage("a.png", png_bytes), on_stage=callback)
        assert callback.await_count == 3

    @pytest.mark.asyncio
    async def test_preview_valid_during_saving_then_released(
        self, pipeline: FurniturePipeline, png_bytes: bytes, store: PreviewStore
    ) -> None:
        seen: list[bool] = []

        def on_stage(message: str, preview: PreviewHandle | None) -> None:
            if preview is not None:
                seen.append(preview in store)

        await pipeline.process(SourceImage("a.png", png_bytes), on_stage=on_stage)
        assert seen == [True]
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_description_failure_stops_pipeline(
        self,
        pipeline: FurniturePipeline,
        png_bytes: bytes,
        mock_description_provider: MagicMock,
        mock_embedding_provider: MagicMock,
        catalog: MagicMock,
    ) -> None:
        mock_description_provider.describe.side_effect = MalformedUpstreamResponseError(
            "Description response was not valid JSON", provider_name="openrouter"
        )
        with pytest.raises(MalformedUpstreamResponseError):
            await pipeline.process(SourceImage("a.png", png_bytes))

        mock_embedding_provider.embed_description.assert_not_awaited()
        catalog.insert_item.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_undecodable_image(
        self, pipeline: FurniturePipeline, catalog: MagicMock, store: PreviewStore
    ) -> None:
        with pytest.raises(CanvasUnavailableError):
            await pipeline.process(SourceImage("broken.jpg", b"not an image", "image/jpeg"))
        catalog.upload_image.assert_not_awaited()
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_insert_failure_releases_preview(
        self,
        pipeline: FurniturePipeline,
        png_bytes: bytes,
        catalog: MagicMock,
        store: PreviewStore,
    ) -> None:
        catalog.insert_item.side_effect = UpstreamRequestError(
            "Supabase insert failed", provider_name="supabase", upstream_status=400
        )
        with pytest.raises(UpstreamRequestError):
            await pipeline.process(SourceImage("a.png", png_bytes))
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_describe_passes_sniffed_mime(
        self,
        pipeline: FurniturePipeline,
        image_factory: Callable[..., bytes],
        mock_description_provider: MagicMock,
    ) -> None:
        data = image_factory(8, 8, fmt="JPEG")
        await pipeline.describe(SourceImage("photo", data))
        mock_description_provider.describe.assert_awaited_once_with(data, "image/jpeg")

    @pytest.mark.asyncio
    async def test_outcome_payload(self, pipeline: FurniturePipeline, png_bytes: bytes) -> None:
        outcome = await pipeline.process(SourceImage("a.png", png_bytes))
        payload = outcome.to_payload()
        assert set(payload) == {"description", "embedding", "item", "thumbnail_base64"}
        assert payload["item"]["name"] == "a"
