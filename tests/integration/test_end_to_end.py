"""End-to-end: describe, embed, preview, store and find again.

Real provider adapters run against a scripted OpenAI-compatible client and
the in-memory Supabase fake, so every serialization boundary is exercised.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from src.config.settings import Settings
from src.models.batch import BatchRunState, SelectedImage
from src.pipeline.batch_controller import BatchController
from src.pipeline.progress_tracker import ProgressTracker
from src.providers.catalog.supabase_catalog_provider import SupabaseCatalogProvider
from src.providers.description.openrouter_description_provider import (
    OpenRouterDescriptionProvider,
)
from src.providers.embedding.openrouter_embedding_provider import OpenRouterEmbeddingProvider
from src.services.furniture_pipeline import FurniturePipeline, SourceImage
from src.services.ingestion_service import IngestionService
from src.services.search_service import SearchService
from src.utils.image_normalizer import ImageNormalizer
from src.utils.preview_store import PreviewStore

VECTORS = {
    "Armchair": [0.9, 0.1, 0.0, 0.2, 0.1],
    "Sofa": [0.1, 0.9, 0.3, 0.0, 0.0],
    "Stool": [0.0, 0.1, 0.9, 0.1, 0.4],
}


def _scripted_client(descriptions: list[dict[str, Any]]) -> MagicMock:
    """OpenAI-style client: chat returns the next description, embeddings key off object_type."""
    client = MagicMock()

    chat_responses = []
    for payload in descriptions:
        response = MagicMock()
        response.choices = [MagicMock(message=MagicMock(content=json.dumps(payload)))]
        response.usage = None
        chat_responses.append(response)
    client.chat.completions.create = AsyncMock(side_effect=chat_responses)

    async def _embed(model: str, input: str) -> MagicMock:  # noqa: A002
        object_type = json.loads(input)["object_type"]
        return MagicMock(data=[MagicMock(embedding=VECTORS[object_type])], usage=None)

    client.embeddings.create = AsyncMock(side_effect=_embed)
    return client


def _variant(payload: dict[str, Any], object_type: str) -> dict[str, Any]:
    return {**payload, "object_type": object_type}


@pytest.fixture()
def stack(
    settings_factory: Callable[..., Settings],
    supabase_http_client: httpx.AsyncClient,
    description_payload: dict[str, Any],
) -> dict[str, Any]:
    settings = settings_factory()
    descriptions = [
        _variant(description_payload, "Armchair"),
        _variant(description_payload, "Sofa"),
        _variant(description_payload, "Stool"),
        # the query image
        _variant(description_payload, "Armchair"),
    ]
    client = _scripted_client(descriptions)
    store = PreviewStore()
    catalog = SupabaseCatalogProvider(settings, http_client=supabase_http_client)
    embedder = OpenRouterEmbeddingProvider(settings, client=client)
    pipeline = FurniturePipeline(
        description_provider=OpenRouterDescriptionProvider(settings, client=client),
        embedding_provider=embedder,
        normalizer=ImageNormalizer(store),
        ingestion_service=IngestionService(catalog),
    )
    return {
        "pipeline": pipeline,
        "embedder": embedder,
        "search": SearchService(catalog),
        "store": store,
        "client": client,
    }


class TestRoundTrip:
    @pytest.mark.asyncio
    async def test_ingest_then_search(
        self,
        stack: dict[str, Any],
        image_factory: Callable[..., bytes],
        fake_supabase,
    ) -> None:
        pipeline: FurniturePipeline = stack["pipeline"]

        for name in ("armchair.png", "sofa.png", "stool.png"):
            await pipeline.process(SourceImage(name, image_factory(64, 40), "image/png"))

        assert len(fake_supabase.rows) == 3
        assert len(fake_supabase.objects) == 3
        assert len(stack["store"]) == 0

        stored = fake_supabase.rows[0]
        assert json.loads(stored["embedding"]) == VECTORS["Armchair"]
        assert stored["description"]["object_type"] == "Armchair"
        assert stored["image_url"].startswith(
            "https://example.supabase.co/storage/v1/object/public/furniture-previews/"
        )

        query = await pipeline.describe(SourceImage("query.png", image_factory(10, 10)))
        embedding = await stack["embedder"].embed_description(query)
        matches = await stack["search"].search(embedding)

        assert [match.name for match in matches] == ["armchair", "sofa", "stool"]
        assert matches[0].similarity == pytest.approx(1.0)
        assert matches[0].similarity_percent == pytest.approx(100.0)
        assert matches[0].description["object_type"] == "Armchair"
        assert all(
            earlier.similarity >= later.similarity for earlier, later in zip(matches, matches[1:])
        )

    @pytest.mark.asyncio
    async def test_embedding_input_is_description_json(
        self, stack: dict[str, Any], image_factory: Callable[..., bytes]
    ) -> None:
        outcome = await stack["pipeline"].process(SourceImage("a.png", image_factory(8, 8)))

        sent = stack["client"].embeddings.create.await_args.kwargs["input"]
        assert json.loads(sent) == outcome.description.to_payload()
        assert outcome.item.description == outcome.description.to_payload()

    @pytest.mark.asyncio
    async def test_batch_over_real_adapters(
        self,
        stack: dict[str, Any],
        image_factory: Callable[..., bytes],
        fake_supabase,
    ) -> None:
        controller = BatchController(stack["pipeline"], ProgressTracker())
        created = await controller.create_run(
            [
                SelectedImage(filename=name, data=image_factory(20, 30), content_type="image/png")
                for name in ("c.png", "a.png", "b.png")
            ]
        )
        final = await controller.run(created.run_id)

        assert final.state is BatchRunState.COMPLETED
        assert final.summary is not None and final.summary.succeeded == 3
        assert [row["name"] for row in fake_supabase.rows] == ["a", "b", "c"]
        assert len(stack["store"]) == 0


class TestStoredVectorReadBack:
    @pytest.mark.asyncio
    async def test_embedding_and_description_come_back_from_search(
        self,
        settings_factory: Callable[..., Settings],
        supabase_http_client: httpx.AsyncClient,
        description_payload: dict[str, Any],
    ) -> None:
        vector = [0.1, 0.2, 0.3, 0.4, 0.5]
        catalog = SupabaseCatalogProvider(settings_factory(), http_client=supabase_http_client)

        stored = await IngestionService(catalog).ingest(
            description=description_payload, embedding=vector, name="walnut-chair"
        )
        matches = await SearchService(catalog).search(vector)

        assert stored.embedding == vector
        assert len(matches) == 1
        assert matches[0].embedding == vector
        assert matches[0].description == description_payload
        assert matches[0].name == "walnut-chair"
        assert matches[0].similarity == pytest.approx(1.0)
