"""Shared pytest fixtures for the Furniture Vectors test suite."""

from __future__ import annotations

import io
import json
import math
import uuid
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from PIL import Image

from src.config.settings import Settings
from src.interfaces.description_provider import IDescriptionProvider
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.furniture import FurnitureDescription

SUPABASE_URL = "https://example.supabase.co"


def make_settings(**overrides: Any) -> Settings:
    """Settings with test credentials, ignoring any local .env file."""
    values: dict[str, Any] = {
        "openrouter_api_key": "sk-or-test",
        "supabase_url": SUPABASE_URL,
        "supabase_service_role_key": "service-role-test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_image_bytes(
    width: int = 64,
    height: int = 48,
    *,
    mode: str = "RGB",
    fmt: str = "PNG",
    color: Any = (180, 40, 40),
) -> bytes:
    """Encode a solid-colour image of the given size."""
    image = Image.new(mode, (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format=fmt)
    return buffer.getvalue()


# ---------------------------------------------------------------------------
# Description fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def description_payload() -> dict[str, Any]:
    """A schema-shaped description as the vision model returns it."""
    return {
        "object_type": "Armchair",
        "style": "Mid-Century Modern",
        "materials": {
            "frame": "Walnut",
            "upholstery": "Mustard wool",
            "legs": "Walnut",
            "other": "N/A",
        },
        "colors": {
            "primary": "Mustard yellow",
            "secondary": "Walnut brown",
            "finish": "Natural oil finish",
        },
        "shape_and_form": {
            "silhouette": "Low-profile and curved",
            "backrest": "Curved, open-frame",
            "legs": "Tapered and splayed",
            "arms": "Sloped arms",
        },
        "key_features_and_details": ["Button-tufted backrest", "Visible wood grain"],
        "overall_aesthetic": "Cozy and casual",
    }


@pytest.fixture
def sample_description(description_payload: dict[str, Any]) -> FurnitureDescription:
    return FurnitureDescription.model_validate(description_payload)


@pytest.fixture
def sample_embedding() -> list[float]:
    return [0.12, -0.5, 0.33, 0.9, -0.07]


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes(64, 48)


# ---------------------------------------------------------------------------
# Provider mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_description_provider(sample_description: FurnitureDescription) -> MagicMock:
    provider = MagicMock(spec=IDescriptionProvider)
    provider.describe = AsyncMock(return_value=sample_description)
    provider.get_provider_name.return_value = "openrouter"
    provider.is_available.return_value = True
    return provider


@pytest.fixture
def mock_embedding_provider(sample_embedding: list[float]) -> MagicMock:
    provider = MagicMock(spec=IEmbeddingProvider)
    provider.embed_description = AsyncMock(return_value=sample_embedding)
    provider.embed_text = AsyncMock(return_value=sample_embedding)
    provider.get_provider_name.return_value = "openrouter"
    provider.is_available.return_value = True
    return provider


# ---------------------------------------------------------------------------
# In-memory Supabase (Storage + PostgREST + RPC) behind httpx.MockTransport
# ---------------------------------------------------------------------------


def _cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeSupabase:
    """Just enough of Supabase's HTTP surface for the catalog provider."""

    def __init__(self, bucket: str = "furniture-previews", table: str = "furniture_items") -> None:
        self.bucket = bucket
        self.table = table
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.rows: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.fail_next: dict[str, tuple[int, dict[str, Any]]] = {}

    def fail(self, action: str, status: int, message: str) -> None:
        """Make the next ``upload``, ``insert`` or ``match`` request fail."""
        self.fail_next[action] = (status, {"message": message})

    def _maybe_fail(self, action: str) -> httpx.Response | None:
        if action in self.fail_next:
            status, body = self.fail_next.pop(action)
            return httpx.Response(status, json=body)
        return None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        upload_prefix = f"/storage/v1/object/{self.bucket}/"
        if request.method == "POST" and path.startswith(upload_prefix):
            failure = self._maybe_fail("upload")
            if failure is not None:
                return failure
            object_path = path[len(upload_prefix):]
            if object_path in self.objects and request.headers.get("x-upsert") != "true":
                return httpx.Response(409, json={"message": "The resource already exists"})
            self.objects[object_path] = (request.content, request.headers.get("content-type", ""))
            return httpx.Response(200, json={"Key": f"{self.bucket}/{object_path}"})

        if request.method == "POST" and path == f"/rest/v1/{self.table}":
            failure = self._maybe_fail("insert")
            if failure is not None:
                return failure
            body = json.loads(request.content)
            row = {
                "id": str(uuid.uuid4()),
                "name": body.get("name"),
                "image_url": body.get("image_url"),
                "description": body["description"],
                # PostgREST returns pgvector columns in their text form.
                "embedding": json.dumps(body["embedding"]),
                "created_at": "2026-10-19T12:00:00+00:00",
            }
            self.rows.append(row)
            return httpx.Response(201, json=row)

        if request.method == "POST" and path == "/rest/v1/rpc/match_furniture":
            failure = self._maybe_fail("match")
            if failure is not None:
                return failure
            body = json.loads(request.content)
            query = body["query_embedding"]
            scored = []
            for row in self.rows:
                similarity = _cosine(query, json.loads(row["embedding"]))
                if similarity >= body["match_threshold"]:
                    scored.append(
                        {
                            "id": row["id"],
                            "name": row["name"],
                            "image_url": row["image_url"],
                            "description": row["description"],
                            "embedding": row["embedding"],
                            "similarity": similarity,
                        }
                    )
            scored.sort(key=lambda match: match["similarity"], reverse=True)
            return httpx.Response(200, json=scored[: body["match_limit"]])

        return httpx.Response(404, json={"message": f"no route for {request.method} {path}"})


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def supabase_http_client(fake_supabase: FakeSupabase) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_supabase.handler))


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    return make_settings


@pytest.fixture
def image_factory() -> Callable[..., bytes]:
    return make_image_bytes
