"""Pydantic request/response schemas for the Furniture Vectors API.

# ─── HOW SCHEMAS WORK ─────────────────────────────────────────────────
#
# Request bodies mirror the JSON the page and the CLI send.  Fields that
# the route itself must reject with a 400 (e.g. a missing ``embedding``)
# are declared optional here and checked in the route, so a missing field
# produces the same ``{"error", "detail"}`` body as every other 400.
#
# The ingest body uses camelCase keys (``imageBase64``) on the wire;
# ``populate_by_name`` also accepts the snake_case names.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.furniture import CatalogItem, Match


class EmbedRequest(BaseModel):
    """Description to embed, exactly as returned by ``/api/describe``."""

    description: dict[str, Any] | None = None


class IngestRequest(BaseModel):
    """One catalog row plus an optional base64 JPEG preview."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")
    image_base64: str | None = Field(default=None, alias="imageBase64")
    image_name: str | None = Field(default=None, alias="imageName")
    description: dict[str, Any] | None = None
    embedding: list[float] | None = None


class SearchRequest(BaseModel):
    """Query vector and optional result limit / similarity floor."""

    embedding: list[float] | None = None
    limit: int | None = Field(default=None, ge=1, le=100)
    threshold: float | None = None


class DescribeResponse(BaseModel):
    description: dict[str, Any]


class EmbedResponse(BaseModel):
    embedding: list[float]


class IngestResponse(BaseModel):
    item: CatalogItem


class SearchResponse(BaseModel):
    matches: list[Match]


class IngestImageResponse(BaseModel):
    """Server-side single-image ingest: everything the page shows afterwards."""

    item: CatalogItem
    description: dict[str, Any]
    embedding: list[float]
    thumbnail_base64: str


class SearchImageResponse(BaseModel):
    description: dict[str, Any]
    matches: list[Match]


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    services: dict[str, bool]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
