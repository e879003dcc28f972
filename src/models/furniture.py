"""Furniture domain models: the structured description, stored rows, matches.

The description schema mirrors the JSON the vision model is prompted to
produce (see ``src/providers/description/prompts.py``).  Every model is
frozen; extra keys on the description are kept so an object coming back
from the model can be passed to the embedding call and the catalog
verbatim.
"""

from __future__ import annotations

import json
import math
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


# ---------------------------------------------------------------------------
# Description: the vision model's structured catalog entry.
# ---------------------------------------------------------------------------
class Materials(BaseModel):
    """What the piece is made of."""

    model_config = ConfigDict(frozen=True, extra="allow")

    frame: str
    upholstery: str
    legs: str
    other: str


class Colors(BaseModel):
    """Dominant and accent colours plus surface finish."""

    model_config = ConfigDict(frozen=True, extra="allow")

    primary: str
    secondary: str
    finish: str


class ShapeAndForm(BaseModel):
    """Silhouette and the shape of the main structural parts."""

    model_config = ConfigDict(frozen=True, extra="allow")

    silhouette: str
    backrest: str
    legs: str
    arms: str


class FurnitureDescription(BaseModel):
    """Structured, schema-shaped description of one furniture image.

    Produced once per image by the description provider and never modified
    afterwards; the embedding provider serializes it with
    :meth:`to_embedding_input`.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    object_type: str
    style: str
    materials: Materials
    colors: Colors
    shape_and_form: ShapeAndForm
    key_features_and_details: list[str] = Field(default_factory=list)
    overall_aesthetic: str

    def to_payload(self) -> dict[str, Any]:
        """Return the description as a plain JSON-compatible dict."""
        return self.model_dump(mode="json")

    def to_embedding_input(self) -> str:
        """Serialize to the compact JSON string that gets embedded."""
        return json.dumps(self.to_payload(), separators=(",", ":"), ensure_ascii=False)


# ---------------------------------------------------------------------------
# Stored rows and search matches
# ---------------------------------------------------------------------------
def _parse_vector(value: Any) -> Any:
    """Accept pgvector's text form (``"[0.1,0.2]"``) as well as a JSON list."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise ValueError(f"embedding is not a vector literal: {value[:40]!r}") from exc
    return value


def similarity_to_percent(similarity: float) -> float:
    """Convert a raw similarity to a percentage with two decimals.

    Rounds half up (``round(x * 10000) / 100`` in the browser), so
    ``0.8734`` becomes ``87.34``.
    """
    return math.floor(similarity * 10000 + 0.5) / 100


class CatalogItem(BaseModel):
    """One row of the ``furniture_items`` table as returned by the database."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str | int
    name: str | None = None
    image_url: str | None = None
    description: dict[str, Any]
    embedding: list[float] | None = None
    created_at: datetime | None = None

    @field_validator("embedding", mode="before")
    @classmethod
    def coerce_embedding(cls, value: Any) -> Any:
        return _parse_vector(value)


class Match(BaseModel):
    """A ranked nearest-neighbour result from the match RPC."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str | int
    name: str | None = None
    image_url: str | None = None
    description: dict[str, Any] = Field(default_factory=dict)
    similarity: float
    embedding: list[float] | None = None

    @field_validator("embedding", mode="before")
    @classmethod
    def coerce_embedding(cls, value: Any) -> Any:
        return _parse_vector(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def similarity_percent(self) -> float:
        return similarity_to_percent(self.similarity)
