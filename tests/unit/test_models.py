"""Unit tests for the furniture domain models."""

from __future__ import annotations

import json
from typing import Any

import pytest
from pydantic import ValidationError

from src.models.furniture import (
    CatalogItem,
    FurnitureDescription,
    Match,
    similarity_to_percent,
)


# ======================================================================
# FurnitureDescription
# ======================================================================


class TestFurnitureDescription:
    def test_validates_schema_payload(self, description_payload: dict[str, Any]) -> None:
        description = FurnitureDescription.model_validate(description_payload)
        assert description.object_type == "Armchair"
        assert description.materials.upholstery == "Mustard wool"
        assert description.key_features_and_details == [
            "Button-tufted backrest",
            "Visible wood grain",
        ]

    def test_missing_required_field_rejected(self, description_payload: dict[str, Any]) -> None:
        del description_payload["colors"]
        with pytest.raises(ValidationError):
            FurnitureDescription.model_validate(description_payload)

    def test_extra_keys_preserved(self, description_payload: dict[str, Any]) -> None:
        description_payload["condition"] = "Lightly worn"
        description = FurnitureDescription.model_validate(description_payload)
        assert description.to_payload()["condition"] == "Lightly worn"

    def test_payload_round_trips(self, description_payload: dict[str, Any]) -> None:
        description = FurnitureDescription.model_validate(description_payload)
        assert description.to_payload() == description_payload

    def test_embedding_input_is_compact_json(self, sample_description: FurnitureDescription) -> None:
        text = sample_description.to_embedding_input()
        assert '": ' not in text
        assert json.loads(text) == sample_description.to_payload()

    def test_frozen(self, sample_description: FurnitureDescription) -> None:
        with pytest.raises(ValidationError):
            sample_description.style = "Rustic"  # type: ignore[misc]


# ======================================================================
# Similarity display
# ======================================================================


class TestSimilarityPercent:
    @pytest.mark.parametrize(
        ("similarity", "expected"),
        [
            (0.8734, 87.34),
            (1.0, 100.0),
            (0.0, 0.0),
            (0.33333, 33.33),
            (0.5, 50.0),
        ],
    )
    def test_two_decimal_percent(self, similarity: float, expected: float) -> None:
        assert similarity_to_percent(similarity) == pytest.approx(expected)

    def test_match_exposes_percent(self) -> None:
        match = Match(id=1, name="chair", similarity=0.8734)
        assert match.similarity_percent == pytest.approx(87.34)
        assert match.model_dump()["similarity_percent"] == pytest.approx(87.34)


# ======================================================================
# Stored rows
# ======================================================================


class TestCatalogItem:
    def test_parses_pgvector_text(self, description_payload: dict[str, Any]) -> None:
        item = CatalogItem.model_validate(
            {
                "id": "abc",
                "name": "chair",
                "image_url": None,
                "description": description_payload,
                "embedding": "[0.1,0.2,0.3]",
                "created_at": "2026-10-19T12:00:00+00:00",
            }
        )
        assert item.embedding == [0.1, 0.2, 0.3]
        assert item.created_at is not None
        assert item.created_at.year == 2026

    def test_accepts_list_embedding(self, description_payload: dict[str, Any]) -> None:
        item = CatalogItem(id=7, description=description_payload, embedding=[1.0, 2.0])
        assert item.embedding == [1.0, 2.0]

    def test_rejects_garbage_vector(self, description_payload: dict[str, Any]) -> None:
        with pytest.raises(ValidationError):
            CatalogItem(id=7, description=description_payload, embedding="not a vector")

    def test_ignores_unknown_columns(self, description_payload: dict[str, Any]) -> None:
        item = CatalogItem.model_validate(
            {"id": 1, "description": description_payload, "fts": "ignored"}
        )
        assert not hasattr(item, "fts")
