"""Domain models for Furniture Vectors.

- **furniture**: the vision model's structured description, stored catalog
  rows and similarity matches.
- **batch**: batch items, the pure item state machine, run snapshots.
"""

from src.models.batch import (
    BatchItem,
    BatchRunSnapshot,
    BatchRunState,
    BatchStatus,
    BatchSummary,
    BatchTransition,
    SelectedImage,
    apply_transition,
    select_batch,
    summarize,
)
from src.models.furniture import (
    CatalogItem,
    Colors,
    FurnitureDescription,
    Match,
    Materials,
    ShapeAndForm,
    similarity_to_percent,
)

__all__ = [
    "BatchItem",
    "BatchRunSnapshot",
    "BatchRunState",
    "BatchStatus",
    "BatchSummary",
    "BatchTransition",
    "CatalogItem",
    "Colors",
    "FurnitureDescription",
    "Match",
    "Materials",
    "SelectedImage",
    "ShapeAndForm",
    "apply_transition",
    "select_batch",
    "similarity_to_percent",
    "summarize",
]
