"""Batch ingestion state models and the pure item state machine.

A batch run is an ordered, immutable sequence of :class:`BatchItem` values.
The controller never mutates an item in place; it calls
:func:`apply_transition` with the current sequence and one
:class:`BatchTransition` and keeps the tuple that comes back.  Observers
(the REST status route, the WebSocket) only ever see those tuples.

Item lifecycle::

    pending ──▶ processing ──▶ success
                    │  ▲
                    │  └─ (message-only updates while a stage runs)
                    └────▶ error

Nothing moves backwards and ``message`` is cleared exactly on the move to
``success``.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from enum import Enum
from pathlib import PurePosixPath
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from src.utils.errors import InputValidationError, InvalidTransitionError

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".webp", ".gif"})


class BatchStatus(str, Enum):  # noqa: UP042 (StrEnum requires Python 3.11+)
    """Per-item status inside a batch run."""

    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


class BatchRunState(str, Enum):  # noqa: UP042
    """Lifecycle of a whole batch run."""

    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Legal (from, to) pairs.  PROCESSING -> PROCESSING is a message update.
_ALLOWED_TRANSITIONS: frozenset[tuple[BatchStatus, BatchStatus]] = frozenset(
    {
        (BatchStatus.PENDING, BatchStatus.PROCESSING),
        (BatchStatus.PROCESSING, BatchStatus.PROCESSING),
        (BatchStatus.PROCESSING, BatchStatus.SUCCESS),
        (BatchStatus.PROCESSING, BatchStatus.ERROR),
    }
)

_TERMINAL_STATUSES = frozenset({BatchStatus.SUCCESS, BatchStatus.ERROR})


class SelectedImage(BaseModel):
    """One file picked by the user, before it becomes a batch item."""

    model_config = ConfigDict(frozen=True)

    filename: str
    data: bytes = Field(repr=False)
    content_type: str = ""
    relative_path: str = ""


class BatchItem(BaseModel):
    """A single image queued in a batch run."""

    model_config = ConfigDict(frozen=True)

    id: str
    relative_path: str
    filename: str
    content_type: str = "image/jpeg"
    status: BatchStatus = BatchStatus.PENDING
    message: str | None = None
    # Set while a preview of the item is registered in the preview store.
    preview_url: str | None = None
    # Raw upload bytes, held only until the item succeeds or fails.
    source: bytes = Field(default=b"", repr=False, exclude=True)


class BatchTransition(BaseModel):
    """One requested state change for one item."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    status: BatchStatus
    message: str | None = None
    preview_url: str | None = None


class BatchSummary(BaseModel):
    """Aggregate outcome of a finished (or cancelled) run."""

    model_config = ConfigDict(frozen=True)

    total: int
    succeeded: int
    failed: int
    skipped: int = 0


class BatchRunSnapshot(BaseModel):
    """Read-only view of a run, published after every transition."""

    model_config = ConfigDict(frozen=True)

    run_id: str
    state: BatchRunState
    items: tuple[BatchItem, ...]
    status_message: str | None = None
    error_message: str | None = None
    summary: BatchSummary | None = None


# ---------------------------------------------------------------------------
# Pure functions
# ---------------------------------------------------------------------------


def is_image_file(filename: str, content_type: str = "") -> bool:
    """Return ``True`` for ``image/*`` uploads or known image extensions."""
    if content_type.startswith("image/"):
        return True
    return PurePosixPath(filename).suffix.lower() in IMAGE_EXTENSIONS


def select_batch(files: Iterable[SelectedImage]) -> tuple[BatchItem, ...]:
    """Turn a folder selection into an ordered tuple of pending items.

    Non-image files are dropped.  Items are ordered by the lexicographic
    sort of their relative path (file name when no path was supplied).

    Raises
    ------
    InputValidationError
        If no image files remain after filtering.
    """
    images = [f for f in files if is_image_file(f.filename, f.content_type)]
    if not images:
        raise InputValidationError("No image files detected in that folder.")

    ordered = sorted(images, key=lambda f: f.relative_path or f.filename)
    return tuple(
        BatchItem(
            id=uuid4().hex,
            relative_path=image.relative_path or image.filename,
            filename=PurePosixPath(image.filename).name or image.filename,
            content_type=image.content_type or "image/jpeg",
            source=image.data,
        )
        for image in ordered
    )


def apply_transition(
    items: Sequence[BatchItem], transition: BatchTransition
) -> tuple[BatchItem, ...]:
    """Return a new item sequence with *transition* applied.

    Raises
    ------
    InvalidTransitionError
        If the item is unknown or the status change would regress.
    """
    updated: list[BatchItem] = []
    found = False
    for item in items:
        if item.id != transition.item_id:
            updated.append(item)
            continue

        found = True
        if (item.status, transition.status) not in _ALLOWED_TRANSITIONS:
            raise InvalidTransitionError(
                f"Cannot move item {item.relative_path} from "
                f"{item.status.value} to {transition.status.value}"
            )
        message = None if transition.status is BatchStatus.SUCCESS else transition.message
        # Previews only live while the item is processing.
        preview_url = (
            transition.preview_url if transition.status is BatchStatus.PROCESSING else None
        )
        update: dict[str, object] = {
            "status": transition.status,
            "message": message,
            "preview_url": preview_url,
        }
        if transition.status in _TERMINAL_STATUSES:
            update["source"] = b""
        updated.append(item.model_copy(update=update))

    if not found:
        raise InvalidTransitionError(f"Unknown batch item: {transition.item_id}")
    return tuple(updated)


def release_sources(items: Sequence[BatchItem]) -> tuple[BatchItem, ...]:
    """Drop the upload bytes still held by *items*."""
    return tuple(item.model_copy(update={"source": b""}) if item.source else item for item in items)


def summarize(items: Sequence[BatchItem]) -> BatchSummary:
    """Count succeeded, failed and never-started items."""
    succeeded = sum(1 for item in items if item.status is BatchStatus.SUCCESS)
    failed = sum(1 for item in items if item.status is BatchStatus.ERROR)
    skipped = sum(1 for item in items if item.status is BatchStatus.PENDING)
    return BatchSummary(total=len(items), succeeded=succeeded, failed=failed, skipped=skipped)
