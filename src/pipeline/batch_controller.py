"""Batch pipeline controller: runs the single-image pipeline over a folder.

# ─── HOW A BATCH RUN WORKS ────────────────────────────────────────────
#
#   create_run(files)      select_batch → items (all pending), state QUEUED
#        │
#   run(run_id)            state RUNNING, then for each item in order:
#        │                   pending ──▶ processing  "Describing image..."
#        │                   stage callbacks update the message
#        │                   processing ──▶ success | error
#        │                   (cancel flag checked before the next item)
#        ▼
#   summary                "Batch complete: S succeeded, F failed."
#
# Items are processed strictly one after another.  A failing item only ever
# marks itself as ``error``; the loop always moves on.  Each transition
# replaces the run's item tuple via apply_transition and publishes a new
# snapshot to the ProgressTracker.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass
from uuid import uuid4

import structlog

from src.models.batch import (
    BatchItem,
    BatchRunSnapshot,
    BatchRunState,
    BatchStatus,
    BatchSummary,
    BatchTransition,
    SelectedImage,
    apply_transition,
    release_sources,
    select_batch,
    summarize,
)
from src.pipeline.progress_tracker import ProgressTracker
from src.services.furniture_pipeline import FurniturePipeline, SourceImage
from src.utils.errors import FurnitureVectorsError, PipelineError
from src.utils.logging import get_logger
from src.utils.preview_store import PreviewHandle

STAGE_DESCRIBING = "Describing image..."
BATCH_ERROR_MESSAGE = "Batch completed with some errors. Check the list below for details."
UNEXPECTED_ITEM_ERROR = "Unexpected error during batch."
DEFAULT_MAX_FINISHED_RUNS = 20


@dataclass
class _BatchRun:
    """Mutable bookkeeping for one run; only the controller touches it."""

    run_id: str
    items: tuple[BatchItem, ...]
    state: BatchRunState = BatchRunState.QUEUED
    status_message: str | None = None
    error_message: str | None = None
    summary: BatchSummary | None = None
    cancel_requested: bool = False

    def snapshot(self) -> BatchRunSnapshot:
        return BatchRunSnapshot(
            run_id=self.run_id,
            state=self.state,
            items=self.items,
            status_message=self.status_message,
            error_message=self.error_message,
            summary=self.summary,
        )


class BatchController:
    """Creates, runs and cancels batch ingestion runs.

    Only the latest *max_finished_runs* completed or cancelled runs are kept;
    older ones are forgotten by both the controller and the tracker.
    """

    def __init__(
        self,
        pipeline: FurniturePipeline,
        progress_tracker: ProgressTracker,
        pacing_seconds: float = 0.0,
        max_finished_runs: int = DEFAULT_MAX_FINISHED_RUNS,
    ) -> None:
        self._pipeline = pipeline
        self._tracker = progress_tracker
        self._pacing_seconds = pacing_seconds
        self._max_finished_runs = max(max_finished_runs, 1)
        self._runs: dict[str, _BatchRun] = {}
        self._finished: deque[str] = deque()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def create_run(self, files: Iterable[SelectedImage]) -> BatchRunSnapshot:
        """Select the image files and register a queued run.

        Raises
        ------
        InputValidationError
            When the selection contains no images.
        """
        items = select_batch(files)
        run = _BatchRun(
            run_id=uuid4().hex,
            items=items,
            status_message=f"{len(items)} image(s) queued for ingestion.",
        )
        self._runs[run.run_id] = run
        self._logger.info("batch_created", run_id=run.run_id, items=len(items))
        await self._publish(run)
        return run.snapshot()

    def get_snapshot(self, run_id: str) -> BatchRunSnapshot:
        return self._get_run(run_id).snapshot()

    async def cancel(self, run_id: str) -> BatchRunSnapshot:
        """Ask the run to stop before its next item.

        The item being processed finishes normally; the remaining items stay
        ``pending``.  A queued run is cancelled immediately.
        """
        run = self._get_run(run_id)
        if run.state in (BatchRunState.COMPLETED, BatchRunState.CANCELLED):
            return run.snapshot()

        run.cancel_requested = True
        self._logger.info("batch_cancel_requested", run_id=run_id, state=run.state.value)
        if run.state is BatchRunState.QUEUED:
            await self._finish(run)
        return run.snapshot()

    async def run(self, run_id: str) -> BatchRunSnapshot:
        """Process every item of the run in order and return the final snapshot.

        A run cancelled while still queued is returned as-is.

        Raises
        ------
        PipelineError
            The run is already running or already completed.
        """
        run = self._get_run(run_id)
        if run.state is BatchRunState.CANCELLED:
            self._logger.info("batch_skipped_cancelled", run_id=run_id)
            return run.snapshot()
        if run.state is not BatchRunState.QUEUED:
            raise PipelineError(f"Batch {run_id} is already {run.state.value}")

        total = len(run.items)
        run.state = BatchRunState.RUNNING
        run.status_message = f"Starting batch for {total} image(s)..."
        self._logger.info("batch_started", run_id=run_id, items=total)
        await self._publish(run)

        for index, item in enumerate(run.items):
            if run.cancel_requested:
                break
            if index > 0 and self._pacing_seconds > 0:
                await asyncio.sleep(self._pacing_seconds)
                if run.cancel_requested:
                    break
            await self._process_item(run, item.id, index, total)

        return await self._finish(run)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _get_run(self, run_id: str) -> _BatchRun:
        run = self._runs.get(run_id)
        if run is None:
            raise KeyError(run_id)
        return run

    async def _publish(self, run: _BatchRun) -> None:
        await self._tracker.publish(run.snapshot())

    async def _transition(
        self,
        run: _BatchRun,
        item_id: str,
        status: BatchStatus,
        message: str | None = None,
        preview: PreviewHandle | None = None,
    ) -> None:
        run.items = apply_transition(
            run.items,
            BatchTransition(
                item_id=item_id,
                status=status,
                message=message,
                preview_url=preview.url if preview else None,
            ),
        )
        await self._publish(run)

    async def _process_item(self, run: _BatchRun, item_id: str, index: int, total: int) -> None:
        item = next(entry for entry in run.items if entry.id == item_id)
        run.status_message = f"Processing {index + 1} of {total}: {item.relative_path}"
        await self._transition(run, item_id, BatchStatus.PROCESSING, STAGE_DESCRIBING)

        async def _on_stage(message: str, preview: PreviewHandle | None) -> None:
            await self._transition(run, item_id, BatchStatus.PROCESSING, message, preview)

        source = SourceImage(
            filename=item.filename,
            data=item.source,
            content_type=item.content_type,
        )
        try:
            await self._pipeline.process(source, on_stage=_on_stage)
        except FurnitureVectorsError as exc:
            self._logger.warning(
                "batch_item_failed",
                run_id=run.run_id,
                path=item.relative_path,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            await self._transition(run, item_id, BatchStatus.ERROR, exc.user_message)
            return
        except Exception as exc:
            self._logger.exception(
                "batch_item_failed",
                run_id=run.run_id,
                path=item.relative_path,
                error_type=type(exc).__name__,
            )
            await self._transition(run, item_id, BatchStatus.ERROR, str(exc) or UNEXPECTED_ITEM_ERROR)
            return

        await self._transition(run, item_id, BatchStatus.SUCCESS)

    async def _finish(self, run: _BatchRun) -> BatchRunSnapshot:
        run.items = release_sources(run.items)
        summary = summarize(run.items)
        run.summary = summary
        run.state = BatchRunState.CANCELLED if run.cancel_requested else BatchRunState.COMPLETED
        if run.cancel_requested:
            run.status_message = (
                f"Batch cancelled: {summary.succeeded} succeeded, {summary.failed} failed, "
                f"{summary.skipped} skipped."
            )
        else:
            run.status_message = (
                f"Batch complete: {summary.succeeded} succeeded, {summary.failed} failed."
            )
        run.error_message = BATCH_ERROR_MESSAGE if summary.failed > 0 else None

        self._logger.info(
            "batch_finished",
            run_id=run.run_id,
            state=run.state.value,
            succeeded=summary.succeeded,
            failed=summary.failed,
            skipped=summary.skipped,
        )
        await self._publish(run)
        self._retire(run.run_id)
        return run.snapshot()

    def _retire(self, run_id: str) -> None:
        self._finished.append(run_id)
        while len(self._finished) > self._max_finished_runs:
            evicted = self._finished.popleft()
            self._runs.pop(evicted, None)
            self._tracker.discard(evicted)
            self._logger.debug("batch_evicted", run_id=evicted)
