"""Batch run progress tracking with callback-based listener notification.

Stores the latest :class:`BatchRunSnapshot` for each run and broadcasts every
new snapshot to the listeners registered for that run.  Listeners are keyed
by run ID so several batches can run at once without cross-talk.

# ─── HOW PROGRESS TRACKING WORKS ──────────────────────────────────────
#
#   BatchController ──publish()──→ ProgressTracker ──callback()──→ WebSocket handler
#                                                                ──→ (any other listener)
#
#   1. The controller publishes a snapshot after every item transition
#   2. ProgressTracker stores it and calls all listeners for that run
#   3. The WebSocket handler pushes the snapshot JSON to the page
#
# Listener errors are caught and logged; a dropped socket never stalls a
# batch.  Both sync and async callbacks are accepted.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from src.models.batch import BatchRunSnapshot
from src.utils.logging import get_logger


class ProgressTracker:
    """Keeps the latest snapshot per run and notifies listeners."""

    def __init__(self) -> None:
        self._snapshots: dict[str, BatchRunSnapshot] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def publish(self, snapshot: BatchRunSnapshot) -> None:
        """Record *snapshot* as the run's current state and notify listeners."""
        self._snapshots[snapshot.run_id] = snapshot
        self._logger.debug(
            "batch_snapshot_published",
            run_id=snapshot.run_id,
            state=snapshot.state.value,
            status_message=snapshot.status_message,
        )
        await self._notify_listeners(snapshot)

    def get_snapshot(self, run_id: str) -> BatchRunSnapshot | None:
        return self._snapshots.get(run_id)

    def discard(self, run_id: str) -> None:
        """Forget the stored snapshot of a run that is no longer kept."""
        self._snapshots.pop(run_id, None)

    def register_listener(self, run_id: str, callback: Callable) -> None:
        """Register ``callback(snapshot)`` for updates to *run_id*."""
        listeners = self._listeners.setdefault(run_id, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug(
                "listener_registered",
                run_id=run_id,
                total_listeners=len(listeners),
            )

    def unregister_listener(self, run_id: str, callback: Callable) -> None:
        listeners = self._listeners.get(run_id, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug(
                "listener_unregistered",
                run_id=run_id,
                remaining_listeners=len(listeners),
            )
        if not listeners:
            self._listeners.pop(run_id, None)

    def listener_count(self, run_id: str) -> int:
        return len(self._listeners.get(run_id, []))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(self, snapshot: BatchRunSnapshot) -> None:
        """Invoke every listener for the snapshot's run, skipping failures."""
        for callback in list(self._listeners.get(snapshot.run_id, [])):
            try:
                result = callback(snapshot)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    run_id=snapshot.run_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
