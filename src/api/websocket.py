"""WebSocket endpoint for real-time batch progress.

Connects a client to one batch run via the ``ProgressTracker`` listener
mechanism.  Every snapshot the controller publishes is pushed as JSON (the
same shape ``GET /api/batches/{run_id}`` returns).

# ─── HOW WEBSOCKET PROGRESS WORKS ─────────────────────────────────────
#
#   Page                                 Backend (this file)
#   ────                                 ──────────────────
#   ws = new WebSocket(url)   ──────→   websocket.accept()
#                                        register_listener(callback)
#                             ←──────   current snapshot (if any)
#                             ←──────   snapshot after each transition
#   ws.close()                ──────→   WebSocketDisconnect
#                                        unregister_listener(callback)
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import contextlib

import structlog
from fastapi import WebSocket, WebSocketDisconnect

from src.models.batch import BatchRunSnapshot
from src.pipeline.progress_tracker import ProgressTracker
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


async def websocket_batch_progress(websocket: WebSocket, run_id: str) -> None:
    """Stream batch snapshots for *run_id* until the client disconnects."""
    progress_tracker: ProgressTracker = websocket.app.state.progress_tracker

    await websocket.accept()
    _logger.info("websocket_connected", run_id=run_id)

    async def _on_snapshot(snapshot: BatchRunSnapshot) -> None:
        # The socket may already be gone; cleanup happens in ``finally``.
        with contextlib.suppress(Exception):
            await websocket.send_json(snapshot.model_dump(mode="json"))

    progress_tracker.register_listener(run_id, _on_snapshot)

    try:
        current = progress_tracker.get_snapshot(run_id)
        if current is not None:
            await websocket.send_json(current.model_dump(mode="json"))

        while True:
            await websocket.receive_text()

    except WebSocketDisconnect:
        _logger.info("websocket_disconnected", run_id=run_id)

    finally:
        progress_tracker.unregister_listener(run_id, _on_snapshot)
        _logger.debug("websocket_listener_cleaned_up", run_id=run_id)
