"""In-memory registry of transient JPEG previews.

The image normalizer registers every preview it produces here and hands the
caller a :class:`PreviewHandle`.  The page fetches previews through
``GET /api/previews/{token}`` while a batch item is being processed; once the
item finishes the pipeline releases the handle and the bytes are dropped.

Handles are single-owner.  Releasing one twice is a no-op.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass

import structlog

from src.utils.logging import get_logger


@dataclass(frozen=True)
class PreviewHandle:
    """Opaque reference to a registered preview."""

    token: str

    @property
    def url(self) -> str:
        return f"/api/previews/{self.token}"


@dataclass(frozen=True)
class _Preview:
    data: bytes
    content_type: str


class PreviewStore:
    """Holds preview bytes until their owner releases them."""

    def __init__(self) -> None:
        self._previews: dict[str, _Preview] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    def create(self, data: bytes, content_type: str = "image/jpeg") -> PreviewHandle:
        """Register *data* and return a fresh handle for it."""
        token = secrets.token_urlsafe(16)
        self._previews[token] = _Preview(data=data, content_type=content_type)
        self._logger.debug("preview_created", token=token, size=len(data))
        return PreviewHandle(token=token)

    def get(self, token: str) -> tuple[bytes, str] | None:
        """Return ``(data, content_type)`` for *token*, or ``None`` once released."""
        preview = self._previews.get(token)
        if preview is None:
            return None
        return preview.data, preview.content_type

    def release(self, handle: PreviewHandle) -> None:
        if self._previews.pop(handle.token, None) is not None:
            self._logger.debug("preview_released", token=handle.token)

    def __len__(self) -> int:
        return len(self._previews)

    def __contains__(self, handle: object) -> bool:
        return isinstance(handle, PreviewHandle) and handle.token in self._previews
