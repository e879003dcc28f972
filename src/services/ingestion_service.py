"""Catalog ingestion: optional preview upload followed by a row insert.

When the caller supplies a base64 preview, it is decoded, uploaded to the
storage bucket under ``YYYY-MM-DD/<uuid4>-<sanitized>.jpg`` and the public
URL becomes the row's ``image_url``; otherwise the caller's ``image_url``
(possibly ``None``) is stored as-is.  Description and embedding are written
verbatim.
"""

from __future__ import annotations

import base64
import binascii
import re
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

import structlog

from src.interfaces.catalog_provider import ICatalogProvider
from src.models.furniture import CatalogItem
from src.utils.errors import InputValidationError
from src.utils.logging import get_logger

_DATA_URI_PREFIX_RE = re.compile(r"^data:image/\w+;base64,")
_EXTENSION_RE = re.compile(r"\.[^.]+$")
_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")
_MAX_STEM_LENGTH = 120


def sanitize_filename(candidate: str | None) -> str:
    """Turn a user-supplied file name into a safe ``<slug>.jpg`` object name.

    >>> sanitize_filename("My Chair Photo!!.PNG")
    'my-chair-photo.jpg'
    >>> sanitize_filename("")
    'preview.jpg'
    """
    if not candidate:
        return "preview.jpg"
    stem = _EXTENSION_RE.sub("", candidate).lower()
    stem = _NON_SLUG_RE.sub("-", stem).strip("-")[:_MAX_STEM_LENGTH]
    return f"{stem or 'preview'}.jpg"


def strip_data_uri(payload: str) -> str:
    """Drop a leading ``data:image/<type>;base64,`` prefix if present."""
    return _DATA_URI_PREFIX_RE.sub("", payload.strip(), count=1)


def decode_image_base64(payload: str) -> bytes:
    """Decode a (possibly data-URI) base64 image payload.

    Raises
    ------
    InputValidationError
        If the payload is not valid base64 or decodes to nothing.
    """
    cleaned = "".join(strip_data_uri(payload).split())
    try:
        data = base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InputValidationError(f"Image base64 payload invalid: {exc}") from exc
    if not data:
        raise InputValidationError("Image base64 payload invalid: empty image")
    return data


def build_object_path(image_name: str | None, now: datetime | None = None) -> str:
    """Return ``YYYY-MM-DD/<uuid4>-<sanitized name>`` using the UTC date."""
    moment = now or datetime.now(timezone.utc)
    return f"{moment.strftime('%Y-%m-%d')}/{uuid4()}-{sanitize_filename(image_name)}"


class IngestionService:
    """Stores one described and embedded piece in the catalog."""

    def __init__(self, catalog: ICatalogProvider) -> None:
        self._catalog = catalog
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def upload_preview(self, data: bytes, image_name: str | None) -> str:
        """Upload JPEG preview bytes and return their public URL."""
        object_path = build_object_path(image_name)
        return await self._catalog.upload_image(object_path, data, "image/jpeg")

    async def ingest(
        self,
        *,
        description: dict[str, Any],
        embedding: list[float],
        name: str | None = None,
        image_url: str | None = None,
        image_base64: str | None = None,
        image_name: str | None = None,
    ) -> CatalogItem:
        """Upload the optional preview, insert the row and return it.

        Raises
        ------
        InputValidationError
            Description or embedding missing, or the base64 payload is bad.
        UpstreamRequestError
            Upload or insert rejected by the catalog.
        """
        if not description or not embedding:
            raise InputValidationError("description and embedding are required")

        public_url = image_url
        if image_base64:
            data = decode_image_base64(image_base64)
            public_url = await self.upload_preview(data, image_name)

        item = await self._catalog.insert_item(
            name=name,
            image_url=public_url,
            description=description,
            embedding=embedding,
        )
        self._logger.info(
            "furniture_ingested",
            item_id=item.id,
            name=name,
            has_image=public_url is not None,
        )
        return item
