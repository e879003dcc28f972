"""Abstract base class for the furniture catalog store.

The catalog is an external managed database holding one row per ingested
piece (name, preview URL, description, embedding) plus an object store for
the JPEG previews and a server-side similarity function.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.models.furniture import CatalogItem, Match


# Concrete implementations: SupabaseCatalogProvider
# Located in: src/providers/catalog/
class ICatalogProvider(ABC):
    """Contract for the storage bucket, item table and match function."""

    @abstractmethod
    async def upload_image(self, object_path: str, data: bytes, content_type: str) -> str:
        """Upload *data* under *object_path* without overwriting.

        Returns
        -------
        str
            The public URL of the stored object.
        """

    @abstractmethod
    async def insert_item(
        self,
        name: str | None,
        image_url: str | None,
        description: dict[str, Any],
        embedding: list[float],
    ) -> CatalogItem:
        """Insert one row and return it as stored."""

    @abstractmethod
    async def match(
        self,
        embedding: list[float],
        limit: int,
        threshold: float,
    ) -> list[Match]:
        """Return up to *limit* rows with similarity >= *threshold*.

        Results are ordered by similarity, highest first, as returned by the
        database.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs and error payloads."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the URL and service key are configured."""

    async def close(self) -> None:  # noqa: B027
        """Release network resources.  Default implementation does nothing."""
