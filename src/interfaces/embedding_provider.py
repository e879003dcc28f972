"""Abstract base class for text-embedding service providers.

Defines the contract for turning a furniture description into a vector.
The vector is stored next to the description and later compared by the
catalog's similarity RPC, so every call for one catalog must use the same
model.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.furniture import FurnitureDescription


# Concrete implementations: OpenRouterEmbeddingProvider
# Located in: src/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for embedding services used by ingestion and search."""

    @abstractmethod
    async def embed_description(self, description: FurnitureDescription) -> list[float]:
        """Embed the JSON serialization of *description*.

        Returns
        -------
        list[float]
            The embedding vector, passed through unchanged.

        Raises
        ------
        src.utils.errors.UpstreamRequestError
            If the embedding API call fails.
        src.utils.errors.MalformedUpstreamResponseError
            If the response carries no vector.
        """

    @abstractmethod
    async def embed_text(self, text: str) -> list[float]:
        """Embed an arbitrary string (used for already-serialized input)."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""
