"""Abstract base class for image-description providers.

A description provider looks at one furniture photo and returns the
schema-shaped :class:`~src.models.furniture.FurnitureDescription` that the
rest of the system embeds and stores.  The adapter pattern keeps the
pipeline independent of which vision model is behind it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.furniture import FurnitureDescription


# Concrete implementations: OpenRouterDescriptionProvider
# Located in: src/providers/description/
class IDescriptionProvider(ABC):
    """Contract for vision models that catalogue a furniture image."""

    @abstractmethod
    async def describe(self, image_bytes: bytes, mime_type: str) -> FurnitureDescription:
        """Describe the furniture in *image_bytes*.

        Parameters
        ----------
        image_bytes:
            Raw bytes of the uploaded image.
        mime_type:
            Media type used for the data URI sent to the model, e.g.
            ``"image/png"``.

        Raises
        ------
        src.utils.errors.UpstreamRequestError
            The model endpoint answered with an error.
        src.utils.errors.MalformedUpstreamResponseError
            The answer was empty or not schema-shaped JSON.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier used in logs and error payloads."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials for the model are configured."""
