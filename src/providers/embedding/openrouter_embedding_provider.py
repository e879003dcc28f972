"""OpenRouter embedding provider adapter.

Wraps the ``openai`` async client, pointed at OpenRouter, to implement
:class:`IEmbeddingProvider`.  One description is embedded per call; the input
is the compact JSON serialization of the description.
"""

from __future__ import annotations

import openai
import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.furniture import FurnitureDescription
from src.providers.description.openrouter_description_provider import build_openrouter_client
from src.utils.errors import MalformedUpstreamResponseError, UpstreamRequestError

logger = structlog.get_logger(logger_name=__name__)


class OpenRouterEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by OpenRouter's ``/embeddings`` endpoint.

    Uses ``openai/text-embedding-3-small`` by default; override with
    ``OPENROUTER_EMBED_MODEL``.  The vector is returned exactly as received.
    """

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._api_key = settings.openrouter_api_key
        self._model = settings.openrouter_embed_model
        self._client = client or build_openrouter_client(settings)

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed_description(self, description: FurnitureDescription) -> list[float]:
        return await self.embed_text(description.to_embedding_input())

    async def embed_text(self, text: str) -> list[float]:
        try:
            response = await self._client.embeddings.create(model=self._model, input=text)
        except openai.APIStatusError as exc:
            raise UpstreamRequestError(
                message="OpenRouter embedding request failed",
                provider_name=self.get_provider_name(),
                upstream_status=exc.status_code,
                detail=exc.response.text,
            ) from exc
        except openai.APIError as exc:
            raise UpstreamRequestError(
                message=f"OpenRouter embedding request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        data = response.data or []
        embedding = data[0].embedding if data else None
        if not embedding:
            raise MalformedUpstreamResponseError(
                message="Embedding missing in OpenRouter response",
                provider_name=self.get_provider_name(),
            )

        logger.info(
            "description_embedded",
            model=self._model,
            dimension=len(embedding),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return list(embedding)

    def get_provider_name(self) -> str:
        return "openrouter"

    def is_available(self) -> bool:
        return bool(self._api_key)
