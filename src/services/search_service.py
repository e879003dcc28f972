"""Similarity search over the catalog."""

from __future__ import annotations

import structlog

from src.interfaces.catalog_provider import ICatalogProvider
from src.models.furniture import Match
from src.utils.errors import InputValidationError
from src.utils.logging import get_logger


class SearchService:
    """Runs the catalog's match function for a query embedding.

    Matches come back in database order (similarity descending) and each one
    carries ``similarity_percent`` for display.
    """

    def __init__(
        self,
        catalog: ICatalogProvider,
        default_limit: int = 3,
        default_threshold: float = 0.0,
    ) -> None:
        self._catalog = catalog
        self._default_limit = default_limit
        self._default_threshold = default_threshold
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def search(
        self,
        embedding: list[float],
        limit: int | None = None,
        threshold: float | None = None,
    ) -> list[Match]:
        if not embedding:
            raise InputValidationError("embedding vector required")

        limit = self._default_limit if limit is None else limit
        threshold = self._default_threshold if threshold is None else threshold
        if limit < 1:
            raise InputValidationError("limit must be at least 1")

        matches = await self._catalog.match(embedding, limit, threshold)
        self._logger.info(
            "search_complete",
            limit=limit,
            threshold=threshold,
            results=len(matches),
            top_similarity=matches[0].similarity if matches else None,
        )
        return matches
