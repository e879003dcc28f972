"""Supabase catalog provider over the Storage and PostgREST HTTP APIs.

Implements :class:`ICatalogProvider` with a plain ``httpx.AsyncClient``:

    upload   POST {url}/storage/v1/object/{bucket}/{path}   (x-upsert: false)
    public   {url}/storage/v1/object/public/{bucket}/{path}
    insert   POST {url}/rest/v1/{table}                     (single row back)
    match    POST {url}/rest/v1/rpc/{match_function}

Every request carries the service-role key both as ``apikey`` and as a
bearer token.  Non-2xx answers become :class:`UpstreamRequestError` with the
provider's message as ``detail``.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from src.config.settings import Settings
from src.interfaces.catalog_provider import ICatalogProvider
from src.models.furniture import CatalogItem, Match
from src.utils.errors import MalformedUpstreamResponseError, UpstreamRequestError

logger = structlog.get_logger(logger_name=__name__)


def _error_detail(response: httpx.Response) -> str:
    """Pull the human-readable message out of a Supabase error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        for key in ("message", "error_description", "error", "msg"):
            if body.get(key):
                return str(body[key])
    return response.text


class SupabaseCatalogProvider(ICatalogProvider):
    """Catalog backed by a Supabase project (Storage bucket + pgvector table)."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self._base_url = settings.supabase_url.rstrip("/")
        self._service_key = settings.supabase_service_role_key
        self._bucket = settings.supabase_image_bucket
        self._table = settings.supabase_table
        self._match_function = settings.supabase_match_function
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout_seconds),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _headers(self, **extra: str) -> dict[str, str]:
        headers = {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
        }
        headers.update(extra)
        return headers

    def public_url(self, object_path: str) -> str:
        return f"{self._base_url}/storage/v1/object/public/{self._bucket}/{object_path}"

    async def _post(
        self,
        url: str,
        action: str,
        headers: dict[str, str],
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._client.post(url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            raise UpstreamRequestError(
                message=f"Supabase {action} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.is_error:
            detail = _error_detail(response)
            logger.warning(
                "supabase_request_failed",
                action=action,
                status=response.status_code,
                detail=detail,
            )
            raise UpstreamRequestError(
                message=f"Supabase {action} failed",
                provider_name=self.get_provider_name(),
                upstream_status=response.status_code,
                detail=detail,
            )
        return response

    def _json(self, response: httpx.Response, action: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedUpstreamResponseError(
                message=f"Supabase {action} returned a non-JSON body",
                provider_name=self.get_provider_name(),
            ) from exc

    # ------------------------------------------------------------------
    # ICatalogProvider implementation
    # ------------------------------------------------------------------

    async def upload_image(self, object_path: str, data: bytes, content_type: str) -> str:
        await self._post(
            f"{self._base_url}/storage/v1/object/{self._bucket}/{object_path}",
            "image upload",
            self._headers(**{"Content-Type": content_type, "x-upsert": "false"}),
            content=data,
        )
        logger.info("catalog_image_uploaded", bucket=self._bucket, path=object_path, size=len(data))
        return self.public_url(object_path)

    async def insert_item(
        self,
        name: str | None,
        image_url: str | None,
        description: dict[str, Any],
        embedding: list[float],
    ) -> CatalogItem:
        response = await self._post(
            f"{self._base_url}/rest/v1/{self._table}",
            "insert",
            self._headers(
                **{
                    "Prefer": "return=representation",
                    "Accept": "application/vnd.pgrst.object+json",
                }
            ),
            json={
                "name": name,
                "image_url": image_url,
                "description": description,
                "embedding": embedding,
            },
        )
        row = self._json(response, "insert")
        if isinstance(row, list):
            row = row[0] if row else None
        try:
            item = CatalogItem.model_validate(row)
        except ValidationError as exc:
            raise MalformedUpstreamResponseError(
                message="Supabase insert returned an unexpected row",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("catalog_item_inserted", item_id=item.id, name=name)
        return item

    async def match(self, embedding: list[float], limit: int, threshold: float) -> list[Match]:
        response = await self._post(
            f"{self._base_url}/rest/v1/rpc/{self._match_function}",
            "match",
            self._headers(),
            json={
                "query_embedding": embedding,
                "match_limit": limit,
                "match_threshold": threshold,
            },
        )
        rows = self._json(response, "match")
        if not isinstance(rows, list):
            raise MalformedUpstreamResponseError(
                message="Supabase match did not return a list",
                provider_name=self.get_provider_name(),
            )
        try:
            matches = [Match.model_validate(row) for row in rows]
        except ValidationError as exc:
            raise MalformedUpstreamResponseError(
                message="Supabase match returned an unexpected row",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("catalog_matched", limit=limit, threshold=threshold, results=len(matches))
        return matches

    def get_provider_name(self) -> str:
        return "supabase"

    def is_available(self) -> bool:
        return bool(self._base_url and self._service_key)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
