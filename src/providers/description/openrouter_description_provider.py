"""OpenRouter vision-model description provider.

Wraps the ``openai`` async client, pointed at OpenRouter's OpenAI-compatible
endpoint, to implement :class:`IDescriptionProvider`.  The model is asked for
a JSON object (``response_format={"type": "json_object"}``) with the
cataloger schema in the system message and the image as a base64 data URI in
the user message.
"""

from __future__ import annotations

import base64
import json
import re
from typing import Any

import openai
import structlog
from pydantic import ValidationError

from src.config.settings import Settings
from src.interfaces.description_provider import IDescriptionProvider
from src.models.furniture import FurnitureDescription
from src.providers.description.prompts import CATALOGER_SYSTEM_PROMPT, USER_INSTRUCTION
from src.utils.errors import MalformedUpstreamResponseError, UpstreamRequestError

logger = structlog.get_logger(logger_name=__name__)

# Some models still wrap JSON in markdown fences despite json_object mode.
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)


def build_openrouter_client(settings: Settings) -> openai.AsyncOpenAI:
    """Create an AsyncOpenAI client for OpenRouter with attribution headers."""
    return openai.AsyncOpenAI(
        api_key=settings.openrouter_api_key or "missing",
        base_url=settings.openrouter_base_url,
        timeout=settings.http_timeout_seconds,
        max_retries=0,
        default_headers={
            "HTTP-Referer": settings.openrouter_referer,
            "X-Title": settings.openrouter_title,
        },
    )


def extract_message_text(content: Any) -> str:
    """Return the text of a chat message whose content is a string or parts list.

    For a parts list the first part of type ``output_text`` or ``text`` wins.
    """
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        for part in content:
            part_type = part.get("type") if isinstance(part, dict) else getattr(part, "type", None)
            if part_type in ("output_text", "text"):
                text = part.get("text") if isinstance(part, dict) else getattr(part, "text", None)
                return text or ""
    return ""


def parse_description_json(raw: str) -> dict[str, Any]:
    """Parse the model's answer into a dict.

    Raises
    ------
    json.JSONDecodeError
        If no JSON can be recovered.
    ValueError
        If the JSON is not an object.
    """
    text = raw.strip()
    fence_match = _JSON_FENCE_RE.search(text)
    if fence_match:
        text = fence_match.group(1).strip()

    if not text.startswith("{"):
        brace_start = text.find("{")
        brace_end = text.rfind("}")
        if brace_start != -1 and brace_end > brace_start:
            text = text[brace_start : brace_end + 1]

    parsed = json.loads(text)
    if not isinstance(parsed, dict):
        raise ValueError("Description response is not a JSON object")
    return parsed


class OpenRouterDescriptionProvider(IDescriptionProvider):
    """Description provider backed by a vision model on OpenRouter.

    Defaults to ``google/gemini-2.0-flash-001``; override with
    ``OPENROUTER_VISION_MODEL``.
    """

    def __init__(self, settings: Settings, client: openai.AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._api_key = settings.openrouter_api_key
        self._model = settings.openrouter_vision_model
        self._client = client or build_openrouter_client(settings)

    # ------------------------------------------------------------------
    # IDescriptionProvider implementation
    # ------------------------------------------------------------------

    async def describe(self, image_bytes: bytes, mime_type: str) -> FurnitureDescription:
        b64 = base64.b64encode(image_bytes).decode("ascii")
        media_type = mime_type or "image/jpeg"

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                response_format={"type": "json_object"},
                messages=[
                    {
                        "role": "system",
                        "content": [{"type": "text", "text": CATALOGER_SYSTEM_PROMPT}],
                    },
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": USER_INSTRUCTION},
                            {
                                "type": "image_url",
                                "image_url": {"url": f"data:{media_type};base64,{b64}"},
                            },
                        ],
                    },
                ],
            )
        except openai.APIStatusError as exc:
            raise UpstreamRequestError(
                message="OpenRouter description request failed",
                provider_name=self.get_provider_name(),
                upstream_status=exc.status_code,
                detail=exc.response.text,
            ) from exc
        except openai.APIError as exc:
            raise UpstreamRequestError(
                message=f"OpenRouter description request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        choices = response.choices or []
        message = choices[0].message if choices else None
        raw = extract_message_text(message.content if message else None)
        if not raw:
            raise MalformedUpstreamResponseError(
                message="Description response was empty",
                provider_name=self.get_provider_name(),
            )

        try:
            payload = parse_description_json(raw)
        except (json.JSONDecodeError, ValueError) as exc:
            logger.warning("description_not_json", model=self._model, raw=raw[:200])
            raise MalformedUpstreamResponseError(
                message="Description response was not valid JSON",
                provider_name=self.get_provider_name(),
            ) from exc

        try:
            description = FurnitureDescription.model_validate(payload)
        except ValidationError as exc:
            raise MalformedUpstreamResponseError(
                message=f"Description response did not match the schema: {exc.error_count()} error(s)",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info(
            "furniture_described",
            model=self._model,
            object_type=description.object_type,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return description

    def get_provider_name(self) -> str:
        return "openrouter"

    def is_available(self) -> bool:
        return bool(self._api_key)
