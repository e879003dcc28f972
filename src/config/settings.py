"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# pydantic-settings reads each field from, in priority order:
#
#   1. **Environment variables**: e.g. OPENROUTER_API_KEY=sk-or-...
#   2. **.env file**: key=value lines in the project root .env file
#
# Field ``supabase_service_role_key`` maps to env var
# ``SUPABASE_SERVICE_ROLE_KEY`` (case-insensitive match).
#
# Secrets default to "" which means "not configured".  Nothing fails at
# import time: every route calls ``missing_for(...)`` before its first
# external request and answers 500 when a key is absent.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Keys each external collaborator needs before it can be called.
_REQUIRED_KEYS: dict[str, tuple[str, ...]] = {
    "openrouter": ("openrouter_api_key",),
    "supabase": ("supabase_url", "supabase_service_role_key"),
}


class Settings(BaseSettings):
    """Furniture Vectors settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === HTTP API base (used by the CLI batch script) ===
    api_base: str = "http://localhost:8000"

    # === OpenRouter (vision description + embeddings) ===
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_referer: str = "http://localhost:8000/furniture-vectors"
    openrouter_title: str = "Furniture Vector Lab"
    openrouter_vision_model: str = "google/gemini-2.0-flash-001"
    openrouter_embed_model: str = "openai/text-embedding-3-small"

    # === Supabase (storage bucket + pgvector table + match RPC) ===
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_anon_key: str = ""
    supabase_image_bucket: str = "furniture-previews"
    supabase_table: str = "furniture_items"
    supabase_match_function: str = "match_furniture"

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"
    http_timeout_seconds: float = 60.0

    def missing_for(self, service: str) -> list[str]:
        """Return the upper-cased env var names *service* needs but lacks.

        ``service`` is ``"openrouter"`` or ``"supabase"``.
        """
        return [
            key.upper()
            for key in _REQUIRED_KEYS.get(service, ())
            if not getattr(self, key)
        ]

    def get_configured_services(self) -> dict[str, bool]:
        """Map each external service to whether its credentials are present."""
        return {service: not self.missing_for(service) for service in _REQUIRED_KEYS}
