"""Unit tests for Settings and the YAML config loader."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from src.config.loader import load_config
from src.config.settings import Settings


class TestSettings:
    def test_fully_configured(self, settings_factory: Callable[..., Settings]) -> None:
        settings = settings_factory()
        assert settings.missing_for("openrouter") == []
        assert settings.missing_for("supabase") == []
        assert settings.get_configured_services() == {"openrouter": True, "supabase": True}

    def test_missing_openrouter_key(self, settings_factory: Callable[..., Settings]) -> None:
        settings = settings_factory(openrouter_api_key="")
        assert settings.missing_for("openrouter") == ["OPENROUTER_API_KEY"]
        assert settings.get_configured_services()["openrouter"] is False

    def test_missing_supabase_credentials(self, settings_factory: Callable[..., Settings]) -> None:
        settings = settings_factory(supabase_url="", supabase_service_role_key="")
        assert settings.missing_for("supabase") == ["SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"]

    def test_unknown_service_needs_nothing(self, settings_factory: Callable[..., Settings]) -> None:
        assert settings_factory().missing_for("nothing") == []

    def test_model_defaults(self, settings_factory: Callable[..., Settings]) -> None:
        settings = settings_factory()
        assert settings.openrouter_base_url == "https://openrouter.ai/api/v1"
        assert settings.openrouter_vision_model == "google/gemini-2.0-flash-001"
        assert settings.openrouter_embed_model == "openai/text-embedding-3-small"
        assert settings.supabase_image_bucket == "furniture-previews"

    def test_reads_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("SUPABASE_TABLE", "chairs")
        monkeypatch.setenv("OPENROUTER_VISION_MODEL", "openai/gpt-4o-mini")
        settings = Settings(_env_file=None)
        assert settings.supabase_table == "chairs"
        assert settings.openrouter_vision_model == "openai/gpt-4o-mini"


class TestLoadConfig:
    def test_defaults_when_file_missing(
        self, tmp_path: Path, settings_factory: Callable[..., Settings]
    ) -> None:
        config = load_config(str(tmp_path / "absent.yaml"), settings=settings_factory())
        assert config["normalizer"] == {
            "target_size": 200,
            "jpeg_quality": 82,
            "background": "#ffffff",
        }
        assert config["search"]["default_limit"] == 3
        assert config["cli"]["pacing_seconds"] == 0.5

    def test_yaml_overrides_defaults(
        self, tmp_path: Path, settings_factory: Callable[..., Settings]
    ) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("search:\n  default_limit: 5\nbatch:\n  pacing_seconds: 0.25\n")
        config = load_config(str(path), settings=settings_factory())
        assert config["search"]["default_limit"] == 5
        assert config["search"]["default_threshold"] == 0.0
        assert config["batch"]["pacing_seconds"] == 0.25

    def test_empty_yaml_is_ignored(
        self, tmp_path: Path, settings_factory: Callable[..., Settings]
    ) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("")
        config = load_config(str(path), settings=settings_factory())
        assert config["normalizer"]["target_size"] == 200

    def test_env_sections_merged(
        self, tmp_path: Path, settings_factory: Callable[..., Settings]
    ) -> None:
        settings = settings_factory(openrouter_api_key="", app_port=9001, log_level="DEBUG")
        config = load_config(str(tmp_path / "absent.yaml"), settings=settings)
        assert config["app"]["port"] == 9001
        assert config["logging"]["level"] == "DEBUG"
        assert config["services"] == {"openrouter": False, "supabase": True}

    def test_defaults_not_mutated_between_calls(
        self, tmp_path: Path, settings_factory: Callable[..., Settings]
    ) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("normalizer:\n  target_size: 64\n")
        load_config(str(path), settings=settings_factory())
        fresh = load_config(str(tmp_path / "absent.yaml"), settings=settings_factory())
        assert fresh["normalizer"]["target_size"] == 200
