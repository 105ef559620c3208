"""Tests for environment configuration, stored settings and model selection."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from meeting_clipper.config import PipelineConfig, StageLLMConfig
from meeting_clipper.model_manager import ModelManager
from meeting_clipper.settings import get_api_key, load_settings, save_api_key, settings_path


def test_defaults_without_environment(_isolated_env: Path) -> None:
    cfg = PipelineConfig.from_env()
    assert cfg.openai_api_key is None
    assert cfg.transcribe.model == "whisper-1"
    assert cfg.transcribe_language == "en"
    assert cfg.analyze.model == "gpt-4-turbo-preview"
    assert cfg.analyze.provider is None
    assert cfg.analyze_temperature == pytest.approx(0.3)
    assert cfg.analyze_max_attempts == 2
    assert cfg.ffmpeg_bin == "ffmpeg"
    assert cfg.settings_dir == _isolated_env


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-shared")
    monkeypatch.setenv("TRANSCRIBE_API_KEY", "sk-transcribe")
    monkeypatch.setenv("TRANSCRIBE_LANGUAGE", "")
    monkeypatch.setenv("ANALYZE_MODEL", "claude-sonnet-4-5")
    monkeypatch.setenv("ANALYZE_API_KEY", "sk-ant")
    monkeypatch.setenv("ANALYZE_TEMPERATURE", "0")
    monkeypatch.setenv("ANALYZE_MAX_ATTEMPTS", "0")
    monkeypatch.setenv("FFMPEG_BIN", "/opt/ffmpeg/bin/ffmpeg")

    cfg = PipelineConfig.from_env()

    assert cfg.openai_api_key == "sk-shared"
    assert cfg.transcribe.api_key == "sk-transcribe"
    assert cfg.transcribe_language is None
    assert cfg.analyze == StageLLMConfig(api_key="sk-ant", provider=None, model="claude-sonnet-4-5")
    assert cfg.analyze_temperature == 0.0
    assert cfg.analyze_max_attempts == 1
    assert cfg.ffmpeg_bin == "/opt/ffmpeg/bin/ffmpeg"


def test_invalid_numbers_name_the_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ANALYZE_TEMPERATURE", "warm")
    with pytest.raises(ValueError, match="ANALYZE_TEMPERATURE"):
        PipelineConfig.from_env()


def test_stored_key_is_used_when_environment_has_none(_isolated_env: Path) -> None:
    save_api_key(_isolated_env, "sk-stored")
    cfg = PipelineConfig.from_env()
    assert cfg.openai_api_key == "sk-stored"
    assert cfg.transcribe.api_key == "sk-stored"


def test_environment_key_wins_over_stored_key(_isolated_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    save_api_key(_isolated_env, "sk-stored")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    assert PipelineConfig.from_env().openai_api_key == "sk-env"


def test_settings_file_round_trip(tmp_path: Path) -> None:
    settings_dir = tmp_path / "nested" / "config"
    assert get_api_key(settings_dir) is None

    path = save_api_key(settings_dir, "  sk-123  ")

    assert path == settings_path(settings_dir)
    assert json.loads(path.read_text(encoding="utf-8")) == {"openai_api_key": "sk-123"}
    assert get_api_key(settings_dir) == "sk-123"


def test_empty_key_is_not_stored(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="empty"):
        save_api_key(tmp_path, "   ")
    assert not settings_path(tmp_path).exists()


def test_corrupt_settings_file(tmp_path: Path) -> None:
    settings_path(tmp_path).write_text("{not json", encoding="utf-8")
    with pytest.raises(ValueError, match="Invalid settings file"):
        load_settings(tmp_path)


@pytest.mark.parametrize(
    ("model", "provider", "expected"),
    [
        ("gpt-4-turbo-preview", None, "openai"),
        ("o3-mini", None, "openai"),
        ("claude-sonnet-4-5", None, "anthropic"),
        ("gemini-2.5-pro", None, "google"),
        ("my-finetune", "Claude", "anthropic"),
        ("my-finetune", "gemini", "google"),
    ],
)
def test_resolve_provider(model: str, provider: str | None, expected: str) -> None:
    manager = ModelManager(StageLLMConfig(api_key=None, provider=provider, model=model))
    assert manager.resolve_provider(model) == expected


def test_unknown_provider_override() -> None:
    manager = ModelManager(StageLLMConfig(api_key=None, provider="mistral", model="x"))
    with pytest.raises(ValueError, match="Unsupported provider override"):
        manager.resolve_provider("x")


def test_missing_model_name() -> None:
    with pytest.raises(ValueError, match="ANALYZE_MODEL"):
        ModelManager(StageLLMConfig(api_key=None, provider=None, model=" ")).get_chat_model()


def test_openai_model_uses_shared_key() -> None:
    manager = ModelManager(
        StageLLMConfig(api_key=None, provider=None, model="gpt-4-turbo-preview"), openai_api_key="sk-shared"
    )
    model = manager.get_chat_model(temperature=0.3)
    assert model.model_name == "gpt-4-turbo-preview"
    assert model.temperature == pytest.approx(0.3)
    assert model.openai_api_key.get_secret_value() == "sk-shared"


def test_corrupt_settings_file_is_ignored_by_config(
    _isolated_env: Path, caplog: pytest.LogCaptureFixture
) -> None:
    _isolated_env.mkdir(parents=True, exist_ok=True)
    settings_path(_isolated_env).write_text("{not json", encoding="utf-8")
    with caplog.at_level("WARNING", logger="meeting_clipper.config"):
        cfg = PipelineConfig.from_env()
    assert cfg.openai_api_key is None
    assert "Ignoring stored API key" in caplog.text


def test_save_api_key_overwrites_corrupt_file(tmp_path: Path) -> None:
    settings_path(tmp_path).write_text("{not json", encoding="utf-8")
    save_api_key(tmp_path, "sk-fresh")
    assert get_api_key(tmp_path) == "sk-fresh"
