from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .settings import default_settings_dir, get_api_key


logger = logging.getLogger(__name__)


def _first_nonempty(*values: str | None) -> str | None:
    for value in values:
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def _stored_api_key(settings_dir: Path) -> str | None:
    try:
        return get_api_key(settings_dir)
    except ValueError as exc:
        logger.warning("Ignoring stored API key: %s", exc)
        return None


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass
class StageLLMConfig:
    api_key: str | None
    provider: str | None
    model: str | None


@dataclass
class PipelineConfig:
    openai_api_key: str | None
    transcribe: StageLLMConfig
    analyze: StageLLMConfig
    transcribe_language: str | None
    ffmpeg_bin: str
    analyze_temperature: float
    analyze_max_attempts: int
    settings_dir: Path

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        load_dotenv()
        settings_dir = default_settings_dir()
        shared_key = _first_nonempty(os.getenv("OPENAI_API_KEY"), _stored_api_key(settings_dir))

        transcribe = StageLLMConfig(
            api_key=_first_nonempty(os.getenv("TRANSCRIBE_API_KEY"), shared_key),
            provider="openai",
            model=_first_nonempty(os.getenv("TRANSCRIBE_MODEL"), "whisper-1"),
        )
        analyze = StageLLMConfig(
            api_key=_first_nonempty(os.getenv("ANALYZE_API_KEY")),
            provider=_first_nonempty(os.getenv("ANALYZE_PROVIDER")),
            model=_first_nonempty(os.getenv("ANALYZE_MODEL"), "gpt-4-turbo-preview"),
        )

        language = os.getenv("TRANSCRIBE_LANGUAGE")
        return cls(
            openai_api_key=shared_key,
            transcribe=transcribe,
            analyze=analyze,
            transcribe_language="en" if language is None else _first_nonempty(language),
            ffmpeg_bin=_first_nonempty(os.getenv("FFMPEG_BIN"), "ffmpeg") or "ffmpeg",
            analyze_temperature=_float_env("ANALYZE_TEMPERATURE", 0.3),
            analyze_max_attempts=max(1, _int_env("ANALYZE_MAX_ATTEMPTS", 2)),
            settings_dir=settings_dir,
        )
