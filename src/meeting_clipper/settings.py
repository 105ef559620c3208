from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ValidationError

SETTINGS_FILENAME = "settings.json"


class Settings(BaseModel):
    openai_api_key: str | None = None


def default_settings_dir() -> Path:
    raw = os.getenv("CLIPPER_SETTINGS_DIR")
    if raw and raw.strip():
        return Path(raw.strip()).expanduser()
    return Path.home() / ".config" / "meeting-clipper"


def settings_path(settings_dir: Path) -> Path:
    return settings_dir / SETTINGS_FILENAME


def load_settings(settings_dir: Path) -> Settings:
    path = settings_path(settings_dir)
    if not path.exists():
        return Settings()
    try:
        return Settings.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise ValueError(f"Invalid settings file {path}: {exc}") from exc


def save_settings(settings_dir: Path, settings: Settings) -> Path:
    settings_dir.mkdir(parents=True, exist_ok=True)
    path = settings_path(settings_dir)
    path.write_text(settings.model_dump_json(indent=2, exclude_none=True) + "\n", encoding="utf-8")
    return path


def save_api_key(settings_dir: Path, api_key: str) -> Path:
    api_key = api_key.strip()
    if not api_key:
        raise ValueError("API key must not be empty.")
    return save_settings(settings_dir, Settings(openai_api_key=api_key))


def get_api_key(settings_dir: Path) -> str | None:
    return load_settings(settings_dir).openai_api_key
