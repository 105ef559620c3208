"""Shared fixtures for the meeting_clipper test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

from meeting_clipper.models import Cue

SAMPLE_VTT = """WEBVTT

1
00:00:01.000 --> 00:00:05.000
Good morning everyone,
thanks for joining.

2
00:00:05.500 --> 00:00:12.250
First item is the Q4 budget.

3
00:00:12.250 --> 00:00:20.900
We agreed to approve it as proposed.

4
00:00:21.000 --> 00:00:30.400
Action item: Dana sends the summary by Friday.
"""

_ENV_VARS = (
    "OPENAI_API_KEY",
    "TRANSCRIBE_API_KEY",
    "TRANSCRIBE_MODEL",
    "TRANSCRIBE_LANGUAGE",
    "ANALYZE_API_KEY",
    "ANALYZE_PROVIDER",
    "ANALYZE_MODEL",
    "ANALYZE_TEMPERATURE",
    "ANALYZE_MAX_ATTEMPTS",
    "FFMPEG_BIN",
    "ANTHROPIC_API_KEY",
    "GOOGLE_API_KEY",
)


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep configuration tests away from the developer's real environment.

    Clears every variable the pipeline reads, points the settings directory
    at a temporary folder and disables ``.env`` loading.
    """
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    settings_dir = tmp_path / "settings"
    monkeypatch.setenv("CLIPPER_SETTINGS_DIR", str(settings_dir))
    monkeypatch.setattr("meeting_clipper.config.load_dotenv", lambda *args, **kwargs: False)
    return settings_dir


@pytest.fixture()
def sample_vtt() -> str:
    return SAMPLE_VTT


@pytest.fixture()
def sample_cues() -> list[Cue]:
    """Return the cues of ``SAMPLE_VTT``, built by hand."""
    return [
        Cue(start="00:00:01.000", end="00:00:05.000", text="Good morning everyone, thanks for joining."),
        Cue(start="00:00:05.500", end="00:00:12.250", text="First item is the Q4 budget."),
        Cue(start="00:00:12.250", end="00:00:20.900", text="We agreed to approve it as proposed."),
        Cue(start="00:00:21.000", end="00:00:30.400", text="Action item: Dana sends the summary by Friday."),
    ]
