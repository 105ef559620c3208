from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass
class Cue:
    start: str
    end: str
    text: str


@dataclass
class ClipSuggestion:
    title: str
    start_time: str
    end_time: str


@dataclass
class ValidatedClip:
    id: str
    title: str
    start_time: str
    end_time: str
    sanitized_filename: str
    is_selected: bool = True


@dataclass
class ClipProgress:
    current: int
    total: int


@dataclass
class ProcessingResult:
    output_directory: Path
    clip_count: int
    outputs: list[Path] = field(default_factory=list)


@dataclass
class ClipAnalysisResult:
    clips: list[ValidatedClip]
    suggested_count: int
    attempts: int
    llm_usage: dict[str, Any] = field(default_factory=dict)
