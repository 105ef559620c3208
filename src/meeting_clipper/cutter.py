from __future__ import annotations

import json
import logging
import subprocess
import sys
from pathlib import Path
from typing import Any, Callable

from .ffmpeg_utils import cut_clip
from .models import ClipProgress, ProcessingResult, ValidatedClip
from .reconcile import clips_from_payload


logger = logging.getLogger(__name__)


def load_clips(path: Path) -> list[ValidatedClip]:
    payload: Any = json.loads(path.read_text(encoding="utf-8"))
    return clips_from_payload(payload)


def default_output_dir(source_video: Path) -> Path:
    return source_video.parent / f"{source_video.stem}_Clips"


def _clip_output_name(position: int, clip: ValidatedClip) -> str:
    return f"{position}_{clip.sanitized_filename}.mp4"


def generate_clips(
    ffmpeg_bin: str,
    source_video: Path,
    clips: list[ValidatedClip],
    *,
    out_dir: Path | None = None,
    progress: Callable[[ClipProgress], None] | None = None,
) -> ProcessingResult:
    selected = [clip for clip in clips if clip.is_selected]
    if not selected:
        raise ValueError("No clips selected")

    output_dir = out_dir or default_output_dir(source_video)
    output_dir.mkdir(parents=True, exist_ok=True)
    created: list[Path] = []

    for position, clip in enumerate(selected, start=1):
        output_path = output_dir / _clip_output_name(position, clip)
        logger.info(
            "Cutting clip %s/%s %r (%s -> %s) -> %s",
            position,
            len(selected),
            clip.title,
            clip.start_time,
            clip.end_time,
            output_path,
        )
        cut_clip(ffmpeg_bin, source_video, clip.start_time, clip.end_time, output_path)
        created.append(output_path)
        if progress is not None:
            progress(ClipProgress(current=position, total=len(selected)))

    return ProcessingResult(output_directory=output_dir, clip_count=len(selected), outputs=created)


def open_in_file_explorer(path: Path) -> None:
    if sys.platform.startswith("win"):
        opener = "explorer"
    elif sys.platform == "darwin":
        opener = "open"
    else:
        opener = "xdg-open"
    try:
        subprocess.Popen([opener, str(path)])
    except OSError as exc:
        raise RuntimeError(f"Could not open {path} with {opener}: {exc}") from exc
