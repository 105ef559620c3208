from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path


logger = logging.getLogger(__name__)


def _run(cmd: list[str]) -> None:
    rendered = " ".join(shlex.quote(part) for part in cmd)
    logger.debug("Running: %s", rendered)
    try:
        subprocess.run(cmd, check=True, capture_output=True)
    except FileNotFoundError as exc:
        raise RuntimeError(f"Executable not found: {cmd[0]}") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or b"").decode("utf-8", errors="replace").strip()
        if stderr:
            logger.debug("ffmpeg stderr:\n%s", stderr)
        raise RuntimeError(f"Command failed ({exc.returncode}): {rendered}") from exc


def extract_audio_to_mp3(ffmpeg_bin: str, input_video: Path, output_audio: Path) -> None:
    output_audio.parent.mkdir(parents=True, exist_ok=True)
    cmd = [
        ffmpeg_bin,
        "-i",
        str(input_video),
        "-vn",
        "-acodec",
        "libmp3lame",
        "-ar",
        "16000",
        "-ac",
        "1",
        "-b:a",
        "64k",
        "-y",
        str(output_audio),
    ]
    _run(cmd)


def cut_clip(
    ffmpeg_bin: str,
    input_video: Path,
    start: str,
    end: str,
    output_path: Path,
) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    cmd = [
        ffmpeg_bin,
        "-i",
        str(input_video),
        "-ss",
        start,
        "-to",
        end,
        "-c:v",
        "libx264",
        "-preset",
        "fast",
        "-crf",
        "23",
        "-c:a",
        "aac",
        "-b:a",
        "192k",
        "-movflags",
        "+faststart",
        "-y",
        str(output_path),
    ]
    _run(cmd)
