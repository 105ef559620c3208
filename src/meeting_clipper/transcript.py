from __future__ import annotations

import json
import re
from pathlib import Path

from .models import Cue

VTT_HEADER = "WEBVTT"

CUE_RANGE_RE = re.compile(
    r"^(?P<start>\d{2}:\d{2}:\d{2}\.\d{3})\s*-->\s*(?P<end>\d{2}:\d{2}:\d{2}\.\d{3})",
    re.ASCII,
)
CUE_INDEX_RE = re.compile(r"^\+?[0-9]+$")


class InvalidFormatError(ValueError):
    """Raised when caption text is not a WebVTT document."""


def parse_vtt_file(path: Path) -> list[Cue]:
    return parse_vtt_text(path.read_text(encoding="utf-8"), source=str(path))


def parse_vtt_text(text: str, *, source: str = "<vtt>") -> list[Cue]:
    """Parse WebVTT text into cues, in source order.

    Only a missing ``WEBVTT`` header is fatal. Lines that do not belong to a
    cue block (notes, identifiers, malformed range lines) are skipped.
    """
    if text.startswith("\ufeff"):
        text = text[1:]
    if not text.startswith(VTT_HEADER):
        raise InvalidFormatError(f"Invalid VTT file {source}: missing {VTT_HEADER} header")

    lines = [raw.strip() for raw in text.split("\n")]
    cues: list[Cue] = []
    idx = 0
    while idx < len(lines):
        line = lines[idx]
        idx += 1
        if not line or CUE_INDEX_RE.match(line):
            continue
        match = CUE_RANGE_RE.match(line)
        if not match:
            continue

        text_lines: list[str] = []
        while idx < len(lines):
            candidate = lines[idx]
            if not candidate or CUE_RANGE_RE.match(candidate):
                break
            text_lines.append(candidate)
            idx += 1

        cues.append(Cue(start=match.group("start"), end=match.group("end"), text=" ".join(text_lines)))
    return cues


def format_flat_transcript(cues: list[Cue]) -> str:
    return "\n".join(f"[{cue.start}] {cue.text}" for cue in cues)


def format_structured_transcript(cues: list[Cue]) -> str:
    blocks = [VTT_HEADER]
    for number, cue in enumerate(cues, start=1):
        block = f"{number}\n{cue.start} --> {cue.end}"
        if cue.text:
            block += f"\n{cue.text}"
        blocks.append(block)
    return "\n\n".join(blocks) + "\n"


def save_vtt(content: str, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(content, encoding="utf-8")


def save_json(data: object, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
