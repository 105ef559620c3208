"""Whole-second arithmetic over ``HH:MM:SS[.mmm]`` timestamps."""

from __future__ import annotations

import re

_UINT_RE = re.compile(r"\+?[0-9]+")


def _parse_uint(raw: str) -> int | None:
    if not _UINT_RE.fullmatch(raw):
        return None
    return int(raw)


def timestamp_to_seconds(timestamp: str) -> int | None:
    """Return the total whole seconds of ``HH:MM:SS[.mmm]``, or ``None``.

    Milliseconds are truncated, never rounded. Anything other than exactly
    three colon-separated unsigned integers yields ``None``.
    """
    parts = timestamp.split(":")
    if len(parts) != 3:
        return None

    hours = _parse_uint(parts[0])
    minutes = _parse_uint(parts[1])
    seconds = _parse_uint(parts[2].split(".", 1)[0])
    if hours is None or minutes is None or seconds is None:
        return None
    return hours * 3600 + minutes * 60 + seconds


def seconds_to_timestamp(seconds: int) -> str:
    if seconds < 0:
        raise ValueError(f"Negative timestamp: {seconds}")
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def to_encoder_timestamp(timestamp: str) -> str:
    """Drop the sub-second part: ``00:01:14.500`` -> ``00:01:14``."""
    return timestamp.split(".", 1)[0]
