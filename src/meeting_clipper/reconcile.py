from __future__ import annotations

import logging
import uuid
from typing import Any

from .models import ClipSuggestion, Cue, ValidatedClip
from .timestamps import timestamp_to_seconds, to_encoder_timestamp


logger = logging.getLogger(__name__)

UNSAFE_FILENAME_CHARS = frozenset('/\\:*?"<>|')


def sanitize_filename(title: str) -> str:
    return "".join("_" if char in UNSAFE_FILENAME_CHARS else char for char in title).strip()


def find_closest_cue(cues: list[Cue], target_time: str) -> Cue | None:
    """Return the cue whose start is nearest to ``target_time``.

    Matching is keyed on cue starts only; the first cue wins a tie.
    """
    target_seconds = timestamp_to_seconds(target_time)
    if target_seconds is None or not cues:
        return None

    def distance(cue: Cue) -> int:
        cue_seconds = timestamp_to_seconds(cue.start) or 0
        return abs(cue_seconds - target_seconds)

    return min(cues, key=distance)


def reconcile_suggestion(suggestion: ClipSuggestion, cues: list[Cue]) -> ValidatedClip | None:
    """Snap a model suggestion onto cue boundaries, or return ``None``.

    Both ends are located by nearest cue *start*; the end boundary then takes
    the matched cue's own end. The result is dropped unless it spans at least
    one whole second.
    """
    start_cue = find_closest_cue(cues, suggestion.start_time)
    end_cue = find_closest_cue(cues, suggestion.end_time)
    if start_cue is None or end_cue is None:
        return None

    start_time = to_encoder_timestamp(start_cue.start)
    end_time = to_encoder_timestamp(end_cue.end)
    start_seconds = timestamp_to_seconds(start_time)
    end_seconds = timestamp_to_seconds(end_time)
    if start_seconds is None or end_seconds is None or end_seconds <= start_seconds:
        return None

    return ValidatedClip(
        id=str(uuid.uuid4()),
        title=suggestion.title,
        start_time=start_time,
        end_time=end_time,
        sanitized_filename=sanitize_filename(suggestion.title),
        is_selected=True,
    )


def reconcile_suggestions(suggestions: list[ClipSuggestion], cues: list[Cue]) -> list[ValidatedClip]:
    clips: list[ValidatedClip] = []
    for idx, suggestion in enumerate(suggestions, start=1):
        clip = reconcile_suggestion(suggestion, cues)
        if clip is None:
            logger.info(
                "Dropping suggestion %s (%r): %s -> %s does not map to a valid range",
                idx,
                suggestion.title,
                suggestion.start_time,
                suggestion.end_time,
            )
            continue
        clips.append(clip)
    logger.info("%s of %s suggested clips were valid", len(clips), len(suggestions))
    return clips


def clips_to_jsonable(clips: list[ValidatedClip]) -> list[dict[str, Any]]:
    return [
        {
            "id": clip.id,
            "title": clip.title,
            "startTime": clip.start_time,
            "endTime": clip.end_time,
            "sanitizedFilename": clip.sanitized_filename,
            "isSelected": clip.is_selected,
        }
        for clip in clips
    ]


def _to_validated_clip(item: Any, idx: int) -> ValidatedClip:
    if not isinstance(item, dict):
        raise ValueError(f"Clip {idx}: expected object")
    for key in ("id", "title", "startTime", "endTime", "sanitizedFilename"):
        if not isinstance(item.get(key), str):
            raise ValueError(f"Clip {idx}: missing/invalid {key}")
    is_selected = item.get("isSelected", True)
    if not isinstance(is_selected, bool):
        raise ValueError(f"Clip {idx}: isSelected must be true or false")

    start_seconds = timestamp_to_seconds(item["startTime"])
    end_seconds = timestamp_to_seconds(item["endTime"])
    if start_seconds is None or end_seconds is None:
        raise ValueError(f"Clip {idx}: timestamps must be HH:MM:SS")
    if end_seconds <= start_seconds:
        raise ValueError(f"Clip {idx}: endTime must be after startTime")

    return ValidatedClip(
        id=item["id"],
        title=item["title"],
        start_time=item["startTime"],
        end_time=item["endTime"],
        sanitized_filename=item["sanitizedFilename"],
        is_selected=is_selected,
    )


def extract_clips_payload(payload: Any) -> Any:
    if isinstance(payload, dict):
        return payload.get("clips")
    return payload


def clips_from_payload(payload: Any) -> list[ValidatedClip]:
    clips_payload = extract_clips_payload(payload)
    if not isinstance(clips_payload, list):
        raise ValueError("Clip list must be a JSON array or an object with a 'clips' array.")
    return [_to_validated_clip(item, idx + 1) for idx, item in enumerate(clips_payload)]


def clips_document(
    clips: list[ValidatedClip], *, workflow_metadata: dict[str, Any] | None = None
) -> dict[str, Any]:
    document: dict[str, Any] = {"clips": clips_to_jsonable(clips)}
    if workflow_metadata is not None:
        document["workflow_metadata"] = workflow_metadata
    return document
