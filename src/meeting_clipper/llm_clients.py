from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

import openai
from openai import OpenAI

from .config import StageLLMConfig
from .ffmpeg_utils import extract_audio_to_mp3
from .transcript import VTT_HEADER, save_vtt


logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 25 * 1024 * 1024


def _build_client(cfg: StageLLMConfig) -> OpenAI:
    if not cfg.api_key:
        raise ValueError("No API key configured. Set OPENAI_API_KEY or run `clipper set-key`.")
    return OpenAI(api_key=cfg.api_key)


def transcribe_audio_to_vtt(
    audio_path: Path,
    cfg: StageLLMConfig,
    *,
    language: str | None = "en",
    client: Any = None,
) -> str:
    if not cfg.model:
        raise ValueError("TRANSCRIBE_MODEL is not set.")
    size = audio_path.stat().st_size
    if size > MAX_UPLOAD_BYTES:
        raise ValueError(
            f"Audio file too large ({size / (1024 * 1024):.1f} MB, max 25 MB). Try a shorter video."
        )

    client = client or _build_client(cfg)
    kwargs: dict[str, Any] = {"model": cfg.model, "response_format": "vtt"}
    if language:
        kwargs["language"] = language
    with audio_path.open("rb") as audio_file:
        resp = client.audio.transcriptions.create(file=audio_file, **kwargs)

    content = resp if isinstance(resp, str) else str(getattr(resp, "text", resp))
    if not content.lstrip("\ufeff").startswith(VTT_HEADER):
        raise RuntimeError("Transcription did not return WebVTT content.")
    return content


def transcribe_video(
    video_path: Path,
    cfg: StageLLMConfig,
    ffmpeg_bin: str,
    *,
    language: str | None = "en",
    output_path: Path | None = None,
    progress: Callable[[str], None] | None = None,
    client: Any = None,
) -> Path:
    """Extract the audio track of ``video_path``, transcribe it, and save a VTT file.

    The VTT lands next to the video as ``<stem>.vtt`` unless ``output_path``
    is given. The temporary MP3 is removed even when transcription fails.
    """

    def report(message: str) -> None:
        logger.info(message)
        if progress is not None:
            progress(message)

    audio_path = video_path.parent / f"{video_path.stem}_temp_audio.mp3"
    vtt_path = output_path or video_path.with_suffix(".vtt")

    report("Extracting audio from video...")
    try:
        extract_audio_to_mp3(ffmpeg_bin, video_path, audio_path)
        report("Transcribing audio...")
        content = transcribe_audio_to_vtt(audio_path, cfg, language=language, client=client)
    finally:
        audio_path.unlink(missing_ok=True)

    save_vtt(content, vtt_path)
    report("Transcript generated successfully!")
    return vtt_path


def validate_api_key(api_key: str, *, client: Any = None) -> bool:
    client = client or OpenAI(api_key=api_key)
    try:
        client.models.list()
    except openai.APIStatusError as exc:
        logger.info("API key rejected (%s)", exc.status_code)
        return False
    return True
