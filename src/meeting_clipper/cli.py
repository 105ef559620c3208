from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import PipelineConfig
from .cutter import generate_clips, load_clips, open_in_file_explorer
from .langchain_workflows import run_clip_analysis_workflow
from .llm_clients import transcribe_video, validate_api_key
from .model_manager import ModelManager
from .models import ClipAnalysisResult, ClipProgress
from .reconcile import clips_document
from .settings import save_api_key, settings_path
from .transcript import format_flat_transcript, format_structured_transcript, parse_vtt_file, save_json


logger = logging.getLogger(__name__)

MISSING_KEY_MESSAGE = "No API key configured. Set OPENAI_API_KEY or run `clipper set-key`."


def _resolve_context(context_arg: str | None) -> str | None:
    if context_arg is None:
        return None
    candidate = Path(context_arg).expanduser()
    if candidate.is_file():
        text = candidate.read_text(encoding="utf-8")
        logger.info("Resolved --context from file %s (%s chars)", candidate, len(text))
        return text
    return context_arg


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clipper",
        description="Meeting clipper: transcribe a recording, pick highlights with a chat model, and cut clips.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_set_key = sub.add_parser("set-key", help="Store the OpenAI API key in the settings file.")
    p_set_key.add_argument("api_key")
    p_set_key.add_argument("--no-validate", action="store_true", help="Store the key without checking it.")

    p_validate = sub.add_parser("validate-key", help="Check whether an OpenAI API key is accepted.")
    p_validate.add_argument("api_key", nargs="?")

    p_transcribe = sub.add_parser("transcribe", help="Transcribe a video to a WebVTT file.")
    p_transcribe.add_argument("input_video", type=Path)
    p_transcribe.add_argument("-o", "--output", type=Path, help="VTT path (default: next to the video).")

    p_transcript = sub.add_parser("transcript", help="Print the transcript text handed to the chat model.")
    p_transcript.add_argument("transcript_vtt", type=Path)
    p_transcript.add_argument("--structured", action="store_true", help="Include cue numbers and end times.")

    context_help = "Guidance for the chat model, or a path to a text file containing it."

    p_analyze = sub.add_parser("analyze", help="Suggest clips from a VTT transcript and write a review file.")
    p_analyze.add_argument("transcript_vtt", type=Path)
    p_analyze.add_argument("-o", "--output", type=Path, required=True)
    p_analyze.add_argument("--context", type=str, help=context_help)
    p_analyze.add_argument("--structured", action="store_true", help="Send the structured transcript form.")

    p_cut = sub.add_parser("cut", help="Cut the selected clips of a review file from the source video.")
    p_cut.add_argument("input_video", type=Path)
    p_cut.add_argument("clips_json", type=Path)
    p_cut.add_argument("--out-dir", type=Path)
    p_cut.add_argument("--open", action="store_true", help="Open the output folder when done.")

    p_all = sub.add_parser("run-all", help="Run transcribe -> analyze -> cut.")
    p_all.add_argument("input_video", type=Path)
    p_all.add_argument("--context", type=str, help=context_help)
    p_all.add_argument("--structured", action="store_true", help="Send the structured transcript form.")
    p_all.add_argument("--out-dir", type=Path)
    p_all.add_argument("--open", action="store_true", help="Open the output folder when done.")

    return parser


def _print(msg: str) -> None:
    print(msg, file=sys.stderr)


def _require_transcribe_key(cfg: PipelineConfig) -> None:
    if not cfg.transcribe.api_key:
        raise ValueError(MISSING_KEY_MESSAGE)


def _require_analyze_key(cfg: PipelineConfig) -> None:
    model_name = cfg.analyze.model or ""
    if ModelManager(cfg.analyze).resolve_provider(model_name) != "openai":
        return
    if not (cfg.analyze.api_key or cfg.openai_api_key):
        raise ValueError(MISSING_KEY_MESSAGE)


def _cut_progress(prefix: str):
    def report(progress: ClipProgress) -> None:
        _print(f"[{prefix}] Clip {progress.current}/{progress.total} done")

    return report


def _analyze(transcript_vtt: Path, args: argparse.Namespace, cfg: PipelineConfig) -> ClipAnalysisResult:
    cues = parse_vtt_file(transcript_vtt)
    return run_clip_analysis_workflow(
        cues=cues,
        stage_cfg=cfg.analyze,
        temperature=cfg.analyze_temperature,
        user_context=_resolve_context(args.context),
        structured_transcript=args.structured,
        max_attempts=cfg.analyze_max_attempts,
        openai_api_key=cfg.openai_api_key,
    )


def _write_clips(result: ClipAnalysisResult, output: Path) -> None:
    metadata = {
        "suggested_count": result.suggested_count,
        "attempts": result.attempts,
        "llm_usage": result.llm_usage,
    }
    save_json(clips_document(result.clips, workflow_metadata=metadata), output)


def cmd_set_key(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    if not args.no_validate and not validate_api_key(args.api_key):
        _print("[set-key] The API key was rejected; nothing stored")
        return 1
    path = save_api_key(cfg.settings_dir, args.api_key)
    _print(f"[set-key] Stored API key in {path}")
    return 0


def cmd_validate_key(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    api_key = args.api_key or cfg.openai_api_key
    if not api_key:
        raise ValueError(MISSING_KEY_MESSAGE)
    if validate_api_key(api_key):
        _print("[validate-key] API key is valid")
        return 0
    _print("[validate-key] API key is invalid")
    return 1


def cmd_transcribe(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    _require_transcribe_key(cfg)
    vtt_path = transcribe_video(
        args.input_video,
        cfg.transcribe,
        cfg.ffmpeg_bin,
        language=cfg.transcribe_language,
        output_path=args.output,
        progress=lambda message: _print(f"[transcribe] {message}"),
    )
    _print(f"[transcribe] Wrote transcript -> {vtt_path}")
    return 0


def cmd_transcript(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    del cfg
    cues = parse_vtt_file(args.transcript_vtt)
    if args.structured:
        print(format_structured_transcript(cues), end="")
    else:
        print(format_flat_transcript(cues))
    return 0


def cmd_analyze(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    _require_analyze_key(cfg)
    _print(f"[analyze] Analyzing {args.transcript_vtt} with model={cfg.analyze.model}")
    result = _analyze(args.transcript_vtt, args, cfg)
    _write_clips(result, args.output)
    _print(f"[analyze] {len(result.clips)} of {result.suggested_count} suggested clips were valid")
    _print(f"[analyze] Wrote clip list -> {args.output}")
    return 0


def cmd_cut(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    _print(f"[cut] Cutting clips from {args.input_video} using {args.clips_json}")
    clips = load_clips(args.clips_json)
    result = generate_clips(
        cfg.ffmpeg_bin,
        args.input_video,
        clips,
        out_dir=args.out_dir,
        progress=_cut_progress("cut"),
    )
    _print(f"[cut] Created {result.clip_count} clips in {result.output_directory}")
    if args.open:
        open_in_file_explorer(result.output_directory)
    return 0


def cmd_run_all(args: argparse.Namespace, cfg: PipelineConfig) -> int:
    _require_transcribe_key(cfg)
    _require_analyze_key(cfg)
    video_path: Path = args.input_video

    vtt_path = transcribe_video(
        video_path,
        cfg.transcribe,
        cfg.ffmpeg_bin,
        language=cfg.transcribe_language,
        progress=lambda message: _print(f"[run-all] {message}"),
    )
    _print(f"[run-all] Transcript written -> {vtt_path}")

    result = _analyze(vtt_path, args, cfg)
    clips_path = video_path.parent / f"{video_path.stem}_clips.json"
    _write_clips(result, clips_path)
    _print(f"[run-all] {len(result.clips)} of {result.suggested_count} suggested clips were valid")
    _print(f"[run-all] Clip list written -> {clips_path}")
    if not result.clips:
        _print("[run-all] Nothing to cut")
        return 0

    processed = generate_clips(
        cfg.ffmpeg_bin,
        video_path,
        result.clips,
        out_dir=args.out_dir,
        progress=_cut_progress("run-all"),
    )
    _print(f"[run-all] Created {processed.clip_count} clips in {processed.output_directory}")
    if args.open:
        open_in_file_explorer(processed.output_directory)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    logging.getLogger("meeting_clipper").setLevel(logging.DEBUG if args.verbose else logging.INFO)

    try:
        cfg = PipelineConfig.from_env()
        logger.debug("Settings file: %s", settings_path(cfg.settings_dir))
        if args.command == "set-key":
            return cmd_set_key(args, cfg)
        if args.command == "validate-key":
            return cmd_validate_key(args, cfg)
        if args.command == "transcribe":
            return cmd_transcribe(args, cfg)
        if args.command == "transcript":
            return cmd_transcript(args, cfg)
        if args.command == "analyze":
            return cmd_analyze(args, cfg)
        if args.command == "cut":
            return cmd_cut(args, cfg)
        if args.command == "run-all":
            return cmd_run_all(args, cfg)
    except Exception as exc:  # noqa: BLE001
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
