from __future__ import annotations

import logging
from typing import Any, TypedDict

from langchain_core.callbacks import UsageMetadataCallbackHandler
from langchain_core.exceptions import OutputParserException
from langchain_core.output_parsers import PydanticOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langgraph.graph import END, START, StateGraph
from pydantic import BaseModel, Field, RootModel

from .config import StageLLMConfig
from .model_manager import ModelManager
from .models import ClipAnalysisResult, ClipSuggestion, Cue, ValidatedClip
from .reconcile import reconcile_suggestions
from .transcript import format_flat_transcript, format_structured_transcript


logger = logging.getLogger(__name__)


SYSTEM_TEMPLATE = """
You are an expert video editor analyzing meeting transcripts. Your task is to identify the most important, shareable moments from a meeting recording.

You must return ONLY a valid JSON array of objects. Each object must have exactly these fields:
- "title": A brief, descriptive title (max 50 characters)
- "start_time": Timestamp in HH:MM:SS format
- "end_time": Timestamp in HH:MM:SS format

Important rules:
1. Focus on moments with clear decisions, action items, key announcements, or important discussions
2. Each clip should be 15-90 seconds long
3. Timestamps must match the transcript timestamps provided (look for the [HH:MM:SS.mmm] markers and drop the milliseconds)
4. Return 3-7 clips maximum
5. DO NOT include any text outside the JSON array
6. Ensure end_time is always after start_time

Example output format:
[
  {{
    "title": "Q4 Budget Approval",
    "start_time": "00:14:32",
    "end_time": "00:15:45"
  }}
]

Output format instructions:
{format_instructions}
""".strip()


class ClipSuggestionOutput(BaseModel):
    title: str = Field(..., description="Brief descriptive title, at most 50 characters")
    start_time: str = Field(..., description="Clip start as HH:MM:SS")
    end_time: str = Field(..., description="Clip end as HH:MM:SS")


class ClipSuggestionsOutput(RootModel[list[ClipSuggestionOutput]]):
    pass


class ClipAnalysisState(TypedDict, total=False):
    attempt: int
    retry_feedback: str | None
    suggestions: list[ClipSuggestion]
    parse_error: str | None
    clips: list[ValidatedClip]


def build_user_message(transcript_text: str, user_context: str | None, retry_feedback: str | None = None) -> str:
    parts: list[str] = []
    if user_context and user_context.strip():
        parts.append(f"User guidance: {user_context.strip()}")
    if retry_feedback:
        parts.append(f"Feedback on your previous answer: {retry_feedback}")
    parts.append(f"---TRANSCRIPT---\n\n{transcript_text}")
    return "\n\n".join(parts)


def _retry_feedback(state: ClipAnalysisState) -> str:
    if state.get("parse_error"):
        return "It could not be parsed as the required JSON array. Return only the JSON array."
    if not state.get("suggestions"):
        return "It contained no clips. Return between 3 and 7 clips."
    return (
        "None of the suggested clips mapped onto the transcript. Copy start_time and end_time "
        "from the transcript markers and make sure end_time is after start_time."
    )


def _build_usage_summary(
    usage_callback: UsageMetadataCallbackHandler, *, configured_model: str | None
) -> dict[str, Any]:
    models: dict[str, Any] = {}
    total_input_tokens = 0
    total_output_tokens = 0
    total_tokens = 0
    for model_name, usage in usage_callback.usage_metadata.items():
        input_tokens = int(usage.get("input_tokens", 0))
        output_tokens = int(usage.get("output_tokens", 0))
        total = int(usage.get("total_tokens", input_tokens + output_tokens))
        models[model_name] = {
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "total_tokens": total,
        }
        total_input_tokens += input_tokens
        total_output_tokens += output_tokens
        total_tokens += total
    return {
        "configured_model": configured_model,
        "models": models,
        "input_tokens": total_input_tokens,
        "output_tokens": total_output_tokens,
        "total_tokens": total_tokens,
    }


def run_clip_analysis_workflow(
    *,
    cues: list[Cue],
    stage_cfg: StageLLMConfig,
    temperature: float,
    user_context: str | None = None,
    structured_transcript: bool = False,
    max_attempts: int = 2,
    openai_api_key: str | None = None,
    model: Any = None,
) -> ClipAnalysisResult:
    """Ask the chat model for clip suggestions and reconcile them against ``cues``.

    The model is asked again (with feedback) while no suggestion survives
    reconciliation and attempts remain. ``model`` overrides the configured
    chat model.
    """
    if not cues:
        raise ValueError("Transcript contains no cues; nothing to analyze.")
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1.")

    transcript_text = format_structured_transcript(cues) if structured_transcript else format_flat_transcript(cues)
    if model is None:
        model = ModelManager(stage_cfg, openai_api_key=openai_api_key).get_chat_model(temperature=temperature)
    usage_callback = UsageMetadataCallbackHandler()
    invoke_config = {"callbacks": [usage_callback]}

    parser = PydanticOutputParser(pydantic_object=ClipSuggestionsOutput)
    prompt = ChatPromptTemplate.from_messages(
        [("system", SYSTEM_TEMPLATE), ("human", "{user_message}")]
    ).partial(format_instructions=parser.get_format_instructions())
    chain = prompt | model | parser

    def suggest_clips(state: ClipAnalysisState) -> ClipAnalysisState:
        attempt = state.get("attempt", 0) + 1
        user_message = build_user_message(transcript_text, user_context, state.get("retry_feedback"))
        logger.info("Requesting clip suggestions (attempt %s/%s)", attempt, max_attempts)
        logger.debug("User message:\n%s", user_message)
        try:
            payload = chain.invoke({"user_message": user_message}, config=invoke_config)
        except OutputParserException as exc:
            logger.warning("Attempt %s returned unparseable suggestions: %s", attempt, exc)
            return {"attempt": attempt, "suggestions": [], "parse_error": str(exc)}

        suggestions = [
            ClipSuggestion(title=item.title, start_time=item.start_time, end_time=item.end_time)
            for item in payload.root
        ]
        logger.info("Model suggested %s clip(s)", len(suggestions))
        return {"attempt": attempt, "suggestions": suggestions, "parse_error": None}

    def reconcile(state: ClipAnalysisState) -> ClipAnalysisState:
        clips = reconcile_suggestions(state.get("suggestions") or [], cues)
        return {"clips": clips, "retry_feedback": None if clips else _retry_feedback(state)}

    def route_after_reconcile(state: ClipAnalysisState) -> str:
        if state.get("clips") or state.get("attempt", 0) >= max_attempts:
            return "done"
        return "suggest_clips"

    graph = StateGraph(ClipAnalysisState)
    graph.add_node("suggest_clips", suggest_clips)
    graph.add_node("reconcile", reconcile)
    graph.add_edge(START, "suggest_clips")
    graph.add_edge("suggest_clips", "reconcile")
    graph.add_conditional_edges("reconcile", route_after_reconcile, {"suggest_clips": "suggest_clips", "done": END})

    app = graph.compile()
    result = app.invoke(
        {"attempt": 0, "retry_feedback": None},
        config={"recursion_limit": 2 * max_attempts + 5},
    )

    clips = result.get("clips") or []
    if not clips and result.get("parse_error"):
        raise RuntimeError(f"Failed to parse clip suggestions: {result['parse_error']}")

    usage_summary = _build_usage_summary(usage_callback, configured_model=stage_cfg.model)
    logger.info("LLM usage: %s total tokens", usage_summary["total_tokens"])
    return ClipAnalysisResult(
        clips=clips,
        suggested_count=len(result.get("suggestions") or []),
        attempts=int(result.get("attempt", 0)),
        llm_usage=usage_summary,
    )
