from __future__ import annotations

import importlib
import os
import re
from dataclasses import dataclass
from typing import Any

from .config import StageLLMConfig


@dataclass(frozen=True)
class _ProviderSpec:
    module: str
    class_name: str
    package: str
    api_key_kwarg: str
    api_key_env: str


PROVIDERS: dict[str, _ProviderSpec] = {
    "openai": _ProviderSpec("langchain_openai", "ChatOpenAI", "langchain-openai", "api_key", "OPENAI_API_KEY"),
    "anthropic": _ProviderSpec(
        "langchain_anthropic", "ChatAnthropic", "langchain-anthropic", "anthropic_api_key", "ANTHROPIC_API_KEY"
    ),
    "google": _ProviderSpec(
        "langchain_google_genai",
        "ChatGoogleGenerativeAI",
        "langchain-google-genai",
        "google_api_key",
        "GOOGLE_API_KEY",
    ),
}

PROVIDER_ALIASES = {
    "openai": "openai",
    "anthropic": "anthropic",
    "claude": "anthropic",
    "google": "google",
    "gemini": "google",
}


class ModelManager:
    """Build the LangChain chat model configured for a pipeline stage."""

    def __init__(self, stage_cfg: StageLLMConfig, *, openai_api_key: str | None = None) -> None:
        self.stage_cfg = stage_cfg
        self.openai_api_key = openai_api_key

    def get_chat_model(self, *, temperature: float = 0.0) -> Any:
        model_name = (self.stage_cfg.model or "").strip()
        if not model_name:
            raise ValueError("ANALYZE_MODEL is not set.")

        provider = self.resolve_provider(model_name)
        spec = PROVIDERS[provider]
        try:
            module = importlib.import_module(spec.module)
        except ImportError as exc:  # pragma: no cover - runtime dependency
            raise RuntimeError(f"{spec.package} is not installed.") from exc

        kwargs: dict[str, Any] = {"model": model_name}
        if not (provider == "openai" and _is_openai_reasoning_model(model_name)):
            kwargs["temperature"] = temperature
        api_key = self.stage_cfg.api_key or os.getenv(spec.api_key_env)
        if not api_key and provider == "openai":
            api_key = self.openai_api_key
        if api_key:
            kwargs[spec.api_key_kwarg] = api_key
        return getattr(module, spec.class_name)(**kwargs)

    def resolve_provider(self, model_name: str) -> str:
        explicit = (self.stage_cfg.provider or "").strip().lower()
        if explicit:
            if explicit in PROVIDER_ALIASES:
                return PROVIDER_ALIASES[explicit]
            raise ValueError(f"Unsupported provider override: {self.stage_cfg.provider}")

        lower = model_name.lower()
        if lower.startswith("claude"):
            return "anthropic"
        if lower.startswith("gemini"):
            return "google"
        return "openai"


def _is_openai_reasoning_model(model_name: str) -> bool:
    lower = model_name.lower()
    if lower.startswith(("o1", "o3", "o4")):
        return True
    return re.match(r"^gpt-5(?:$|[.\-].*)", lower) is not None
