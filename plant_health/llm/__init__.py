"""Vision LLM utilities.

Provides the inference capability used by the analysis pipeline, with
interchangeable backends (Google Gemini, Anthropic Claude).
"""

from plant_health.llm.backends import (
    AnthropicBackend,
    GeminiBackend,
    LLMCallResult,
    ModelBackend,
)
from plant_health.llm.client import parse_llm_json_response
from plant_health.llm.factory import get_backend
from plant_health.llm.inference import (
    PlantHealthAnalyzer,
    PromptDefinition,
    load_prompt_definition,
)

__all__ = [
    "AnthropicBackend",
    "GeminiBackend",
    "LLMCallResult",
    "ModelBackend",
    "PlantHealthAnalyzer",
    "PromptDefinition",
    "get_backend",
    "load_prompt_definition",
    "parse_llm_json_response",
]
