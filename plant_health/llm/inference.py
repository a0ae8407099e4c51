"""Plant health inference capability.

Sends a leaf image to a vision model and turns the reply into a validated
AnalysisResult. Any failure (missing key, provider error, empty reply,
unparseable or out-of-range JSON) surfaces as InferenceError with a
message fit to show the user; a partial result is never returned.

Usage:
    analyzer = PlantHealthAnalyzer()
    result = analyzer.analyze(image_bytes, "image/jpeg")
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from plant_health import config
from plant_health.analysis.schemas import AnalysisResult
from plant_health.errors import InferenceError

from .backends import ModelBackend
from .client import parse_llm_json_response
from .factory import get_backend

logger = logging.getLogger(__name__)

DEFINITION_PATH = Path(__file__).parent / "definitions" / "plant_health.yaml"


class PromptDefinition(BaseModel):
    """Prompt and response schema for the analysis call."""

    key: str
    version: int = 1
    system_prompt: str
    user_prompt: str
    response_schema: Optional[dict[str, Any]] = Field(
        default=None, description="Provider response schema (Gemini OpenAPI subset)"
    )


def load_prompt_definition(path: Path = DEFINITION_PATH) -> PromptDefinition:
    """Load the prompt definition from YAML."""
    with open(path, "r") as f:
        data = yaml.safe_load(f)
    definition = PromptDefinition.model_validate(data)
    logger.debug(f"Loaded prompt definition {definition.key} v{definition.version}")
    return definition


class PlantHealthAnalyzer:
    """Inference capability backed by a vision LLM."""

    def __init__(
        self,
        backend: Optional[ModelBackend] = None,
        definition: Optional[PromptDefinition] = None,
        max_tokens: int = config.MAX_OUTPUT_TOKENS,
    ):
        self.backend = backend or get_backend(config.DEFAULT_MODEL)
        self.definition = definition or load_prompt_definition()
        self.max_tokens = max_tokens

    def analyze(self, image_bytes: bytes, mime_type: str) -> AnalysisResult:
        """Assess the plant in an image.

        Raises:
            InferenceError: On any failure to obtain a valid result
        """
        if not image_bytes:
            raise InferenceError("Failed to analyze image: the image is empty.")

        try:
            call = self.backend.execute_vision(
                self.definition.system_prompt,
                self.definition.user_prompt,
                image_bytes,
                mime_type,
                max_tokens=self.max_tokens,
                response_schema=self.definition.response_schema,
                label=self.definition.key,
            )
        except Exception as e:
            logger.error(f"Inference call to {self.backend.model_id} failed: {e}")
            raise InferenceError(
                f"Failed to analyze image. The AI service returned an error: {e}"
            ) from e

        try:
            data = parse_llm_json_response(call.content)
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Unparseable response from {call.model_id}: {e}")
            raise InferenceError(
                "Failed to analyze image. The AI response was not valid JSON."
            ) from e

        try:
            result = AnalysisResult.model_validate(data)
        except ValidationError as e:
            logger.error(f"Invalid analysis structure from {call.model_id}: {e}")
            fields = ", ".join(
                ".".join(str(p) for p in err["loc"]) for err in e.errors()
            )
            raise InferenceError(
                f"Failed to analyze image. The AI response was incomplete ({fields})."
            ) from e

        logger.info(
            f"Analysis from {call.model_id}: {result.plant_name} / {result.disease_name} "
            f"({call.input_tokens}+{call.output_tokens} tokens, {call.duration_ms}ms)"
        )
        return result
