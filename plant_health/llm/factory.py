"""Model backend factory.

Resolves model IDs to the appropriate backend implementation.
"""

import logging
from typing import Union

from plant_health.llm.backends import AnthropicBackend, GeminiBackend

logger = logging.getLogger(__name__)


def get_backend(model_id: str) -> Union[AnthropicBackend, GeminiBackend]:
    """Get the appropriate backend for a model ID.

    Args:
        model_id: Full model identifier (e.g. 'gemini-2.5-flash',
                  'claude-sonnet-4-5')

    Returns:
        Backend instance for the model

    Raises:
        ValueError: If model_id is not recognized
    """
    if model_id.startswith("gemini-"):
        return GeminiBackend(model_id=model_id)
    elif model_id.startswith("claude-"):
        return AnthropicBackend(model_id=model_id)
    else:
        raise ValueError(
            f"Unknown model: '{model_id}'. "
            f"Expected a model ID starting with 'gemini-' or 'claude-'."
        )
