"""Vision LLM backends for the inference capability.

Provides a unified interface for sending one image plus a prompt to
different providers (Google Gemini, Anthropic Claude) and getting back
the raw text with consistent token accounting.

Each backend handles provider-specific concerns:
- Client creation and timeout configuration
- Inline image encoding
- Structured-output configuration where the provider supports it
- Response parsing and token counting

The analyzer (inference.py) handles the model-agnostic concerns:
prompt loading, JSON parsing and result validation.
"""

import base64
import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass
class LLMCallResult:
    """Normalized response from any LLM backend."""

    content: str
    model_id: str
    input_tokens: int
    output_tokens: int
    duration_ms: int


# Socket timeout for a single provider call; the pipeline applies its own
# overall deadline on top of this.
REQUEST_TIMEOUT = 180.0


@runtime_checkable
class ModelBackend(Protocol):
    """Protocol for vision backend implementations."""

    @property
    def model_id(self) -> str: ...

    @property
    def max_output_tokens(self) -> int: ...

    def execute_vision(
        self,
        system_prompt: str,
        user_message: str,
        image_bytes: bytes,
        mime_type: str,
        *,
        max_tokens: int,
        response_schema: Optional[dict] = None,
        label: str = "",
    ) -> LLMCallResult: ...


class GeminiBackend:
    """Google Gemini backend.

    Handles:
    - Inline image parts (Part.from_bytes)
    - JSON response mode with a response schema
    - Request timeout via HttpOptions (milliseconds)

    Requires GEMINI_API_KEY environment variable.
    """

    def __init__(self, model_id: str = "gemini-2.5-flash"):
        self._model_id = model_id

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def max_output_tokens(self) -> int:
        return 65_536

    def _get_client(self):
        """Get a Gemini client. Lazy import so the module loads without it."""
        try:
            from google import genai
        except ImportError:
            raise RuntimeError(
                "google-genai package not installed. "
                "Install with: pip install google-genai"
            )

        api_key = os.environ.get("GEMINI_API_KEY")
        if not api_key:
            raise RuntimeError(
                "GEMINI_API_KEY not set. Set the environment variable to use Gemini."
            )
        return genai.Client(
            api_key=api_key,
            http_options=genai.types.HttpOptions(timeout=int(REQUEST_TIMEOUT * 1000)),
        )

    def execute_vision(
        self,
        system_prompt: str,
        user_message: str,
        image_bytes: bytes,
        mime_type: str,
        *,
        max_tokens: int,
        response_schema: Optional[dict] = None,
        label: str = "",
    ) -> LLMCallResult:
        """Execute a synchronous Gemini call with one inline image."""
        from google import genai

        client = self._get_client()
        start_time = time.time()

        logger.info(
            f"[{label}] Gemini vision: {mime_type}, {len(image_bytes):,} bytes, "
            f"max_tokens={max_tokens}"
        )

        config_kwargs: dict[str, Any] = {
            "system_instruction": system_prompt,
            "max_output_tokens": min(max_tokens, self.max_output_tokens),
            "response_mime_type": "application/json",
        }
        if response_schema:
            config_kwargs["response_schema"] = response_schema

        config = genai.types.GenerateContentConfig(**config_kwargs)

        response = client.models.generate_content(
            model=self._model_id,
            contents=[
                genai.types.Part.from_bytes(data=image_bytes, mime_type=mime_type),
                user_message,
            ],
            config=config,
        )

        duration_ms = int((time.time() - start_time) * 1000)

        raw_text = ""
        if response.candidates and response.candidates[0].content:
            for part in response.candidates[0].content.parts or []:
                if getattr(part, "thought", False):
                    continue
                raw_text += getattr(part, "text", "") or ""

        if not raw_text.strip():
            raise RuntimeError(f"[{label}] Empty response from {self._model_id}")

        usage = getattr(response, "usage_metadata", None)
        input_tokens = getattr(usage, "prompt_token_count", 0) or 0
        output_tokens = getattr(usage, "candidates_token_count", 0) or 0

        logger.info(
            f"[{label}] Gemini vision completed: {input_tokens}+{output_tokens} tokens, "
            f"{duration_ms}ms, {len(raw_text):,} chars"
        )

        return LLMCallResult(
            content=raw_text.strip(),
            model_id=self._model_id,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
        )


class AnthropicBackend:
    """Anthropic Claude backend.

    Handles:
    - Base64 image content blocks
    - httpx timeout configuration

    Claude has no JSON response mode here; the schema is described in the
    prompt and the reply is parsed leniently (code fences stripped).
    """

    def __init__(self, model_id: str = "claude-sonnet-4-5"):
        self._model_id = model_id

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def max_output_tokens(self) -> int:
        return 64_000

    def execute_vision(
        self,
        system_prompt: str,
        user_message: str,
        image_bytes: bytes,
        mime_type: str,
        *,
        max_tokens: int,
        response_schema: Optional[dict] = None,
        label: str = "",
    ) -> LLMCallResult:
        """Execute a synchronous Anthropic call with one inline image."""
        import httpx
        from anthropic import Anthropic

        api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise RuntimeError(
                "ANTHROPIC_API_KEY not set. Set the environment variable to use Claude."
            )

        client = Anthropic(
            api_key=api_key,
            timeout=httpx.Timeout(
                connect=30.0,
                read=REQUEST_TIMEOUT,
                write=60.0,
                pool=30.0,
            ),
        )
        start_time = time.time()

        logger.info(
            f"[{label}] Anthropic vision: {mime_type}, {len(image_bytes):,} bytes, "
            f"max_tokens={max_tokens}"
        )

        response = client.messages.create(
            model=self._model_id,
            max_tokens=min(max_tokens, self.max_output_tokens),
            system=system_prompt,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": mime_type,
                                "data": base64.b64encode(image_bytes).decode("ascii"),
                            },
                        },
                        {"type": "text", "text": user_message},
                    ],
                }
            ],
        )

        duration_ms = int((time.time() - start_time) * 1000)

        raw_text = ""
        for block in response.content:
            if hasattr(block, "text"):
                raw_text += block.text

        if not raw_text.strip():
            raise RuntimeError(f"[{label}] Empty response from {self._model_id}")

        logger.info(
            f"[{label}] Anthropic vision completed: {response.usage.input_tokens}+"
            f"{response.usage.output_tokens} tokens, {duration_ms}ms"
        )

        return LLMCallResult(
            content=raw_text.strip(),
            model_id=self._model_id,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            duration_ms=duration_ms,
        )
