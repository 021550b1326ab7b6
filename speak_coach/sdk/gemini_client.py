"""
Gemini text chat provider.

Wraps google-genai content generation with a per-call timeout and an
ordered model fallback list that is only walked when a model is not
available.
"""

import asyncio
import logging
from typing import Any, Optional, Sequence

from google import genai
from google.genai import types

from speak_coach.config.loader import DEFAULT_GEMINI_MODELS
from speak_coach.core.prompts import ChatTurn
from speak_coach.errors import (
    EmptyGenerationError,
    ProviderError,
    ProviderErrorKind,
    ProviderNotConfiguredError,
)
from speak_coach.storage.models import ASSISTANT_ROLE

from .providers import classify_provider_error

logger = logging.getLogger(__name__)


def _get(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def extract_response_text(response: Any) -> str:
    """Pull reply text out of a generation response.

    Accepts the SDK response object or its dict form. Returns an empty
    string when no text can be found.
    """
    if response is None:
        return ""

    top_text = _get(response, "text")
    if isinstance(top_text, str) and top_text.strip():
        return top_text.strip()

    candidates = _get(response, "candidates")
    if not isinstance(candidates, (list, tuple)) or not candidates:
        return ""
    first = candidates[0]
    content = _get(first, "content")

    parts = _get(content, "parts")
    if isinstance(parts, (list, tuple)) and parts:
        texts = []
        for part in parts:
            text = part if isinstance(part, str) else _get(part, "text")
            texts.append(text if isinstance(text, str) else "")
        return " ".join(texts).strip()

    for text in (_get(content, "text"), _get(first, "text")):
        if isinstance(text, str):
            return text.strip()
    return ""


def to_contents(history: Sequence[ChatTurn]) -> list:
    """Convert chat turns to Gemini contents (assistant turns use role 'model')."""
    return [
        types.Content(
            role="model" if turn.role == ASSISTANT_ROLE else "user",
            parts=[types.Part(text=turn.text)],
        )
        for turn in history
    ]


class GeminiChatProvider:
    """Chat provider backed by the Gemini API."""

    def __init__(
        self,
        api_key: Optional[str],
        models: Sequence[str] = DEFAULT_GEMINI_MODELS,
        timeout_s: float = 30.0,
        client: Optional[Any] = None,
    ):
        """Initialize the provider.

        Args:
            api_key: Gemini API key (required)
            models: Models to try, in order
            timeout_s: Timeout for each generation call
            client: Pre-built genai client (for tests)

        Raises:
            ProviderNotConfiguredError: If api_key is missing
            ValueError: If models is empty
        """
        if not api_key:
            raise ProviderNotConfiguredError("GEMINI_API_KEY is not set")
        if not models:
            raise ValueError("at least one model is required")
        self.models = tuple(models)
        self.timeout_s = timeout_s
        self.client = client if client is not None else genai.Client(api_key=api_key)

    async def generate(
        self,
        system_instruction: str,
        history: Sequence[ChatTurn],
        temperature: float = 0.8,
    ) -> str:
        """Generate a tutor reply.

        Falls through to the next model only when the current one is
        reported missing or unsupported; every other failure is raised
        immediately without retry.

        Raises:
            ProviderError: On upstream failure, with its classified kind
            EmptyGenerationError: If the model produced no text
        """
        contents = to_contents(history)
        config = types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=temperature,
        )

        last_error: Optional[ProviderError] = None
        for model in self.models:
            try:
                response = await asyncio.wait_for(
                    self.client.aio.models.generate_content(
                        model=model,
                        contents=contents,
                        config=config,
                    ),
                    timeout=self.timeout_s,
                )
            except Exception as e:
                kind = classify_provider_error(e)
                if kind == ProviderErrorKind.MODEL_NOT_FOUND:
                    logger.warning("Gemini model %s unavailable, trying next: %s", model, e)
                    last_error = ProviderError(str(e), kind)
                    continue
                raise ProviderError(str(e) or type(e).__name__, kind) from e

            text = extract_response_text(response)
            if not text:
                raise EmptyGenerationError(f"{model} returned no text")
            return text

        raise last_error
