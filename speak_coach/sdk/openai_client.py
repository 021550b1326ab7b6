"""
OpenAI Realtime session tokens.

Mints short-lived client secrets so the browser can open a voice
session directly with the Realtime API without seeing the server key.
"""

import logging
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from speak_coach.config.loader import DEFAULT_REALTIME_MODEL
from speak_coach.errors import EmptyGenerationError, ProviderError, ProviderNotConfiguredError

from .providers import classify_provider_error

logger = logging.getLogger(__name__)


class RealtimeTokenIssuer:
    """Issues ephemeral Realtime API client secrets."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_REALTIME_MODEL,
        timeout_s: float = 15.0,
        client: Optional[Any] = None,
    ):
        """Initialize the issuer.

        Args:
            api_key: OpenAI API key (required)
            model: Realtime model name
            timeout_s: Request timeout
            client: Pre-built AsyncOpenAI client (for tests)

        Raises:
            ProviderNotConfiguredError: If api_key is missing
        """
        if not api_key:
            raise ProviderNotConfiguredError("OPENAI_API_KEY is not set")
        self.model = model
        self.client = client if client is not None else AsyncOpenAI(api_key=api_key, timeout=timeout_s)

    def session_config(self, voice: str, instructions: str) -> Dict[str, Any]:
        return {
            "type": "realtime",
            "model": self.model,
            "audio": {"output": {"voice": voice}},
            "instructions": instructions,
        }

    async def issue(self, voice: str, instructions: str) -> str:
        """Create a client secret for one voice session.

        Raises:
            ProviderError: On upstream failure, with its classified kind
            EmptyGenerationError: If the response carried no secret
        """
        try:
            secret = await self.client.realtime.client_secrets.create(
                session=self.session_config(voice, instructions),
            )
        except Exception as e:
            raise ProviderError(str(e) or type(e).__name__, classify_provider_error(e)) from e

        value = getattr(secret, "value", None)
        if not value:
            raise EmptyGenerationError("Realtime API returned no client secret")
        return value
