"""
Provider interface and upstream error classification.

Provider failures are classified once, here, so handlers can map each
class to a status code and a user-facing message without echoing the
provider's own error text.
"""

import asyncio
from typing import Dict, List, Protocol, Sequence, Tuple

import httpx
import openai

from speak_coach.core.prompts import ChatTurn
from speak_coach.errors import ProviderErrorKind


class ChatProvider(Protocol):
    """Generates a tutor reply from a system instruction and history."""

    async def generate(
        self,
        system_instruction: str,
        history: Sequence[ChatTurn],
        temperature: float = 0.8,
    ) -> str: ...


USER_MESSAGES: Dict[ProviderErrorKind, str] = {
    ProviderErrorKind.API_KEY: "The AI service rejected the server's API key. Please contact support.",
    ProviderErrorKind.QUOTA: "The AI service quota is exhausted. Please try again later.",
    ProviderErrorKind.PERMISSION: "The server is not permitted to use this AI model.",
    ProviderErrorKind.MODEL_NOT_FOUND: "The configured AI model is not available.",
    ProviderErrorKind.NETWORK: "Could not reach the AI service. Please check your connection and retry.",
    ProviderErrorKind.TIMEOUT: "The AI service took too long to respond. Please retry.",
    ProviderErrorKind.UNKNOWN: "The AI service failed to respond. Please try again.",
}

# Checked in order; the first matching substring wins
_TEXT_PATTERNS: List[Tuple[ProviderErrorKind, Tuple[str, ...]]] = [
    (ProviderErrorKind.API_KEY, ("api key", "api_key", "apikey", "unauthenticated", "invalid authentication")),
    (ProviderErrorKind.QUOTA, ("quota", "rate limit", "resource_exhausted", "resource exhausted", "billing")),
    (ProviderErrorKind.PERMISSION, ("permission", "forbidden")),
    (ProviderErrorKind.MODEL_NOT_FOUND, (
        "model not found", "not_found", "not found", "unsupported model", "is not supported",
    )),
    (ProviderErrorKind.TIMEOUT, ("timed out", "timeout", "deadline exceeded")),
    (ProviderErrorKind.NETWORK, ("network", "connection", "fetch failed", "econnrefused", "enotfound", "dns")),
]


def classify_provider_error(error: BaseException) -> ProviderErrorKind:
    """Classify an upstream failure by its type, then by its message text."""
    if isinstance(error, (asyncio.TimeoutError, openai.APITimeoutError, httpx.TimeoutException)):
        return ProviderErrorKind.TIMEOUT
    if isinstance(error, openai.AuthenticationError):
        return ProviderErrorKind.API_KEY
    if isinstance(error, openai.RateLimitError):
        return ProviderErrorKind.QUOTA
    if isinstance(error, openai.PermissionDeniedError):
        return ProviderErrorKind.PERMISSION
    if isinstance(error, openai.NotFoundError):
        return ProviderErrorKind.MODEL_NOT_FOUND
    if isinstance(error, (openai.APIConnectionError, httpx.TransportError)):
        return ProviderErrorKind.NETWORK

    text = str(error).lower()
    for kind, needles in _TEXT_PATTERNS:
        if any(needle in text for needle in needles):
            return kind
    return ProviderErrorKind.UNKNOWN


def user_message(kind: ProviderErrorKind) -> str:
    return USER_MESSAGES[kind]
