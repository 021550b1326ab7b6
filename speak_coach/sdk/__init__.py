"""
SDK adapters for Speak Coach.

Wraps the AI providers and the identity service behind small interfaces.
"""

from .gemini_client import GeminiChatProvider
from .identity import SupabaseIdentityResolver
from .openai_client import RealtimeTokenIssuer

__all__ = ["GeminiChatProvider", "RealtimeTokenIssuer", "SupabaseIdentityResolver"]
