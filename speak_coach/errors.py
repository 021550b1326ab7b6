"""
Error types shared across the service.

Quota denials are not errors; they are returned as booleans by the
quota tracker and mapped to HTTP 429 by the API layer.
"""

from enum import Enum


class SpeakCoachError(Exception):
    """Base class for all service errors."""


class AuthenticationError(SpeakCoachError):
    """Bearer token missing, malformed or rejected by the identity service."""


class IdentityServiceError(SpeakCoachError):
    """Identity service could not be reached or answered unexpectedly."""


class ProviderNotConfiguredError(SpeakCoachError):
    """An AI provider is required but has no API key configured."""


class ProviderErrorKind(Enum):
    """Classes of upstream AI provider failures."""
    API_KEY = "api_key"
    QUOTA = "quota"
    PERMISSION = "permission"
    MODEL_NOT_FOUND = "model_not_found"
    NETWORK = "network"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ProviderError(SpeakCoachError):
    """Upstream AI provider call failed."""

    def __init__(self, message: str, kind: ProviderErrorKind):
        super().__init__(message)
        self.kind = kind


class EmptyGenerationError(SpeakCoachError):
    """Provider answered but produced no usable text."""
