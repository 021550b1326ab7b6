"""
Shared request plumbing: service container, client identity and
structured error responses.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Mapping, Optional, Type, TypeVar

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from speak_coach.config.loader import AppConfig
from speak_coach.core.quota import QuotaTracker
from speak_coach.errors import IdentityServiceError
from speak_coach.sdk.identity import IdentityResolver, extract_bearer_token
from speak_coach.sdk.openai_client import RealtimeTokenIssuer
from speak_coach.sdk.providers import ChatProvider
from speak_coach.storage.models import ConversationStore, SentenceStore

logger = logging.getLogger(__name__)

BodyT = TypeVar("BodyT", bound=BaseModel)


@dataclass
class Services:
    """Collaborators the route handlers depend on."""
    config: AppConfig
    tracker: QuotaTracker
    events: ConversationStore
    identity: Optional[IdentityResolver] = None
    chat_provider: Optional[ChatProvider] = None
    realtime: Optional[RealtimeTokenIssuer] = None
    sentences: Optional[SentenceStore] = None
    clock: Callable[[], float] = field(default=time.time)

    def now(self) -> datetime:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc)


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_client_key(headers: Mapping[str, str]) -> str:
    """Identify the caller for rate limiting by its forwarded address."""
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip() or "unknown"
    cf_ip = headers.get("cf-connecting-ip")
    if cf_ip:
        return cf_ip
    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return "anonymous"


def error_response(
    status_code: int,
    error: str,
    message: Optional[str] = None,
    retry_after: Optional[int] = None,
) -> JSONResponse:
    """Structured JSON error body: ``{"error": ..., "message": ...}``."""
    content = {"error": error}
    if message:
        content["message"] = message
    headers = {"Retry-After": str(retry_after)} if retry_after is not None else None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def authenticate(request: Request, services: Services) -> str:
    """Resolve the request's bearer token to a user id.

    Raises:
        AuthenticationError: Token missing or rejected
        IdentityServiceError: No identity service configured or reachable
    """
    if services.identity is None:
        raise IdentityServiceError("Identity service is not configured")
    token = extract_bearer_token(request.headers.get("authorization"))
    return await services.identity.resolve(token)


async def read_body(request: Request, model: Type[BodyT]) -> BodyT:
    """Parse and validate a JSON body.

    Raises:
        ValueError: Body is not JSON or fails validation
    """
    return model.model_validate(await request.json())


def check_rate_limit(services: Services, scope: str, client_key: str) -> Optional[JSONResponse]:
    """Count the request against the client's window; a 429 response if denied."""
    rate = services.config.rate_limit
    key = f"{scope}:{client_key}"
    if services.tracker.admit_rate_limit(key, rate.window_ms, rate.max_requests):
        return None
    retry_after = services.tracker.retry_after_seconds(key, rate.window_ms)
    logger.warning("Rate limit exceeded for %s on %s", client_key, scope)
    return error_response(
        429,
        "Rate limit exceeded",
        f"Too many requests. Please retry in {retry_after} seconds.",
        retry_after=retry_after,
    )
