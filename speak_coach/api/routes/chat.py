"""Text chat endpoint: one tutor reply per request."""

import logging

from fastapi import APIRouter, Request

from speak_coach.api.schemas import ChatRequest
from speak_coach.api.services import (
    authenticate,
    check_rate_limit,
    error_response,
    get_client_key,
    get_services,
)
from speak_coach.core.prompts import build_system_instruction, filter_history
from speak_coach.core.tutors import (
    DEFAULT_LEVEL_ID,
    DEFAULT_TUTOR_ID,
    TUTORS,
    get_level,
    get_tutor,
    get_voice_for_tutor,
)
from speak_coach.errors import EmptyGenerationError, ProviderError, ProviderErrorKind
from speak_coach.sdk.providers import user_message

logger = logging.getLogger(__name__)

router = APIRouter()

# Upstream failures the server can't fix by itself are reported as bad gateway
_BAD_GATEWAY_KINDS = {
    ProviderErrorKind.QUOTA,
    ProviderErrorKind.MODEL_NOT_FOUND,
    ProviderErrorKind.NETWORK,
    ProviderErrorKind.TIMEOUT,
}


async def _parse_body(request: Request) -> ChatRequest:
    """Validated body, or all defaults when the body is unusable."""
    try:
        body = await request.json()
        return ChatRequest.model_validate(body)
    except ValueError as e:
        logger.warning("Invalid chat request body, using defaults: %s", e)
        return ChatRequest()


def provider_status(kind: ProviderErrorKind) -> int:
    return 502 if kind in _BAD_GATEWAY_KINDS else 500


@router.post("/api/chat")
async def chat(request: Request):
    """Generate the next tutor reply for a conversation."""
    services = get_services(request)

    limited = check_rate_limit(services, "chat", get_client_key(request.headers))
    if limited is not None:
        return limited

    user_id = await authenticate(request, services)

    if not services.tracker.admit_daily_quota(user_id, services.config.daily_quota.limit):
        retry_after = services.tracker.seconds_until_daily_reset()
        return error_response(
            429,
            "Daily limit reached",
            "You have used all of today's conversations. Please come back tomorrow.",
            retry_after=retry_after,
        )

    if services.chat_provider is None:
        logger.error("Chat requested but no Gemini API key is configured")
        return error_response(500, "AI service is not configured")

    body = await _parse_body(request)
    requested = body.character or body.voice
    tutor_id = requested if requested in TUTORS else DEFAULT_TUTOR_ID
    tutor = get_tutor(tutor_id)
    level = get_level(body.level or DEFAULT_LEVEL_ID)

    instruction = build_system_instruction(tutor, level, body.scenario)
    history = filter_history(body.messages)

    try:
        text = await services.chat_provider.generate(
            instruction,
            history,
            temperature=services.config.gemini.temperature,
        )
    except EmptyGenerationError as e:
        logger.warning("Empty generation for user %s: %s", user_id, e)
        return error_response(502, "No response generated", "The tutor did not produce a reply. Please retry.")
    except ProviderError as e:
        logger.error("Chat generation failed (%s) for user %s: %s", e.kind.value, user_id, e)
        return error_response(provider_status(e.kind), "Chat request failed", user_message(e.kind))

    count = services.tracker.record_daily_usage(user_id)
    logger.debug("User %s has used %d chat replies today", user_id, count)

    return {
        "text": text,
        "voice": get_voice_for_tutor(tutor_id),
        "character": {
            "name": tutor.label,
            "emoji": tutor.emoji,
            "mbti": tutor.mbti,
        },
    }
