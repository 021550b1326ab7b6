"""Realtime voice session token endpoint."""

import logging

from fastapi import APIRouter, Request

from speak_coach.api.routes.chat import provider_status
from speak_coach.api.schemas import RealtimeTokenRequest
from speak_coach.api.services import (
    authenticate,
    check_rate_limit,
    error_response,
    get_client_key,
    get_services,
)
from speak_coach.core.prompts import build_realtime_instruction
from speak_coach.core.tutors import (
    DEFAULT_LEVEL_ID,
    DEFAULT_TUTOR_ID,
    get_level,
    get_tutor,
    get_voice_for_tutor,
)
from speak_coach.errors import EmptyGenerationError, ProviderError
from speak_coach.sdk.providers import user_message

logger = logging.getLogger(__name__)

router = APIRouter()


async def _parse_body(request: Request) -> RealtimeTokenRequest:
    try:
        return RealtimeTokenRequest.model_validate(await request.json())
    except ValueError:
        return RealtimeTokenRequest()


@router.post("/api/realtime-token")
async def realtime_token(request: Request):
    """Issue a short-lived client secret for a browser voice session."""
    services = get_services(request)

    limited = check_rate_limit(services, "realtime", get_client_key(request.headers))
    if limited is not None:
        return limited

    await authenticate(request, services)

    if services.realtime is None:
        logger.error("Realtime token requested but no OpenAI API key is configured")
        return error_response(500, "AI service is not configured")

    body = await _parse_body(request)
    tutor_id = body.character or DEFAULT_TUTOR_ID
    tutor = get_tutor(tutor_id)
    level = get_level(body.level or DEFAULT_LEVEL_ID)

    try:
        value = await services.realtime.issue(
            get_voice_for_tutor(tutor_id),
            build_realtime_instruction(tutor, level),
        )
    except EmptyGenerationError as e:
        logger.warning("Realtime token missing from response: %s", e)
        return error_response(502, "Token issue failed", "No session token was returned.")
    except ProviderError as e:
        logger.error("Realtime token request failed (%s): %s", e.kind.value, e)
        return error_response(provider_status(e.kind), "Token issue failed", user_message(e.kind))

    return {"value": value}
