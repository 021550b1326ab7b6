"""Conversation history endpoints: save messages, list sessions, replay one."""

import logging

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool

from speak_coach.api.schemas import SaveMessageRequest
from speak_coach.api.services import authenticate, error_response, get_services, read_body
from speak_coach.storage.models import ConversationEvent

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/conversations/messages", status_code=201)
async def save_message(request: Request):
    """Append one message to the caller's conversation history."""
    services = get_services(request)
    user_id = await authenticate(request, services)

    try:
        body = await read_body(request, SaveMessageRequest)
    except ValueError as e:
        logger.warning("Invalid message body from user %s: %s", user_id, e)
        return error_response(400, "Invalid request", "session_id, role and content are required.")

    event = ConversationEvent(
        user_id=user_id,
        session_id=body.session_id,
        role=body.role,
        timestamp=services.now(),
        character_name=body.character_name,
        content=body.content,
    )
    try:
        await run_in_threadpool(services.events.append, event)
    except Exception:
        logger.exception("Failed to save message for user %s", user_id)
        return error_response(500, "Failed to save message", "Please try again later.")

    return {"success": True}


@router.get("/api/conversations/sessions")
async def list_sessions(request: Request):
    """The caller's past sessions, most recently started first."""
    services = get_services(request)
    user_id = await authenticate(request, services)

    try:
        sessions = await run_in_threadpool(services.events.fetch_sessions, user_id)
    except Exception:
        logger.exception("Failed to load sessions for user %s", user_id)
        return error_response(500, "Failed to load sessions", "Please try again later.")

    return {
        "success": True,
        "data": [
            {
                "session_id": s.session_id,
                "character_name": s.character_name,
                "started_at": s.started_at.isoformat(),
                "message_count": s.message_count,
            }
            for s in sessions
        ],
    }


@router.get("/api/conversations/sessions/{session_id}/messages")
async def session_messages(request: Request, session_id: str):
    services = get_services(request)
    user_id = await authenticate(request, services)

    try:
        messages = await run_in_threadpool(services.events.fetch_session_messages, user_id, session_id)
    except Exception:
        logger.exception("Failed to load session %s for user %s", session_id, user_id)
        return error_response(500, "Failed to load messages", "Please try again later.")

    return {"success": True, "data": messages}
