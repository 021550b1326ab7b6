"""Saved sentence endpoints: bookmark tutor sentences for later review."""

import logging

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool

from speak_coach.api.schemas import SaveSentenceRequest
from speak_coach.api.services import authenticate, error_response, get_services, read_body

logger = logging.getLogger(__name__)

router = APIRouter()


def _store_missing():
    logger.error("Saved sentences requested but no sentence store is configured")
    return error_response(500, "Saved sentences are not available")


@router.post("/api/saved-sentences", status_code=201)
async def save_sentence(request: Request):
    """Save a tutor sentence for the caller."""
    services = get_services(request)
    user_id = await authenticate(request, services)
    if services.sentences is None:
        return _store_missing()

    try:
        body = await read_body(request, SaveSentenceRequest)
    except ValueError as e:
        logger.warning("Invalid saved sentence body from user %s: %s", user_id, e)
        return error_response(400, "Invalid request", "content and character_name are required.")

    try:
        sentence = await run_in_threadpool(
            services.sentences.save,
            user_id,
            body.content,
            body.character_name,
            body.character_voice_id,
            body.session_id,
        )
    except Exception:
        logger.exception("Failed to save sentence for user %s", user_id)
        return error_response(500, "Failed to save sentence", "Please try again later.")

    return {"success": True, "data": sentence.to_dict()}


@router.get("/api/saved-sentences")
async def list_saved_sentences(request: Request):
    """The caller's saved sentences, newest first."""
    services = get_services(request)
    user_id = await authenticate(request, services)
    if services.sentences is None:
        return _store_missing()

    try:
        sentences = await run_in_threadpool(services.sentences.fetch, user_id)
    except Exception:
        logger.exception("Failed to load saved sentences for user %s", user_id)
        return error_response(500, "Failed to load saved sentences", "Please try again later.")

    return {"success": True, "data": [s.to_dict() for s in sentences]}


@router.delete("/api/saved-sentences/{sentence_id}")
async def delete_saved_sentence(request: Request, sentence_id: int):
    services = get_services(request)
    user_id = await authenticate(request, services)
    if services.sentences is None:
        return _store_missing()

    try:
        deleted = await run_in_threadpool(services.sentences.delete, user_id, sentence_id)
    except Exception:
        logger.exception("Failed to delete sentence %s for user %s", sentence_id, user_id)
        return error_response(500, "Failed to delete sentence", "Please try again later.")

    if not deleted:
        return error_response(404, "Sentence not found")
    return {"success": True}
