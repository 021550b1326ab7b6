"""FastAPI application factory for the Speak Coach API."""

import logging
import time
from typing import Callable, Optional

from fastapi import FastAPI, Request

from speak_coach.api.routes.analytics import router as analytics_router
from speak_coach.api.routes.chat import router as chat_router
from speak_coach.api.routes.conversations import router as conversations_router
from speak_coach.api.routes.realtime import router as realtime_router
from speak_coach.api.routes.saved_sentences import router as saved_sentences_router
from speak_coach.api.routes.scenarios import router as scenarios_router
from speak_coach.api.services import Services, error_response
from speak_coach.config.loader import AppConfig, load_config
from speak_coach.core.quota import QuotaTracker
from speak_coach.errors import AuthenticationError, IdentityServiceError
from speak_coach.sdk.gemini_client import GeminiChatProvider
from speak_coach.sdk.identity import IdentityResolver, SupabaseIdentityResolver
from speak_coach.sdk.openai_client import RealtimeTokenIssuer
from speak_coach.sdk.providers import ChatProvider
from speak_coach.storage.models import ConversationStore, SentenceStore
from speak_coach.storage.repository import (
    ConversationRepository,
    SavedSentenceRepository,
    initialize_schema,
)

logger = logging.getLogger(__name__)


def build_services(
    config: AppConfig,
    tracker: Optional[QuotaTracker] = None,
    events: Optional[ConversationStore] = None,
    identity: Optional[IdentityResolver] = None,
    chat_provider: Optional[ChatProvider] = None,
    realtime: Optional[RealtimeTokenIssuer] = None,
    sentences: Optional[SentenceStore] = None,
    clock: Callable[[], float] = time.time,
) -> Services:
    """Wire collaborators from config, keeping any that were passed in.

    Providers whose API keys are missing are left unset; their endpoints
    answer 500 instead of failing at startup.
    """
    if events is None or sentences is None:
        initialize_schema(config.db_path)
    if events is None:
        events = ConversationRepository(config.db_path)
    if sentences is None:
        sentences = SavedSentenceRepository(config.db_path)
    if identity is None and config.supabase.is_configured:
        identity = SupabaseIdentityResolver(config.supabase.url, config.supabase.anon_key)
    if chat_provider is None and config.gemini.api_key:
        chat_provider = GeminiChatProvider(
            config.gemini.api_key,
            models=config.gemini.models,
            timeout_s=config.gemini.timeout_s,
        )
    if realtime is None and config.realtime.api_key:
        realtime = RealtimeTokenIssuer(
            config.realtime.api_key,
            model=config.realtime.model,
            timeout_s=config.realtime.timeout_s,
        )

    for name, service in (("identity", identity), ("chat", chat_provider), ("realtime", realtime)):
        if service is None:
            logger.warning("%s service is not configured", name)

    return Services(
        config=config,
        tracker=tracker if tracker is not None else QuotaTracker(clock=clock),
        events=events,
        identity=identity,
        chat_provider=chat_provider,
        realtime=realtime,
        sentences=sentences,
        clock=clock,
    )


def create_app(config: Optional[AppConfig] = None, services: Optional[Services] = None) -> FastAPI:
    app = FastAPI(
        title="Speak Coach API",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
    )
    app.state.services = services or build_services(config or load_config())

    @app.exception_handler(AuthenticationError)
    async def _authentication_failed(request: Request, exc: AuthenticationError):
        return error_response(401, "Authentication required", "Please sign in again.")

    @app.exception_handler(IdentityServiceError)
    async def _identity_unavailable(request: Request, exc: IdentityServiceError):
        logger.error("Identity service error: %s", exc)
        return error_response(500, "Authentication service unavailable")

    @app.get("/health")
    def health():  # noqa: D401
        return {"status": "ok"}

    app.include_router(chat_router)
    app.include_router(analytics_router)
    app.include_router(realtime_router)
    app.include_router(conversations_router)
    app.include_router(saved_sentences_router)
    app.include_router(scenarios_router)
    return app
