"""Practice analytics endpoint."""

import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool

from speak_coach.api.services import authenticate, error_response, get_services
from speak_coach.core.analytics import build_analytics, parse_period

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/analytics/stats")
async def analytics_stats(request: Request, period: Optional[str] = None):
    """Speaking time, streaks and session statistics for the caller."""
    services = get_services(request)
    user_id = await authenticate(request, services)

    try:
        analytics_period = parse_period(period)
    except ValueError as e:
        return error_response(400, "Invalid period", str(e))

    try:
        events = await run_in_threadpool(services.events.fetch_events, user_id)
        data = build_analytics(events, analytics_period, now=services.now())
    except Exception:
        logger.exception("Failed to build analytics for user %s", user_id)
        return error_response(500, "Failed to load analytics", "Please try again later.")

    return {"success": True, "data": data}
