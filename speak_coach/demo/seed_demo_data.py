"""Demo conversation history for local exploration of the analytics."""

from datetime import datetime, time, timedelta, timezone
from typing import List, Optional

from speak_coach.storage.models import ASSISTANT_ROLE, USER_ROLE, ConversationEvent, as_utc
from speak_coach.storage.repository import initialize_schema, insert_conversation_events

_DEMO_LINES = [
    (USER_ROLE, "Hi! I want to practice ordering food."),
    (ASSISTANT_ROLE, "Perfect grammar! What would you like to order today?"),
    (USER_ROLE, "I would like a coffee with no sugar."),
    (ASSISTANT_ROLE, "You could also say: I'll have a black coffee, please."),
]


def build_demo_events(user_id: str, now: Optional[datetime] = None, days: int = 3) -> List[ConversationEvent]:
    """One short session per day for the last `days` days, ending today."""
    now = as_utc(now or datetime.now(timezone.utc))
    events = []
    for day in range(days - 1, -1, -1):
        practice_day = now - timedelta(days=day)
        midnight = datetime.combine(practice_day.date(), time.min, tzinfo=timezone.utc)
        # Keep every message on its session's calendar day
        start = max(practice_day - timedelta(minutes=30), midnight)
        session_id = f"demo-{practice_day.date().isoformat()}"
        character = "luna" if day % 2 else "alloy"
        for i, (role, text) in enumerate(_DEMO_LINES):
            events.append(ConversationEvent(
                user_id=user_id,
                session_id=session_id,
                role=role,
                timestamp=start + timedelta(seconds=45 * i),
                character_name=character,
                content=text,
            ))
    return events


def seed_demo_data(user_id: str, db_path: str, days: int = 3) -> int:
    """Insert demo events and return how many were written."""
    initialize_schema(db_path)
    events = build_demo_events(user_id, days=days)
    insert_conversation_events(events, db_path)
    return len(events)
