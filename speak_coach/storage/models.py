"""
Data models for storage layer.

Defines conversation records, saved sentences and the interfaces the
API reads and writes them through.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
VALID_ROLES = (USER_ROLE, ASSISTANT_ROLE)


@dataclass(frozen=True)
class ConversationEvent:
    """Immutable record of one conversation message.

    Append-only rows; analytics only ever reads ordered snapshots.
    """
    user_id: str
    session_id: str
    role: str
    timestamp: datetime
    character_name: Optional[str] = None
    content: str = ""

    def __post_init__(self):
        """Validate role and identifiers."""
        if self.role not in VALID_ROLES:
            raise ValueError(f"role must be one of {VALID_ROLES}, got {self.role!r}")
        if not self.user_id:
            raise ValueError("user_id is required")
        if not self.session_id:
            raise ValueError("session_id is required")


@dataclass(frozen=True)
class SessionSummary:
    """One conversation session as listed in a user's history."""
    session_id: str
    character_name: Optional[str]
    started_at: datetime
    message_count: int


@dataclass(frozen=True)
class SavedSentence:
    """A tutor sentence the user bookmarked for review."""
    id: int
    user_id: str
    content: str
    character_name: str
    created_at: datetime
    character_voice_id: Optional[str] = None
    session_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "character_name": self.character_name,
            "character_voice_id": self.character_voice_id,
            "session_id": self.session_id,
            "created_at": self.created_at.isoformat(),
        }


class EventSource(Protocol):
    """Query capability over stored conversation events."""

    def fetch_events(
        self,
        user_id: str,
        since: Optional[datetime] = None,
        newest_first: bool = False,
    ) -> List[ConversationEvent]: ...


class ConversationStore(EventSource, Protocol):
    """Conversation history a signed-in user reads and appends to."""

    def append(self, event: ConversationEvent) -> bool: ...

    def fetch_sessions(self, user_id: str) -> List[SessionSummary]: ...

    def fetch_session_messages(self, user_id: str, session_id: str) -> List[Dict[str, str]]: ...


class SentenceStore(Protocol):
    """Per-user saved sentences."""

    def save(
        self,
        user_id: str,
        content: str,
        character_name: str,
        character_voice_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> SavedSentence: ...

    def fetch(self, user_id: str) -> List[SavedSentence]: ...

    def delete(self, user_id: str, sentence_id: int) -> bool: ...


def as_utc(timestamp: datetime) -> datetime:
    """Return the timestamp in UTC, treating naive values as UTC."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)
