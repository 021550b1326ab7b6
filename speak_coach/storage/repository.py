"""
Repository pattern for data access.

Handles persistence of conversation records and saved sentences.
conversation_records is an append-only ledger: rows are inserted,
never updated or deleted. Saved sentences can be removed by their owner.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .db import DEFAULT_DB_PATH, get_connection
from .models import ConversationEvent, SavedSentence, SessionSummary, as_utc

logger = logging.getLogger(__name__)

_SELECT_COLUMNS = """
    SELECT user_id, session_id, role, created_at, character_name, content
    FROM conversation_records
"""

_INSERT_SQL = """
    INSERT INTO conversation_records
    (user_id, session_id, character_name, role, content, created_at)
    VALUES (?, ?, ?, ?, ?, ?)
"""


def _format_timestamp(timestamp: datetime) -> str:
    # Fixed-width UTC strings keep lexical and chronological order identical
    return as_utc(timestamp).isoformat(timespec="microseconds")


def _row_to_event(row) -> ConversationEvent:
    return ConversationEvent(
        user_id=row[0],
        session_id=row[1],
        role=row[2],
        timestamp=datetime.fromisoformat(row[3]),
        character_name=row[4],
        content=row[5] or "",
    )


def _event_params(event: ConversationEvent) -> tuple:
    return (
        event.user_id,
        event.session_id,
        event.character_name,
        event.role,
        event.content.strip(),
        _format_timestamp(event.timestamp),
    )


class ConversationRepository:
    """Repository for conversation records.

    Implements the ConversationStore interface consumed by the analytics
    and conversation history endpoints.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the repository with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path

    def append(self, event: ConversationEvent) -> bool:
        """Record one message; returns False when blank content was skipped."""
        return insert_conversation_event(event, self.db_path)

    def fetch_events(
        self,
        user_id: str,
        since: Optional[datetime] = None,
        newest_first: bool = False,
    ) -> List[ConversationEvent]:
        """Get a user's conversation events in time order.

        Args:
            user_id: Owner of the records
            since: Optional inclusive lower bound on the timestamp
            newest_first: Order descending instead of ascending

        Returns:
            List of conversation events
        """
        conn = get_connection(self.db_path)
        try:
            query = _SELECT_COLUMNS + " WHERE user_id = ?"
            params: list = [user_id]
            if since is not None:
                query += " AND created_at >= ?"
                params.append(_format_timestamp(since))
            direction = "DESC" if newest_first else "ASC"
            query += f" ORDER BY created_at {direction}, id {direction}"

            cursor = conn.execute(query, params)
            return [_row_to_event(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def fetch_sessions(self, user_id: str) -> List[SessionSummary]:
        """Get the user's past sessions, most recently started first."""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                """
                SELECT session_id, character_name, created_at
                FROM conversation_records
                WHERE user_id = ?
                ORDER BY created_at ASC, id ASC
                """,
                (user_id,),
            )
            by_session: Dict[str, dict] = {}
            for session_id, character_name, created_at in cursor.fetchall():
                entry = by_session.setdefault(session_id, {
                    "character_name": character_name,
                    "started_at": datetime.fromisoformat(created_at),
                    "message_count": 0,
                })
                entry["message_count"] += 1
        finally:
            conn.close()

        sessions = [
            SessionSummary(session_id=sid, **entry)
            for sid, entry in by_session.items()
        ]
        return sorted(sessions, key=lambda s: s.started_at, reverse=True)

    def fetch_session_messages(self, user_id: str, session_id: str) -> List[Dict[str, str]]:
        """Get one session's messages in chronological order as {role, text}."""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                """
                SELECT role, content FROM conversation_records
                WHERE user_id = ? AND session_id = ?
                ORDER BY created_at ASC, id ASC
                """,
                (user_id, session_id),
            )
            return [{"role": role, "text": content} for role, content in cursor.fetchall()]
        finally:
            conn.close()


class SavedSentenceRepository:
    """Repository for the sentences users save from their conversations."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    def save(
        self,
        user_id: str,
        content: str,
        character_name: str,
        character_voice_id: Optional[str] = None,
        session_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> SavedSentence:
        """Store a sentence for the user.

        Args:
            user_id: Owner of the sentence
            content: Sentence text, stored trimmed
            character_name: Tutor who said it
            character_voice_id: Optional tutor voice for playback
            session_id: Optional session the sentence came from
            created_at: Save time, defaults to now

        Returns:
            The stored sentence with its id

        Raises:
            ValueError: If content or character name is blank
        """
        content = content.strip()
        if not content:
            raise ValueError("content must not be blank")
        if not character_name:
            raise ValueError("character_name is required")
        created_at = as_utc(created_at or datetime.now(timezone.utc))

        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                """
                INSERT INTO saved_sentences
                (user_id, content, character_name, character_voice_id, session_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    content,
                    character_name,
                    character_voice_id or None,
                    session_id or None,
                    _format_timestamp(created_at),
                ),
            )
            conn.commit()
            sentence_id = cursor.lastrowid
        finally:
            conn.close()

        return SavedSentence(
            id=sentence_id,
            user_id=user_id,
            content=content,
            character_name=character_name,
            created_at=created_at,
            character_voice_id=character_voice_id or None,
            session_id=session_id or None,
        )

    def fetch(self, user_id: str) -> List[SavedSentence]:
        """Get the user's saved sentences, newest first."""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                """
                SELECT id, user_id, content, character_name, created_at,
                       character_voice_id, session_id
                FROM saved_sentences
                WHERE user_id = ?
                ORDER BY created_at DESC, id DESC
                """,
                (user_id,),
            )
            return [
                SavedSentence(
                    id=row[0],
                    user_id=row[1],
                    content=row[2],
                    character_name=row[3],
                    created_at=datetime.fromisoformat(row[4]),
                    character_voice_id=row[5],
                    session_id=row[6],
                )
                for row in cursor.fetchall()
            ]
        finally:
            conn.close()

    def delete(self, user_id: str, sentence_id: int) -> bool:
        """Delete one of the user's sentences; False if they have no such sentence."""
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "DELETE FROM saved_sentences WHERE id = ? AND user_id = ?",
                (sentence_id, user_id),
            )
            conn.commit()
            return cursor.rowcount > 0
        finally:
            conn.close()


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the conversation_records and saved_sentences tables if missing.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS conversation_records (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                session_id TEXT NOT NULL,
                character_name TEXT,
                role TEXT NOT NULL CHECK (role IN ('user', 'assistant')),
                content TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_conversation_records_user_time
            ON conversation_records (user_id, created_at)
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS saved_sentences (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                content TEXT NOT NULL,
                character_name TEXT NOT NULL,
                character_voice_id TEXT,
                session_id TEXT,
                created_at TEXT NOT NULL
            )
        """)
        conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_saved_sentences_user_time
            ON saved_sentences (user_id, created_at)
        """)
        conn.commit()
    finally:
        conn.close()


def insert_conversation_event(event: ConversationEvent, db_path: str = DEFAULT_DB_PATH) -> bool:
    """Append a single conversation event.

    Events with blank content are skipped.

    Args:
        event: The event to record
        db_path: Path to SQLite database file
    """
    if not event.content.strip():
        logger.warning("Skipping empty message for session %s", event.session_id)
        return False

    conn = get_connection(db_path)
    try:
        conn.execute(_INSERT_SQL, _event_params(event))
        conn.commit()
    finally:
        conn.close()
    return True


def insert_conversation_events(events: List[ConversationEvent], db_path: str = DEFAULT_DB_PATH) -> None:
    """Append multiple conversation events in one transaction.

    Args:
        events: Events to record
        db_path: Path to SQLite database file
    """
    rows = [_event_params(e) for e in events if e.content.strip()]
    if not rows:
        return

    conn = get_connection(db_path)
    try:
        conn.execute("BEGIN TRANSACTION")
        conn.executemany(_INSERT_SQL, rows)
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
