"""
Tests for the HTTP API using FastAPI's TestClient.

Identity, chat provider, realtime issuer and event source are fakes
wired through the Services container.
"""
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from speak_coach.api.app import create_app
from speak_coach.api.services import Services, get_client_key
from speak_coach.config.loader import AppConfig, DailyQuotaConfig, RateLimitConfig
from speak_coach.core.quota import Limit, QuotaTracker
from speak_coach.errors import AuthenticationError, EmptyGenerationError, ProviderError, ProviderErrorKind
from speak_coach.sdk.providers import user_message
from speak_coach.storage.models import ConversationEvent
from speak_coach.storage.repository import (
    ConversationRepository,
    SavedSentenceRepository,
    initialize_schema,
)

NOW = datetime(2024, 1, 20, 12, 0, tzinfo=timezone.utc)
AUTH = {"Authorization": "Bearer good-token"}


class FakeIdentity:
    async def resolve(self, token):
        if token != "good-token":
            raise AuthenticationError("Invalid or expired token")
        return "user-1"


class FakeChatProvider:
    def __init__(self, reply="Nice to meet you!", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate(self, system_instruction, history, temperature=0.8):
        self.calls.append((system_instruction, list(history), temperature))
        if self.error is not None:
            raise self.error
        return self.reply


class FakeRealtime:
    def __init__(self, value="ek_test", error=None):
        self.value = value
        self.error = error
        self.calls = []

    async def issue(self, voice, instructions):
        self.calls.append((voice, instructions))
        if self.error is not None:
            raise self.error
        return self.value


class FakeEvents:
    def __init__(self, events=None, error=None):
        self.events = events or []
        self.error = error

    def fetch_events(self, user_id, since=None, newest_first=False):
        if self.error is not None:
            raise self.error
        return [e for e in self.events if e.user_id == user_id]

    def append(self, event):
        if self.error is not None:
            raise self.error
        self.events.append(event)
        return True

    def fetch_sessions(self, user_id):
        if self.error is not None:
            raise self.error
        return []

    def fetch_session_messages(self, user_id, session_id):
        if self.error is not None:
            raise self.error
        return []


def make_client(
    max_requests=3,
    daily_limit=2,
    identity="default",
    chat_provider="default",
    realtime="default",
    events=None,
    sentences=None,
):
    config = AppConfig(
        rate_limit=RateLimitConfig(window_ms=Limit(60000), max_requests=Limit(max_requests)),
        daily_quota=DailyQuotaConfig(limit=Limit(daily_limit)),
    )
    clock = NOW.timestamp
    services = Services(
        config=config,
        tracker=QuotaTracker(clock=clock),
        events=events or FakeEvents(),
        identity=FakeIdentity() if identity == "default" else identity,
        chat_provider=FakeChatProvider() if chat_provider == "default" else chat_provider,
        realtime=FakeRealtime() if realtime == "default" else realtime,
        sentences=sentences,
        clock=clock,
    )
    return TestClient(create_app(services=services)), services


CHAT_BODY = {
    "character": "luna",
    "level": "beginner",
    "messages": [
        {"role": "user", "text": "Hi, I am Sam."},
        {"role": "assistant", "text": "Hello Sam!"},
        {"role": "user", "text": "I like play tennis."},
    ],
}


class TestHealth:
    def test_health_ok(self):
        client, _ = make_client()
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "ok"


class TestChatEndpoint:
    """Test POST /api/chat."""

    def test_chat_reply(self):
        client, services = make_client()

        r = client.post("/api/chat", json=CHAT_BODY, headers=AUTH)

        assert r.status_code == 200
        assert r.json() == {
            "text": "Nice to meet you!",
            "voice": "alloy",
            "character": {"name": "Luna", "emoji": "🌙", "mbti": "ENTP"},
        }
        instruction, history, _ = services.chat_provider.calls[0]
        assert "You are Luna" in instruction
        assert "Beginner" in instruction
        assert [t.role for t in history] == ["user", "assistant", "user"]
        assert services.tracker.daily_usage("user-1") == 1

    def test_unknown_character_uses_default(self):
        client, _ = make_client()
        r = client.post("/api/chat", json={"character": "nobody", "messages": []}, headers=AUTH)
        assert r.status_code == 200
        assert r.json()["character"]["name"] == "Alloy"

    def test_voice_field_selects_tutor(self):
        client, _ = make_client()
        r = client.post("/api/chat", json={"voice": "ruby"}, headers=AUTH)
        assert r.json()["character"]["name"] == "Ruby"

    def test_invalid_body_uses_defaults(self):
        client, services = make_client()
        r = client.post(
            "/api/chat",
            content=b"not json",
            headers={**AUTH, "Content-Type": "application/json"},
        )
        assert r.status_code == 200
        assert r.json()["character"]["name"] == "Alloy"
        assert services.chat_provider.calls[0][1] == []

    def test_scenario_reaches_instruction(self):
        client, services = make_client()
        client.post("/api/chat", json={"scenario": "Ordering coffee"}, headers=AUTH)
        assert "Scenario focus: Ordering coffee" in services.chat_provider.calls[0][0]

    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer wrong"}, {"Authorization": "Token x"}])
    def test_requires_authentication(self, headers):
        client, services = make_client()
        r = client.post("/api/chat", json=CHAT_BODY, headers=headers)
        assert r.status_code == 401
        assert r.json() == {"error": "Authentication required", "message": "Please sign in again."}
        assert services.chat_provider.calls == []

    def test_identity_not_configured(self):
        client, _ = make_client(identity=None)
        r = client.post("/api/chat", json=CHAT_BODY, headers=AUTH)
        assert r.status_code == 500
        assert r.json()["error"] == "Authentication service unavailable"

    def test_rate_limit(self):
        client, _ = make_client(max_requests=2, daily_limit=100)
        statuses = [client.post("/api/chat", json=CHAT_BODY, headers=AUTH).status_code for _ in range(2)]
        assert statuses == [200, 200]

        r = client.post("/api/chat", json=CHAT_BODY, headers=AUTH)
        assert r.status_code == 429
        assert r.json()["error"] == "Rate limit exceeded"
        assert r.headers["Retry-After"] == "60"

    def test_rate_limit_is_per_client(self):
        client, _ = make_client(max_requests=1, daily_limit=100)
        first = {**AUTH, "X-Forwarded-For": "10.0.0.1, 192.168.0.1"}
        second = {**AUTH, "X-Forwarded-For": "10.0.0.2"}

        assert client.post("/api/chat", json=CHAT_BODY, headers=first).status_code == 200
        assert client.post("/api/chat", json=CHAT_BODY, headers=first).status_code == 429
        assert client.post("/api/chat", json=CHAT_BODY, headers=second).status_code == 200

    def test_rate_limit_applies_before_authentication(self):
        client, _ = make_client(max_requests=1)
        assert client.post("/api/chat", json=CHAT_BODY).status_code == 401
        assert client.post("/api/chat", json=CHAT_BODY).status_code == 429

    def test_daily_quota(self):
        client, services = make_client(max_requests=10, daily_limit=2)
        for _ in range(2):
            assert client.post("/api/chat", json=CHAT_BODY, headers=AUTH).status_code == 200

        r = client.post("/api/chat", json=CHAT_BODY, headers=AUTH)

        assert r.status_code == 429
        assert r.json()["error"] == "Daily limit reached"
        assert r.headers["Retry-After"] == str(12 * 3600)
        assert len(services.chat_provider.calls) == 2

    def test_failed_generation_does_not_count(self):
        provider = FakeChatProvider(error=ProviderError("quota exceeded", ProviderErrorKind.QUOTA))
        client, services = make_client(chat_provider=provider)

        r = client.post("/api/chat", json=CHAT_BODY, headers=AUTH)

        assert r.status_code == 502
        assert r.json() == {
            "error": "Chat request failed",
            "message": user_message(ProviderErrorKind.QUOTA),
        }
        assert services.tracker.daily_usage("user-1") == 0

    @pytest.mark.parametrize("kind, status", [
        (ProviderErrorKind.API_KEY, 500),
        (ProviderErrorKind.PERMISSION, 500),
        (ProviderErrorKind.UNKNOWN, 500),
        (ProviderErrorKind.MODEL_NOT_FOUND, 502),
        (ProviderErrorKind.NETWORK, 502),
        (ProviderErrorKind.TIMEOUT, 502),
    ])
    def test_provider_error_status(self, kind, status):
        provider = FakeChatProvider(error=ProviderError("upstream detail", kind))
        client, _ = make_client(chat_provider=provider)
        r = client.post("/api/chat", json=CHAT_BODY, headers=AUTH)
        assert r.status_code == status
        assert "upstream detail" not in r.text

    def test_empty_generation(self):
        client, _ = make_client(chat_provider=FakeChatProvider(error=EmptyGenerationError("nothing")))
        r = client.post("/api/chat", json=CHAT_BODY, headers=AUTH)
        assert r.status_code == 502
        assert r.json()["error"] == "No response generated"

    def test_provider_not_configured(self):
        client, _ = make_client(chat_provider=None)
        r = client.post("/api/chat", json=CHAT_BODY, headers=AUTH)
        assert r.status_code == 500
        assert r.json()["error"] == "AI service is not configured"


class TestAnalyticsEndpoint:
    """Test GET /api/analytics/stats."""

    def events(self):
        start = NOW - timedelta(minutes=10)
        return [
            ConversationEvent("user-1", "s1", "user", start, "luna", "Hi"),
            ConversationEvent("user-1", "s1", "assistant", start + timedelta(seconds=20), "luna", "Hello"),
            ConversationEvent("user-1", "s1", "user", start + timedelta(seconds=140), "luna", "Thanks"),
            ConversationEvent("user-2", "s9", "user", start, "ruby", "Other user"),
        ]

    def test_stats(self):
        client, _ = make_client(events=FakeEvents(self.events()))

        r = client.get("/api/analytics/stats", params={"period": "weekly"}, headers=AUTH)

        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        data = body["data"]
        assert data["speakingTime"]["totalMinutes"] == 2
        assert data["streaks"] == {"currentStreak": 1, "longestStreak": 1, "practiceDates": ["2024-01-20"]}
        assert data["sessions"]["totalSessions"] == 1
        assert data["sessions"]["favoriteCharacter"] == {"name": "luna", "count": 3}

    def test_default_period_is_all(self):
        client, _ = make_client(events=FakeEvents(self.events()))
        r = client.get("/api/analytics/stats", headers=AUTH)
        assert r.status_code == 200

    def test_empty_history(self):
        client, _ = make_client()
        data = client.get("/api/analytics/stats", headers=AUTH).json()["data"]
        assert data["speakingTime"]["totalMinutes"] == 0
        assert data["streaks"]["currentStreak"] == 0
        assert data["sessions"]["favoriteCharacter"] is None

    def test_invalid_period(self):
        client, _ = make_client()
        r = client.get("/api/analytics/stats", params={"period": "hourly"}, headers=AUTH)
        assert r.status_code == 400
        assert r.json()["error"] == "Invalid period"

    def test_requires_authentication(self):
        client, _ = make_client()
        assert client.get("/api/analytics/stats").status_code == 401

    def test_storage_failure(self):
        client, _ = make_client(events=FakeEvents(error=RuntimeError("database is locked")))
        r = client.get("/api/analytics/stats", headers=AUTH)
        assert r.status_code == 500
        assert r.json()["error"] == "Failed to load analytics"
        assert "locked" not in r.text


class TestRealtimeTokenEndpoint:
    """Test POST /api/realtime-token."""

    def test_issue_token(self):
        client, services = make_client()

        r = client.post("/api/realtime-token", json={"character": "jane", "level": "advanced"}, headers=AUTH)

        assert r.status_code == 200
        assert r.json() == {"value": "ek_test"}
        voice, instructions = services.realtime.calls[0]
        assert voice == "ballad"
        assert "You are Jane." in instructions
        assert "Advanced" in instructions

    def test_unknown_character_uses_default_voice(self):
        client, services = make_client()
        client.post("/api/realtime-token", json={"character": "nobody"}, headers=AUTH)

        voice, instructions = services.realtime.calls[0]
        assert voice == "shimmer"
        assert "You are Alloy." in instructions

    def test_does_not_use_daily_quota(self):
        client, services = make_client(max_requests=10, daily_limit=1)
        for _ in range(3):
            assert client.post("/api/realtime-token", json={}, headers=AUTH).status_code == 200
        assert services.tracker.daily_usage("user-1") == 0

    def test_rate_limit_scope_is_separate_from_chat(self):
        client, _ = make_client(max_requests=1, daily_limit=100)
        assert client.post("/api/chat", json=CHAT_BODY, headers=AUTH).status_code == 200
        assert client.post("/api/realtime-token", json={}, headers=AUTH).status_code == 200
        assert client.post("/api/realtime-token", json={}, headers=AUTH).status_code == 429

    def test_requires_authentication(self):
        client, _ = make_client()
        assert client.post("/api/realtime-token", json={}).status_code == 401

    def test_not_configured(self):
        client, _ = make_client(realtime=None)
        r = client.post("/api/realtime-token", json={}, headers=AUTH)
        assert r.status_code == 500

    def test_upstream_failure(self):
        realtime = FakeRealtime(error=ProviderError("connection reset", ProviderErrorKind.NETWORK))
        client, _ = make_client(realtime=realtime)
        r = client.post("/api/realtime-token", json={}, headers=AUTH)
        assert r.status_code == 502
        assert r.json()["error"] == "Token issue failed"

    def test_missing_secret(self):
        client, _ = make_client(realtime=FakeRealtime(error=EmptyGenerationError("no secret")))
        r = client.post("/api/realtime-token", json={}, headers=AUTH)
        assert r.status_code == 502


class TestClientKey:
    @pytest.mark.parametrize("headers, key", [
        ({"x-forwarded-for": "1.1.1.1, 2.2.2.2"}, "1.1.1.1"),
        ({"cf-connecting-ip": "3.3.3.3", "x-real-ip": "4.4.4.4"}, "3.3.3.3"),
        ({"x-real-ip": "4.4.4.4"}, "4.4.4.4"),
        ({}, "anonymous"),
    ])
    def test_client_key(self, headers, key):
        assert get_client_key(headers) == key


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "api.db")
    initialize_schema(path)
    return path


class TestScenariosEndpoint:
    """Test GET /api/scenarios."""

    def test_catalog_is_public(self):
        client, _ = make_client(identity=None)
        r = client.get("/api/scenarios")

        assert r.status_code == 200
        categories = r.json()["data"]
        assert [c["id"] for c in categories] == ["travel", "business", "daily", "social"]
        airport = categories[0]["scenarios"][0]
        assert airport["id"] == "airport"
        assert "instructions" not in airport

    def test_scenario_id_expands_in_chat(self):
        client, services = make_client()
        client.post("/api/chat", json={"scenario": "interview"}, headers=AUTH)
        assert "career goals" in services.chat_provider.calls[0][0]


class TestConversationEndpoints:
    """Test saving and reading conversation history."""

    def test_save_then_list_sessions(self, db_path):
        client, _ = make_client(events=ConversationRepository(db_path))

        r = client.post("/api/conversations/messages", json={
            "session_id": "s1", "role": "user", "content": "  Hi Luna  ", "character_name": "Luna",
        }, headers=AUTH)
        client.post("/api/conversations/messages", json={
            "session_id": "s1", "role": "tutor", "content": "Hello!", "character_name": "Luna",
        }, headers=AUTH)

        assert r.status_code == 201
        assert r.json() == {"success": True}
        sessions = client.get("/api/conversations/sessions", headers=AUTH).json()["data"]
        assert sessions == [{
            "session_id": "s1",
            "character_name": "Luna",
            "started_at": NOW.isoformat(),
            "message_count": 2,
        }]

    def test_session_messages(self, db_path):
        client, _ = make_client(events=ConversationRepository(db_path))
        for role, content in [("user", "Hi"), ("assistant", "Hello there!")]:
            client.post("/api/conversations/messages", json={
                "session_id": "s1", "role": role, "content": content,
            }, headers=AUTH)

        r = client.get("/api/conversations/sessions/s1/messages", headers=AUTH)

        assert r.status_code == 200
        assert r.json()["data"] == [
            {"role": "user", "text": "Hi"},
            {"role": "assistant", "text": "Hello there!"},
        ]
        other = client.get("/api/conversations/sessions/s2/messages", headers=AUTH)
        assert other.json()["data"] == []

    @pytest.mark.parametrize("body", [
        {"role": "user", "content": "Hi"},
        {"session_id": "s1", "role": "user", "content": "   "},
        {"session_id": "", "role": "user", "content": "Hi"},
    ])
    def test_invalid_message_rejected(self, db_path, body):
        client, _ = make_client(events=ConversationRepository(db_path))
        r = client.post("/api/conversations/messages", json=body, headers=AUTH)

        assert r.status_code == 400
        assert r.json()["error"] == "Invalid request"

    def test_non_json_body_rejected(self, db_path):
        client, _ = make_client(events=ConversationRepository(db_path))
        r = client.post("/api/conversations/messages", content="not json", headers=AUTH)
        assert r.status_code == 400

    @pytest.mark.parametrize("method, path", [
        ("post", "/api/conversations/messages"),
        ("get", "/api/conversations/sessions"),
        ("get", "/api/conversations/sessions/s1/messages"),
    ])
    def test_requires_authentication(self, db_path, method, path):
        client, _ = make_client(events=ConversationRepository(db_path))
        r = getattr(client, method)(path)
        assert r.status_code == 401

    def test_storage_failure(self):
        client, _ = make_client(events=FakeEvents(error=RuntimeError("db locked")))
        r = client.get("/api/conversations/sessions", headers=AUTH)
        assert r.status_code == 500
        assert r.json()["error"] == "Failed to load sessions"

    def test_save_failure(self):
        client, _ = make_client(events=FakeEvents(error=RuntimeError("disk full")))
        r = client.post("/api/conversations/messages", json={
            "session_id": "s1", "role": "user", "content": "Hi",
        }, headers=AUTH)
        assert r.status_code == 500
        assert r.json()["error"] == "Failed to save message"


class TestSavedSentenceEndpoints:
    """Test the /api/saved-sentences endpoints."""

    def client(self, db_path):
        client, _ = make_client(sentences=SavedSentenceRepository(db_path))
        return client

    def test_save_list_delete(self, db_path):
        client = self.client(db_path)

        r = client.post("/api/saved-sentences", json={
            "content": " What did you do last weekend? ",
            "character_name": "Luna",
            "character_voice_id": "shimmer",
            "session_id": "s1",
        }, headers=AUTH)

        assert r.status_code == 201
        saved = r.json()["data"]
        assert saved["content"] == "What did you do last weekend?"
        listed = client.get("/api/saved-sentences", headers=AUTH).json()["data"]
        assert listed == [saved]

        deleted = client.delete(f"/api/saved-sentences/{saved['id']}", headers=AUTH)
        assert deleted.status_code == 200
        assert client.get("/api/saved-sentences", headers=AUTH).json()["data"] == []

    def test_delete_missing_sentence(self, db_path):
        r = self.client(db_path).delete("/api/saved-sentences/999", headers=AUTH)
        assert r.status_code == 404
        assert r.json()["error"] == "Sentence not found"

    def test_cannot_delete_other_users_sentence(self, db_path):
        sentence = SavedSentenceRepository(db_path).save("user-2", "Mine", "Ruby")
        r = self.client(db_path).delete(f"/api/saved-sentences/{sentence.id}", headers=AUTH)

        assert r.status_code == 404
        assert len(SavedSentenceRepository(db_path).fetch("user-2")) == 1

    @pytest.mark.parametrize("body", [
        {"content": "Hello"},
        {"content": "  ", "character_name": "Luna"},
        {"content": "Hello", "character_name": "x" * 51},
    ])
    def test_invalid_body_rejected(self, db_path, body):
        r = self.client(db_path).post("/api/saved-sentences", json=body, headers=AUTH)
        assert r.status_code == 400
        assert r.json()["error"] == "Invalid request"

    def test_requires_authentication(self, db_path):
        assert self.client(db_path).get("/api/saved-sentences").status_code == 401

    def test_store_not_configured(self):
        client, _ = make_client()
        r = client.get("/api/saved-sentences", headers=AUTH)
        assert r.status_code == 500
        assert r.json()["error"] == "Saved sentences are not available"
