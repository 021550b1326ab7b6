"""
Practice analytics computed from conversation events.

Three reductions over a user's conversation history:

1. Speaking time - estimated from gaps before each user message
2. Streaks - consecutive calendar days with any practice
3. Session statistics - per-session counts and favorite tutor

Every function is a pure reduction of its input plus, where needed, the
current time. Calendar days are UTC dates (YYYY-MM-DD).
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from speak_coach.storage.models import USER_ROLE, ConversationEvent, as_utc

MIN_GAP_SECONDS = 10
MAX_GAP_SECONDS = 300
RECENT_SESSION_LIMIT = 10


class AnalyticsPeriod(Enum):
    """Look-back windows for speaking-time statistics."""
    DAILY = "daily"      # last 30 days
    WEEKLY = "weekly"    # last 90 days
    MONTHLY = "monthly"  # last 12 months
    ALL = "all"


def parse_period(value: Optional[str]) -> AnalyticsPeriod:
    """Parse a period name; missing or blank means ALL.

    Raises:
        ValueError: If the name is not a known period
    """
    if value is None or not value.strip():
        return AnalyticsPeriod.ALL
    try:
        return AnalyticsPeriod(value.strip().lower())
    except ValueError:
        valid = [p.value for p in AnalyticsPeriod]
        raise ValueError(f"period must be one of: {valid}")


def period_start(period: AnalyticsPeriod, now: datetime) -> Optional[datetime]:
    """Inclusive lower bound of the period ending at now, or None for ALL."""
    now = as_utc(now)
    if period == AnalyticsPeriod.DAILY:
        return now - timedelta(days=30)
    if period == AnalyticsPeriod.WEEKLY:
        return now - timedelta(days=90)
    if period == AnalyticsPeriod.MONTHLY:
        try:
            return now.replace(year=now.year - 1)
        except ValueError:
            # Feb 29 rolls forward to Mar 1 a year earlier
            return now.replace(year=now.year - 1, month=3, day=1)
    return None


@dataclass(frozen=True)
class DailyMinutes:
    date: str
    minutes: int


@dataclass(frozen=True)
class WeeklyMinutes:
    week: str  # Monday of the week
    minutes: int


@dataclass(frozen=True)
class MonthlyMinutes:
    month: str  # YYYY-MM
    minutes: int


@dataclass(frozen=True)
class SpeakingTimeStats:
    """Estimated speaking time with per-day, per-week and per-month totals."""
    total_minutes: int = 0
    daily_breakdown: List[DailyMinutes] = field(default_factory=list)
    weekly_breakdown: List[WeeklyMinutes] = field(default_factory=list)
    monthly_breakdown: List[MonthlyMinutes] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalMinutes": self.total_minutes,
            "dailyBreakdown": [{"date": d.date, "minutes": d.minutes} for d in self.daily_breakdown],
            "weeklyBreakdown": [{"week": w.week, "minutes": w.minutes} for w in self.weekly_breakdown],
            "monthlyBreakdown": [{"month": m.month, "minutes": m.minutes} for m in self.monthly_breakdown],
        }


@dataclass(frozen=True)
class StreakStats:
    current_streak: int = 0
    longest_streak: int = 0
    practice_dates: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentStreak": self.current_streak,
            "longestStreak": self.longest_streak,
            "practiceDates": list(self.practice_dates),
        }


@dataclass(frozen=True)
class FavoriteCharacter:
    name: str
    count: int


@dataclass(frozen=True)
class SessionInfo:
    session_id: str
    character_name: Optional[str]
    message_count: int
    start_time: datetime


@dataclass(frozen=True)
class SessionStats:
    total_sessions: int = 0
    average_messages_per_session: int = 0
    favorite_character: Optional[FavoriteCharacter] = None
    recent_sessions: List[SessionInfo] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        favorite = None
        if self.favorite_character is not None:
            favorite = {"name": self.favorite_character.name, "count": self.favorite_character.count}
        return {
            "totalSessions": self.total_sessions,
            "averageMessagesPerSession": self.average_messages_per_session,
            "favoriteCharacter": favorite,
            "recentSessions": [
                {
                    "sessionId": s.session_id,
                    "characterName": s.character_name,
                    "messageCount": s.message_count,
                    "startTime": s.start_time.isoformat(),
                }
                for s in self.recent_sessions
            ],
        }


def calendar_date(timestamp: datetime) -> str:
    """UTC calendar date of a timestamp as YYYY-MM-DD."""
    return as_utc(timestamp).date().isoformat()


def week_start(day: str) -> str:
    """Monday of the week containing the given YYYY-MM-DD date."""
    d = date.fromisoformat(day)
    return (d - timedelta(days=d.weekday())).isoformat()


def clamp_gap(seconds: float) -> float:
    """Limit a message gap to the plausible speaking range."""
    return max(MIN_GAP_SECONDS, min(seconds, MAX_GAP_SECONDS))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_speaking_time(events: Sequence[ConversationEvent]) -> SpeakingTimeStats:
    """Estimate speaking time from the gaps before user messages.

    Each user message is credited with the time since the previous
    message, clamped to [MIN_GAP_SECONDS, MAX_GAP_SECONDS]. The first
    event has no predecessor and contributes nothing. Weekly and monthly
    totals are regrouped from the daily totals so the three breakdowns
    always sum to the same minutes.

    Args:
        events: A user's conversation events (sorted by time here)

    Returns:
        SpeakingTimeStats, all zero/empty for empty input
    """
    ordered = sorted(events, key=lambda e: as_utc(e.timestamp))
    if not ordered:
        return SpeakingTimeStats()

    daily_seconds: Dict[str, float] = {}
    total_seconds = 0.0

    for previous, current in zip(ordered, ordered[1:]):
        if current.role != USER_ROLE:
            continue
        gap = (as_utc(current.timestamp) - as_utc(previous.timestamp)).total_seconds()
        valid_gap = clamp_gap(gap)
        total_seconds += valid_gap
        day = calendar_date(current.timestamp)
        daily_seconds[day] = daily_seconds.get(day, 0.0) + valid_gap

    daily = [
        DailyMinutes(date=day, minutes=int(seconds // 60))
        for day, seconds in sorted(daily_seconds.items())
    ]

    weekly_minutes: Dict[str, int] = {}
    monthly_minutes: Dict[str, int] = {}
    for entry in daily:
        week = week_start(entry.date)
        weekly_minutes[week] = weekly_minutes.get(week, 0) + entry.minutes
        month = entry.date[:7]
        monthly_minutes[month] = monthly_minutes.get(month, 0) + entry.minutes

    return SpeakingTimeStats(
        total_minutes=int(total_seconds // 60),
        daily_breakdown=daily,
        weekly_breakdown=[WeeklyMinutes(w, m) for w, m in sorted(weekly_minutes.items())],
        monthly_breakdown=[MonthlyMinutes(k, m) for k, m in sorted(monthly_minutes.items())],
    )


def _timestamp_of(item: Union[ConversationEvent, datetime]) -> datetime:
    return item.timestamp if isinstance(item, ConversationEvent) else item


def calculate_streaks(
    items: Iterable[Union[ConversationEvent, datetime]],
    now: Optional[datetime] = None,
) -> StreakStats:
    """Compute current and longest runs of consecutive practice days.

    Any message, from either role, marks its day as practiced. The
    current streak only counts when the last practice day is today or
    yesterday.

    Args:
        items: Conversation events or bare timestamps
        now: Reference time (defaults to the current UTC time)

    Returns:
        StreakStats with the sorted unique practice dates
    """
    days = sorted({as_utc(_timestamp_of(item)).date() for item in items})
    if not days:
        return StreakStats()

    longest = 1
    run = 1
    for previous, current in zip(days, days[1:]):
        if (current - previous).days == 1:
            run += 1
        else:
            longest = max(longest, run)
            run = 1
    longest = max(longest, run)

    today = as_utc(now or datetime.now(timezone.utc)).date()
    yesterday = today - timedelta(days=1)

    current_streak = 0
    if days[-1] in (today, yesterday):
        current_streak = 1
        for i in range(len(days) - 2, -1, -1):
            if (days[i + 1] - days[i]).days == 1:
                current_streak += 1
            else:
                break

    return StreakStats(
        current_streak=current_streak,
        longest_streak=longest,
        practice_dates=[d.isoformat() for d in days],
    )


def calculate_session_stats(events: Sequence[ConversationEvent]) -> SessionStats:
    """Summarize sessions and tutor usage.

    A session's start time is the earliest timestamp among its events,
    independent of input order. Ties for favorite character go to the
    one encountered first in the input (newest-first as fetched).

    Args:
        events: A user's conversation events, newest first

    Returns:
        SessionStats, zeros/None/empty for empty input
    """
    if not events:
        return SessionStats()

    sessions: Dict[str, dict] = {}
    character_count: Dict[str, int] = {}

    for event in events:
        ts = as_utc(event.timestamp)
        entry = sessions.get(event.session_id)
        if entry is None:
            entry = sessions[event.session_id] = {
                "character_name": event.character_name,
                "message_count": 0,
                "start_time": ts,
            }
        entry["message_count"] += 1
        entry["start_time"] = min(entry["start_time"], ts)
        if entry["character_name"] is None:
            entry["character_name"] = event.character_name

        if event.character_name:
            character_count[event.character_name] = character_count.get(event.character_name, 0) + 1

    total_sessions = len(sessions)
    average = _round_half_up(len(events) / total_sessions)

    favorite = None
    if character_count:
        name = max(character_count, key=lambda n: character_count[n])
        favorite = FavoriteCharacter(name=name, count=character_count[name])

    infos = [
        SessionInfo(
            session_id=sid,
            character_name=entry["character_name"],
            message_count=entry["message_count"],
            start_time=entry["start_time"],
        )
        for sid, entry in sessions.items()
    ]
    infos.sort(key=lambda s: s.start_time, reverse=True)

    return SessionStats(
        total_sessions=total_sessions,
        average_messages_per_session=average,
        favorite_character=favorite,
        recent_sessions=infos[:RECENT_SESSION_LIMIT],
    )


def build_analytics(
    events: Sequence[ConversationEvent],
    period: AnalyticsPeriod = AnalyticsPeriod.ALL,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Assemble the analytics payload from one chronological fetch.

    Speaking time covers the requested period; streaks and sessions
    always use the full history.

    Args:
        events: All of a user's events, oldest first
        period: Speaking-time look-back window
        now: Reference time (defaults to the current UTC time)

    Returns:
        Dict with speakingTime, streaks and sessions sections
    """
    now = as_utc(now or datetime.now(timezone.utc))
    cutoff = period_start(period, now)
    in_period = [e for e in events if cutoff is None or as_utc(e.timestamp) >= cutoff]

    return {
        "speakingTime": calculate_speaking_time(in_period).to_dict(),
        "streaks": calculate_streaks(events, now).to_dict(),
        "sessions": calculate_session_stats(list(reversed(events))).to_dict(),
    }
