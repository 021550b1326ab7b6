"""
Quota tracking for rate limits and daily usage caps.

Two independent admission checks share one counting model:

1. Per-client rate limit - a fixed window that restarts on the first
   request after it expires
2. Per-user daily quota - one counter per user per UTC calendar day

Limits are process-local. Running several server instances multiplies
the effective limits, and the daily check and the usage update are
separate calls, so concurrent requests from one user can overshoot the
daily limit by a small margin. Both are accepted properties.

Invalid limits (non-finite, below one or missing) fail open: the
tracker admits every request instead of denying all traffic.
"""

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, ClassVar, Dict, List, Optional, Protocol, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Limit:
    """A configured positive limit, or UNLIMITED when value is None."""
    value: Optional[int] = None

    UNLIMITED: ClassVar["Limit"]

    def __post_init__(self):
        """Reject non-positive values; use UNLIMITED for no limit."""
        if self.value is not None and (isinstance(self.value, bool) or self.value < 1):
            raise ValueError(f"limit must be a positive integer or None, got {self.value!r}")

    @property
    def is_unlimited(self) -> bool:
        return self.value is None

    @classmethod
    def parse(cls, raw: object, default: int) -> "Limit":
        """Build a limit from a raw configuration value.

        Missing or blank values use the default. Values that are present
        but not a finite number of at least one become UNLIMITED.

        Args:
            raw: Value as read from the environment or a config file
            default: Limit to use when raw is missing

        Returns:
            Parsed Limit
        """
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return cls(default)
        if isinstance(raw, bool):
            return cls.UNLIMITED
        number: Optional[float]
        if isinstance(raw, (int, float)):
            number = float(raw)
        else:
            try:
                number = float(str(raw).strip())
            except ValueError:
                number = None
        if number is None or not math.isfinite(number) or int(number) < 1:
            return cls.UNLIMITED
        return cls(int(number))


Limit.UNLIMITED = Limit(None)

LimitValue = Union[Limit, int, float, None]


def _effective(limit: LimitValue) -> Optional[float]:
    """Return the numeric limit, or None when it should fail open."""
    if isinstance(limit, Limit):
        if limit.value is None or limit.value < 1:
            return None
        return limit.value
    if limit is None or isinstance(limit, bool) or not isinstance(limit, (int, float)):
        return None
    if not math.isfinite(limit) or limit < 1:
        return None
    return limit


@dataclass
class RateWindow:
    """Counting window for one client key."""
    window_start_ms: float
    count: int


class QuotaStore(Protocol):
    """Storage behind the quota tracker."""

    def get_window(self, key: str) -> Optional[RateWindow]: ...

    def set_window(self, key: str, window: RateWindow) -> None: ...

    def get_daily(self, day: str, user_id: str) -> int: ...

    def increment_daily(self, day: str, user_id: str) -> int: ...

    def evict_days_except(self, day: str) -> int: ...


class InMemoryQuotaStore:
    """Single-process quota store.

    Rate windows are never evicted. Daily counters are bucketed by day,
    so dropping stale days touches one entry per stored day rather than
    one per user.
    """

    def __init__(self):
        self._windows: Dict[str, RateWindow] = {}
        self._daily: Dict[str, Dict[str, int]] = {}

    def get_window(self, key: str) -> Optional[RateWindow]:
        return self._windows.get(key)

    def set_window(self, key: str, window: RateWindow) -> None:
        self._windows[key] = window

    def get_daily(self, day: str, user_id: str) -> int:
        return self._daily.get(day, {}).get(user_id, 0)

    def increment_daily(self, day: str, user_id: str) -> int:
        bucket = self._daily.setdefault(day, {})
        bucket[user_id] = bucket.get(user_id, 0) + 1
        return bucket[user_id]

    def evict_days_except(self, day: str) -> int:
        stale = [d for d in self._daily if d != day]
        evicted = 0
        for d in stale:
            evicted += len(self._daily.pop(d))
        return evicted

    def daily_keys(self) -> List[str]:
        """Stored daily counters as ``user_id:YYYY-MM-DD`` keys."""
        return [
            f"{user_id}:{day}"
            for day, bucket in self._daily.items()
            for user_id in bucket
        ]

    def window_count(self) -> int:
        return len(self._windows)


class QuotaTracker:
    """Admit/deny decisions for rate limits and daily quotas.

    Never raises for misconfiguration. A deny is returned as False for
    the caller to translate into an HTTP 429.
    """

    def __init__(
        self,
        store: Optional[QuotaStore] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the tracker.

        Args:
            store: Quota store (defaults to a fresh in-memory store)
            clock: Callable returning the current time in epoch seconds
        """
        self.store = store if store is not None else InMemoryQuotaStore()
        self._clock = clock

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    def today(self) -> str:
        """Current UTC calendar day as YYYY-MM-DD."""
        return self._now().date().isoformat()

    def admit_rate_limit(
        self,
        client_key: str,
        window_size_ms: LimitValue,
        max_requests: LimitValue,
    ) -> bool:
        """Count a request against the client's window and decide admission.

        Args:
            client_key: Client identity (usually the caller's IP)
            window_size_ms: Window length in milliseconds
            max_requests: Requests admitted per window

        Returns:
            True if the request is admitted
        """
        window_ms = _effective(window_size_ms)
        max_count = _effective(max_requests)
        if window_ms is None or max_count is None:
            return True

        now = self._now_ms()
        current = self.store.get_window(client_key)

        if current is None or now - current.window_start_ms >= window_ms:
            self.store.set_window(client_key, RateWindow(window_start_ms=now, count=1))
            return True

        if current.count < max_count:
            current.count += 1
            self.store.set_window(client_key, current)
            return True

        logger.info("Rate limit reached for client %s", client_key)
        return False

    def retry_after_seconds(self, client_key: str, window_size_ms: LimitValue) -> int:
        """Seconds until the client's current window resets (at least 1)."""
        window_ms = _effective(window_size_ms) or 60000
        current = self.store.get_window(client_key)
        if current is None:
            return max(1, math.ceil(window_ms / 1000))
        remaining_ms = current.window_start_ms + window_ms - self._now_ms()
        return max(1, math.ceil(remaining_ms / 1000))

    def admit_daily_quota(self, user_id: str, daily_limit: LimitValue) -> bool:
        """Check whether the user still has quota left today.

        Does not count the request; call record_daily_usage once the
        work it guards has completed.
        """
        limit = _effective(daily_limit)
        if limit is None:
            return True
        admitted = self.store.get_daily(self.today(), user_id) < limit
        if not admitted:
            logger.info("Daily quota exhausted for user %s", user_id)
        return admitted

    def record_daily_usage(self, user_id: str) -> int:
        """Count one usage for the user today and drop counters of other days.

        Returns:
            The user's usage count for today after the increment
        """
        today = self.today()
        count = self.store.increment_daily(today, user_id)
        self.sweep_daily_usage(today)
        return count

    def sweep_daily_usage(self, today: Optional[str] = None) -> int:
        """Drop daily counters of every day except today.

        Returns:
            Number of evicted counters
        """
        evicted = self.store.evict_days_except(today or self.today())
        if evicted:
            logger.debug("Evicted %d stale daily usage counters", evicted)
        return evicted

    def daily_usage(self, user_id: str) -> int:
        return self.store.get_daily(self.today(), user_id)

    def seconds_until_daily_reset(self) -> int:
        """Seconds until the next UTC midnight (at least 1)."""
        now = self._now()
        midnight = datetime(now.year, now.month, now.day, tzinfo=timezone.utc) + timedelta(days=1)
        return max(1, math.ceil((midnight - now).total_seconds()))
