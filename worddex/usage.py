"""
Rolling-window usage counters.

Each counter kind (OCR scans, flashcards created, right/left review swipes,
translator API calls) owns one UsageWindow persisted as JSON under ``{kind}_counter_daily``.
A window resets once it has expired:
- rolling windows after a fixed duration (24h for OCR, flashcards and API calls)
- calendar windows when the caller's local date changes (swipes)

Design:
- All operations are async; every read-modify-write on a storage key runs
  under one asyncio.Lock for that key, so rapid increments of the same
  kind are never lost.
- Optional dedup ids make re-submitting the same item within a window
  idempotent.
- Storage failures are logged. By default counters fail open (start from
  zero, keep going); ``CounterConfig(fail_open=False)`` raises instead.

Usage:
    counter = UsageCounter(MemoryStore())
    await counter.increment(CounterKind.FLASHCARD, "card-1")  # 1
    await counter.increment_within(CounterKind.OCR, ceiling=30)  # None at the ceiling
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Mapping, Optional

from worddex.errors import StorageUnavailableError
from worddex.storage import KeyValueStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class CounterKind(str, Enum):
    OCR = "ocr"
    FLASHCARD = "flashcard"
    SWIPE_RIGHT = "swipeRight"
    SWIPE_LEFT = "swipeLeft"
    API_CALL = "apiCall"


class WindowMode(str, Enum):
    ROLLING = "rolling"
    CALENDAR_DAY = "calendar_day"


def local_now() -> datetime:
    """Current time in the machine's local timezone."""
    return datetime.now().astimezone()


def to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


@dataclass(frozen=True)
class WindowPolicy:
    """When a window expires."""
    mode: WindowMode = WindowMode.ROLLING
    duration: timedelta = timedelta(hours=24)

    def expired(self, window_start_ms: int, now: datetime) -> bool:
        if self.mode is WindowMode.CALENDAR_DAY:
            started = datetime.fromtimestamp(window_start_ms / 1000, tz=now.tzinfo)
            return started.date() != now.date()
        elapsed_ms = to_millis(now) - window_start_ms
        return elapsed_ms >= self.duration.total_seconds() * 1000


DEFAULT_POLICIES: Mapping[CounterKind, WindowPolicy] = MappingProxyType({
    CounterKind.OCR: WindowPolicy(WindowMode.ROLLING, timedelta(hours=24)),
    CounterKind.FLASHCARD: WindowPolicy(WindowMode.ROLLING, timedelta(hours=24)),
    CounterKind.SWIPE_RIGHT: WindowPolicy(WindowMode.CALENDAR_DAY),
    CounterKind.SWIPE_LEFT: WindowPolicy(WindowMode.CALENDAR_DAY),
    CounterKind.API_CALL: WindowPolicy(WindowMode.ROLLING, timedelta(hours=24)),
})


@dataclass(frozen=True)
class CounterConfig:
    """Configuration for UsageCounter.

    Attributes:
        policies: Window policy per counter kind
        streak_threshold: Count at which the streak latches on
        fail_open: Keep working when storage fails (False raises instead)
        user_id: Optional scope prefixed to every storage key
    """
    policies: Mapping[CounterKind, WindowPolicy] = field(default_factory=lambda: DEFAULT_POLICIES)
    streak_threshold: int = 3
    fail_open: bool = True
    user_id: Optional[str] = None


@dataclass
class UsageWindow:
    """Persisted state of one counter kind.

    Attributes:
        count: Actions counted in this window
        window_start: Window start, epoch milliseconds
        dedup_keys: Item ids already counted in this window
        streak_reached: Latched once count reaches the streak threshold
    """
    count: int = 0
    window_start: int = 0
    dedup_keys: list[str] = field(default_factory=list)
    streak_reached: bool = False

    def to_json(self) -> str:
        return json.dumps({
            "count": self.count,
            "windowStart": self.window_start,
            "dedupKeys": self.dedup_keys,
            "streakReached": self.streak_reached,
        })

    @classmethod
    def from_json(cls, raw: str) -> "UsageWindow":
        data = json.loads(raw)
        count = int(data["count"])
        if count < 0:
            raise ValueError(f"negative count {count}")
        return cls(
            count=count,
            window_start=int(data.get("windowStart", data.get("timestamp", 0))),
            dedup_keys=[str(k) for k in data.get("dedupKeys", [])],
            streak_reached=bool(data.get("streakReached", False)),
        )


def storage_key(kind: CounterKind | str, user_id: Optional[str] = None) -> str:
    """Storage key for a counter kind, e.g. ``flashcard_counter_daily``."""
    key = f"{CounterKind(kind).value}_counter_daily"
    return f"{user_id}:{key}" if user_id else key


class UsageCounter:
    """Rolling-window counters over a KeyValueStore.

    Usage:
        counter = UsageCounter(JsonFileStore(STATE_FILE))
        await counter.increment(CounterKind.OCR)
        left = await counter.remaining(CounterKind.OCR, ceiling=30)
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: CounterConfig | None = None,
        clock: Clock | None = None,
    ):
        self.store = store
        self.config = config or CounterConfig()
        self.clock = clock or local_now
        self._locks: Dict[str, asyncio.Lock] = {}

    def key(self, kind: CounterKind | str) -> str:
        return storage_key(kind, self.config.user_id)

    def _lock(self, key: str) -> asyncio.Lock:
        return self._locks.setdefault(key, asyncio.Lock())

    def _policy(self, kind: CounterKind | str) -> WindowPolicy:
        return self.config.policies[CounterKind(kind)]

    async def _load(self, kind: CounterKind | str, now: datetime) -> UsageWindow:
        """Current window for ``kind``; a fresh one if absent, expired or unreadable."""
        key = self.key(kind)
        fresh = UsageWindow(window_start=to_millis(now))
        try:
            raw = await self.store.get(key)
            if raw is None:
                return fresh
            window = UsageWindow.from_json(raw)
        except Exception as e:
            logger.warning("Could not read counter '%s': %s", key, e)
            if not self.config.fail_open:
                raise StorageUnavailableError(key, e) from e
            return fresh

        if self._policy(kind).expired(window.window_start, now):
            logger.debug("Counter '%s' window expired, starting a new one", key)
            return fresh
        return window

    async def _save(self, kind: CounterKind | str, window: UsageWindow) -> None:
        key = self.key(kind)
        try:
            await self.store.set(key, window.to_json())
        except Exception as e:
            logger.warning("Could not persist counter '%s': %s", key, e)
            if not self.config.fail_open:
                raise StorageUnavailableError(key, e) from e

    async def increment(self, kind: CounterKind | str, dedup_id: Optional[str] = None) -> int:
        """Count one action and return the new count.

        If ``dedup_id`` was already counted in the current window the count
        is left unchanged and returned as is.
        """
        return await self._increment(kind, dedup_id, ceiling=None)

    async def increment_within(
        self,
        kind: CounterKind | str,
        ceiling: int,
        dedup_id: Optional[str] = None,
    ) -> Optional[int]:
        """Count one action only while the count is below ``ceiling``.

        The check and the increment happen under the same lock, so
        concurrent callers can never push the count past the ceiling.

        Returns:
            The new count, the unchanged count for an already-counted
            ``dedup_id``, or None if the ceiling blocked the action.
        """
        return await self._increment(kind, dedup_id, ceiling=ceiling)

    async def _increment(
        self,
        kind: CounterKind | str,
        dedup_id: Optional[str],
        ceiling: Optional[int],
    ) -> Optional[int]:
        key = self.key(kind)
        async with self._lock(key):
            window = await self._load(kind, self.clock())

            if dedup_id is not None and dedup_id in window.dedup_keys:
                logger.debug("'%s' already counted for '%s'", dedup_id, key)
                return window.count
            if ceiling is not None and window.count >= ceiling:
                return None

            if dedup_id is not None:
                window.dedup_keys.append(dedup_id)
            window.count += 1
            if window.count >= self.config.streak_threshold:
                window.streak_reached = True

            await self._save(kind, window)
            return window.count

    async def reset(self, kind: CounterKind | str) -> None:
        """Force a fresh window (manual/administrative resets only)."""
        key = self.key(kind)
        async with self._lock(key):
            logger.info("Resetting counter '%s'", key)
            await self._save(kind, UsageWindow(window_start=to_millis(self.clock())))

    async def window(self, kind: CounterKind | str) -> UsageWindow:
        """Snapshot of the current window (expired windows read as fresh)."""
        async with self._lock(self.key(kind)):
            return await self._load(kind, self.clock())

    async def count(self, kind: CounterKind | str) -> int:
        return (await self.window(kind)).count

    async def remaining(self, kind: CounterKind | str, ceiling: int) -> int:
        return max(0, ceiling - await self.count(kind))

    async def streak(self, kind: CounterKind | str) -> bool:
        return (await self.window(kind)).streak_reached

    async def deck_progress(self, kind: CounterKind | str, card_ids: Iterable[str]) -> int:
        """How many of ``card_ids`` were already counted in this window."""
        wanted = set(card_ids or ())
        if not wanted:
            return 0
        window = await self.window(kind)
        return sum(1 for k in window.dedup_keys if k in wanted)
