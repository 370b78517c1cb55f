"""Cooldown tracking for dispatched alerts.

Keeps, per (unit, alert kind) key, the time of the last dispatched alert and
decides whether a new alert for that key may proceed. Admission is a single
atomic check-and-set per key, so two concurrent evaluations of the same key
can never both be admitted.

Storage is pluggable: the in-memory store is lost on restart, the Redis
store survives restarts and is shared between processes. Store calls are
coroutines so a slow Redis only delays the awaiting task.
"""

import json
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import override

import redis.asyncio as aioredis

from terra.lib.config import AlertKind, CooldownBackend, get_settings
from terra.lib.policy import CooldownKey
from terra.logging import get_logger

logger = get_logger("lib.cooldown")

type Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def format_key(key: CooldownKey) -> str:
    """Render a key the way it is reported in status output."""
    unit_id, kind = key
    return f"{unit_id}_{kind}"


class CooldownStore(ABC):
    """Storage for last-dispatch timestamps."""

    @abstractmethod
    async def try_admit(
        self, key: CooldownKey, now: datetime, window: timedelta
    ) -> bool:
        """Atomically admit the key and record `now` if its cooldown elapsed."""

    @abstractmethod
    async def entries(self) -> dict[CooldownKey, datetime]:
        """Return a copy of all recorded timestamps."""

    @abstractmethod
    async def clear(self) -> None:
        """Forget every recorded timestamp."""


class InMemoryCooldownStore(CooldownStore):
    """Process-local store with one lock per key.

    The registry lock only guards lock creation, so admissions for different
    keys never wait on each other. Nothing is awaited while a lock is held.
    """

    def __init__(self) -> None:
        self._registry_lock = threading.Lock()
        self._locks: dict[CooldownKey, threading.Lock] = {}
        self._last: dict[CooldownKey, datetime] = {}

    def _lock_for(self, key: CooldownKey) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def admit(self, key: CooldownKey, now: datetime, window: timedelta) -> bool:
        """Check-and-set under the key's lock; safe to call from any thread."""
        with self._lock_for(key):
            last = self._last.get(key)
            if last is not None and now - last < window:
                return False
            self._last[key] = now
            return True

    @override
    async def try_admit(
        self, key: CooldownKey, now: datetime, window: timedelta
    ) -> bool:
        return self.admit(key, now, window)

    @override
    async def entries(self) -> dict[CooldownKey, datetime]:
        with self._registry_lock:
            keys = list(self._locks)
        result: dict[CooldownKey, datetime] = {}
        for key in keys:
            with self._lock_for(key):
                if key in self._last:
                    result[key] = self._last[key]
        return result

    @override
    async def clear(self) -> None:
        with self._registry_lock:
            self._last.clear()
            self._locks.clear()


# Returns 1 and stores ARGV[2] when the field is missing or old enough.
ADMIT_SCRIPT = """
local last = redis.call('HGET', KEYS[1], ARGV[1])
if last and (tonumber(ARGV[2]) - tonumber(last)) < tonumber(ARGV[3]) then
    return 0
end
redis.call('HSET', KEYS[1], ARGV[1], ARGV[2])
return 1
"""


def _to_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


class RedisCooldownStore(CooldownStore):
    """Store kept in a Redis hash, admitted by a server-side script.

    Fields are JSON-encoded [unit_id, kind] pairs, values are epoch
    milliseconds.
    """

    HASH_KEY = "terra:cooldown"

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client
        self._admit = client.register_script(ADMIT_SCRIPT)

    @classmethod
    def from_url(cls, url: str) -> "RedisCooldownStore":
        return cls(aioredis.from_url(url))

    @staticmethod
    def _field(key: CooldownKey) -> str:
        unit_id, kind = key
        return json.dumps([unit_id, str(kind)])

    @override
    async def try_admit(
        self, key: CooldownKey, now: datetime, window: timedelta
    ) -> bool:
        window_ms = int(window.total_seconds() * 1000)
        result = await self._admit(
            keys=[self.HASH_KEY],
            args=[self._field(key), _to_millis(now), window_ms],
        )
        return bool(int(result))

    @override
    async def entries(self) -> dict[CooldownKey, datetime]:
        raw = await self._client.hgetall(self.HASH_KEY)
        result: dict[CooldownKey, datetime] = {}
        for field, value in raw.items():
            try:
                unit_id, kind = json.loads(field)
                key = (unit_id, AlertKind(kind))
                millis = int(value)
            except (ValueError, TypeError) as e:
                logger.warning("Skipping malformed cooldown entry: %s", e)
                continue
            result[key] = datetime.fromtimestamp(millis / 1000, UTC)
        return result

    @override
    async def clear(self) -> None:
        await self._client.delete(self.HASH_KEY)


class CooldownRegistry:
    """Answers admission queries for alert keys.

    Absence of a key counts as "infinitely long since the last alert". A
    refused admission leaves state unchanged; entries are never evicted.
    """

    def __init__(
        self,
        window: timedelta,
        store: CooldownStore | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._window = window
        self._store = store or InMemoryCooldownStore()
        self._clock = clock

    @property
    def window(self) -> timedelta:
        return self._window

    @property
    def window_minutes(self) -> float:
        return self._window.total_seconds() / 60

    def now(self) -> datetime:
        """Read the injected clock."""
        return self._clock()

    async def try_admit(
        self, key: CooldownKey, now: datetime | None = None
    ) -> bool:
        """Admit the key if its cooldown elapsed (inclusive), recording `now`.

        Args:
            key: The (unit_id, kind) pair.
            now: Evaluation time; the registry clock is read when omitted.

        Returns:
            True if the alert may be dispatched, False if still cooling down.
        """
        if now is None:
            now = self._clock()
        admitted = await self._store.try_admit(key, now, self._window)
        if not admitted:
            logger.debug("Alert %s is in cooldown period", format_key(key))
        return admitted

    async def snapshot(self) -> dict[CooldownKey, datetime]:
        """Return last-dispatch times for diagnostics."""
        return await self._store.entries()

    async def reset(self) -> None:
        """Forget all cooldowns, as after a process restart."""
        await self._store.clear()


def create_registry(clock: Clock = utcnow) -> CooldownRegistry:
    """Build the registry configured by COOLDOWN_BACKEND."""
    cfg = get_settings()
    store: CooldownStore
    if cfg.cooldown.backend == CooldownBackend.REDIS:
        store = RedisCooldownStore.from_url(cfg.eventbus.redis_url)
        logger.info("Using Redis cooldown store")
    else:
        store = InMemoryCooldownStore()
    return CooldownRegistry(cfg.cooldown.window, store=store, clock=clock)
