"""Sharded in-memory key/value store whose entries expire.

Expiry is enforced two ways: every read checks the deadline (lazy deletion), and
``sweep()`` physically drops dead entries so keys that are written once and never
read again do not pile up. Reads are correct without any sweep ever running.

Each shard has its own ``asyncio.Lock``. A sweep holds one shard lock at a time,
so its pause for any single caller is bounded by the size of one shard.
"""
import asyncio
import zlib
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from ephemera.clock import Clock, SystemClock

V = TypeVar("V")

DEFAULT_SHARDS = 16

_MISSING = object()


@dataclass
class TimedEntry(Generic[V]):
    value: V
    expires_at: float

    def is_live(self, now: float) -> bool:
        return now < self.expires_at


class _Shard(Generic[V]):
    __slots__ = ("entries", "lock")

    def __init__(self) -> None:
        self.entries: dict[str, TimedEntry[V]] = {}
        self.lock = asyncio.Lock()


def _check_key(key: str) -> None:
    if not key:
        raise ValueError("key must be a non-empty string")


def _check_ttl(ttl: float) -> None:
    if ttl <= 0:
        raise ValueError(f"ttl must be positive, got {ttl!r}")


class TimedStore(Generic[V]):
    def __init__(self, clock: Clock | None = None, shards: int = DEFAULT_SHARDS) -> None:
        if shards < 1:
            raise ValueError("shards must be >= 1")
        self.clock: Clock = clock or SystemClock()
        self._shards: list[_Shard[V]] = [_Shard() for _ in range(shards)]

    def _shard(self, key: str) -> _Shard[V]:
        return self._shards[zlib.crc32(key.encode()) % len(self._shards)]

    @staticmethod
    def _live_value(shard: _Shard[V], key: str, now: float) -> Any:
        """Return the live value for key or ``_MISSING``, dropping it if expired. Caller holds the lock."""
        entry = shard.entries.get(key)
        if entry is None:
            return _MISSING
        if not entry.is_live(now):
            del shard.entries[key]
            return _MISSING
        return entry.value

    async def put(self, key: str, value: V, ttl: float) -> None:
        """Insert or replace ``key``; it stays readable for ``ttl`` seconds."""
        _check_key(key)
        _check_ttl(ttl)
        shard = self._shard(key)
        async with shard.lock:
            shard.entries[key] = TimedEntry(value, self.clock.now() + ttl)

    async def put_if_absent(self, key: str, value: V, ttl: float) -> bool:
        """Insert ``key`` only if no live entry holds it. Returns False when one does."""
        _check_key(key)
        _check_ttl(ttl)
        shard = self._shard(key)
        async with shard.lock:
            now = self.clock.now()
            if self._live_value(shard, key, now) is not _MISSING:
                return False
            shard.entries[key] = TimedEntry(value, now + ttl)
            return True

    async def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for ``key``, or ``default`` if absent or expired."""
        shard = self._shard(key)
        async with shard.lock:
            value = self._live_value(shard, key, self.clock.now())
        return default if value is _MISSING else value

    async def update(self, key: str, fn: Callable[[Any], V], ttl: float, default: Any = None) -> V:
        """Atomically replace ``key`` with ``fn(current)``.

        ``current`` is ``default`` when the key is absent or expired; a live entry is
        passed through even if its value is None. The shard lock is held across the
        read and the write, so concurrent updates of one key never lose each other's
        changes.
        """
        _check_key(key)
        _check_ttl(ttl)
        shard = self._shard(key)
        async with shard.lock:
            now = self.clock.now()
            current = self._live_value(shard, key, now)
            value = fn(default if current is _MISSING else current)
            shard.entries[key] = TimedEntry(value, now + ttl)
            return value

    async def delete(self, key: str) -> None:
        shard = self._shard(key)
        async with shard.lock:
            shard.entries.pop(key, None)

    async def sweep(self) -> int:
        """Physically remove every expired entry; return how many were removed."""
        removed = 0
        for shard in self._shards:
            async with shard.lock:
                now = self.clock.now()
                dead = [k for k, e in shard.entries.items() if not e.is_live(now)]
                for k in dead:
                    del shard.entries[k]
                removed += len(dead)
        return removed

    async def clear(self) -> None:
        for shard in self._shards:
            async with shard.lock:
                shard.entries.clear()

    def __len__(self) -> int:
        """Physical entry count, including expired entries not yet swept."""
        return sum(len(s.entries) for s in self._shards)
