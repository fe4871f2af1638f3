"""Fixed-window rate limiter backed by a TimedStore.

Time is cut into non-overlapping windows of ``window_seconds``. Each identifier gets
one counter per window, stored under ``identifier:window_index`` and set to expire
exactly when the window ends. Denied calls still count.

Because windows are fixed, a caller can land ``ceiling`` hits at the very end of one
window and another ``ceiling`` at the start of the next.
"""
import math
from dataclasses import dataclass

from ephemera.timed_store import TimedStore

DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_CEILING = 10


@dataclass(slots=True)
class WindowCounter:
    count: int
    reset_at: float


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    reset_at: float
    limit: int

    def retry_after(self, now: float) -> int:
        """Whole seconds until the window resets (at least 1)."""
        return max(1, math.ceil(self.reset_at - now))


class WindowLimiter:
    def __init__(
        self,
        store: TimedStore[WindowCounter],
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        ceiling: int = DEFAULT_CEILING,
        namespace: str | None = None,
    ) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        if ceiling < 1:
            raise ValueError("ceiling must be >= 1")
        self.store = store
        self.window_seconds = float(window_seconds)
        self.ceiling = ceiling
        self.namespace = namespace

    def _key(self, identifier: str, window_index: int) -> str:
        if self.namespace:
            return f"{self.namespace}:{identifier}:{window_index}"
        return f"{identifier}:{window_index}"

    async def check(self, identifier: str) -> RateLimitDecision:
        """Count one hit for ``identifier`` and decide whether it may proceed."""
        if not identifier:
            raise ValueError("identifier must be a non-empty string")

        now = self.store.clock.now()
        window_index = math.floor(now / self.window_seconds)
        reset_at = (window_index + 1) * self.window_seconds

        def _increment(current: WindowCounter | None) -> WindowCounter:
            if current is None:
                return WindowCounter(count=1, reset_at=reset_at)
            return WindowCounter(count=current.count + 1, reset_at=current.reset_at)

        counter = await self.store.update(
            self._key(identifier, window_index),
            _increment,
            ttl=max(reset_at - now, 1e-6),
        )
        return RateLimitDecision(
            allowed=counter.count <= self.ceiling,
            remaining=max(0, self.ceiling - counter.count),
            reset_at=counter.reset_at,
            limit=self.ceiling,
        )
