"""Background task that periodically sweeps expired entries out of timed stores."""
import asyncio
import logging

from ephemera.timed_store import TimedStore

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 300


class SweepScheduler:
    def __init__(self, interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds = interval_seconds
        self._stores: dict[str, TimedStore] = {}
        self._task: asyncio.Task | None = None

    def register(self, name: str, store: TimedStore) -> None:
        if name in self._stores:
            raise ValueError(f"store {name!r} already registered")
        self._stores[name] = store

    @property
    def stores(self) -> dict[str, TimedStore]:
        return dict(self._stores)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> dict[str, int]:
        """Sweep every registered store once; return removed counts by store name."""
        removed: dict[str, int] = {}
        for name, store in self._stores.items():
            removed[name] = await store.sweep()
        return removed

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                removed = await self.run_once()
                logger.debug("Sweep removed %s", removed)
            except Exception:
                logger.exception("Sweep iteration failed")

    @staticmethod
    def _on_done(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception():
            logger.error("Sweep task terminated: %s", task.exception())

    def start(self) -> asyncio.Task:
        """Start the sweep loop on the running event loop. Idempotent."""
        if self.running:
            return self._task
        self._task = asyncio.create_task(self._loop())
        self._task.add_done_callback(self._on_done)
        logger.info(
            "Sweeping %d store(s) every %ss", len(self._stores), self.interval_seconds
        )
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
