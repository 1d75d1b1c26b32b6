"""Background timer that re-acquires the static GTFS dataset.

One pending asyncio task at most. After every fire the timer is armed
again for the next interval, whether or not the refresh succeeded.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from src.gtfs_bc.feed.infrastructure.services.static_dataset_loader import StaticDatasetLoader

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshScheduler:
    """Background scheduler for static GTFS refreshes."""

    def __init__(
        self,
        loader: StaticDatasetLoader,
        refresh_interval: timedelta = timedelta(days=7),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.loader = loader
        self.refresh_interval = refresh_interval
        self.clock = clock
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._next_run: Optional[datetime] = None
        self._last_run: Optional[datetime] = None
        self._run_count = 0
        self._error_count = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def next_run(self) -> Optional[datetime]:
        return self._next_run

    @property
    def status(self) -> dict:
        """Get scheduler status."""
        return {
            "running": self._running,
            "next_refresh_at": self._next_run.isoformat() if self._next_run else None,
            "last_run_at": self._last_run.isoformat() if self._last_run else None,
            "run_count": self._run_count,
            "error_count": self._error_count,
            "interval_seconds": self.refresh_interval.total_seconds(),
        }

    def compute_delay(self) -> float:
        """Seconds until the dataset becomes stale, never negative."""
        last_update = self.loader.last_update_time
        if last_update is None:
            return 0.0
        elapsed = self.clock() - last_update
        return max((self.refresh_interval - elapsed).total_seconds(), 0.0)

    async def start(self, delay: Optional[float] = None):
        """Arm the timer, by default from the loader's last update time."""
        if self._running:
            logger.warning("GTFS refresh scheduler already running")
            return

        self._running = True
        self._arm(delay)

    async def stop(self):
        """Cancel the pending timer."""
        if not self._running:
            return

        self._running = False
        task = self._task
        self._task = None
        self._next_run = None
        if task and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("GTFS refresh scheduler stopped")

    async def trigger_refresh(self) -> bool:
        """Run a forced refresh now and restart the schedule from it."""
        success = await self.loader.refresh()
        if success and self._running:
            self._arm()
        return success

    def _arm(self, delay: Optional[float] = None):
        if self._task is not None:
            self._task.cancel()
            self._task = None

        if delay is None:
            delay = self.compute_delay()
        self._next_run = self.clock() + timedelta(seconds=delay)
        self._task = asyncio.create_task(self._fire_after(delay))
        logger.info(f"Next automatic GTFS update scheduled in {round(delay / 3600)} hours ({self._next_run.isoformat()})")

    async def _fire_after(self, delay: float):
        await asyncio.sleep(delay)

        # From here on this task is no longer the pending timer; re-arming must not cancel it
        self._task = None
        logger.info("Running scheduled GTFS update")
        success = False
        try:
            success = await self.loader.load(force_refresh=True)
            if not success:
                self._error_count += 1
                logger.error(f"Scheduled GTFS update failed - will retry in {self.refresh_interval}")
        except asyncio.CancelledError:
            logger.info("GTFS refresh scheduler task cancelled")
            raise
        except Exception as e:
            self._error_count += 1
            logger.error(f"Scheduled GTFS update error: {e} - will retry in {self.refresh_interval}")

        self._last_run = self.clock()
        self._run_count += 1

        if self._running:
            # A failed refresh leaves the old update time; wait a full interval instead of firing again at once
            self._arm(None if success else self.refresh_interval.total_seconds())


@asynccontextmanager
async def lifespan_with_scheduler(app):
    """FastAPI lifespan: load the static dataset, then start the refresh timer."""
    container = app.state.container
    loader = container.static_dataset_loader()
    scheduler = container.refresh_scheduler()

    logger.info("Loading static GTFS data...")
    if await loader.load():
        logger.info("Static GTFS data loaded successfully")
        await scheduler.start()
    else:
        logger.error("Static GTFS data could not be loaded - serving without lookup tables")
        # No fresh update time to schedule from; retry after a full interval
        await scheduler.start(delay=scheduler.refresh_interval.total_seconds())

    yield

    await scheduler.stop()
