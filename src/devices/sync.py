"""Periodic synchronization of idle locks with the Tedee cloud."""

import asyncio
import logging
from datetime import datetime
from typing import Any, Callable

from models.lock import LockDetails
from utils.errors import TedeeError

logger = logging.getLogger(__name__)


class LockSynchronizer:
    """Refreshes every idle lock from one bulk sync request.

    Locks with a running monitor or a command in flight are skipped; the
    monitor owns their state until it settles.
    """

    def __init__(
        self,
        client: Any,
        get_locks: Callable[[], list[Any]],
        interval: float = 300.0,
    ):
        """Initialize the synchronizer.

        Args:
            client: Tedee API client
            get_locks: Callable returning the current Tedee lock devices
            interval: Seconds between sync rounds
        """
        self.client = client
        self.interval = interval
        self._get_locks = get_locks
        self._running = False
        self._task: asyncio.Task | None = None
        self.last_sync: datetime | None = None
        self.last_error: str | None = None

    @property
    def is_running(self) -> bool:
        """Return whether the sync loop is running."""
        return self._running

    async def sync_once(self) -> dict[str, str]:
        """Run one sync round.

        Returns:
            Dict mapping device id to "synced", "skipped" or "missing"
        """
        details: list[LockDetails] = await self.client.get_locks_sync()
        by_id = {d.id: d for d in details}

        results = {}
        for lock in self._get_locks():
            if lock.removed:
                continue

            if lock.is_busy:
                logger.debug(f"[{lock.id}] Busy, skipping sync")
                results[lock.id] = "skipped"
                continue

            record = by_id.get(lock.tedee_id)
            if record is None:
                logger.warning(f"[{lock.id}] Not returned by the Tedee API ({lock.tedee_id})")
                results[lock.id] = "missing"
                continue

            lock.apply_details(record)
            await lock.track_state(record)
            results[lock.id] = "synced"

        self.last_sync = datetime.now()
        self.last_error = None
        return results

    async def start(self) -> None:
        """Start the sync loop."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._sync_loop())
        logger.info(f"Lock synchronizer started (interval: {self.interval}s)")

    async def stop(self) -> None:
        """Stop the sync loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Lock synchronizer stopped")

    async def _sync_loop(self) -> None:
        """Main sync loop."""
        while self._running:
            try:
                await asyncio.sleep(self.interval)
                await self.sync_once()
            except asyncio.CancelledError:
                break
            except TedeeError as e:
                self.last_error = e.detail or e.message
                logger.error(f"Lock sync failed: {self.last_error}")
            except Exception as e:
                self.last_error = str(e)
                logger.error(f"Lock sync error: {e}")

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of the sync status."""
        return {
            "running": self._running,
            "interval": self.interval,
            "last_sync": self.last_sync.isoformat() if self.last_sync else None,
            "last_error": self.last_error,
        }
