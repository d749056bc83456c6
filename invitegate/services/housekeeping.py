"""Housekeeping scheduler: periodic eviction of expired and stale records."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

from invitegate.config import get_settings
from invitegate.database import Database
from invitegate.exceptions import PersistenceError
from invitegate.models.identity import SweepResult

logger = structlog.get_logger(__name__)


class HousekeepingScheduler:
    """Sweeps once at start, then on a fixed interval."""

    def __init__(self, db: Database, interval_seconds: Optional[int] = None):
        self.db = db
        self.settings = get_settings()
        if interval_seconds is None:
            interval_seconds = self.settings.housekeeping_interval_seconds
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self._running = False

    def start(self):
        """Start the sweep loop as an asyncio background task."""
        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info("housekeeping_started", interval_seconds=self.interval_seconds)

    async def stop(self):
        """Stop the sweep loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("housekeeping_stopped")

    async def _sweep_loop(self):
        """Main loop: sweep, then sleep until the next run."""
        while self._running:
            try:
                await self.sweep_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("housekeeping_sweep_error", error=str(e))

            try:
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                break

    async def sweep_once(self, now: Optional[datetime] = None) -> SweepResult:
        """Run the three age-based evictions.

        Each delete is independent; a failing one is logged and skipped.

        Args:
            now: Reference time (defaults to the current UTC time)

        Returns:
            SweepResult with per-kind removal counts
        """
        now = now or datetime.now(timezone.utc)
        result = SweepResult()

        result.invites_removed = await self._evict(
            result,
            "invites",
            "DELETE FROM invites WHERE expiration <= $1",
            now,
        )
        result.sessions_removed = await self._evict(
            result,
            "sessions",
            "DELETE FROM sessions WHERE last_active < $1",
            now - timedelta(days=self.settings.session_retention_days),
        )
        result.logs_removed = await self._evict(
            result,
            "logs",
            "DELETE FROM logs WHERE timestamp < $1",
            now - timedelta(days=self.settings.log_retention_days),
        )

        logger.info(
            "housekeeping_sweep_completed",
            invites_removed=result.invites_removed,
            sessions_removed=result.sessions_removed,
            logs_removed=result.logs_removed,
            failed=result.failed,
        )
        return result

    async def _evict(self, result: SweepResult, kind: str, statement: str, cutoff: datetime) -> int:
        try:
            return await self.db.execute_count(statement, cutoff)
        except PersistenceError as e:
            logger.error("housekeeping_eviction_failed", kind=kind, error=str(e))
            result.failed.append(kind)
            return 0
