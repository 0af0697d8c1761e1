"""Recurring scans driven by a cron expression.

The scheduler never queues: a firing that finds a scan in progress is logged
and dropped.  Scheduled and manual scans share Scanner.start_scan, so the
single-flight guard covers both.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

from croniter import croniter

from server.scanner import ScanAlreadyInProgress, Scanner

logger = logging.getLogger("shelf.scheduler")


class ScanScheduler:
    def __init__(self, scanner: Scanner, root_path: str, schedule: Optional[str]) -> None:
        if schedule is not None and not croniter.is_valid(schedule):
            raise ValueError(f"invalid scan schedule: {schedule!r}")
        self.scanner = scanner
        self.root_path = root_path
        self.schedule = schedule
        self._task: Optional[asyncio.Task] = None

    @property
    def enabled(self) -> bool:
        return self.schedule is not None

    def next_fire(self, after: datetime) -> datetime:
        return croniter(self.schedule, after).get_next(datetime)

    async def fire(self) -> bool:
        """Run one scheduled scan.  Returns False if it was skipped."""
        if self.scanner.is_scanning:
            logger.info("Scan already in progress, skipping scheduled scan")
            return False
        logger.info("Starting scheduled scan of %s", self.root_path)
        try:
            await self.scanner.start_scan(self.root_path)
        except ScanAlreadyInProgress:
            logger.info("Scan already in progress, skipping scheduled scan")
            return False
        except Exception:
            logger.exception("Scheduled scan of %s failed", self.root_path)
        return True

    async def _loop(self) -> None:
        while True:
            now = datetime.now()
            delay = (self.next_fire(now) - now).total_seconds()
            await asyncio.sleep(max(delay, 0))
            await self.fire()

    def start(self) -> None:
        if not self.enabled:
            logger.info("Automatic scans disabled")
            return
        if self._task is None:
            logger.info("Automatic scans of %s on schedule %r", self.root_path, self.schedule)
            self._task = asyncio.get_running_loop().create_task(
                self._loop(), name="shelf-scheduler"
            )

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
