"""Tests for server.scheduler — cron-driven scans that never queue."""
import asyncio
from datetime import datetime

import pytest

from server.scanner import ScanAlreadyInProgress
from server.scheduler import ScanScheduler


class FakeScanner:
    def __init__(self, scanning=False, error=None):
        self.is_scanning = scanning
        self.error = error
        self.calls = []

    async def start_scan(self, root_path):
        self.calls.append(root_path)
        if self.error is not None:
            raise self.error
        return None


class TestConstruction:
    def test_invalid_expression(self):
        with pytest.raises(ValueError):
            ScanScheduler(FakeScanner(), "/media", "every five minutes")

    def test_disabled(self):
        s = ScanScheduler(FakeScanner(), "/media", None)
        assert s.enabled is False

    def test_next_fire_every_five_minutes(self):
        s = ScanScheduler(FakeScanner(), "/media", "*/5 * * * *")
        assert s.next_fire(datetime(2024, 1, 1, 12, 3)) == datetime(2024, 1, 1, 12, 5)
        assert s.next_fire(datetime(2024, 1, 1, 12, 5)) == datetime(2024, 1, 1, 12, 10)


class TestFire:
    def test_runs_scan(self):
        scanner = FakeScanner()
        s = ScanScheduler(scanner, "/media", "*/5 * * * *")
        assert asyncio.run(s.fire()) is True
        assert scanner.calls == ["/media"]

    def test_skips_while_scanning(self):
        scanner = FakeScanner(scanning=True)
        s = ScanScheduler(scanner, "/media", "*/5 * * * *")
        assert asyncio.run(s.fire()) is False
        assert scanner.calls == []

    def test_lost_race_is_a_skip(self):
        scanner = FakeScanner(error=ScanAlreadyInProgress("busy"))
        s = ScanScheduler(scanner, "/media", "*/5 * * * *")
        assert asyncio.run(s.fire()) is False

    def test_scan_failure_does_not_escape(self):
        scanner = FakeScanner(error=OSError("gone"))
        s = ScanScheduler(scanner, "/media", "*/5 * * * *")
        assert asyncio.run(s.fire()) is True


class TestLifecycle:
    def test_start_and_stop(self):
        async def go():
            s = ScanScheduler(FakeScanner(), "/media", "*/5 * * * *")
            s.start()
            assert s._task is not None
            await s.stop()
            assert s._task is None

        asyncio.run(go())

    def test_disabled_start_is_noop(self):
        async def go():
            s = ScanScheduler(FakeScanner(), "/media", None)
            s.start()
            assert s._task is None
            await s.stop()

        asyncio.run(go())
