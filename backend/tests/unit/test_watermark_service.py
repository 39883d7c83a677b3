"""Unit tests for WatermarkService."""

from datetime import datetime, timedelta, timezone

from models import SyncLog
from services.watermark_service import WatermarkService
from tests.fixtures import create_sync_log


class TestCompute:
    def test_no_completed_run_defaults_to_24h_ago(self, db):
        now = datetime.now(timezone.utc)

        watermark = WatermarkService.compute(db)

        expected = now - timedelta(hours=24)
        assert abs((watermark - expected).total_seconds()) <= 1

    def test_explicit_now(self, db):
        now = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert WatermarkService.compute(db, now=now) == datetime(2024, 5, 31, 12, 0, tzinfo=timezone.utc)

    def test_uses_last_completed_run_exactly(self, db):
        t = datetime(2024, 1, 15, 10, 30, 0, tzinfo=timezone.utc)
        create_sync_log(db, status="completed", completed_at=t)

        watermark = WatermarkService.compute(db)

        assert watermark == t
        assert watermark.tzinfo == timezone.utc

    def test_later_failed_run_ignored(self, db):
        t = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        create_sync_log(db, status="completed", completed_at=t)
        create_sync_log(db, status="failed", completed_at=t + timedelta(hours=5))

        assert WatermarkService.compute(db) == t

    def test_most_recent_of_several_completed(self, db):
        t = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        create_sync_log(db, status="completed", completed_at=t + timedelta(days=1))
        create_sync_log(db, status="completed", completed_at=t)

        assert WatermarkService.compute(db) == t + timedelta(days=1)

    def test_run_times_stored_with_timezone(self):
        # A naive column would be written in the database session's local time
        assert SyncLog.__table__.c.completed_at.type.timezone is True
        assert SyncLog.__table__.c.started_at.type.timezone is True
