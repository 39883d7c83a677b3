"""Incremental sync watermark."""

from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from integrations.parsing_utils import ensure_utc
from services.sync_log_service import SyncLogService

DEFAULT_LOOKBACK = timedelta(hours=24)


class WatermarkService:
    @staticmethod
    def compute(db: Session, now: datetime | None = None) -> datetime:
        """Return the instant incremental syncs fetch changes after.

        The completion time of the most recent completed run, or 24 hours
        before ``now`` when no run has completed yet. Always UTC-aware.
        """
        latest = SyncLogService.latest_completed(db)
        if latest is not None:
            return ensure_utc(latest.completed_at)
        return ensure_utc(now or datetime.now(timezone.utc)) - DEFAULT_LOOKBACK
