"""Sync run log - start, finalize and query SyncLog rows."""

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from models import SyncLog
from services.sync_types import RunStats

logger = logging.getLogger(__name__)

RUNNING = "running"
COMPLETED = "completed"
FAILED = "failed"


class SyncLogService:
    """Creates one SyncLog per run and finalizes it exactly once."""

    @staticmethod
    def start(db: Session, sync_type: str) -> SyncLog:
        """Create and commit a ``running`` log so it is visible while the run works."""
        log = SyncLog(sync_type=sync_type, status=RUNNING)
        db.add(log)
        db.commit()
        logger.info("Sync log %s started (%s)", log.id[:8], sync_type)
        return log

    @staticmethod
    def _finalize(
        db: Session,
        log: SyncLog,
        status: str,
        stats: RunStats,
        error_message: str | None,
    ) -> SyncLog:
        if log.status != RUNNING:
            raise ValueError(f"Sync log {log.id} already finalized as {log.status}")
        log.status = status
        log.completed_at = datetime.now(timezone.utc)
        log.processed_items = stats.processed
        log.failed_items = stats.errors
        log.total_items = stats.processed + stats.errors
        log.error_message = error_message
        log.stats_snapshot = stats.to_dict()
        db.commit()
        return log

    @staticmethod
    def complete(db: Session, log: SyncLog, stats: RunStats) -> SyncLog:
        logger.info(
            "Sync log %s completed: %d processed, %d errors",
            log.id[:8], stats.processed, stats.errors,
        )
        return SyncLogService._finalize(db, log, COMPLETED, stats, None)

    @staticmethod
    def fail(db: Session, log: SyncLog, stats: RunStats, error_message: str) -> SyncLog:
        logger.warning("Sync log %s failed: %s", log.id[:8], error_message)
        return SyncLogService._finalize(db, log, FAILED, stats, error_message)

    @staticmethod
    def list_logs(db: Session, limit: int = 20) -> list[SyncLog]:
        """Most recent runs first."""
        return (
            db.query(SyncLog)
            .order_by(SyncLog.started_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_log(db: Session, log_id: str) -> SyncLog | None:
        return db.query(SyncLog).filter(SyncLog.id == log_id).first()

    @staticmethod
    def latest_completed(db: Session) -> SyncLog | None:
        return (
            db.query(SyncLog)
            .filter(SyncLog.status == COMPLETED, SyncLog.completed_at.isnot(None))
            .order_by(SyncLog.completed_at.desc())
            .first()
        )
