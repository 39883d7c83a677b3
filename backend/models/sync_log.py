"""SyncLog model - one row per catalog sync run."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, JSON, String, Text

from database import Base
from models.utils import generate_uuid


class SyncLog(Base):
    """The record of a single full or incremental sync run.

    Created as ``running`` when the run starts and finalized exactly once as
    ``completed`` or ``failed``. Never deleted: the most recent ``completed``
    row is the incremental watermark.
    """

    __tablename__ = "sync_logs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    sync_type = Column(String, nullable=False)  # "full" | "incremental"
    status = Column(String, nullable=False, default="running")  # "running" | "completed" | "failed"
    started_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    completed_at = Column(DateTime(timezone=True), nullable=True, index=True)
    total_items = Column(Integer, default=0, nullable=False)
    processed_items = Column(Integer, default=0, nullable=False)
    failed_items = Column(Integer, default=0, nullable=False)
    error_message = Column(Text, nullable=True)
    stats_snapshot = Column(JSON, nullable=True)  # RunStats as a dict
