"""Pydantic schemas for sync runs and the sync log."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class RunStatsResponse(BaseModel):
    """Per-entity success counts of a run, plus errors."""

    categories: int = 0
    attributes: int = 0
    products: int = 0
    relations: int = 0
    custom_options: int = 0
    images: int = 0
    inventory: int = 0
    errors: int = 0


class SyncResultResponse(BaseModel):
    """Outcome of a triggered sync run."""

    sync_log_id: str
    sync_type: str
    status: str
    stats: RunStatsResponse
    error_message: Optional[str] = None


class SyncLogResponse(BaseModel):
    """Response schema for a single sync log row."""

    id: str
    sync_type: str
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    total_items: int
    processed_items: int
    failed_items: int
    error_message: Optional[str] = None
    stats_snapshot: Optional[dict[str, int]] = None

    model_config = {"from_attributes": True}


class WatermarkResponse(BaseModel):
    """Cutoff the next incremental sync would use."""

    watermark: datetime
    upstream_value: str  # As sent in the updated_at filter


class CancelResponse(BaseModel):
    cancelled: bool
