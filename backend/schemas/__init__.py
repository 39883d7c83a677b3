"""Pydantic request/response schemas."""

from .sync import (
    CancelResponse,
    RunStatsResponse,
    SyncLogResponse,
    SyncResultResponse,
    WatermarkResponse,
)

__all__ = [
    "CancelResponse",
    "RunStatsResponse",
    "SyncLogResponse",
    "SyncResultResponse",
    "WatermarkResponse",
]
