"""Sync API endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from database import get_db
from integrations.parsing_utils import format_upstream_datetime
from schemas import (
    CancelResponse,
    SyncLogResponse,
    SyncResultResponse,
    WatermarkResponse,
)
from services.exceptions import SyncAlreadyRunningError
from services.sync_log_service import SyncLogService
from services.sync_service import SyncService
from services.sync_types import SyncResult
from services.watermark_service import WatermarkService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])

SYNC_IN_PROGRESS_DETAIL = "Sync already in progress. Please wait for the current sync to complete."

# Dependency injection for testing
_sync_service_override: Optional[SyncService] = None


def get_sync_service() -> SyncService:
    """Get SyncService instance, allowing for test overrides."""
    if _sync_service_override is not None:
        return _sync_service_override
    return SyncService()


def set_sync_service_override(service: Optional[SyncService]) -> None:
    """Set a SyncService override for testing."""
    global _sync_service_override
    _sync_service_override = service


def _to_response(result: SyncResult) -> SyncResultResponse:
    return SyncResultResponse(
        sync_log_id=result.sync_log_id,
        sync_type=result.sync_type,
        status=result.status,
        stats=result.stats.to_dict(),
        error_message=result.error_message,
    )


def _run(run, db: Session) -> SyncResultResponse:
    """Execute a sync entry point, mapping lock contention to 409.

    A run that fails still returns 200; its status and error_message
    describe the failure.
    """
    if SyncService.is_sync_in_progress():
        raise HTTPException(status_code=409, detail=SYNC_IN_PROGRESS_DETAIL)

    try:
        return _to_response(run(db))
    except SyncAlreadyRunningError:
        raise HTTPException(status_code=409, detail=SYNC_IN_PROGRESS_DETAIL)
    except Exception:
        # Safety catch for truly unexpected errors - never expose str(e)
        logger.error("Unexpected error during sync", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred during sync.",
        )


@router.post("/full", response_model=SyncResultResponse)
def trigger_full_sync(
    db: Session = Depends(get_db),
    sync_service: SyncService = Depends(get_sync_service),
):
    """Run a full catalog sync.

    Raises:
        HTTPException:
            - 409 Conflict: Sync is already in progress
            - 500 Internal Server Error: Unexpected sync error
    """
    return _run(sync_service.run_full_sync, db)


@router.post("/incremental", response_model=SyncResultResponse)
def trigger_incremental_sync(
    db: Session = Depends(get_db),
    sync_service: SyncService = Depends(get_sync_service),
):
    """Sync products changed since the watermark, then a batch of inventory.

    Raises:
        HTTPException:
            - 409 Conflict: Sync is already in progress
            - 500 Internal Server Error: Unexpected sync error
    """
    return _run(sync_service.run_incremental_sync, db)


@router.post("/cancel", response_model=CancelResponse)
def cancel_sync():
    """Ask the active run to stop before its next item."""
    return CancelResponse(cancelled=SyncService.request_cancel())


@router.get("/logs", response_model=list[SyncLogResponse])
def list_sync_logs(
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """List sync runs, most recent first."""
    return SyncLogService.list_logs(db, limit=limit)


@router.get("/logs/{log_id}", response_model=SyncLogResponse)
def get_sync_log(log_id: str, db: Session = Depends(get_db)):
    """Get a single sync run."""
    log = SyncLogService.get_log(db, log_id)
    if log is None:
        raise HTTPException(status_code=404, detail="Sync log not found")
    return log


@router.get("/watermark", response_model=WatermarkResponse)
def get_watermark(db: Session = Depends(get_db)):
    """Show the cutoff the next incremental sync would use."""
    watermark = WatermarkService.compute(db)
    return WatermarkResponse(
        watermark=watermark,
        upstream_value=format_upstream_datetime(watermark),
    )
