"""Test fixtures and sample data."""
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.orm import Session

from models import Category, InventoryRecord, Product, SyncLog


def create_sync_log(
    db: Session,
    status: str = "completed",
    completed_at: datetime | None = None,
    sync_type: str = "full",
    started_at: datetime | None = None,
) -> SyncLog:
    """Create a finalized (or running) sync log row.

    Args:
        db: Database session
        status: "running", "completed" or "failed"
        completed_at: Completion time; ignored for running logs
        sync_type: "full" or "incremental"
        started_at: Start time (defaults to an hour before completion)
    """
    completed_at = completed_at or datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
    log = SyncLog(
        sync_type=sync_type,
        status=status,
        started_at=started_at or completed_at - timedelta(hours=1),
        completed_at=None if status == "running" else completed_at,
    )
    db.add(log)
    db.commit()
    return log


@pytest.fixture
def category(db) -> Category:
    """Create a root category."""
    cat = Category(magento_id=2, name="Default Category", slug="default-category", level=0)
    db.add(cat)
    db.commit()
    return cat


@pytest.fixture
def product(db) -> Product:
    """Create a simple product with an upstream id."""
    prod = Product(
        magento_id=101,
        sku="DRILL-1",
        type_id="simple",
        name="Cordless Drill",
        slug="cordless-drill",
        price=Decimal("129.95"),
    )
    db.add(prod)
    db.commit()
    return prod


@pytest.fixture
def service_product(db) -> Product:
    """Create a virtual (service) product."""
    prod = Product(
        magento_id=104,
        sku="INSTALL",
        type_id="virtual",
        name="Installation Service",
        slug="installation-service",
    )
    db.add(prod)
    db.commit()
    return prod


@pytest.fixture
def inventory_record(db, product) -> InventoryRecord:
    record = InventoryRecord(
        product_id=product.id,
        sku=product.sku,
        qty=Decimal("1"),
        is_in_stock=True,
    )
    db.add(record)
    db.commit()
    return record


@pytest.fixture
def completed_sync_log(db) -> SyncLog:
    return create_sync_log(db)
