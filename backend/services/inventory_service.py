"""Inventory normalization and persistence."""

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

from integrations.catalog_protocol import SourceStockItem
from models import InventoryRecord, Product
from services.sync_types import ReconcileResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StockState:
    """Normalized stock values as stored locally."""

    qty: Decimal
    is_in_stock: bool
    min_qty: Decimal
    notify_stock_qty: Decimal | None
    manage_stock: bool
    backorders: str


SERVICE_STOCK = StockState(
    qty=Decimal("0"),
    is_in_stock=True,
    min_qty=Decimal("0"),
    notify_stock_qty=None,
    manage_stock=False,
    backorders="no",
)


def compute_in_stock(is_in_stock: bool, manage_stock: bool, qty: Decimal) -> bool:
    """Effective availability.

    Unmanaged stock is always available. Managed stock is available when
    flagged in stock or when the quantity is positive.
    """
    if not manage_stock:
        return True
    return is_in_stock or qty > 0


def normalize_stock(stock: SourceStockItem) -> StockState:
    return StockState(
        qty=stock.qty,
        is_in_stock=compute_in_stock(stock.is_in_stock, stock.manage_stock, stock.qty),
        min_qty=stock.min_qty,
        notify_stock_qty=stock.notify_stock_qty,
        manage_stock=stock.manage_stock,
        backorders=stock.backorders,
    )


class InventoryService:
    """Upserts the single inventory row of a product."""

    @staticmethod
    def reconcile(
        db: Session,
        product: Product,
        stock: SourceStockItem | None,
        is_service: bool = False,
    ) -> ReconcileResult:
        """Write the product's inventory row.

        Args:
            db: Database session
            product: Local product
            stock: Upstream stock record; ignored for service products
            is_service: Product is non-physical and gets the fixed service stock

        Raises:
            ValueError: ``stock`` is None for a physical product
        """
        if is_service:
            state = SERVICE_STOCK
        elif stock is None:
            raise ValueError(f"No stock record for {product.sku}")
        else:
            state = normalize_stock(stock)

        record = db.query(InventoryRecord).filter_by(product_id=product.id).first()
        created = record is None
        if created:
            record = InventoryRecord(product_id=product.id)
            db.add(record)

        record.sku = product.sku
        record.qty = state.qty
        record.is_in_stock = state.is_in_stock
        record.min_qty = state.min_qty
        record.notify_stock_qty = state.notify_stock_qty
        record.manage_stock = state.manage_stock
        record.backorders = state.backorders
        db.flush()

        return ReconcileResult(local_id=record.id, created=created)
