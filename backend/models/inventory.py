"""InventoryRecord model - one stock row per product."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class InventoryRecord(Base):
    """Stock state of a product.

    Service (non-physical) products always carry qty 0, in stock, unmanaged.
    """

    __tablename__ = "product_inventory"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, unique=True)
    sku = Column(String, nullable=False)
    qty = Column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    is_in_stock = Column(Boolean, nullable=False, default=False)
    min_qty = Column(Numeric(12, 4), nullable=False, default=Decimal("0"))
    notify_stock_qty = Column(Numeric(12, 4), nullable=True)
    manage_stock = Column(Boolean, nullable=False, default=True)
    backorders = Column(String, nullable=False, default="no")  # "no" | "notify" | "yes"
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    product = relationship("Product", back_populates="inventory")
