"""Category model - the storefront category tree mirrored from upstream."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class Category(Base):
    """A catalog category.

    ``magento_id`` is the upstream natural key. ``parent_id`` is assigned by
    the tree import, which walks top-down so a parent always exists before
    its children. Upstream deletions are not propagated.
    """

    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    magento_id = Column(Integer, nullable=False, unique=True)
    parent_id = Column(String(36), ForeignKey("categories.id"), nullable=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    position = Column(Integer, default=0, nullable=False)
    level = Column(Integer, default=0, nullable=False)  # Depth below the synced root
    path = Column(String, nullable=True)  # Upstream id path, e.g. "1/2/15"
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    parent = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent")
    product_links = relationship("ProductCategory", back_populates="category")
