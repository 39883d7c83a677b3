"""ProductImage model - gallery entry metadata and its local cache path."""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class ProductImage(Base):
    """An image of a product, matched across syncs by (product, upstream image id)."""

    __tablename__ = "product_images"
    __table_args__ = (
        UniqueConstraint("product_id", "magento_image_id", name="uix_product_image"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    magento_image_id = Column(Integer, nullable=False)
    file_path = Column(String, nullable=False)  # Upstream relative path, e.g. "/a/b/ab12.jpg"
    url = Column(String, nullable=False)
    local_path = Column(String, nullable=True)  # Public path of the cached file, None if never downloaded
    label = Column(String, nullable=True)
    position = Column(Integer, default=0, nullable=False)
    is_main = Column(Boolean, default=False, nullable=False)
    is_thumbnail = Column(Boolean, default=False, nullable=False)
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    product = relationship("Product", back_populates="images")
