"""Product catalog models - products, category links and variant relations."""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class Product(Base):
    """A catalog product, keyed by its immutable SKU.

    ``slug`` is globally unique. When the preferred slug is taken by another
    product the sync falls back to ``{slug}-{magento_id}``.
    """

    __tablename__ = "products"
    __table_args__ = (
        UniqueConstraint("sku", name="uq_products_sku"),
        UniqueConstraint("slug", name="uq_products_slug"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    magento_id = Column(Integer, nullable=True, index=True)
    sku = Column(String, nullable=False)
    type_id = Column(String, nullable=False, default="simple")  # simple | configurable | virtual | ...
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    short_description = Column(Text, nullable=True)
    price = Column(Numeric(12, 4), nullable=True)
    cost_price = Column(Numeric(12, 4), nullable=True)
    special_price = Column(Numeric(12, 4), nullable=True)
    special_price_from = Column(DateTime, nullable=True)
    special_price_to = Column(DateTime, nullable=True)
    weight = Column(Numeric(12, 4), nullable=True)
    status = Column(String, nullable=False, default="enabled")  # "enabled" | "disabled"
    visibility = Column(String, nullable=False, default="catalog_search")
    meta_title = Column(String, nullable=True)
    meta_description = Column(Text, nullable=True)
    meta_keywords = Column(Text, nullable=True)

    # Warehouse and purchasing fields
    shelf_location = Column(String, nullable=True)
    bin_location = Column(String, nullable=True)
    supplier_skus = Column(Text, nullable=True)
    stock_again = Column(Date, nullable=True)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = Column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    category_links = relationship("ProductCategory", back_populates="product")
    attribute_values = relationship("AttributeValue", back_populates="product")
    custom_options = relationship("CustomOption", back_populates="product")
    images = relationship("ProductImage", back_populates="product")
    inventory = relationship("InventoryRecord", back_populates="product", uselist=False)


class ProductCategory(Base):
    """Join row linking a product to a category."""

    __tablename__ = "product_categories"
    __table_args__ = (
        UniqueConstraint("product_id", "category_id", name="uix_product_category"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False, index=True)
    position = Column(Integer, default=0, nullable=False)

    # Relationships
    product = relationship("Product", back_populates="category_links")
    category = relationship("Category", back_populates="product_links")


class ProductRelation(Base):
    """Links a configurable (composite) product to one of its variants."""

    __tablename__ = "product_relations"
    __table_args__ = (
        UniqueConstraint("parent_id", "child_id", name="uix_product_relation"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    parent_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    child_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    parent = relationship("Product", foreign_keys=[parent_id])
    child = relationship("Product", foreign_keys=[child_id])
