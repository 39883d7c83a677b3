"""Custom option models - product-scoped option definitions and their choices."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class CustomOption(Base):
    """A product custom option (e.g. paid installation add-on)."""

    __tablename__ = "custom_options"
    __table_args__ = (
        UniqueConstraint("product_id", "magento_option_id", name="uix_product_custom_option"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    magento_option_id = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    type = Column(String, nullable=False)  # field | drop_down | checkbox | ...
    is_require = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    price = Column(Numeric(12, 4), nullable=True)
    price_type = Column(String, nullable=False, default="fixed")
    sku = Column(String, nullable=True)

    # Relationships
    product = relationship("Product", back_populates="custom_options")
    values = relationship("CustomOptionValue", back_populates="option")


class CustomOptionValue(Base):
    """One choice of a custom option."""

    __tablename__ = "custom_option_values"
    __table_args__ = (
        UniqueConstraint("option_id", "magento_value_id", name="uix_custom_option_value"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    option_id = Column(String(36), ForeignKey("custom_options.id"), nullable=False, index=True)
    magento_value_id = Column(Integer, nullable=False)
    title = Column(String, nullable=False)
    price = Column(Numeric(12, 4), nullable=True)
    price_type = Column(String, nullable=False, default="fixed")
    sku = Column(String, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)

    # Relationships
    option = relationship("CustomOption", back_populates="values")
