"""Product attribute models - definitions, options and per-product values."""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid


class Attribute(Base):
    """A product attribute definition, keyed by ``attribute_code``."""

    __tablename__ = "attributes"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    magento_attribute_id = Column(Integer, nullable=True)
    attribute_code = Column(String, nullable=False, unique=True)
    label = Column(String, nullable=False)
    input_type = Column(String, nullable=False, default="text")
    is_required = Column(Boolean, default=False, nullable=False)
    position = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    # Relationships
    options = relationship("AttributeOption", back_populates="attribute")


class AttributeOption(Base):
    """A selectable value of an attribute, keyed by the upstream option id."""

    __tablename__ = "attribute_options"
    __table_args__ = (
        UniqueConstraint("attribute_id", "magento_option_id", name="uix_attribute_option"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    attribute_id = Column(String(36), ForeignKey("attributes.id"), nullable=False, index=True)
    magento_option_id = Column(Integer, nullable=False)
    label = Column(String, nullable=False)
    value = Column(String, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)

    # Relationships
    attribute = relationship("Attribute", back_populates="options")


class AttributeValue(Base):
    """A product's value for one attribute.

    Holds either free text (``value``) or a reference to an AttributeOption
    (``option_id``), never both.
    """

    __tablename__ = "attribute_values"
    __table_args__ = (
        UniqueConstraint("product_id", "attribute_id", name="uix_product_attribute"),
        CheckConstraint(
            "value IS NULL OR option_id IS NULL",
            name="ck_attribute_value_text_or_option",
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False, index=True)
    attribute_id = Column(String(36), ForeignKey("attributes.id"), nullable=False, index=True)
    option_id = Column(String(36), ForeignKey("attribute_options.id"), nullable=True)
    value = Column(Text, nullable=True)

    # Relationships
    product = relationship("Product", back_populates="attribute_values")
    attribute = relationship("Attribute")
    option = relationship("AttributeOption")
