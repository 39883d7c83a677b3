"""SQLAlchemy ORM models."""

from .attribute import Attribute, AttributeOption, AttributeValue
from .category import Category
from .custom_option import CustomOption, CustomOptionValue
from .inventory import InventoryRecord
from .product import Product, ProductCategory, ProductRelation
from .product_image import ProductImage
from .sync_log import SyncLog
from .utils import generate_uuid

__all__ = ["Attribute", "AttributeOption", "AttributeValue", "Category", "CustomOption", "CustomOptionValue", "InventoryRecord", "Product", "ProductCategory", "ProductImage", "ProductRelation", "SyncLog", "generate_uuid"]
