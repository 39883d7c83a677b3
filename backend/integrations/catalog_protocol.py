"""Normalized upstream catalog records.

The Magento client maps every JSON payload to these fixed-shape types, so
the reconciliation services never branch on raw JSON (flags that are
sometimes booleans and sometimes 0/1, numbers sent as strings, absent keys).
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol


@dataclass
class SourceCategory:
    """A node of the upstream category tree, with its children."""

    id: int
    name: str
    parent_id: int | None = None
    is_active: bool = True
    position: int = 0
    level: int = 0
    path: str | None = None
    url_key: str | None = None
    description: str | None = None
    children: list["SourceCategory"] = field(default_factory=list)


@dataclass
class SourceAttributeOption:
    """One selectable value of a select/multiselect attribute."""

    option_id: int  # Upstream option id (the numeric "value")
    label: str
    value: str  # Raw value as sent upstream


@dataclass
class SourceAttribute:
    """An upstream product attribute definition."""

    attribute_id: int
    attribute_code: str
    label: str
    input_type: str = "text"
    is_required: bool = False
    is_user_defined: bool = False
    position: int = 0
    options: list[SourceAttributeOption] = field(default_factory=list)


@dataclass
class SourceCategoryLink:
    """A product's membership in an upstream category."""

    category_id: int
    position: int = 0


@dataclass
class SourceMediaEntry:
    """A media gallery entry of a product."""

    id: int
    file: str  # Path relative to /media/catalog/product, e.g. "/a/b/ab12.jpg"
    label: str | None = None
    position: int = 0
    disabled: bool = False
    types: list[str] = field(default_factory=list)

    @property
    def is_main(self) -> bool:
        return "image" in self.types

    @property
    def is_thumbnail(self) -> bool:
        return "thumbnail" in self.types


@dataclass
class SourceCustomOptionValue:
    """One choice of a product custom option (e.g. a paid add-on)."""

    option_type_id: int
    title: str
    price: Decimal | None = None
    price_type: str = "fixed"
    sku: str | None = None
    sort_order: int = 0


@dataclass
class SourceCustomOption:
    """A product-scoped custom option definition."""

    option_id: int
    title: str
    type: str
    is_require: bool = False
    sort_order: int = 0
    price: Decimal | None = None
    price_type: str = "fixed"
    sku: str | None = None
    values: list[SourceCustomOptionValue] = field(default_factory=list)


@dataclass
class SourceProduct:
    """A product record. Search results carry only the summary fields;
    ``MagentoClient.get_product`` fills in media, options and links.
    """

    id: int
    sku: str
    name: str
    type_id: str = "simple"
    price: Decimal | None = None
    status: int = 1
    visibility: int = 4
    weight: Decimal | None = None
    updated_at: datetime | None = None
    custom_attributes: dict[str, Any] = field(default_factory=dict)
    category_links: list[SourceCategoryLink] = field(default_factory=list)
    child_ids: list[int] = field(default_factory=list)  # configurable_product_links
    media_entries: list[SourceMediaEntry] = field(default_factory=list)
    options: list[SourceCustomOption] = field(default_factory=list)

    def attribute(self, code: str) -> Any:
        """Return a custom attribute value, or None when absent or empty."""
        value = self.custom_attributes.get(code)
        if value is None or value == "" or value == []:
            return None
        return value


@dataclass
class ProductPage:
    """One page of a product search."""

    items: list[SourceProduct]
    total_count: int


@dataclass
class SourceStockItem:
    """A stock record with flags already coerced to booleans.

    ``manage_stock`` defaults to True when upstream omits it.
    ``backorders`` is one of ``"no"``, ``"notify"``, ``"yes"``.
    """

    product_id: int | None
    qty: Decimal = Decimal("0")
    is_in_stock: bool = False
    manage_stock: bool = True
    min_qty: Decimal = Decimal("0")
    notify_stock_qty: Decimal | None = None
    backorders: str = "no"
    item_id: int | None = None


class CatalogSourceClient(Protocol):
    """Interface the sync engine consumes from the upstream client."""

    def get_category_tree(self, root_id: int) -> SourceCategory: ...

    def search_products(
        self,
        page_size: int,
        page_number: int,
        updated_after: datetime | None = None,
    ) -> ProductPage: ...

    def get_product(self, sku: str) -> SourceProduct: ...

    def get_attributes(self) -> list[SourceAttribute]: ...

    def get_stock_item(self, product_id: int) -> SourceStockItem: ...

    def get_stock_status(self, sku: str) -> SourceStockItem | None: ...

    def image_url(self, file_path: str) -> str: ...

    def download_image(self, url: str) -> bytes: ...

    def throttle(self, duration_ms: int) -> None: ...
