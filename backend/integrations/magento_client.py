"""Magento 2 REST API client.

Thin wrapper over the ``/rest/V1`` catalog endpoints the sync engine needs.
Each public method issues a single bearer-authenticated request and maps the
JSON payload to the normalized records in :mod:`integrations.catalog_protocol`.
Pacing is cooperative: callers invoke :meth:`MagentoClient.throttle` between
requests, the client never sleeps on its own.
"""

import logging
import time
from datetime import datetime
from decimal import Decimal
from urllib.parse import quote

import httpx

from config import settings
from integrations.catalog_protocol import (
    ProductPage,
    SourceAttribute,
    SourceAttributeOption,
    SourceCategory,
    SourceCategoryLink,
    SourceCustomOption,
    SourceCustomOptionValue,
    SourceMediaEntry,
    SourceProduct,
    SourceStockItem,
)
from integrations.exceptions import (
    UpstreamAPIError,
    UpstreamAuthError,
    UpstreamConnectionError,
    UpstreamDataError,
    UpstreamNotFound,
    UpstreamPermissionDenied,
    UpstreamTimeout,
)
from integrations.parsing_utils import (
    coerce_bool,
    format_upstream_datetime,
    parse_decimal,
    parse_int,
    parse_iso_datetime,
)

logger = logging.getLogger(__name__)

# The attribute list is small; one oversized page fetches all of it.
_ATTRIBUTE_PAGE_SIZE = 1000

_BACKORDERS = {0: "no", 1: "notify", 2: "yes"}

_ERROR_BODY_LIMIT = 200


def _custom_attribute_map(raw: list | None) -> dict:
    """Turn ``[{"attribute_code": c, "value": v}, ...]`` into ``{c: v}``."""
    result = {}
    for entry in raw or []:
        if isinstance(entry, dict) and entry.get("attribute_code"):
            result[entry["attribute_code"]] = entry.get("value")
    return result


def _map_category(data: dict) -> SourceCategory:
    attributes = _custom_attribute_map(data.get("custom_attributes"))
    return SourceCategory(
        id=int(data["id"]),
        parent_id=parse_int(data.get("parent_id")),
        name=data.get("name") or "",
        is_active=coerce_bool(data.get("is_active"), default=True),
        position=parse_int(data.get("position"), default=0),
        level=parse_int(data.get("level"), default=0),
        path=data.get("path"),
        url_key=attributes.get("url_key") or None,
        description=attributes.get("description") or None,
        children=[_map_category(child) for child in data.get("children_data") or []],
    )


def _map_attribute(data: dict) -> SourceAttribute:
    options = []
    for raw_option in data.get("options") or []:
        option_id = parse_int(raw_option.get("value"))
        # Select attributes carry a blank placeholder option with no value
        if option_id is None:
            continue
        options.append(
            SourceAttributeOption(
                option_id=option_id,
                label=str(raw_option.get("label") or ""),
                value=str(raw_option.get("value")),
            )
        )

    code = data["attribute_code"]
    return SourceAttribute(
        attribute_id=int(data["attribute_id"]),
        attribute_code=code,
        label=data.get("default_frontend_label") or code,
        input_type=data.get("frontend_input") or "text",
        is_required=coerce_bool(data.get("is_required"), default=False),
        is_user_defined=coerce_bool(data.get("is_user_defined"), default=False),
        position=parse_int(data.get("position"), default=0),
        options=options,
    )


def _map_custom_option(data: dict) -> SourceCustomOption:
    return SourceCustomOption(
        option_id=int(data["option_id"]),
        title=data.get("title") or "",
        type=data.get("type") or "field",
        is_require=coerce_bool(data.get("is_require"), default=False),
        sort_order=parse_int(data.get("sort_order"), default=0),
        price=parse_decimal(data.get("price")) or None,
        price_type=data.get("price_type") or "fixed",
        sku=data.get("sku") or None,
        values=[
            SourceCustomOptionValue(
                option_type_id=int(value["option_type_id"]),
                title=value.get("title") or "",
                price=parse_decimal(value.get("price")) or None,
                price_type=value.get("price_type") or "fixed",
                sku=value.get("sku") or None,
                sort_order=parse_int(value.get("sort_order"), default=0),
            )
            for value in data.get("values") or []
        ],
    )


def _map_product(data: dict) -> SourceProduct:
    extension = data.get("extension_attributes") or {}

    category_links = []
    for link in extension.get("category_links") or []:
        category_id = parse_int(link.get("category_id"))
        if category_id is None:
            continue
        category_links.append(
            SourceCategoryLink(
                category_id=category_id,
                position=parse_int(link.get("position"), default=0),
            )
        )

    media_entries = [
        SourceMediaEntry(
            id=int(media["id"]),
            file=media.get("file") or "",
            label=media.get("label") or None,
            position=parse_int(media.get("position"), default=0),
            disabled=coerce_bool(media.get("disabled"), default=False),
            types=list(media.get("types") or []),
        )
        for media in data.get("media_gallery_entries") or []
    ]

    child_ids = [
        child_id
        for child_id in (parse_int(c) for c in extension.get("configurable_product_links") or [])
        if child_id is not None
    ]

    return SourceProduct(
        id=int(data["id"]),
        sku=str(data["sku"]),
        name=data.get("name") or "",
        type_id=data.get("type_id") or "simple",
        price=parse_decimal(data.get("price")),
        status=parse_int(data.get("status"), default=1),
        visibility=parse_int(data.get("visibility"), default=4),
        weight=parse_decimal(data.get("weight")),
        updated_at=parse_iso_datetime(data.get("updated_at")),
        custom_attributes=_custom_attribute_map(data.get("custom_attributes")),
        category_links=category_links,
        child_ids=child_ids,
        media_entries=media_entries,
        options=[_map_custom_option(o) for o in data.get("options") or []],
    )


def _map_stock_item(data: dict) -> SourceStockItem:
    backorders_raw = parse_int(data.get("backorders"))
    return SourceStockItem(
        item_id=parse_int(data.get("item_id")),
        product_id=parse_int(data.get("product_id")),
        qty=parse_decimal(data.get("qty")) or Decimal("0"),
        is_in_stock=coerce_bool(data.get("is_in_stock"), default=False),
        manage_stock=coerce_bool(data.get("manage_stock"), default=True),
        min_qty=parse_decimal(data.get("min_qty")) or Decimal("0"),
        notify_stock_qty=parse_decimal(data.get("notify_stock_qty")) or None,
        backorders=_BACKORDERS.get(backorders_raw, "no"),
    )


class MagentoClient:
    """Wrapper around the Magento 2 REST catalog API.

    Implements the CatalogSourceClient protocol consumed by SyncService.
    """

    def __init__(
        self,
        base_url: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
    ):
        """Initialize the client with credentials.

        Args:
            base_url: Store origin, e.g. ``https://shop.example.com`` (defaults to settings)
            access_token: Integration bearer token (defaults to settings)
            timeout: Per-request timeout in seconds (defaults to settings)
        """
        self._base_url = (base_url if base_url is not None else settings.MAGENTO_BASE_URL).rstrip("/")
        self._access_token = (
            access_token if access_token is not None else settings.MAGENTO_ACCESS_TOKEN
        )
        self._timeout = timeout if timeout is not None else settings.MAGENTO_REQUEST_TIMEOUT
        self._client: httpx.Client | None = None
        if self.is_configured():
            self._client = httpx.Client(
                base_url=f"{self._base_url}/rest/V1",
                headers={
                    "Authorization": f"Bearer {self._access_token}",
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            self._client.close()

    def is_configured(self) -> bool:
        """Check if base URL and access token are both present."""
        return bool(self._base_url) and bool(self._access_token)

    def _check_credentials(self) -> httpx.Client:
        """Raise an error if credentials are not configured."""
        if self._client is None:
            raise UpstreamAuthError(
                "Magento credentials not configured. Set MAGENTO_BASE_URL and "
                "MAGENTO_ACCESS_TOKEN, or run 'python -m scripts.setup_magento'."
            )
        return self._client

    def _send(self, method: str, path: str, params: dict | None = None) -> httpx.Response:
        """Issue one request, translating transport and status failures."""
        client = self._check_credentials()
        try:
            response = client.request(method, path, params=params)
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout(
                f"Magento request timed out after {self._timeout}s: {method} {path}"
            ) from exc
        except httpx.TransportError as exc:
            raise UpstreamConnectionError(
                f"Magento connection failed: {method} {path}: {exc}"
            ) from exc

        status = response.status_code
        if 200 <= status < 300:
            return response

        body = (response.text or "")[:_ERROR_BODY_LIMIT]
        message = f"Magento API error (HTTP {status}) for {method} {path}: {body}"
        if status == 401:
            raise UpstreamAuthError(message, status_code=status)
        if status == 403:
            raise UpstreamPermissionDenied(message, status_code=status)
        if status == 404:
            raise UpstreamNotFound(message, status_code=status)
        raise UpstreamAPIError(message, status_code=status)

    def _request(self, method: str, path: str, params: dict | None = None):
        """Issue one request and decode its JSON body."""
        response = self._send(method, path, params)
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamDataError(
                f"Magento returned malformed JSON for {method} {path}"
            ) from exc

    def get_category_tree(self, root_id: int) -> SourceCategory:
        """Fetch the category tree rooted at ``root_id``."""
        data = self._request("GET", f"/categories/{root_id}")
        try:
            return _map_category(data)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise UpstreamDataError(f"Unexpected category tree shape: {exc}") from exc

    def search_products(
        self,
        page_size: int,
        page_number: int,
        updated_after: datetime | None = None,
    ) -> ProductPage:
        """Fetch one page of products, optionally only those updated after a timestamp.

        Args:
            page_size: Items per page
            page_number: 1-based page number
            updated_after: When set, rendered as an ``updated_at > value`` filter

        Returns:
            ProductPage of summary records
        """
        params: dict[str, str | int] = {
            "searchCriteria[pageSize]": page_size,
            "searchCriteria[currentPage]": page_number,
        }
        if updated_after is not None:
            prefix = "searchCriteria[filter_groups][0][filters][0]"
            params[f"{prefix}[field]"] = "updated_at"
            params[f"{prefix}[value]"] = format_upstream_datetime(updated_after)
            params[f"{prefix}[condition_type]"] = "gt"

        data = self._request("GET", "/products", params)
        try:
            items = [_map_product(item) for item in data.get("items") or []]
            total_count = parse_int(data.get("total_count"), default=len(items))
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise UpstreamDataError(f"Unexpected product search shape: {exc}") from exc

        logger.debug(
            "Magento: product page %d fetched (%d items, %d total)",
            page_number, len(items), total_count,
        )
        return ProductPage(items=items, total_count=total_count)

    def get_product(self, sku: str) -> SourceProduct:
        """Fetch the full product record (media, options, links) by SKU."""
        data = self._request("GET", f"/products/{quote(sku, safe='')}")
        try:
            return _map_product(data)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise UpstreamDataError(f"Unexpected product shape for {sku}: {exc}") from exc

    def get_attributes(self) -> list[SourceAttribute]:
        """Fetch all product attribute definitions with their options.

        Integration tokens without the attribute ACL get a 403 here, surfaced
        as UpstreamPermissionDenied.
        """
        data = self._request(
            "GET",
            "/products/attributes",
            {"searchCriteria[pageSize]": _ATTRIBUTE_PAGE_SIZE},
        )
        try:
            return [_map_attribute(item) for item in data.get("items") or []]
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise UpstreamDataError(f"Unexpected attribute list shape: {exc}") from exc

    def get_stock_item(self, product_id: int) -> SourceStockItem:
        """Fetch the stock item for an upstream product id."""
        data = self._request("GET", f"/stockItems/{product_id}")
        try:
            return _map_stock_item(data)
        except (AttributeError, TypeError) as exc:
            raise UpstreamDataError(f"Unexpected stock item shape for {product_id}: {exc}") from exc

    def get_stock_status(self, sku: str) -> SourceStockItem | None:
        """Fetch the stock status for a SKU.

        Used when no upstream product id is known. Returns None when the SKU
        has no stock status upstream.
        """
        try:
            data = self._request("GET", f"/stockStatuses/{quote(sku, safe='')}")
        except UpstreamNotFound:
            return None
        if not data:
            return None

        try:
            stock_data = dict(data.get("stock_item") or data)
            if "is_in_stock" not in stock_data and "stock_status" in data:
                stock_data["is_in_stock"] = data["stock_status"]
            return _map_stock_item(stock_data)
        except (AttributeError, TypeError, ValueError) as exc:
            raise UpstreamDataError(f"Unexpected stock status shape for {sku}: {exc}") from exc

    def image_url(self, file_path: str) -> str:
        """Public media URL for a gallery entry's relative file path."""
        return f"{self._base_url}/media/catalog/product{file_path}"

    def download_image(self, url: str) -> bytes:
        """Download raw image bytes from an absolute media URL."""
        return self._send("GET", url).content

    def throttle(self, duration_ms: int) -> None:
        """Cooperative delay between consecutive upstream calls."""
        if duration_ms > 0:
            time.sleep(duration_ms / 1000)
