"""External API integrations.

This package contains:
- Catalog protocol: Records and client interface for the upstream catalog
- Magento client: Integration with the Magento REST API
"""

from integrations.catalog_protocol import (
    CatalogSourceClient,
    ProductPage,
    SourceCategory,
    SourceProduct,
)

__all__ = [
    "CatalogSourceClient",
    "ProductPage",
    "SourceCategory",
    "SourceProduct",
]
