"""Product reconciliation - product rows, category links and attribute values."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from integrations.catalog_protocol import SourceProduct
from integrations.parsing_utils import (
    parse_decimal,
    parse_iso_datetime,
    parse_supplier_skus,
    slugify,
)
from models import Category, Product, ProductCategory
from services.attribute_service import AttributeValueService
from services.exceptions import PersistenceConflict, translate_db_error
from services.sync_types import ReconcileResult

logger = logging.getLogger(__name__)

VISIBILITY_MAP: dict[int, str] = {
    1: "not_visible",
    2: "catalog",
    3: "search",
    4: "catalog_search",
}
DEFAULT_VISIBILITY = "catalog_search"


def map_status(status: int | None) -> str:
    """Upstream status 1 is enabled; anything else is disabled."""
    return "enabled" if status == 1 else "disabled"


def map_visibility(visibility: int | None) -> str:
    return VISIBILITY_MAP.get(visibility, DEFAULT_VISIBILITY)


class ProductService:
    """Upserts products keyed by SKU."""

    @staticmethod
    def resolve_slug(record: SourceProduct) -> str:
        """``url_key`` attribute, else slugified name, else slugified SKU."""
        url_key = record.attribute("url_key")
        if url_key:
            return str(url_key)
        return slugify(record.name) or slugify(record.sku) or f"product-{record.id}"

    @staticmethod
    def fallback_slug(record: SourceProduct, slug: str) -> str:
        return f"{slug}-{record.id}"

    @staticmethod
    def _field_values(record: SourceProduct) -> dict:
        stock_again = parse_iso_datetime(record.attribute("stock_again"))
        return {
            "magento_id": record.id,
            "type_id": record.type_id,
            "name": record.name,
            "description": record.attribute("description"),
            "short_description": record.attribute("short_description"),
            "price": record.price,
            "cost_price": parse_decimal(record.attribute("cost")),
            "special_price": parse_decimal(record.attribute("special_price")),
            "special_price_from": parse_iso_datetime(record.attribute("special_from_date")),
            "special_price_to": parse_iso_datetime(record.attribute("special_to_date")),
            "weight": record.weight,
            "status": map_status(record.status),
            "visibility": map_visibility(record.visibility),
            "meta_title": record.attribute("meta_title"),
            "meta_description": record.attribute("meta_description"),
            "meta_keywords": record.attribute("meta_keyword"),
            "shelf_location": record.attribute("locatie"),
            "bin_location": record.attribute("vaklocatie"),
            "supplier_skus": parse_supplier_skus(record.attribute("supplier_article_number")),
            "stock_again": stock_again.date() if stock_again else None,
        }

    @staticmethod
    def _write(db: Session, record: SourceProduct, slug: str) -> tuple[Product, bool]:
        """Upsert the product row with the given slug inside its own savepoint.

        Raises:
            PersistenceError: The write was rejected; the savepoint is rolled back.
        """
        try:
            with db.begin_nested():
                product = db.query(Product).filter_by(sku=record.sku).first()
                created = product is None
                if created:
                    product = Product(sku=record.sku)
                    db.add(product)
                product.slug = slug
                for name, value in ProductService._field_values(record).items():
                    setattr(product, name, value)
                db.flush()
        except SQLAlchemyError as e:
            raise translate_db_error(e) from e
        return product, created

    @staticmethod
    def reconcile(db: Session, record: SourceProduct) -> ReconcileResult:
        """Create or update a product, its category links and attribute values.

        ``record`` must be the full product detail: category links and custom
        attributes are only present there.

        When the preferred slug belongs to another product the write is
        retried once with ``{slug}-{magento_id}``. Any other conflict, or a
        conflict on the fallback slug, propagates.
        """
        slug = ProductService.resolve_slug(record)
        try:
            product, created = ProductService._write(db, record, slug)
        except PersistenceConflict as e:
            if not e.is_slug_conflict:
                raise
            fallback = ProductService.fallback_slug(record, slug)
            logger.info(
                "Slug %r taken, using %r for product %s", slug, fallback, record.sku
            )
            product, created = ProductService._write(db, record, fallback)

        ProductService._link_categories(db, product, record)
        for code, raw_value in record.custom_attributes.items():
            AttributeValueService.reconcile(db, product.id, code, raw_value)
        db.flush()

        return ReconcileResult(local_id=product.id, created=created)

    @staticmethod
    def _link_categories(db: Session, product: Product, record: SourceProduct) -> None:
        """Upsert product/category links. Unknown categories are skipped."""
        for link in record.category_links:
            category = db.query(Category).filter_by(magento_id=link.category_id).first()
            if category is None:
                logger.debug(
                    "Product %s links unknown category %s, skipping",
                    record.sku,
                    link.category_id,
                )
                continue
            existing = (
                db.query(ProductCategory)
                .filter_by(product_id=product.id, category_id=category.id)
                .first()
            )
            if existing:
                existing.position = link.position
            else:
                db.add(
                    ProductCategory(
                        product_id=product.id,
                        category_id=category.id,
                        position=link.position,
                    )
                )

    @staticmethod
    def find_by_sku(db: Session, sku: str) -> Product | None:
        return db.query(Product).filter_by(sku=sku).first()
