"""Sync service - runs full and incremental catalog syncs against the upstream store."""

import logging
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from integrations.catalog_protocol import CatalogSourceClient, SourceCategory, SourceProduct
from integrations.exceptions import UpstreamError
from models import Product
from services.attribute_service import AttributeService
from services.category_service import CategoryService
from services.custom_option_service import CustomOptionService
from services.exceptions import (
    PersistenceError,
    SyncAlreadyRunningError,
    SyncCancelledError,
)
from services.image_service import ImageService
from services.inventory_service import InventoryService
from services.product_relation_service import ProductRelationService
from services.product_service import ProductService
from services.sync_log_service import SyncLogService
from services.sync_types import RunStats, SyncPhaseError, SyncResult
from services.watermark_service import WatermarkService

logger = logging.getLogger(__name__)

FULL = "full"
INCREMENTAL = "incremental"

CANCELLED_MESSAGE = "Sync cancelled"

# Returned by _reconcile_item when the item failed; None is a valid result
_FAILED = object()


@dataclass(frozen=True)
class SyncOptions:
    """Tunables of a sync run, normally taken from settings."""

    root_category_id: int = 2
    page_size: int = 50
    rate_limit_ms: int = 300
    inventory_rate_limit_ms: int = 100
    incremental_inventory_batch: int = 500
    incremental_images: bool = True
    service_type_ids: frozenset[str] = field(default_factory=lambda: frozenset({"virtual"}))
    composite_type_ids: frozenset[str] = field(default_factory=lambda: frozenset({"configurable"}))
    images_dir: str = "./media/products"
    images_url_prefix: str = "/media/products"

    @classmethod
    def from_settings(cls) -> "SyncOptions":
        return cls(
            root_category_id=settings.MAGENTO_ROOT_CATEGORY_ID,
            page_size=settings.SYNC_PAGE_SIZE,
            rate_limit_ms=settings.SYNC_RATE_LIMIT_MS,
            inventory_rate_limit_ms=settings.SYNC_INVENTORY_RATE_LIMIT_MS,
            incremental_inventory_batch=settings.SYNC_INCREMENTAL_INVENTORY_BATCH,
            incremental_images=settings.SYNC_INCREMENTAL_IMAGES,
            service_type_ids=frozenset(settings.SYNC_SERVICE_TYPE_IDS),
            composite_type_ids=frozenset(settings.SYNC_COMPOSITE_TYPE_IDS),
            images_dir=settings.IMAGES_DIR,
            images_url_prefix=settings.IMAGES_URL_PREFIX,
        )


class SyncService:
    """Service for syncing the local catalog from the upstream store.

    A run opens a SyncLog, executes its phases strictly in order and
    finalizes the log as ``completed`` or ``failed``. Each item is reconciled
    inside a savepoint and committed on success, so a failed item leaves no
    partial rows and a later fatal error keeps everything already written.
    """

    # Class-level lock shared across all instances to prevent concurrent syncs.
    # This works for single-process deployments only.
    _sync_lock = threading.Lock()
    _cancel_event = threading.Event()

    def __init__(
        self,
        client: Optional[CatalogSourceClient] = None,
        options: Optional[SyncOptions] = None,
    ):
        """Initialize with optional client and options for dependency injection.

        Args:
            client: Upstream catalog client. If None, a MagentoClient built
                    from settings is created on first use.
            options: Run tunables. If None, taken from settings.
        """
        self._client = client
        self.options = options or SyncOptions.from_settings()
        self._details: dict[str, SourceProduct] = {}
        # SKUs that failed in this run's products phase; detail phases skip them
        self._failed_skus: set[str] = set()

    @property
    def client(self) -> CatalogSourceClient:
        if self._client is None:
            from integrations.magento_client import MagentoClient

            self._client = MagentoClient()
        return self._client

    @classmethod
    def is_sync_in_progress(cls) -> bool:
        """Check if a sync run currently holds the lock."""
        acquired = cls._sync_lock.acquire(blocking=False)
        if acquired:
            cls._sync_lock.release()
            return False
        return True

    @classmethod
    def request_cancel(cls) -> bool:
        """Ask the active run to stop before its next item.

        Returns:
            True if a run was in progress to receive the request
        """
        if not cls.is_sync_in_progress():
            return False
        logger.info("Sync cancellation requested")
        cls._cancel_event.set()
        return True

    def run_full_sync(self, db: Session) -> SyncResult:
        """Walk every upstream entity kind in dependency order."""
        self._reset_run_state()
        phases = [
            ("categories", self._categories_phase),
            ("attributes", self._attributes_phase),
            ("products", self._products_phase),
            ("relations", self._relations_phase),
            ("custom_options", self._custom_options_phase),
            ("images", self._images_phase),
            ("inventory", self._inventory_phase),
        ]
        try:
            return self._run(db, FULL, phases)
        finally:
            self._reset_run_state()

    def run_incremental_sync(self, db: Session) -> SyncResult:
        """Sync products changed since the watermark, then a batch of inventory."""
        phases = [
            ("products", self._incremental_products_phase),
            ("inventory", self._incremental_inventory_phase),
        ]
        self._reset_run_state()
        try:
            return self._run(db, INCREMENTAL, phases)
        finally:
            self._reset_run_state()

    def _reset_run_state(self) -> None:
        self._details = {}
        self._failed_skus = set()

    def _run(
        self,
        db: Session,
        sync_type: str,
        phases: list[tuple[str, Callable[[Session], Iterator[RunStats]]]],
    ) -> SyncResult:
        """Execute phases under the sync lock and finalize the SyncLog.

        Raises:
            SyncAlreadyRunningError: If another run holds the lock
        """
        acquired = self._sync_lock.acquire(blocking=False)
        if not acquired:
            logger.warning("Sync blocked: another sync is already in progress")
            raise SyncAlreadyRunningError("Sync already in progress")

        logger.info("Sync lock acquired")
        self._cancel_event.clear()
        try:
            log = SyncLogService.start(db, sync_type)
            stats = RunStats()
            try:
                for name, phase in phases:
                    stats = stats + self._run_phase(name, phase(db))
                SyncLogService.complete(db, log, stats)
                logger.info("Sync %s finished: %s", sync_type, stats.to_dict())
            except SyncPhaseError as e:
                db.rollback()
                stats = stats + e.stats
                if isinstance(e.cause, SyncCancelledError):
                    message = CANCELLED_MESSAGE
                else:
                    logger.error("Sync %s aborted: %s", sync_type, e)
                    message = str(e)
                SyncLogService.fail(db, log, stats, message)
            except Exception as e:
                # Safety catch so the log never stays "running"
                logger.error("Sync %s failed: %s", sync_type, e, exc_info=True)
                db.rollback()
                SyncLogService.fail(db, log, stats, str(e))

            return self._result(log, stats)
        finally:
            self._cancel_event.clear()
            logger.info("Sync lock released")
            self._sync_lock.release()

    @staticmethod
    def _result(log, stats: RunStats) -> SyncResult:
        return SyncResult(
            sync_log_id=log.id,
            sync_type=log.sync_type,
            status=log.status,
            stats=stats,
            error_message=log.error_message,
        )

    def _run_phase(self, name: str, steps: Iterator[RunStats]) -> RunStats:
        """Drain a phase, summing the stats it yields.

        Anything escaping the phase aborts the run; the partial stats travel
        with the raised SyncPhaseError.
        """
        logger.info("Phase %s started", name)
        stats = RunStats()
        try:
            for delta in steps:
                stats = stats + delta
        except Exception as e:
            if not isinstance(e, (SyncCancelledError, UpstreamError, SQLAlchemyError)):
                logger.error("Unexpected error in phase %s: %s", name, e, exc_info=True)
            raise SyncPhaseError(name, e, stats) from e
        logger.info("Phase %s finished: %s", name, stats.to_dict())
        return stats

    def _check_cancelled(self) -> None:
        if self._cancel_event.is_set():
            raise SyncCancelledError(CANCELLED_MESSAGE)

    def _reconcile_item(self, db: Session, label: str, fn: Callable[[], Any]) -> Any:
        """Run one item inside a savepoint and commit it.

        A failure rolls the item back, is logged with ``label`` and returns
        ``_FAILED``; it never aborts the phase.
        """
        self._check_cancelled()
        try:
            with db.begin_nested():
                result = fn()
            db.commit()
            return result
        except (UpstreamError, PersistenceError, SQLAlchemyError, ValueError) as e:
            db.rollback()
            logger.warning("Failed to sync %s: %s", label, e)
        except Exception as e:
            # Safety net: an unexpected error still only fails this item
            db.rollback()
            logger.error("Unexpected error syncing %s: %s", label, e, exc_info=True)
        return _FAILED

    def _throttle(self, duration_ms: Optional[int] = None) -> None:
        self.client.throttle(self.options.rate_limit_ms if duration_ms is None else duration_ms)

    def _fetch_detail(self, sku: str) -> SourceProduct:
        """Full product record, from this run's cache or fetched on demand."""
        detail = self._details.get(sku)
        if detail is None:
            detail = self.client.get_product(sku)
            self._throttle()
            self._details[sku] = detail
        return detail

    def _image_service(self) -> ImageService:
        return ImageService(
            images_dir=self.options.images_dir,
            url_prefix=self.options.images_url_prefix,
            download=self.client.download_image,
            image_url=self.client.image_url,
            pace=self._throttle,
        )

    # ----- full sync phases -------------------------------------------------

    def _categories_phase(self, db: Session) -> Iterator[RunStats]:
        """Import the category tree top-down.

        A node that fails is counted and its subtree skipped, since children
        cannot reference a missing parent.
        """
        tree = self.client.get_category_tree(self.options.root_category_id)
        self._throttle()

        pending: list[tuple[SourceCategory, Optional[str], int]] = [(tree, None, 0)]
        while pending:
            node, parent_id, level = pending.pop()
            result = self._reconcile_item(
                db,
                f"category {node.id}",
                lambda: CategoryService.reconcile(db, node, parent_id, level),
            )
            if result is _FAILED:
                if node.children:
                    logger.warning(
                        "Skipping %d child categories of %s", len(node.children), node.id
                    )
                yield RunStats(errors=1)
                continue
            yield RunStats(categories=1)
            # Reversed so children are reconciled in upstream order
            for child in reversed(node.children):
                pending.append((child, result.local_id, level + 1))

    def _attributes_phase(self, db: Session) -> Iterator[RunStats]:
        """Import attribute definitions. Upstream failures skip the phase."""
        try:
            attributes = self.client.get_attributes()
        except UpstreamError as e:
            logger.warning("Skipping attributes phase: %s", e)
            return
        self._throttle()

        for attribute in attributes:
            result = self._reconcile_item(
                db,
                f"attribute {attribute.attribute_code}",
                lambda: AttributeService.reconcile(db, attribute),
            )
            if result is _FAILED:
                yield RunStats(errors=1)
            elif result is not None:
                yield RunStats(attributes=1)

    def _iter_product_pages(self, updated_after=None) -> Iterator[SourceProduct]:
        """Yield product summaries page by page.

        Stops on a short page or once ``total_count`` items have been paged.
        """
        page_size = self.options.page_size
        page_number = 1
        while True:
            self._check_cancelled()
            page = self.client.search_products(page_size, page_number, updated_after)
            self._throttle()
            logger.info(
                "Fetched product page %d: %d items (total %d)",
                page_number, len(page.items), page.total_count,
            )
            yield from page.items
            # The store clamps out-of-range pages to the last one, so a full
            # page alone does not prove there is more
            if len(page.items) < page_size or page_number * page_size >= page.total_count:
                return
            page_number += 1

    def _sync_product(self, db: Session, summary: SourceProduct, with_images: bool) -> int:
        """Fetch a product's detail and reconcile it. Returns images cached."""
        detail = self.client.get_product(summary.sku)
        self._throttle()
        self._details[summary.sku] = detail
        result = ProductService.reconcile(db, detail)
        if not with_images:
            return 0
        product = db.get(Product, result.local_id)
        return self._image_service().reconcile(db, product, detail.media_entries)

    def _products_phase(self, db: Session) -> Iterator[RunStats]:
        for summary in self._iter_product_pages():
            result = self._reconcile_item(
                db,
                f"product {summary.sku}",
                lambda: self._sync_product(db, summary, with_images=False),
            )
            if result is _FAILED:
                self._failed_skus.add(summary.sku)
                yield RunStats(errors=1)
            else:
                yield RunStats(products=1)

    def _local_products(self, db: Session, type_ids: Optional[frozenset[str]] = None) -> list[Product]:
        query = db.query(Product)
        if type_ids is not None:
            query = query.filter(Product.type_id.in_(type_ids))
        return query.order_by(Product.sku).all()

    def _products_with_detail(
        self, db: Session, type_ids: Optional[frozenset[str]] = None
    ) -> list[Product]:
        """Local products whose detail fetch did not already fail in this run."""
        return [p for p in self._local_products(db, type_ids) if p.sku not in self._failed_skus]

    def _relations_phase(self, db: Session) -> Iterator[RunStats]:
        for product in self._products_with_detail(db, self.options.composite_type_ids):
            sku = product.sku
            result = self._reconcile_item(
                db,
                f"relations of {sku}",
                lambda: ProductRelationService.reconcile(db, product, self._fetch_detail(sku)),
            )
            yield RunStats(errors=1) if result is _FAILED else RunStats(relations=result)

    def _sync_custom_options(self, db: Session, product: Product) -> int:
        detail = self._fetch_detail(product.sku)
        for option in detail.options:
            CustomOptionService.reconcile(db, product.id, option)
        return len(detail.options)

    def _custom_options_phase(self, db: Session) -> Iterator[RunStats]:
        for product in self._products_with_detail(db):
            result = self._reconcile_item(
                db,
                f"custom options of {product.sku}",
                lambda: self._sync_custom_options(db, product),
            )
            yield RunStats(errors=1) if result is _FAILED else RunStats(custom_options=result)

    def _images_phase(self, db: Session) -> Iterator[RunStats]:
        images = self._image_service()
        for product in self._products_with_detail(db):
            result = self._reconcile_item(
                db,
                f"images of {product.sku}",
                lambda: images.reconcile(
                    db, product, self._fetch_detail(product.sku).media_entries
                ),
            )
            yield RunStats(errors=1) if result is _FAILED else RunStats(images=result)

    def _sync_inventory(self, db: Session, product: Product, rate_limit_ms: int) -> bool:
        """Reconcile one product's stock. Returns False when upstream has none."""
        if product.type_id in self.options.service_type_ids:
            InventoryService.reconcile(db, product, None, is_service=True)
            return True

        if product.magento_id is not None:
            stock = self.client.get_stock_item(product.magento_id)
        else:
            stock = self.client.get_stock_status(product.sku)
        self._throttle(rate_limit_ms)
        if stock is None:
            logger.debug("No stock record for %s, skipping", product.sku)
            return False
        InventoryService.reconcile(db, product, stock)
        return True

    def _inventory_phase(self, db: Session) -> Iterator[RunStats]:
        for product in self._local_products(db):
            result = self._reconcile_item(
                db,
                f"inventory of {product.sku}",
                lambda: self._sync_inventory(db, product, self.options.rate_limit_ms),
            )
            if result is _FAILED:
                yield RunStats(errors=1)
            elif result:
                yield RunStats(inventory=1)

    # ----- incremental sync phases ------------------------------------------

    def _incremental_products_phase(self, db: Session) -> Iterator[RunStats]:
        watermark = WatermarkService.compute(db)
        logger.info("Incremental sync watermark: %s", watermark.isoformat())
        with_images = self.options.incremental_images
        for summary in self._iter_product_pages(updated_after=watermark):
            result = self._reconcile_item(
                db,
                f"product {summary.sku}",
                lambda: self._sync_product(db, summary, with_images=with_images),
            )
            if result is _FAILED:
                yield RunStats(errors=1)
            else:
                yield RunStats(products=1, images=result)

    def _incremental_inventory_phase(self, db: Session) -> Iterator[RunStats]:
        """Refresh stock for a bounded batch of products with a known upstream id.

        Most recently updated products go first.
        """
        products = (
            db.query(Product)
            .filter(Product.magento_id.isnot(None))
            .order_by(Product.updated_at.desc(), Product.sku)
            .limit(self.options.incremental_inventory_batch)
            .all()
        )
        for product in products:
            result = self._reconcile_item(
                db,
                f"inventory of {product.sku}",
                lambda: self._sync_inventory(
                    db, product, self.options.inventory_rate_limit_ms
                ),
            )
            if result is _FAILED:
                yield RunStats(errors=1)
            elif result:
                yield RunStats(inventory=1)
