"""Unit tests for SyncService."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from integrations.exceptions import UpstreamAPIError, UpstreamPermissionDenied
from models import (
    AttributeValue,
    Category,
    CustomOption,
    CustomOptionValue,
    InventoryRecord,
    Product,
    ProductCategory,
    ProductImage,
    ProductRelation,
    SyncLog,
)
from services.category_service import CategoryService
from services.exceptions import SyncAlreadyRunningError
from services.sync_service import SyncService
from services.watermark_service import WatermarkService
from tests.fixtures import create_sync_log
from tests.fixtures.mocks import MockMagentoClient, SAMPLE_PRODUCTS, make_product, make_products


class ClampingMagentoClient(MockMagentoClient):
    """Serves the last page again for any page past the end, as the store does."""

    def search_products(self, page_size, page_number, updated_after=None):
        total = len(self._products)
        last_page = max(1, -(-total // page_size))
        if page_number > last_page + 3:
            raise RuntimeError(f"still paginating at page {page_number}")
        return super().search_products(page_size, min(page_number, last_page), updated_after)


def _row_counts(db) -> dict[str, int]:
    return {
        model.__name__: db.query(model).count()
        for model in (
            Category,
            Product,
            ProductCategory,
            ProductRelation,
            AttributeValue,
            CustomOption,
            CustomOptionValue,
            ProductImage,
            InventoryRecord,
        )
    }


class TestFullSync:
    def test_happy_path_stats(self, db, sync_service):
        result = sync_service.run_full_sync(db)

        assert result.status == "completed"
        assert result.succeeded is True
        assert result.error_message is None
        stats = result.stats
        assert stats.categories == 4
        assert stats.attributes == 3
        assert stats.products == 4
        assert stats.relations == 2
        assert stats.custom_options == 1
        assert stats.images == 2
        assert stats.inventory == 4
        assert stats.errors == 0

    def test_sync_log_finalized(self, db, sync_service):
        result = sync_service.run_full_sync(db)

        log = db.get(SyncLog, result.sync_log_id)
        assert log.sync_type == "full"
        assert log.status == "completed"
        assert log.completed_at is not None
        assert log.processed_items == result.stats.processed
        assert log.failed_items == 0
        assert log.total_items == result.stats.processed
        assert log.stats_snapshot == result.stats.to_dict()

    def test_phase_order(self, db, sync_service, mock_client):
        sync_service.run_full_sync(db)

        methods = [call[0] for call in mock_client.calls]
        assert methods[0] == "get_category_tree"
        assert methods[1] == "get_attributes"
        assert methods[2] == "search_products"
        first_stock = methods.index("get_stock_item")
        assert "get_product" not in methods[first_stock:]

    def test_category_tree_persisted_top_down(self, db, sync_service):
        sync_service.run_full_sync(db)

        root = db.query(Category).filter_by(magento_id=2).one()
        tools = db.query(Category).filter_by(magento_id=10).one()
        drills = db.query(Category).filter_by(magento_id=11).one()
        assert root.parent_id is None
        assert tools.parent_id == root.id
        assert drills.parent_id == tools.id
        assert (root.level, tools.level, drills.level) == (0, 1, 2)
        assert tools.slug == "tools"
        assert drills.slug == "power-drills"

    def test_products_and_links(self, db, sync_service):
        sync_service.run_full_sync(db)

        drill = db.query(Product).filter_by(sku="DRILL-1").one()
        assert drill.slug == "cordless-drill"
        assert drill.shelf_location == "A-12"
        assert drill.supplier_skus == "BO-18V"
        assert [link.category.magento_id for link in drill.category_links] == [11]

        values = {v.attribute.attribute_code: v for v in drill.attribute_values}
        assert values["color"].option.label == "Red"
        assert values["color"].value is None
        assert values["brand"].option.label == "Bosch"
        assert values["locatie"].value == "A-12"
        assert "tax_class_id" not in values

    def test_slug_collision_resolved_with_fallback(self, db, sync_service):
        result = sync_service.run_full_sync(db)

        assert result.stats.errors == 0
        first = db.query(Product).filter_by(sku="DRILL-1").one()
        second = db.query(Product).filter_by(sku="DRILL-2").one()
        assert first.slug == "cordless-drill"
        assert second.slug == "cordless-drill-102"

    def test_relations_skip_missing_children(self, db, sync_service):
        sync_service.run_full_sync(db)

        kit = db.query(Product).filter_by(sku="DRILL-KIT").one()
        children = {
            r.child.sku for r in db.query(ProductRelation).filter_by(parent_id=kit.id).all()
        }
        assert children == {"DRILL-1", "DRILL-2"}

    def test_inventory_normalized(self, db, sync_service, mock_client):
        sync_service.run_full_sync(db)

        def stock(sku):
            product = db.query(Product).filter_by(sku=sku).one()
            return db.query(InventoryRecord).filter_by(product_id=product.id).one()

        assert stock("DRILL-1").is_in_stock is True  # qty 5 despite flag
        assert stock("DRILL-2").is_in_stock is False
        assert stock("DRILL-KIT").is_in_stock is True  # unmanaged
        service = stock("INSTALL")
        assert service.qty == 0
        assert service.is_in_stock is True
        assert service.manage_stock is False
        # Service products never hit the stock endpoint
        assert ("get_stock_item", 104) not in mock_client.calls

    def test_product_details_fetched_once_per_run(self, db, sync_service, mock_client):
        sync_service.run_full_sync(db)

        assert mock_client.call_count("get_product") == len(SAMPLE_PRODUCTS)

    def test_throttles_after_each_upstream_call(self, db, mock_client, sync_options):
        options = replace(sync_options, rate_limit_ms=300, inventory_rate_limit_ms=100)
        service = SyncService(client=mock_client, options=options)

        service.run_full_sync(db)

        # Image downloads are paced like every other upstream call
        assert mock_client.call_count("download_image") == 2
        assert len(mock_client.throttle_calls) == len(mock_client.calls)
        assert set(mock_client.throttle_calls) == {300}

    def test_each_image_download_is_followed_by_throttle(self, db, sync_options):
        timeline = []

        class TimelineClient(MockMagentoClient):
            def download_image(self, url):
                timeline.append("download")
                return super().download_image(url)

            def throttle(self, duration_ms):
                timeline.append("throttle")
                super().throttle(duration_ms)

        client = TimelineClient(failing_image_files={"/c/o/cordless-drill-side.jpg"})
        SyncService(client=client, options=sync_options).run_full_sync(db)

        downloads = [i for i, event in enumerate(timeline) if event == "download"]
        assert len(downloads) == 2
        for i in downloads:
            assert timeline[i + 1] == "throttle"

    def test_idempotent(self, db, sync_service, mock_client):
        sync_service.run_full_sync(db)
        counts_after_first = _row_counts(db)

        result = sync_service.run_full_sync(db)

        assert result.status == "completed"
        assert result.stats.errors == 0
        assert _row_counts(db) == counts_after_first
        assert counts_after_first["Product"] == 4
        assert counts_after_first["ProductImage"] == 2
        assert counts_after_first["InventoryRecord"] == 4

    def test_image_cache_reused_across_runs(self, db, sync_service, mock_client, sync_options):
        sync_service.run_full_sync(db)
        sync_service.run_full_sync(db)

        # Two images, each downloaded once across both runs
        assert mock_client.call_count("download_image") == 2
        assert len(set(mock_client.downloaded_urls)) == 2
        cache_dir = Path(sync_options.images_dir) / "DRILL_1"
        assert sorted(p.name for p in cache_dir.iterdir()) == [
            "cordless-drill-side.jpg",
            "cordless-drill.jpg",
        ]
        assert db.query(ProductImage).count() == 2

    def test_image_download_failure_is_not_an_item_error(self, db, sync_options):
        client = MockMagentoClient(failing_image_files={"/c/o/cordless-drill-side.jpg"})
        service = SyncService(client=client, options=sync_options)

        result = service.run_full_sync(db)

        assert result.stats.errors == 0
        assert result.stats.images == 1
        side = db.query(ProductImage).filter_by(magento_image_id=502).one()
        assert side.local_path is None


class TestPagination:
    def test_stops_on_short_page(self, db, sync_options):
        client = MockMagentoClient(products=make_products(113))
        service = SyncService(client=client, options=sync_options)

        result = service.run_full_sync(db)

        pages = [c for c in client.calls if c[0] == "search_products"]
        assert [c[2] for c in pages] == [1, 2, 3]
        assert all(c[1] == 50 for c in pages)
        assert result.stats.products == 113
        assert db.query(Product).count() == 113

    def test_exact_multiple_stops_at_total_count(self, db, sync_options):
        client = MockMagentoClient(products=make_products(100))
        service = SyncService(client=client, options=sync_options)

        result = service.run_full_sync(db)

        assert client.call_count("search_products") == 2
        assert result.stats.products == 100

    def test_store_clamping_last_page_does_not_loop(self, db, sync_options):
        client = ClampingMagentoClient(products=make_products(100))
        service = SyncService(client=client, options=sync_options)

        result = service.run_full_sync(db)

        assert result.status == "completed"
        assert client.call_count("search_products") == 2
        assert result.stats.products == 100
        assert client.call_count("get_product") == 100


class TestFailureIsolation:
    def test_failing_item_does_not_stop_phase(self, db, sync_options):
        products = make_products(20)
        client = MockMagentoClient(products=products, failing_skus={products[6].sku})
        service = SyncService(client=client, options=sync_options)

        result = service.run_full_sync(db)

        assert result.status == "completed"
        assert result.stats.products == 19
        assert result.stats.errors == 1
        log = db.get(SyncLog, result.sync_log_id)
        assert log.failed_items == 1
        assert log.status == "completed"
        skus = {p.sku for p in db.query(Product).all()}
        assert products[6].sku not in skus
        assert products[5].sku in skus
        assert products[7].sku in skus

    def test_failing_category_skips_subtree(self, db, sync_service):
        real_reconcile = CategoryService.reconcile

        def flaky(session, node, parent_id, level):
            if node.id == 10:
                raise ValueError("bad category")
            return real_reconcile(session, node, parent_id, level)

        with patch.object(CategoryService, "reconcile", side_effect=flaky):
            result = sync_service.run_full_sync(db)

        assert result.status == "completed"
        assert result.stats.categories == 2
        assert result.stats.errors == 1
        assert db.query(Category).filter(Category.magento_id.in_([10, 11])).count() == 0

    def test_category_tree_failure_is_fatal(self, db, sync_options):
        client = MockMagentoClient(category_error=UpstreamAPIError("boom", status_code=500))
        service = SyncService(client=client, options=sync_options)

        result = service.run_full_sync(db)

        assert result.status == "failed"
        assert "categories" in result.error_message
        assert "boom" in result.error_message
        assert client.call_count("get_attributes") == 0
        log = db.get(SyncLog, result.sync_log_id)
        assert log.status == "failed"
        assert log.completed_at is not None

    def test_product_page_failure_keeps_earlier_work(self, db, sync_options):
        client = MockMagentoClient(search_error=UpstreamAPIError("page down", status_code=503))
        service = SyncService(client=client, options=sync_options)

        result = service.run_full_sync(db)

        assert result.status == "failed"
        assert result.stats.categories == 4
        assert db.query(Category).count() == 4
        log = db.get(SyncLog, result.sync_log_id)
        assert log.processed_items == 7  # 4 categories + 3 attributes

    def test_attribute_permission_error_skips_phase(self, db, sync_options):
        client = MockMagentoClient(
            attributes_error=UpstreamPermissionDenied("forbidden", status_code=403)
        )
        service = SyncService(client=client, options=sync_options)

        result = service.run_full_sync(db)

        assert result.status == "completed"
        assert result.stats.attributes == 0
        assert result.stats.products == 4
        assert db.query(AttributeValue).count() == 0

    def test_failed_run_does_not_move_watermark(self, db, sync_options):
        t = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        create_sync_log(db, status="completed", completed_at=t)
        client = MockMagentoClient(category_error=UpstreamAPIError("boom", status_code=500))

        SyncService(client=client, options=sync_options).run_full_sync(db)

        assert WatermarkService.compute(db) == t

    def test_failed_product_skipped_by_detail_phases(self, db, sync_service, mock_client):
        sync_service.run_full_sync(db)
        mock_client._failing_skus = {"DRILL-KIT"}

        result = sync_service.run_full_sync(db)

        assert result.status == "completed"
        assert result.stats.errors == 1
        assert result.stats.products == 3
        assert result.stats.relations == 0
        assert result.stats.custom_options == 0
        # One fetch in each run, none from the relations or options phases
        assert mock_client.calls.count(("get_product", "DRILL-KIT")) == 2
        # Rows from the earlier run are kept
        assert db.query(ProductRelation).count() == 2
        assert db.query(CustomOption).count() == 1
        assert result.stats.inventory == 4


class TestConcurrency:
    def test_second_run_rejected_while_locked(self, db, sync_service):
        SyncService._sync_lock.acquire()
        try:
            assert SyncService.is_sync_in_progress() is True
            with pytest.raises(SyncAlreadyRunningError):
                sync_service.run_full_sync(db)
        finally:
            SyncService._sync_lock.release()

        assert db.query(SyncLog).count() == 0
        assert SyncService.is_sync_in_progress() is False

    def test_lock_released_after_run(self, db, sync_service):
        sync_service.run_full_sync(db)
        assert SyncService.is_sync_in_progress() is False

    def test_cancel_without_run_is_noop(self):
        assert SyncService.request_cancel() is False

    def test_cancel_stops_before_next_item(self, db, sync_options):
        def cancel_on_second(sku):
            if sku == "SKU-1001":
                SyncService.request_cancel()

        client = MockMagentoClient(products=make_products(5), on_get_product=cancel_on_second)
        service = SyncService(client=client, options=sync_options)

        result = service.run_full_sync(db)

        assert result.status == "failed"
        assert result.error_message == "Sync cancelled"
        # The in-flight item finished; nothing after it started
        assert result.stats.products == 2
        assert db.query(Product).count() == 2
        assert client.call_count("get_stock_item") == 0
        assert SyncService.is_sync_in_progress() is False

    def test_cancel_flag_cleared_for_next_run(self, db, sync_options):
        def cancel(sku):
            SyncService.request_cancel()

        client = MockMagentoClient(products=make_products(2), on_get_product=cancel)
        SyncService(client=client, options=sync_options).run_full_sync(db)

        result = SyncService(client=MockMagentoClient(), options=sync_options).run_full_sync(db)

        assert result.status == "completed"


class TestIncrementalSync:
    def _recent_and_old(self):
        now = datetime.now(timezone.utc)
        recent = make_product(
            2001,
            sku="NEW-1",
            updated_at=now - timedelta(hours=1),
            media_entries=SAMPLE_PRODUCTS[0].media_entries,
        )
        old = make_product(2002, sku="OLD-1", updated_at=now - timedelta(hours=48))
        return [recent, old]

    def test_only_changed_products(self, db, sync_options):
        client = MockMagentoClient(products=self._recent_and_old())
        service = SyncService(client=client, options=sync_options)

        result = service.run_incremental_sync(db)

        assert result.status == "completed"
        assert result.sync_type == "incremental"
        assert result.stats.products == 1
        assert {p.sku for p in db.query(Product).all()} == {"NEW-1"}
        # No category, attribute or relation phases
        assert client.call_count("get_category_tree") == 0
        assert client.call_count("get_attributes") == 0

    def test_default_watermark_sent_upstream(self, db, sync_options):
        client = MockMagentoClient(products=[])
        before = datetime.now(timezone.utc)

        SyncService(client=client, options=sync_options).run_incremental_sync(db)

        updated_after = [c for c in client.calls if c[0] == "search_products"][0][3]
        assert abs((updated_after - (before - timedelta(hours=24))).total_seconds()) <= 1

    def test_watermark_from_last_completed_run(self, db, sync_options):
        t = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        create_sync_log(db, status="completed", completed_at=t)
        create_sync_log(db, status="failed", completed_at=t + timedelta(hours=3))
        client = MockMagentoClient(products=[])

        SyncService(client=client, options=sync_options).run_incremental_sync(db)

        updated_after = [c for c in client.calls if c[0] == "search_products"][0][3]
        assert updated_after == t

    def test_refreshes_images_when_enabled(self, db, sync_options):
        client = MockMagentoClient(products=self._recent_and_old())

        result = SyncService(client=client, options=sync_options).run_incremental_sync(db)

        assert result.stats.images == 2
        assert db.query(ProductImage).count() == 2

    def test_skips_images_when_disabled(self, db, sync_options):
        client = MockMagentoClient(products=self._recent_and_old())
        options = replace(sync_options, incremental_images=False)

        result = SyncService(client=client, options=options).run_incremental_sync(db)

        assert result.stats.images == 0
        assert client.call_count("download_image") == 0

    def test_inventory_batch_is_bounded(self, db, sync_options):
        products = make_products(5)
        SyncService(client=MockMagentoClient(products=products), options=sync_options).run_full_sync(db)
        client = MockMagentoClient(products=[])
        options = replace(sync_options, incremental_inventory_batch=2, inventory_rate_limit_ms=100)

        result = SyncService(client=client, options=options).run_incremental_sync(db)

        assert result.stats.inventory == 2
        assert client.call_count("get_stock_item") == 2
        assert client.throttle_calls.count(100) == 2

    def test_failing_product_counted(self, db, sync_options):
        products = self._recent_and_old()
        client = MockMagentoClient(products=products, failing_skus={"NEW-1"})

        result = SyncService(client=client, options=sync_options).run_incremental_sync(db)

        assert result.status == "completed"
        assert result.stats.errors == 1
        assert result.stats.products == 0

    def test_detail_cache_cleared_after_run(self, db, sync_options):
        client = MockMagentoClient(products=self._recent_and_old())
        service = SyncService(client=client, options=sync_options)

        service.run_incremental_sync(db)

        assert service._details == {}
