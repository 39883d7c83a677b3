"""Unit tests for ImageService and the on-disk image cache."""

from unittest.mock import MagicMock

import pytest

from integrations.catalog_protocol import SourceMediaEntry
from integrations.exceptions import UpstreamAPIError
from models import ProductImage
from services.image_service import ImageService, sanitize_sku


def _image_url(file_path: str) -> str:
    return f"https://shop.example.com/media/catalog/product{file_path}"


@pytest.fixture
def download():
    return MagicMock(return_value=b"jpeg-bytes")


@pytest.fixture
def images(tmp_path, download):
    return ImageService(
        images_dir=tmp_path / "products",
        url_prefix="/media/products/",
        download=download,
        image_url=_image_url,
    )


ENTRIES = [
    SourceMediaEntry(id=501, file="/c/o/drill.jpg", label="Front", position=1, types=["image", "thumbnail"]),
    SourceMediaEntry(id=502, file="/c/o/drill-side.jpg", position=2),
    SourceMediaEntry(id=503, file="/c/o/old.jpg", position=3, disabled=True),
]


class TestCachePath:
    def test_sanitize_sku(self):
        assert sanitize_sku("AB-12/x y") == "AB_12_x_y"

    def test_path_from_sku_and_filename(self, images, tmp_path):
        target, public = images.cache_path("DRILL-1", "/c/o/drill.jpg")
        assert target == tmp_path / "products" / "DRILL_1" / "drill.jpg"
        assert public == "/media/products/DRILL_1/drill.jpg"


class TestEnsureCached:
    def test_downloads_once(self, images, download, tmp_path):
        url = _image_url("/c/o/drill.jpg")

        first = images.ensure_cached("DRILL-1", "/c/o/drill.jpg", url)
        second = images.ensure_cached("DRILL-1", "/c/o/drill.jpg", url)

        assert first == second == "/media/products/DRILL_1/drill.jpg"
        download.assert_called_once_with(url)
        cached = tmp_path / "products" / "DRILL_1" / "drill.jpg"
        assert cached.read_bytes() == b"jpeg-bytes"
        # No leftover partial files
        assert [p.name for p in cached.parent.iterdir()] == ["drill.jpg"]

    def test_download_failure_returns_none(self, images, download, tmp_path):
        download.side_effect = UpstreamAPIError("gone", status_code=404)

        assert images.ensure_cached("DRILL-1", "/c/o/drill.jpg", "u") is None
        assert not (tmp_path / "products" / "DRILL_1" / "drill.jpg").exists()


class TestReconcile:
    def test_writes_rows_for_enabled_entries(self, db, product, images, download):
        cached = images.reconcile(db, product, ENTRIES)
        db.commit()

        assert cached == 2
        assert download.call_count == 2
        rows = {r.magento_image_id: r for r in db.query(ProductImage).all()}
        assert set(rows) == {501, 502}
        front = rows[501]
        assert front.is_main is True
        assert front.is_thumbnail is True
        assert front.label == "Front"
        assert front.url == _image_url("/c/o/drill.jpg")
        assert front.local_path == "/media/products/DRILL_1/drill.jpg"
        assert rows[502].is_main is False

    def test_second_run_updates_metadata_without_download(self, db, product, images, download):
        images.reconcile(db, product, ENTRIES)
        db.commit()

        moved = [
            SourceMediaEntry(id=501, file="/c/o/drill.jpg", label="Main", position=5, types=["image"]),
        ]
        cached = images.reconcile(db, product, moved)
        db.commit()

        assert cached == 1
        assert download.call_count == 2
        assert db.query(ProductImage).count() == 2
        front = db.query(ProductImage).filter_by(magento_image_id=501).one()
        assert front.position == 5
        assert front.label == "Main"
        assert front.is_thumbnail is False

    def test_failed_download_still_records_row(self, db, product, images, download):
        download.side_effect = UpstreamAPIError("gone", status_code=404)

        cached = images.reconcile(db, product, ENTRIES[:1])
        db.commit()

        assert cached == 0
        row = db.query(ProductImage).one()
        assert row.local_path is None
        assert row.file_path == "/c/o/drill.jpg"


class TestPacing:
    @pytest.fixture
    def pace(self):
        return MagicMock()

    @pytest.fixture
    def paced_images(self, tmp_path, download, pace):
        return ImageService(
            images_dir=tmp_path / "products",
            url_prefix="/media/products",
            download=download,
            image_url=_image_url,
            pace=pace,
        )

    def test_paces_after_each_download(self, paced_images, pace):
        paced_images.ensure_cached("DRILL-1", "/c/o/drill.jpg", _image_url("/c/o/drill.jpg"))
        paced_images.ensure_cached("DRILL-1", "/c/o/side.jpg", _image_url("/c/o/side.jpg"))

        assert pace.call_count == 2

    def test_cache_hit_is_not_paced(self, paced_images, pace):
        url = _image_url("/c/o/drill.jpg")
        paced_images.ensure_cached("DRILL-1", "/c/o/drill.jpg", url)
        paced_images.ensure_cached("DRILL-1", "/c/o/drill.jpg", url)

        pace.assert_called_once()

    def test_failed_download_is_paced(self, paced_images, download, pace):
        download.side_effect = UpstreamAPIError("gone", status_code=404)

        assert paced_images.ensure_cached("DRILL-1", "/c/o/drill.jpg", _image_url("/c/o/drill.jpg")) is None
        pace.assert_called_once()
