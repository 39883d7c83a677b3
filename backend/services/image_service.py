"""Product image metadata and the on-disk image cache."""

import logging
import re
from collections.abc import Callable
from pathlib import Path, PurePosixPath

from sqlalchemy.orm import Session

from integrations.catalog_protocol import SourceMediaEntry
from integrations.exceptions import UpstreamError
from models import Product, ProductImage

logger = logging.getLogger(__name__)

_UNSAFE_DIR_CHARS_RE = re.compile(r"[^a-zA-Z0-9]")


def sanitize_sku(sku: str) -> str:
    """Directory name for a product's images: every non-alphanumeric becomes ``_``."""
    return _UNSAFE_DIR_CHARS_RE.sub("_", sku)


class ImageService:
    """Keeps ``ProductImage`` rows and cached image files in step with upstream.

    Args:
        images_dir: Root of the local image cache
        url_prefix: Public path prefix stored in ``local_path``
        download: Fetches the bytes of an upstream image URL
        image_url: Builds the absolute upstream URL of a media file path
        pace: Called after every download attempt to space upstream requests
    """

    def __init__(
        self,
        images_dir: str | Path,
        url_prefix: str,
        download: Callable[[str], bytes],
        image_url: Callable[[str], str],
        pace: Callable[[], None] | None = None,
    ):
        self.images_dir = Path(images_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self._download = download
        self._image_url = image_url
        self._pace = pace

    def cache_path(self, sku: str, file_path: str) -> tuple[Path, str]:
        """Return the cache file location and its public path for an image."""
        directory = sanitize_sku(sku)
        filename = PurePosixPath(file_path).name
        return (
            self.images_dir / directory / filename,
            f"{self.url_prefix}/{directory}/{filename}",
        )

    def ensure_cached(self, sku: str, file_path: str, url: str) -> str | None:
        """Download the image unless it is already cached.

        Returns:
            The public local path, or None when the download failed
        """
        target, public_path = self.cache_path(sku, file_path)
        if target.exists():
            return public_path

        try:
            data = self._download(url)
        except UpstreamError as e:
            logger.warning("Image download failed for %s (%s): %s", sku, url, e)
            return None
        finally:
            if self._pace is not None:
                self._pace()

        target.parent.mkdir(parents=True, exist_ok=True)
        # Write-then-rename so a concurrent reader never sees a partial file
        partial = target.with_name(f".{target.name}.part")
        partial.write_bytes(data)
        partial.replace(target)
        logger.debug("Cached image %s", public_path)
        return public_path

    def reconcile(self, db: Session, product: Product, entries: list[SourceMediaEntry]) -> int:
        """Upsert image rows for a product's enabled gallery entries.

        A failed download still records the row, with ``local_path`` None.

        Returns:
            Number of images that have a cached local file
        """
        cached = 0
        for entry in entries:
            if entry.disabled:
                continue
            url = self._image_url(entry.file)
            local_path = self.ensure_cached(product.sku, entry.file, url)
            if local_path:
                cached += 1

            image = (
                db.query(ProductImage)
                .filter_by(product_id=product.id, magento_image_id=entry.id)
                .first()
            )
            if image is None:
                image = ProductImage(product_id=product.id, magento_image_id=entry.id)
                db.add(image)
            image.file_path = entry.file
            image.url = url
            image.local_path = local_path
            image.label = entry.label
            image.position = entry.position
            image.is_main = entry.is_main
            image.is_thumbnail = entry.is_thumbnail
        db.flush()
        return cached
