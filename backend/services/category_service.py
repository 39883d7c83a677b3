"""Category reconciliation - mirrors the upstream category tree."""

import logging

from sqlalchemy.orm import Session

from integrations.catalog_protocol import SourceCategory
from integrations.parsing_utils import slugify
from models import Category
from services.sync_types import ReconcileResult

logger = logging.getLogger(__name__)


class CategoryService:
    """Upserts categories keyed by their upstream id."""

    @staticmethod
    def resolve_slug(node: SourceCategory) -> str:
        """Prefer the upstream ``url_key``; otherwise derive one from the name."""
        return node.url_key or slugify(node.name) or f"category-{node.id}"

    @staticmethod
    def reconcile(
        db: Session,
        node: SourceCategory,
        parent_id: str | None,
        level: int,
    ) -> ReconcileResult:
        """Create or update one category node (children are not touched).

        Args:
            db: Database session
            node: Upstream category node
            parent_id: Local id of the already-reconciled parent, None for the root
            level: Depth below the synced root (root is 0)

        Returns:
            ReconcileResult with the local category id
        """
        category = db.query(Category).filter_by(magento_id=node.id).first()
        created = category is None
        if created:
            category = Category(magento_id=node.id)
            db.add(category)

        category.parent_id = parent_id
        category.name = node.name
        category.slug = CategoryService.resolve_slug(node)
        category.description = node.description
        category.is_active = node.is_active
        category.position = node.position
        category.level = level
        category.path = node.path
        db.flush()

        if created:
            logger.debug("Created category %s (%s)", node.id, node.name)
        return ReconcileResult(local_id=category.id, created=created)
