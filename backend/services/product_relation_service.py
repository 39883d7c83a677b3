"""Composite product relations (configurable parent to variant children)."""

import logging

from sqlalchemy.orm import Session

from integrations.catalog_protocol import SourceProduct
from models import Product, ProductRelation

logger = logging.getLogger(__name__)


class ProductRelationService:
    """Links composite products to their already-imported children."""

    @staticmethod
    def reconcile(db: Session, parent: Product, record: SourceProduct) -> int:
        """Upsert one relation row per child that exists locally.

        Children not yet imported are skipped without error.

        Returns:
            Number of relations written
        """
        linked = 0
        for child_magento_id in record.child_ids:
            child = db.query(Product).filter_by(magento_id=child_magento_id).first()
            if child is None:
                logger.debug(
                    "Child %s of %s not imported, skipping", child_magento_id, parent.sku
                )
                continue
            existing = (
                db.query(ProductRelation)
                .filter_by(parent_id=parent.id, child_id=child.id)
                .first()
            )
            if existing is None:
                db.add(ProductRelation(parent_id=parent.id, child_id=child.id))
            linked += 1
        db.flush()
        return linked
