"""Attribute reconciliation - definitions, options and per-product values."""

import json
import logging
from typing import Any

from sqlalchemy.orm import Session

from integrations.catalog_protocol import SourceAttribute
from integrations.parsing_utils import parse_int
from models import Attribute, AttributeOption, AttributeValue
from services.sync_types import ReconcileResult

logger = logging.getLogger(__name__)

# System attributes worth mirroring even though upstream marks them built-in.
SYSTEM_ATTRIBUTE_ALLOWLIST: frozenset[str] = frozenset({"color", "size", "manufacturer"})


class AttributeService:
    """Upserts attribute definitions and their options."""

    @staticmethod
    def should_import(attribute: SourceAttribute) -> bool:
        """User-defined attributes plus the small allow-list of system ones."""
        return attribute.is_user_defined or attribute.attribute_code in SYSTEM_ATTRIBUTE_ALLOWLIST

    @staticmethod
    def reconcile(db: Session, source: SourceAttribute) -> ReconcileResult | None:
        """Create or update an attribute and each of its options.

        Returns:
            ReconcileResult, or None when the attribute is filtered out
        """
        if not AttributeService.should_import(source):
            return None

        attribute = db.query(Attribute).filter_by(attribute_code=source.attribute_code).first()
        created = attribute is None
        if created:
            attribute = Attribute(attribute_code=source.attribute_code)
            db.add(attribute)

        attribute.magento_attribute_id = source.attribute_id
        attribute.label = source.label
        attribute.input_type = source.input_type
        attribute.is_required = source.is_required
        attribute.position = source.position
        db.flush()

        for option in source.options:
            existing = (
                db.query(AttributeOption)
                .filter_by(attribute_id=attribute.id, magento_option_id=option.option_id)
                .first()
            )
            if existing:
                existing.label = option.label
                existing.value = option.value
            else:
                db.add(
                    AttributeOption(
                        attribute_id=attribute.id,
                        magento_option_id=option.option_id,
                        label=option.label,
                        value=option.value,
                        sort_order=0,
                    )
                )
        db.flush()

        return ReconcileResult(local_id=attribute.id, created=created)


class AttributeValueService:
    """Stores a product's value for one attribute, as text or as an option reference."""

    @staticmethod
    def _as_text(raw_value: Any) -> str | None:
        if raw_value is None:
            return None
        if isinstance(raw_value, (list, dict)):
            return json.dumps(raw_value)
        return str(raw_value)

    @staticmethod
    def reconcile(
        db: Session,
        product_id: str,
        attribute_code: str,
        raw_value: Any,
    ) -> ReconcileResult | None:
        """Upsert the (product, attribute) value.

        When ``raw_value`` is an upstream option id of this attribute the row
        references that option and its text value is cleared; otherwise the
        raw value is stored as text.

        Returns:
            ReconcileResult, or None when the attribute is not mirrored locally
        """
        attribute = db.query(Attribute).filter_by(attribute_code=attribute_code).first()
        if attribute is None:
            return None

        option = None
        if isinstance(raw_value, (str, int)) and not isinstance(raw_value, bool):
            option_id = parse_int(raw_value)
            if option_id is not None:
                option = (
                    db.query(AttributeOption)
                    .filter_by(attribute_id=attribute.id, magento_option_id=option_id)
                    .first()
                )

        row = (
            db.query(AttributeValue)
            .filter_by(product_id=product_id, attribute_id=attribute.id)
            .first()
        )
        created = row is None
        if created:
            row = AttributeValue(product_id=product_id, attribute_id=attribute.id)
            db.add(row)

        if option is not None:
            row.option_id = option.id
            row.value = None
        else:
            row.option_id = None
            row.value = AttributeValueService._as_text(raw_value)
        db.flush()

        return ReconcileResult(local_id=row.id, created=created)
