"""Product custom options and their values."""

from sqlalchemy.orm import Session

from integrations.catalog_protocol import SourceCustomOption
from models import CustomOption, CustomOptionValue


class CustomOptionService:
    @staticmethod
    def reconcile(db: Session, product_id: str, source: SourceCustomOption) -> CustomOption:
        """Upsert one option keyed by (product, upstream option id), then its values."""
        option = (
            db.query(CustomOption)
            .filter_by(product_id=product_id, magento_option_id=source.option_id)
            .first()
        )
        if option is None:
            option = CustomOption(product_id=product_id, magento_option_id=source.option_id)
            db.add(option)

        option.title = source.title
        option.type = source.type
        option.is_require = source.is_require
        option.sort_order = source.sort_order
        option.price = source.price
        option.price_type = source.price_type
        option.sku = source.sku
        db.flush()

        for source_value in source.values:
            value = (
                db.query(CustomOptionValue)
                .filter_by(option_id=option.id, magento_value_id=source_value.option_type_id)
                .first()
            )
            if value is None:
                value = CustomOptionValue(
                    option_id=option.id, magento_value_id=source_value.option_type_id
                )
                db.add(value)
            value.title = source_value.title
            value.price = source_value.price
            value.price_type = source_value.price_type
            value.sku = source_value.sku
            value.sort_order = source_value.sort_order
        db.flush()

        return option
