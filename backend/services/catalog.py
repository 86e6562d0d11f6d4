# backend/services/catalog.py
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from models.product import Product
from services.alerts import AlertEvaluation, AlertManager
from services.errors import NotFound, ValidationFailure
from services.sku import SkuGenerator
from services.stores import CategoryStore, ProductStore
from services.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


@dataclass
class ProductChange:
    product: Product
    alerts: AlertEvaluation


class ProductCatalog:
    """Product create / edit / delete that keep SKU and alert rules intact."""

    def __init__(
        self,
        uow: UnitOfWork,
        products: Optional[ProductStore] = None,
        categories: Optional[CategoryStore] = None,
        sku_generator: Optional[SkuGenerator] = None,
        alert_manager: Optional[AlertManager] = None,
    ):
        self.uow = uow
        self.products = products or ProductStore(uow.session)
        self.categories = categories or CategoryStore(uow.session)
        self.sku_generator = sku_generator or SkuGenerator(self.products)
        self.alert_manager = alert_manager or AlertManager(uow)

    def _owned_category(self, category_id: int, actor_id: int):
        category = self.categories.get_owned(category_id, actor_id)
        if category is None:
            raise NotFound("Category")
        return category

    def create_product(
        self,
        actor_id: int,
        name: str,
        price: Decimal,
        min_stock: int,
        current_stock: int,
        category_id: int,
        description: Optional[str] = None,
        barcode: Optional[str] = None,
    ) -> ProductChange:
        if price < 0 or min_stock < 0 or current_stock < 0:
            raise ValidationFailure("Values cannot be negative")
        self._owned_category(category_id, actor_id)

        product = Product(
            name=name,
            description=description,
            barcode=barcode,
            price=price,
            min_stock=min_stock,
            current_stock=current_stock,
            category_id=category_id,
            user_id=actor_id,
        )
        self.sku_generator.insert_unique(product)

        # A product can start out below its threshold
        alerts = self.alert_manager.evaluate(product.id, product.current_stock, product.min_stock, actor_id)
        logger.info("created product %s sku=%s stock=%d min=%d", product.id, product.sku, current_stock, min_stock)
        return ProductChange(product, alerts)

    def update_product(self, product_id: int, actor_id: int, **changes) -> ProductChange:
        product = self.products.get_owned(product_id, actor_id, lock=True)
        if product is None:
            raise NotFound("Product")

        category_id = changes.pop("category_id", None)
        if category_id is not None and category_id != product.category_id:
            self._owned_category(category_id, actor_id)
            product.category_id = category_id

        for key in ("price", "min_stock"):
            if changes.get(key) is not None and changes[key] < 0:
                raise ValidationFailure("Values cannot be negative", field=key)

        for key in ("name", "description", "price", "min_stock", "barcode"):
            if key in changes and (changes[key] is not None or key in ("description", "barcode")):
                setattr(product, key, changes[key])
        self.uow.flush()

        # A new threshold can open or close the alert without any movement
        alerts = self.alert_manager.evaluate(product.id, product.current_stock, product.min_stock, actor_id)
        return ProductChange(product, alerts)

    def delete_product(self, product_id: int, actor_id: int) -> None:
        product = self.products.get_owned(product_id, actor_id, lock=True)
        if product is None:
            raise NotFound("Product")
        self.products.delete(product)
        logger.info("deleted product %s", product_id)
