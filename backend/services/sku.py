# backend/services/sku.py
import logging
import random
import time
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError

from config import settings
from models.product import Product
from services.errors import GenerationExhausted, is_violation
from services.stores import ProductStore

logger = logging.getLogger(__name__)


def _is_sku_violation(exc: IntegrityError) -> bool:
    return is_violation(exc, "uq_products_sku", "products.sku")


class SkuGenerator:
    """Builds product SKUs as ``<prefix>-<6 time digits><3 random digits>``.

    ``generate`` only skips candidates that the store already holds and
    gives up with ``GenerationExhausted`` after ``max_attempts`` of them.
    The unique constraint on ``products.sku`` is what guarantees uniqueness:
    ``insert_unique`` takes a value from ``generate`` and draws a new one
    when the insert itself hits that constraint, at most ``max_attempts``
    times.
    """

    def __init__(
        self,
        products: ProductStore,
        prefix: Optional[str] = None,
        max_attempts: Optional[int] = None,
        clock: Callable[[], float] = time.time,
        randint: Callable[[int, int], int] = random.randint,
    ):
        self.products = products
        self.prefix = prefix or settings.SKU_PREFIX
        self.max_attempts = max_attempts or settings.SKU_MAX_ATTEMPTS
        self.clock = clock
        self.randint = randint

    def candidate(self) -> str:
        millis = str(int(self.clock() * 1000))[-6:].rjust(6, "0")
        suffix = f"{self.randint(0, 999):03d}"
        return f"{self.prefix}-{millis}{suffix}"

    def generate(self) -> str:
        """Return a SKU not used by any stored product (nothing is reserved)."""
        for attempt in range(1, self.max_attempts + 1):
            sku = self.candidate()
            if not self.products.sku_exists(sku):
                return sku
            logger.debug("sku candidate %s taken (attempt %d)", sku, attempt)
        logger.error("sku generation exhausted after %d attempts", self.max_attempts)
        raise GenerationExhausted(self.max_attempts)

    def insert_unique(self, product: Product) -> Product:
        """Assign a fresh SKU to ``product`` and flush it inside a savepoint."""
        session = self.products.session
        for attempt in range(1, self.max_attempts + 1):
            product.sku = self.generate()
            try:
                with session.begin_nested():
                    session.add(product)
                    session.flush()
            except IntegrityError as exc:
                if not _is_sku_violation(exc):
                    raise
                logger.info("sku %s collided on insert (attempt %d), retrying", product.sku, attempt)
                continue
            return product

        logger.error("sku insert kept colliding after %d attempts", self.max_attempts)
        raise GenerationExhausted(self.max_attempts)
