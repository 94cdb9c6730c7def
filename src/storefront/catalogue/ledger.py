"""Stock ledger: the only path through which product stock changes.

Reads are plain repository lookups. Writes load the product, check it and
save it inside one Unit of Work while holding that product's lock, so ledger
writes to one product never interleave within a process. Every aggregate also
carries a version, and the Unit of Work commits only if the version it read is
still current. A writer outside the lock that got there first (a checkout
committing its handler's Unit of Work) makes this commit fail instead of
overselling. The ledger then backs off, re-reads and re-checks, until the
write goes through or the stock check itself refuses it.

When a Unit of Work is already open (inside a command handler) the ledger
joins it. Conflicts then surface when the handler commits, and the handler's
version retry re-runs the whole command against fresh stock.
"""

import random
import threading
import time
from dataclasses import dataclass

from protean import UnitOfWork
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.exceptions import InsufficientStock, OutOfStock, ProductUnavailable
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BASE_DELAY_SECONDS = 0.005
DEFAULT_MAX_DELAY_SECONDS = 0.1

_product_locks: dict[str, threading.Lock] = {}
_product_locks_guard = threading.Lock()


def product_lock(product_id) -> threading.Lock:
    """The process-wide lock guarding writes to one product's stock."""
    with _product_locks_guard:
        return _product_locks.setdefault(str(product_id), threading.Lock())


@dataclass(frozen=True)
class StockAvailability:
    sufficient: bool
    current_stock: int
    available: bool


UNFULFILLABLE = StockAvailability(sufficient=False, current_stock=0, available=False)


def _availability(product: Product, requested_quantity: int) -> StockAvailability:
    return StockAvailability(
        sufficient=product.can_supply(requested_quantity),
        current_stock=product.stock,
        available=bool(product.availability),
    )


class StockLedger:
    def __init__(self, base_delay: float | None = None, max_delay: float | None = None):
        custom = current_domain.config["custom"]
        if base_delay is None:
            base_delay = custom.get("stock_commit_base_delay_seconds", DEFAULT_BASE_DELAY_SECONDS)
        if max_delay is None:
            max_delay = custom.get("stock_commit_max_delay_seconds", DEFAULT_MAX_DELAY_SECONDS)
        self.base_delay = float(base_delay)
        self.max_delay = float(max_delay)

    @property
    def products(self):
        return current_domain.repository_for(Product)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def check_availability(self, product_id, requested_quantity: int) -> StockAvailability:
        """Report whether ``requested_quantity`` could be supplied right now.

        A missing product reports as unavailable with no stock.
        """
        try:
            product = self.products.get(str(product_id))
        except ObjectNotFoundError:
            return UNFULFILLABLE

        return _availability(product, requested_quantity)

    def ensure_available(self, product_id, requested_quantity: int) -> StockAvailability:
        """Like ``check_availability``, but raise the specific error on failure."""
        product = self.products.lookup(product_id)
        availability = _availability(product, requested_quantity)
        if availability.sufficient:
            return availability

        if not availability.available:
            raise ProductUnavailable(product.id, product.name)
        if availability.current_stock <= 0:
            raise OutOfStock(product.name, requested_quantity, product_id=product.id)
        raise InsufficientStock(
            product.name,
            requested_quantity,
            availability.current_stock,
            product_id=product.id,
        )

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def commit_decrement(self, product_id, quantity: int) -> Product:
        """Take ``quantity`` units of stock, or raise ``InsufficientStock``."""
        return self._write(product_id, quantity, "decrement_stock", "stock_committed")

    def release_increment(self, product_id, quantity: int) -> Product:
        """Give ``quantity`` units of stock back."""
        return self._write(product_id, quantity, "increment_stock", "stock_released")

    def backoff_delay(self, attempt: int) -> float:
        """Jittered exponential delay before retrying a conflicted write."""
        ceiling = min(self.max_delay, self.base_delay * (2 ** min(attempt, 16)))
        return random.uniform(0, ceiling)

    def _write(self, product_id, quantity, movement, event_name) -> Product:
        # A version conflict means another writer committed, so the loop only
        # ends when the write lands or the product refuses the movement.
        attempt = 0
        while True:
            try:
                with product_lock(product_id), UnitOfWork():
                    product = self.products.lookup(product_id)
                    previous = product.stock
                    getattr(product, movement)(quantity)
                    self.products.add(product)
            except ExpectedVersionError:
                delay = self.backoff_delay(attempt)
                attempt += 1
                logger.debug(
                    "stock_write_conflict",
                    product_id=str(product_id),
                    attempt=attempt,
                    retry_in_ms=round(delay * 1000, 2),
                )
                time.sleep(delay)
                continue

            logger.info(
                event_name,
                product_id=str(product.id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=product.stock,
            )
            return product
