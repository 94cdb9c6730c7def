"""Checkout: turns a user's active basket into an order.

Flow:
    1. Load the active basket (BasketNotFound / InvalidBasketState).
    2. Refuse an empty basket (EmptyBasketCheckout).
    3. Check stock for every item before anything is written.
    4. Commit stock for every item.
    5. Mark the basket checked out.
    6. Price the frozen items with the discount engine.
    7. Materialize and persist the order.

Steps 5 to 7 share one Unit of Work. If a commit in step 4 or anything in
steps 5 to 7 fails, the stock already committed is released again, last
first, before the error is raised.

Run through the ``Checkout`` command, all of this happens in the handler's
Unit of Work: a failure anywhere rolls every write back, and a version
conflict with a concurrent checkout re-runs the flow against fresh stock.
"""

import time

from protean import UnitOfWork, handle
from protean.exceptions import ValidationError
from protean.fields import Identifier
from protean.utils.globals import current_domain

from storefront.basket.basket import Basket
from storefront.basket.management import active_basket_for
from storefront.catalogue.ledger import StockLedger
from storefront.domain import storefront
from storefront.exceptions import EmptyBasketCheckout, InvalidBasketState
from storefront.order.materializer import OrderMaterializer
from storefront.order.order import Order
from storefront.pricing.engine import DiscountEngine
from storefront.pricing.strategies import LineItem
from storefront.utils.logging import add_context, clear_context, get_logger

logger = get_logger(__name__)


class CheckoutOrchestrator:
    def __init__(self, ledger=None, engine=None, materializer=None):
        self.ledger = ledger or StockLedger()
        self.engine = engine or DiscountEngine()
        self.materializer = materializer or OrderMaterializer()

    def _verify_stock(self, basket):
        for item in basket.items:
            self.ledger.ensure_available(item.product_id, item.quantity)

    def _release(self, basket, lines):
        for line in reversed(lines):
            self.ledger.release_increment(line.product_id, line.quantity)
        if lines:
            logger.warning(
                "stock_commit_compensated",
                basket_id=str(basket.id),
                released=[line.product_id for line in lines],
            )

    def _commit_stock(self, basket) -> list[LineItem]:
        lines = []
        try:
            for item in basket.items:
                product = self.ledger.commit_decrement(item.product_id, item.quantity)
                lines.append(LineItem(product_id=str(product.id), quantity=item.quantity, unit_price=product.price))
        except Exception:
            self._release(basket, lines)
            raise
        return lines

    def checkout(self, user_id) -> Order:
        basket = active_basket_for(user_id)
        if not basket.is_active:
            raise InvalidBasketState(basket.id, basket.status, "check out")
        if not basket.items:
            raise EmptyBasketCheckout(basket.id)

        self._verify_stock(basket)
        lines = self._commit_stock(basket)

        # Basket, pricing and order land together or not at all
        try:
            with UnitOfWork():
                basket.check_out()
                current_domain.repository_for(Basket).add(basket)

                pricing = self.engine.quote(lines)
                order = self.materializer.materialize(basket, pricing)
        except Exception:
            self._release(basket, lines)
            raise
        return order


@storefront.command(part_of="Basket")
class Checkout:
    user_id = Identifier(required=True)


@storefront.command_handler(part_of=Basket)
class CheckoutHandler:
    @handle(Checkout)
    def checkout(self, command):
        add_context(user_id=str(command.user_id))
        started = time.perf_counter()
        logger.info("checkout_started")

        try:
            order = CheckoutOrchestrator().checkout(command.user_id)
        except ValidationError as exc:
            logger.info(
                "checkout_failed",
                error=type(exc).__name__,
                messages=exc.messages,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise
        else:
            logger.info(
                "checkout_completed",
                order_id=str(order.id),
                final_amount=str(order.final_amount),
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            return order
        finally:
            clear_context()
