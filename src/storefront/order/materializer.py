"""Order materializer: freezes a checked-out basket into an Order."""

from collections.abc import Mapping
from decimal import Decimal

from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.order.order import Order
from storefront.pricing.engine import BasketPricing, PricedItem
from storefront.utils.logging import get_logger
from storefront.utils.money import ZERO

logger = get_logger(__name__)

NO_DEALS_NOTE = "No deals applied"


def deals_note(applied: list[tuple[str, str]]) -> str:
    """Summarize (deal type, product name) pairs for the order note."""
    if not applied:
        return NO_DEALS_NOTE
    return "Applied Deals: " + "; ".join(f"{deal_type} on {product}" for deal_type, product in applied)


class OrderMaterializer:
    def materialize(self, basket, pricing: BasketPricing | Mapping[str, Decimal]) -> Order:
        """Build and persist the order for ``basket``.

        Unit prices are read from the products now and copied into the order.
        Discounts come from ``pricing``, either a full quote from the discount
        engine or a bare product id to discount mapping. A product it does not
        mention gets no discount.
        """
        if not isinstance(pricing, BasketPricing):
            pricing = BasketPricing(
                items=tuple(
                    PricedItem(product_id=str(pid), quantity=0, unit_price=ZERO, discount=discount)
                    for pid, discount in pricing.items()
                )
            )

        products = current_domain.repository_for(Product)
        priced = {item.product_id: item for item in pricing.items}

        lines = []
        applied = []
        for item in basket.items:
            product = products.lookup(item.product_id)
            priced_item = priced.get(str(item.product_id))

            lines.append(
                {
                    "product_id": str(product.id),
                    "product_name": product.name,
                    "quantity": item.quantity,
                    "unit_price": product.price,
                    "discount": priced_item.discount if priced_item else ZERO,
                }
            )
            if priced_item:
                applied.extend((deal.deal_type_name, product.name) for deal in priced_item.applied_deals)

        order = Order.place(
            user_id=basket.user_id,
            basket_id=basket.id,
            lines=lines,
            note=deals_note(applied),
        )
        current_domain.repository_for(Order).add(order)

        logger.info(
            "order_materialized",
            order_id=str(order.id),
            basket_id=str(basket.id),
            total_amount=str(order.total_amount),
            total_discount=str(order.total_discount),
            final_amount=str(order.final_amount),
        )
        return order
