"""Discount engine: prices line items against the deals active for them.

Every active deal on a product contributes whatever its strategy returns, and
contributions are summed. A deal whose minimum quantity is not met simply
contributes zero. Summing means a line can be discounted by more than it
costs; that is carried through to order totals unchanged.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal

from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.pricing.deal import Deal, DealType
from storefront.pricing.strategies import LineItem, strategy_for
from storefront.utils.money import ZERO


@dataclass(frozen=True)
class AppliedDeal:
    deal_id: str
    deal_type_name: str
    discount: Decimal


@dataclass(frozen=True)
class PricedItem:
    product_id: str
    quantity: int
    unit_price: Decimal
    discount: Decimal
    applied_deals: tuple[AppliedDeal, ...] = ()

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class BasketPricing:
    items: tuple[PricedItem, ...] = field(default_factory=tuple)

    @property
    def total_discount(self) -> Decimal:
        return sum((item.discount for item in self.items), ZERO)

    def discounts_by_product(self) -> dict[str, Decimal]:
        return {item.product_id: item.discount for item in self.items}

    def to_dict(self) -> dict:
        return {
            "items": [{"product_id": item.product_id, "discount": item.discount} for item in self.items],
            "total_discount": self.total_discount,
        }


class DiscountEngine:
    def __init__(self, now: datetime | None = None):
        self.now = now
        self._deal_types: dict[str, DealType] = {}

    def active_deals_for(self, product_ids) -> dict[str, list[Deal]]:
        now = self.now or datetime.now(UTC)
        return current_domain.repository_for(Deal).active_for_products(product_ids, now=now)

    def _deal_type(self, deal: Deal) -> DealType:
        key = str(deal.deal_type_id)
        if key not in self._deal_types:
            self._deal_types[key] = current_domain.repository_for(DealType).lookup(key)
        return self._deal_types[key]

    def _price_line(self, line: LineItem, deals: list[Deal]) -> PricedItem:
        applied = []
        for deal in deals:
            deal_type = self._deal_type(deal)
            discount = strategy_for(deal_type.strategy)(line, deal)
            applied.append(AppliedDeal(deal_id=str(deal.id), deal_type_name=deal_type.name, discount=discount))

        return PricedItem(
            product_id=line.product_id,
            quantity=line.quantity,
            unit_price=line.unit_price,
            discount=sum((deal.discount for deal in applied), ZERO),
            applied_deals=tuple(applied),
        )

    def quote(self, lines: list[LineItem], deals_by_product: dict[str, list[Deal]] | None = None) -> BasketPricing:
        """Price every line, fetching active deals unless they are supplied."""
        if deals_by_product is None:
            deals_by_product = self.active_deals_for({line.product_id for line in lines})

        return BasketPricing(
            items=tuple(self._price_line(line, deals_by_product.get(line.product_id, [])) for line in lines)
        )

    def price_items(
        self, lines: list[LineItem], deals_by_product: dict[str, list[Deal]] | None = None
    ) -> dict[str, Decimal]:
        """Discount per product id for the given lines."""
        return self.quote(lines, deals_by_product).discounts_by_product()


def basket_lines(basket) -> list[LineItem]:
    """Line items for a basket at the current product prices."""
    products = current_domain.repository_for(Product)
    lines = []
    for item in basket.items:
        product = products.lookup(item.product_id)
        lines.append(LineItem(product_id=str(item.product_id), quantity=item.quantity, unit_price=product.price))
    return lines


def price_basket(basket) -> BasketPricing:
    """Read-only pricing of a basket for display. Stock is not touched."""
    return DiscountEngine().quote(basket_lines(basket))
