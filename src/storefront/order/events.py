"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Decimal, Identifier, Integer

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A checkout completed and its basket was frozen into an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    basket_id = Identifier(required=True)
    item_count = Integer(required=True)
    total_amount = Decimal(required=True)
    total_discount = Decimal(required=True)
    final_amount = Decimal(required=True)
    ordered_at = DateTime(required=True)
