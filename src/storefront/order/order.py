"""Order aggregate: the frozen outcome of a checkout.

Unit prices, discounts and totals are copied in when the order is placed and
nothing changes them afterwards. There are no mutating methods.

Discounts may add up to more than the goods cost, in which case the final
amount is negative. That is kept as is.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, Decimal, HasMany, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.order.events import OrderPlaced
from storefront.utils.money import ZERO, round2


@storefront.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    product_name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Decimal(required=True)
    line_total = Decimal(required=True)
    discount = Decimal(default=ZERO)
    net_total = Decimal(required=True)


@storefront.aggregate
class Order:
    user_id = Identifier(required=True)
    basket_id = Identifier(required=True)
    ordered_at = DateTime(required=True)
    items = HasMany(OrderItem)
    total_amount = Decimal(default=ZERO)
    total_discount = Decimal(default=ZERO)
    final_amount = Decimal(default=ZERO)
    note = Text()

    @classmethod
    def place(cls, user_id, basket_id, lines, note):
        """Place an order from priced lines.

        Args:
            lines: dicts with product_id, product_name, quantity, unit_price
                and discount.
        """
        now = datetime.now(UTC)
        items = []
        for line in lines:
            line_total = round2(line["unit_price"] * line["quantity"])
            discount = round2(line.get("discount", ZERO))
            items.append(
                OrderItem(
                    product_id=line["product_id"],
                    product_name=line.get("product_name"),
                    quantity=line["quantity"],
                    unit_price=round2(line["unit_price"]),
                    line_total=line_total,
                    discount=discount,
                    net_total=line_total - discount,
                )
            )

        total_amount = sum((item.line_total for item in items), ZERO)
        total_discount = sum((item.discount for item in items), ZERO)

        order = cls(
            user_id=user_id,
            basket_id=basket_id,
            ordered_at=now,
            total_amount=total_amount,
            total_discount=total_discount,
            final_amount=total_amount - total_discount,
            note=note,
        )
        order.add_items(items)
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(user_id),
                basket_id=str(basket_id),
                item_count=len(items),
                total_amount=order.total_amount,
                total_discount=order.total_discount,
                final_amount=order.final_amount,
                ordered_at=now,
            )
        )
        return order

    def item_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)


@storefront.repository(part_of=Order)
class OrderRepository:
    def for_user(self, user_id) -> list[Order]:
        """A user's orders, newest first."""
        return self._dao.query.filter(user_id=str(user_id)).order_by("-ordered_at").all().items
