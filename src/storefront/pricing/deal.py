"""Deal and DealType aggregates.

A DealType names a discount strategy, for example "Percentage Off" backed by
``percentage_off``. A Deal attaches a deal type to one product until it
expires, with the figures the strategy needs (percent, amount, minimum
quantity). Deals reference their product and deal type by identifier only.
"""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Decimal, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.exceptions import DealTypeNotFound
from storefront.pricing.events import DealCreated, DealTypeRegistered
from storefront.pricing.strategies import strategy_for


def _aware(moment):
    """Treat naive timestamps as UTC."""
    if moment is not None and moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


@storefront.aggregate
class DealType:
    name = String(required=True, max_length=100, unique=True)
    description = Text()
    strategy = String(required=True, max_length=100)

    @classmethod
    def register(cls, name, strategy, description=None):
        strategy_for(strategy)  # raises UnknownStrategy

        deal_type = cls(name=name, strategy=strategy, description=description)
        deal_type.raise_(
            DealTypeRegistered(
                deal_type_id=str(deal_type.id),
                name=name,
                strategy=strategy,
            )
        )
        return deal_type


@storefront.aggregate
class Deal:
    product_id = Identifier(required=True)
    deal_type_id = Identifier(required=True)
    expires_at = DateTime(required=True)
    discount_percent = Decimal()
    discount_amount = Decimal()
    minimum_quantity = Integer(min_value=0)
    created_at = DateTime()

    @classmethod
    def create(
        cls,
        product_id,
        deal_type_id,
        expires_at,
        discount_percent=None,
        discount_amount=None,
        minimum_quantity=None,
    ):
        now = datetime.now(UTC)
        deal = cls(
            product_id=product_id,
            deal_type_id=deal_type_id,
            expires_at=_aware(expires_at),
            discount_percent=discount_percent,
            discount_amount=discount_amount,
            minimum_quantity=minimum_quantity,
            created_at=now,
        )
        deal.raise_(
            DealCreated(
                deal_id=str(deal.id),
                product_id=str(product_id),
                deal_type_id=str(deal_type_id),
                expires_at=deal.expires_at,
            )
        )
        return deal

    def is_active(self, now=None) -> bool:
        """A deal is active strictly before its expiry."""
        now = now or datetime.now(UTC)
        return _aware(now) < _aware(self.expires_at)


@storefront.repository(part_of=DealType)
class DealTypeRepository:
    def lookup(self, deal_type_id) -> DealType:
        try:
            return self.get(str(deal_type_id))
        except ObjectNotFoundError:
            raise DealTypeNotFound(deal_type_id) from None

    def all_deal_types(self) -> list[DealType]:
        return self._dao.query.order_by("name").all().items


@storefront.repository(part_of=Deal)
class DealRepository:
    def active_for_products(self, product_ids, now=None) -> dict[str, list[Deal]]:
        """Active deals for the given products, grouped by product id."""
        product_ids = sorted({str(product_id) for product_id in product_ids})
        if not product_ids:
            return {}

        now = now or datetime.now(UTC)
        deals = self._dao.query.filter(product_id__in=product_ids).order_by("created_at").all().items

        grouped: dict[str, list[Deal]] = {}
        for deal in deals:
            if deal.is_active(now):
                grouped.setdefault(str(deal.product_id), []).append(deal)
        return grouped

    def active_for_product(self, product_id, now=None) -> list[Deal]:
        return self.active_for_products([product_id], now=now).get(str(product_id), [])

    def all_active(self, now=None) -> list[Deal]:
        now = now or datetime.now(UTC)
        return [deal for deal in self._dao.query.order_by("created_at").all().items if deal.is_active(now)]

    def active_exists(self, product_id, deal_type_id, now=None) -> bool:
        return any(str(deal.deal_type_id) == str(deal_type_id) for deal in self.active_for_product(product_id, now))
