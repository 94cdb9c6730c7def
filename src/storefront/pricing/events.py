"""Domain events for deal types and deals."""

from protean.fields import DateTime, Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="DealType")
class DealTypeRegistered:
    __version__ = 1

    deal_type_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    strategy = String(required=True, max_length=100)


@storefront.event(part_of="Deal")
class DealCreated:
    __version__ = 1

    deal_id = Identifier(required=True)
    product_id = Identifier(required=True)
    deal_type_id = Identifier(required=True)
    expires_at = DateTime(required=True)
