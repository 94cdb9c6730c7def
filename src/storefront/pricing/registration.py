"""Deal administration: register deal types and create deals.

Only one active deal per product and deal type is allowed. Expired deals do
not count, so a lapsed deal can be replaced.
"""

from protean import handle
from protean.fields import DateTime, Decimal, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import storefront
from storefront.exceptions import DuplicateDeal
from storefront.pricing.deal import Deal, DealType


@storefront.command(part_of="DealType")
class RegisterDealType:
    name = String(required=True, max_length=100)
    description = Text()
    strategy = String(required=True, max_length=100)


@storefront.command(part_of="Deal")
class CreateDeal:
    product_id = Identifier(required=True)
    deal_type_id = Identifier(required=True)
    expires_at = DateTime(required=True)
    discount_percent = Decimal()
    discount_amount = Decimal()
    minimum_quantity = Integer(min_value=0)


@storefront.command_handler(part_of=DealType)
class RegisterDealTypeHandler:
    @handle(RegisterDealType)
    def register_deal_type(self, command):
        deal_type = DealType.register(
            name=command.name,
            strategy=command.strategy,
            description=command.description,
        )
        current_domain.repository_for(DealType).add(deal_type)
        return str(deal_type.id)


@storefront.command_handler(part_of=Deal)
class CreateDealHandler:
    @handle(CreateDeal)
    def create_deal(self, command):
        current_domain.repository_for(Product).lookup(command.product_id)
        current_domain.repository_for(DealType).lookup(command.deal_type_id)

        repo = current_domain.repository_for(Deal)
        if repo.active_exists(command.product_id, command.deal_type_id):
            raise DuplicateDeal(command.product_id, command.deal_type_id)

        deal = Deal.create(
            product_id=command.product_id,
            deal_type_id=command.deal_type_id,
            expires_at=command.expires_at,
            discount_percent=command.discount_percent,
            discount_amount=command.discount_amount,
            minimum_quantity=command.minimum_quantity,
        )
        repo.add(deal)
        return str(deal.id)
