"""Basket item management: commands and handler.

Every change is checked against current stock before it is applied, using the
quantity the basket would hold afterwards. Nothing is reserved here; stock is
only taken at checkout.
"""

from protean import handle
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from storefront.basket.basket import Basket
from storefront.basket.management import active_basket_for, open_basket_for
from storefront.catalogue.ledger import StockLedger
from storefront.domain import storefront
from storefront.identity.user import User


@storefront.command(part_of="Basket")
class AddItemToBasket:
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@storefront.command(part_of="Basket")
class UpdateBasketItemQuantity:
    """Set a line to an absolute quantity; zero or less removes it."""

    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@storefront.command(part_of="Basket")
class RemoveItemFromBasket:
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.command_handler(part_of=Basket)
class ManageBasketItemsHandler:
    @handle(AddItemToBasket)
    def add_item_to_basket(self, command):
        user = current_domain.repository_for(User).lookup(command.user_id)
        basket = open_basket_for(user)

        requested = basket.quantity_of(command.product_id) + command.quantity
        StockLedger().ensure_available(command.product_id, requested)

        basket.add_item(product_id=command.product_id, quantity=command.quantity)
        current_domain.repository_for(Basket).add(basket)
        return basket

    @handle(UpdateBasketItemQuantity)
    def update_basket_item_quantity(self, command):
        basket = active_basket_for(command.user_id)

        if command.quantity > 0 and basket.item_for(command.product_id) is not None:
            StockLedger().ensure_available(command.product_id, command.quantity)

        basket.set_item_quantity(product_id=command.product_id, quantity=command.quantity)
        current_domain.repository_for(Basket).add(basket)
        return basket

    @handle(RemoveItemFromBasket)
    def remove_item_from_basket(self, command):
        basket = active_basket_for(command.user_id)
        basket.remove_item(product_id=command.product_id)
        current_domain.repository_for(Basket).add(basket)
        return basket
