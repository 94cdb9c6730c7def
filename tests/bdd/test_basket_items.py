"""BDD tests for basket item management."""

from pytest_bdd import parsers, scenarios, when
from storefront.basket.items import AddItemToBasket, RemoveItemFromBasket, UpdateBasketItemQuantity
from storefront.basket.management import ClearBasket

scenarios("features/basket_items.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the shopper adds {qty:d} of "{name}"'))
def add_item(attempt, user_id, catalogue, qty, name):
    attempt(AddItemToBasket(user_id=user_id, product_id=catalogue[name], quantity=qty))


@when(parsers.cfparse('the shopper sets the quantity of "{name}" to {qty:d}'))
def set_quantity(attempt, user_id, catalogue, name, qty):
    attempt(UpdateBasketItemQuantity(user_id=user_id, product_id=catalogue[name], quantity=qty))


@when(parsers.cfparse('the shopper removes "{name}"'))
def remove_item(attempt, user_id, catalogue, name):
    attempt(RemoveItemFromBasket(user_id=user_id, product_id=catalogue.get(name, name)))


@when("the shopper clears the basket")
def clear_basket(attempt, user_id):
    attempt(ClearBasket(user_id=user_id))
