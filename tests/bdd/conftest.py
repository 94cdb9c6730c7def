"""Shared BDD fixtures and step definitions for the storefront."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then
from storefront.basket.basket import Basket
from storefront.basket.items import AddItemToBasket
from storefront.basket.management import OpenBasket
from storefront.catalogue.ledger import StockLedger
from storefront.catalogue.product import Product
from storefront.pricing.strategies import BUY_N_GET_HALF_OFF, FIXED_AMOUNT_OFF, PERCENTAGE_OFF

_DEAL_TYPE_NAMES = {
    PERCENTAGE_OFF: "Percentage Off",
    FIXED_AMOUNT_OFF: "Fixed Amount Off",
    BUY_N_GET_HALF_OFF: "Buy Two Get Half Off",
}


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


@pytest.fixture()
def attempt(error):
    """Process a command, capturing a business rule violation in ``error``."""

    def _attempt(command):
        try:
            return current_domain.process(command, asynchronous=False)
        except ValidationError as exc:
            error["exc"] = exc

    return _attempt


@pytest.fixture()
def catalogue():
    """Product ids by name."""
    return {}


@pytest.fixture()
def deal_types(register_deal_type):
    registered = {}

    def _for(strategy):
        if strategy not in registered:
            registered[strategy] = register_deal_type(_DEAL_TYPE_NAMES[strategy], strategy)
        return registered[strategy]

    return _for


# ---------------------------------------------------------------------------
# Given steps: catalogue and deals
# ---------------------------------------------------------------------------
@given("a shopper", target_fixture="user_id")
def a_shopper(register_user):
    return register_user()


@given(parsers.cfparse('a product "{name}" priced {price} with {stock:d} in stock'))
def a_product(add_product, catalogue, name, price, stock):
    catalogue[name] = add_product(name=name, price=price, stock=stock)


@given(parsers.cfparse('an unavailable product "{name}" priced {price}'))
def an_unavailable_product(add_product, catalogue, name, price):
    catalogue[name] = add_product(name=name, price=price, stock=10, availability=False)


@given(parsers.cfparse('a {percent:d} percent off deal on "{name}"'))
def a_percentage_deal(create_deal, deal_types, catalogue, percent, name):
    create_deal(catalogue[name], deal_types(PERCENTAGE_OFF), discount_percent=percent)


@given(parsers.cfparse('a fixed {amount} off deal on "{name}"'))
def a_fixed_amount_deal(create_deal, deal_types, catalogue, amount, name):
    create_deal(catalogue[name], deal_types(FIXED_AMOUNT_OFF), discount_amount=amount)


@given(parsers.cfparse('a buy {n:d} get half off deal on "{name}"'))
def a_buy_n_deal(create_deal, deal_types, catalogue, n, name):
    create_deal(catalogue[name], deal_types(BUY_N_GET_HALF_OFF), minimum_quantity=n)


# ---------------------------------------------------------------------------
# Given steps: basket
# ---------------------------------------------------------------------------
@given("the shopper has an empty basket")
def an_empty_basket(user_id):
    current_domain.process(OpenBasket(user_id=user_id), asynchronous=False)


@given(parsers.cfparse('the shopper has {qty:d} of "{name}" in the basket'))
def basket_with_item(user_id, catalogue, qty, name):
    current_domain.process(
        AddItemToBasket(user_id=user_id, product_id=catalogue[name], quantity=qty),
        asynchronous=False,
    )


@given(parsers.cfparse('{qty:d} of "{name}" are sold elsewhere'))
def sold_elsewhere(catalogue, qty, name):
    StockLedger().commit_decrement(catalogue[name], qty)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the action fails with "{error_name}"'))
def action_fails(error, error_name):
    assert error["exc"] is not None, f"Expected {error_name} but nothing was raised"
    assert type(error["exc"]).__name__ == error_name


@then(parsers.cfparse('the stock of "{name}" is {stock:d}'))
def stock_is(catalogue, name, stock):
    assert current_domain.repository_for(Product).get(catalogue[name]).stock == stock


@then(parsers.cfparse('the basket holds {qty:d} of "{name}"'))
def basket_holds(user_id, catalogue, qty, name):
    basket = current_domain.repository_for(Basket).active_for_user(user_id)
    assert basket.quantity_of(catalogue[name]) == qty


@then("the basket is empty")
def basket_is_empty(user_id):
    basket = current_domain.repository_for(Basket).active_for_user(user_id)
    assert len(basket.items) == 0
