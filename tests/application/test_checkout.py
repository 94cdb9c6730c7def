"""Checkout end to end: stock, basket, pricing and the placed order."""

from collections import Counter
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from protean import current_domain
from storefront.basket.basket import Basket, BasketStatus
from storefront.basket.items import AddItemToBasket
from storefront.basket.management import OpenBasket
from storefront.catalogue.ledger import StockLedger
from storefront.catalogue.product import Product
from storefront.checkout.checkout import Checkout, CheckoutOrchestrator
from storefront.exceptions import (
    BasketNotFound,
    EmptyBasketCheckout,
    InsufficientStock,
    OutOfStock,
    UnknownStrategy,
)
from storefront.order.materializer import NO_DEALS_NOTE, OrderMaterializer
from storefront.order.order import Order
from storefront.pricing.deal import Deal, DealType
from storefront.pricing.strategies import BUY_N_GET_HALF_OFF, FIXED_AMOUNT_OFF, PERCENTAGE_OFF


def _process(command):
    return current_domain.process(command, asynchronous=False)


def _add(user, product, quantity):
    return _process(AddItemToBasket(user_id=user, product_id=product, quantity=quantity))


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock


@pytest.fixture()
def user(register_user):
    return register_user()


@pytest.fixture()
def laptop(add_product):
    return add_product(name="Laptop", price="1000.00", stock=10)


@pytest.fixture()
def mouse(add_product):
    return add_product(name="Mouse", price="25.00", stock=50)


class TestSuccessfulCheckout:
    def test_order_without_deals(self, user, laptop, mouse):
        _add(user, laptop, 1)
        _add(user, mouse, 2)

        order = _process(Checkout(user_id=user))

        assert order.total_amount == Decimal("1050.00")
        assert order.total_discount == Decimal("0.00")
        assert order.final_amount == Decimal("1050.00")
        assert order.note == NO_DEALS_NOTE
        assert len(order.items) == 2

    def test_stock_is_committed(self, user, laptop, mouse):
        _add(user, laptop, 2)
        _add(user, mouse, 5)

        _process(Checkout(user_id=user))

        assert _stock(laptop) == 8
        assert _stock(mouse) == 45

    def test_basket_is_checked_out(self, user, laptop):
        basket = _add(user, laptop, 1)

        _process(Checkout(user_id=user))

        stored = current_domain.repository_for(Basket).get(basket.id)
        assert stored.status == BasketStatus.CHECKED_OUT.value
        assert stored.checked_out_at is not None
        assert current_domain.repository_for(Basket).active_for_user(user) is None

    def test_order_is_persisted_with_frozen_lines(self, user, laptop):
        _add(user, laptop, 2)

        order = _process(Checkout(user_id=user))

        stored = current_domain.repository_for(Order).get(order.id)
        item = stored.item_for(laptop)
        assert item.product_name == "Laptop"
        assert item.unit_price == Decimal("1000.00")
        assert item.line_total == Decimal("2000.00")
        assert item.net_total == Decimal("2000.00")

    def test_deals_are_applied_and_noted(
        self, user, laptop, mouse, register_deal_type, create_deal
    ):
        percentage = register_deal_type("Percentage Off", PERCENTAGE_OFF)
        half_off = register_deal_type("Buy Two Get Half Off", BUY_N_GET_HALF_OFF)
        create_deal(laptop, percentage, discount_percent=20, minimum_quantity=1)
        create_deal(mouse, half_off, minimum_quantity=2)

        _add(user, laptop, 2)
        _add(user, mouse, 4)

        order = _process(Checkout(user_id=user))

        assert order.item_for(laptop).discount == Decimal("400.00")
        assert order.item_for(mouse).discount == Decimal("25.00")
        assert order.total_amount == Decimal("2100.00")
        assert order.total_discount == Decimal("425.00")
        assert order.final_amount == Decimal("1675.00")
        assert order.note.startswith("Applied Deals: ")
        assert "Percentage Off on Laptop" in order.note
        assert "Buy Two Get Half Off on Mouse" in order.note

    def test_discounts_beyond_line_total_drive_final_amount_negative(
        self, user, add_product, register_deal_type, create_deal
    ):
        cable = add_product(name="Cable", price="10.00", stock=10)
        monitor = add_product(name="Monitor", price="50.00", stock=10)
        fixed = register_deal_type("Fixed Amount Off", FIXED_AMOUNT_OFF)
        percentage = register_deal_type("Percentage Off", PERCENTAGE_OFF)
        create_deal(monitor, fixed, discount_amount=50)
        create_deal(monitor, percentage, discount_percent=200)

        _add(user, cable, 2)
        _add(user, monitor, 1)

        order = _process(Checkout(user_id=user))

        assert order.item_for(monitor).discount == Decimal("150.00")
        assert order.item_for(monitor).net_total == Decimal("-100.00")
        assert order.total_amount == Decimal("70.00")
        assert order.total_discount == Decimal("150.00")
        assert order.final_amount == Decimal("-80.00")

    def test_expired_deal_does_not_apply(self, user, laptop, register_deal_type, create_deal):
        percentage = register_deal_type("Percentage Off", PERCENTAGE_OFF)
        create_deal(laptop, percentage, expires_at=datetime.now(UTC) - timedelta(minutes=5), discount_percent=20)
        _add(user, laptop, 1)

        order = _process(Checkout(user_id=user))

        assert order.total_discount == Decimal("0.00")
        assert order.note == NO_DEALS_NOTE


class TestRefusedCheckout:
    def test_without_basket(self, user):
        with pytest.raises(BasketNotFound):
            _process(Checkout(user_id=user))

    def test_empty_basket(self, user):
        _process(OpenBasket(user_id=user))
        with pytest.raises(EmptyBasketCheckout):
            _process(Checkout(user_id=user))

    def test_checked_out_basket_cannot_be_checked_out_again(self, user, laptop):
        _add(user, laptop, 1)
        _process(Checkout(user_id=user))

        with pytest.raises(BasketNotFound):
            _process(Checkout(user_id=user))
        assert _stock(laptop) == 9

    def test_stock_gone_since_adding(self, user, laptop, mouse):
        _add(user, mouse, 3)
        _add(user, laptop, 5)
        StockLedger().commit_decrement(laptop, 8)

        with pytest.raises(InsufficientStock) as exc:
            _process(Checkout(user_id=user))

        assert exc.value.product_name == "Laptop"
        assert exc.value.requested == 5
        assert exc.value.available == 2
        assert _stock(laptop) == 2
        assert _stock(mouse) == 50

    def test_sold_out_since_adding(self, user, laptop):
        _add(user, laptop, 1)
        StockLedger().commit_decrement(laptop, 10)

        with pytest.raises(OutOfStock):
            _process(Checkout(user_id=user))

    def test_refused_checkout_leaves_basket_and_orders_untouched(self, user, laptop, mouse):
        _add(user, mouse, 1)
        basket = _add(user, laptop, 5)
        StockLedger().commit_decrement(laptop, 8)

        with pytest.raises(InsufficientStock):
            _process(Checkout(user_id=user))

        stored = current_domain.repository_for(Basket).get(basket.id)
        assert stored.status == BasketStatus.ACTIVE.value
        assert len(stored.items) == 2
        assert current_domain.repository_for(Order).for_user(user) == []


def _retire_strategy(deal_type_id):
    deal_types = current_domain.repository_for(DealType)
    deal_type = deal_types.get(deal_type_id)
    deal_type.strategy = "retired_strategy"
    deal_types.add(deal_type)


class BrokenMaterializer(OrderMaterializer):
    def materialize(self, basket, pricing):
        raise RuntimeError("order store unavailable")


class RacingLedger(StockLedger):
    """Lets a rival buyer take most of one product just before it is committed."""

    def __init__(self, contested_product, rival_quantity):
        super().__init__()
        self.contested_product = contested_product
        self.rival_quantity = rival_quantity
        self.raced = False

    def commit_decrement(self, product_id, quantity):
        if str(product_id) == self.contested_product and not self.raced:
            self.raced = True
            super().commit_decrement(product_id, self.rival_quantity)
        return super().commit_decrement(product_id, quantity)


class TestCommitCompensation:
    def test_committed_stock_is_released_when_a_later_commit_fails(self, user, laptop, mouse):
        _add(user, laptop, 3)
        _add(user, mouse, 2)

        orchestrator = CheckoutOrchestrator(ledger=RacingLedger(mouse, rival_quantity=49))

        with pytest.raises(InsufficientStock) as exc:
            orchestrator.checkout(user)

        assert exc.value.available == 1
        assert _stock(laptop) == 10
        assert _stock(mouse) == 1
        assert current_domain.repository_for(Basket).active_for_user(user) is not None
        assert current_domain.repository_for(Order).for_user(user) == []

    def test_pricing_failure_after_commit_releases_stock(self, user, laptop, register_deal_type, create_deal):
        percentage = register_deal_type("Percentage Off", PERCENTAGE_OFF)
        create_deal(laptop, percentage, discount_percent=10)
        _retire_strategy(percentage)
        _add(user, laptop, 3)

        with pytest.raises(UnknownStrategy):
            CheckoutOrchestrator().checkout(user)

        assert _stock(laptop) == 10
        basket = current_domain.repository_for(Basket).active_for_user(user)
        assert basket is not None
        assert basket.quantity_of(laptop) == 3
        assert current_domain.repository_for(Order).for_user(user) == []

    def test_pricing_failure_through_the_command_changes_nothing(
        self, user, laptop, register_deal_type, create_deal
    ):
        percentage = register_deal_type("Percentage Off", PERCENTAGE_OFF)
        create_deal(laptop, percentage, discount_percent=10)
        _retire_strategy(percentage)
        _add(user, laptop, 3)

        with pytest.raises(UnknownStrategy):
            _process(Checkout(user_id=user))

        assert _stock(laptop) == 10
        assert current_domain.repository_for(Basket).active_for_user(user) is not None
        assert current_domain.repository_for(Order).for_user(user) == []

    def test_materializer_failure_releases_every_line(self, user, laptop, mouse):
        _add(user, laptop, 2)
        _add(user, mouse, 5)

        with pytest.raises(RuntimeError):
            CheckoutOrchestrator(materializer=BrokenMaterializer()).checkout(user)

        assert _stock(laptop) == 10
        assert _stock(mouse) == 50
        stored = current_domain.repository_for(Basket).active_for_user(user)
        assert stored.status == BasketStatus.ACTIVE.value
        assert current_domain.repository_for(Order).for_user(user) == []


class CountingProducts:
    def __init__(self, repo):
        self.repo = repo
        self.reads = Counter()

    def get(self, product_id):
        self.reads[str(product_id)] += 1
        return self.repo.get(product_id)

    def lookup(self, product_id):
        self.reads[str(product_id)] += 1
        return self.repo.lookup(product_id)

    def add(self, product):
        return self.repo.add(product)


class CountingLedger(StockLedger):
    def __init__(self):
        super().__init__()
        self.counting = CountingProducts(current_domain.repository_for(Product))

    @property
    def products(self):
        return self.counting


class TestStockVerification:
    def test_each_item_is_read_once_before_refusing(self, user, laptop, mouse):
        _add(user, mouse, 2)
        _add(user, laptop, 5)
        StockLedger().commit_decrement(laptop, 8)
        ledger = CountingLedger()

        with pytest.raises(InsufficientStock):
            CheckoutOrchestrator(ledger=ledger).checkout(user)

        assert ledger.counting.reads[laptop] == 1
        assert set(ledger.counting.reads.values()) == {1}
        assert _stock(mouse) == 50


class TestAfterCheckout:
    def test_adding_again_starts_a_new_basket(self, user, laptop):
        first = _add(user, laptop, 1)
        _process(Checkout(user_id=user))

        second = _add(user, laptop, 1)

        assert str(second.id) != str(first.id)
        assert second.quantity_of(laptop) == 1

    def test_order_history_is_newest_first(self, user, laptop):
        _add(user, laptop, 1)
        first = _process(Checkout(user_id=user))
        _add(user, laptop, 2)
        second = _process(Checkout(user_id=user))

        history = current_domain.repository_for(Order).for_user(user)
        assert [str(o.id) for o in history] == [str(second.id), str(first.id)]

    def test_order_ignores_later_price_and_deal_changes(self, user, laptop, register_deal_type, create_deal):
        percentage = register_deal_type("Percentage Off", PERCENTAGE_OFF)
        deal_id = create_deal(laptop, percentage, discount_percent=10)
        _add(user, laptop, 1)
        order = _process(Checkout(user_id=user))

        products = current_domain.repository_for(Product)
        product = products.get(laptop)
        product.price = Decimal("1500.00")
        products.add(product)

        deals = current_domain.repository_for(Deal)
        deal = deals.get(deal_id)
        deal.expires_at = datetime.now(UTC) - timedelta(days=1)
        deals.add(deal)

        stored = current_domain.repository_for(Order).get(order.id)
        assert stored.item_for(laptop).unit_price == Decimal("1000.00")
        assert stored.item_for(laptop).discount == Decimal("100.00")
        assert stored.final_amount == Decimal("900.00")
