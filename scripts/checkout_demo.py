"""Demo: fill a basket, apply deals and check out against the in-memory store.

Seeds one user, two products and a couple of deals, adds both products to the
user's basket, prints the display pricing and then checks out.

With --concurrent, two users race for the same scarce product from separate
threads. Exactly one checkout succeeds and the other is refused with
InsufficientStock; the remaining stock never goes negative.

Usage:
    python scripts/checkout_demo.py
    python scripts/checkout_demo.py --quantity 3 --percent 15
    python scripts/checkout_demo.py --concurrent --stock 10 --quantity 6
"""

import argparse
import sys
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime, timedelta
from decimal import Decimal

# Add src/ to path so we can import domain modules
sys.path.insert(0, "src")


def _seed(current_domain, stock, percent):
    from storefront.catalogue.registration import AddProduct
    from storefront.pricing.registration import CreateDeal, RegisterDealType
    from storefront.pricing.strategies import BUY_N_GET_HALF_OFF, PERCENTAGE_OFF

    laptop = current_domain.process(
        AddProduct(name="Laptop", price=Decimal("999.00"), stock=stock),
        asynchronous=False,
    )
    mouse = current_domain.process(
        AddProduct(name="Mouse", price=Decimal("25.00"), stock=100),
        asynchronous=False,
    )

    percentage = current_domain.process(
        RegisterDealType(name="Percentage Off", strategy=PERCENTAGE_OFF),
        asynchronous=False,
    )
    half_off = current_domain.process(
        RegisterDealType(name="Buy Two Get Half Off", strategy=BUY_N_GET_HALF_OFF),
        asynchronous=False,
    )

    next_week = datetime.now(UTC) + timedelta(days=7)
    current_domain.process(
        CreateDeal(
            product_id=laptop,
            deal_type_id=percentage,
            expires_at=next_week,
            discount_percent=Decimal(percent),
        ),
        asynchronous=False,
    )
    current_domain.process(
        CreateDeal(product_id=mouse, deal_type_id=half_off, expires_at=next_week, minimum_quantity=2),
        asynchronous=False,
    )
    return laptop, mouse


def _print_order(order):
    print(f"Order {order.id}")
    for item in order.items:
        print(
            f"  {item.product_name:<10} x{item.quantity:<3} @ {item.unit_price:>8}"
            f"  total {item.line_total:>9}  discount {item.discount:>8}  net {item.net_total:>9}"
        )
    print(f"  total    {order.total_amount}")
    print(f"  discount {order.total_discount}")
    print(f"  final    {order.final_amount}")
    print(f"  note     {order.note}")


def run_single(current_domain, args):
    from storefront.basket.items import AddItemToBasket
    from storefront.checkout.checkout import Checkout
    from storefront.identity.registration import RegisterUser
    from storefront.pricing.engine import price_basket

    laptop, mouse = _seed(current_domain, args.stock, args.percent)
    user = current_domain.process(RegisterUser(username="demo"), asynchronous=False)

    current_domain.process(AddItemToBasket(user_id=user, product_id=laptop, quantity=args.quantity), asynchronous=False)
    basket = current_domain.process(AddItemToBasket(user_id=user, product_id=mouse, quantity=4), asynchronous=False)

    pricing = price_basket(basket)
    print(f"Basket {basket.id}: {len(basket.items)} lines, display discount {pricing.total_discount}")

    order = current_domain.process(Checkout(user_id=user), asynchronous=False)
    _print_order(order)


def run_concurrent(domain, current_domain, args):
    from storefront.basket.items import AddItemToBasket
    from storefront.catalogue.product import Product
    from storefront.checkout.checkout import Checkout
    from storefront.exceptions import InsufficientStock
    from storefront.identity.registration import RegisterUser

    laptop, _ = _seed(current_domain, args.stock, args.percent)
    users = [current_domain.process(RegisterUser(username=f"racer-{n}"), asynchronous=False) for n in range(2)]
    for user in users:
        current_domain.process(
            AddItemToBasket(user_id=user, product_id=laptop, quantity=args.quantity),
            asynchronous=False,
        )

    def attempt(user_id):
        with domain.domain_context():
            try:
                order = current_domain.process(Checkout(user_id=user_id), asynchronous=False)
                return f"{user_id}: order {order.id}"
            except InsufficientStock as exc:
                return f"{user_id}: refused ({exc.message})"

    with ThreadPoolExecutor(max_workers=2) as pool:
        for outcome in pool.map(attempt, users):
            print(outcome)

    stock = current_domain.repository_for(Product).get(laptop).stock
    print(f"Remaining stock: {stock}")


def main():
    parser = argparse.ArgumentParser(
        description="Run a checkout against the in-memory storefront",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                    # One basket, two deals
  %(prog)s --quantity 3 --percent 15          # Bigger basket, smaller deal
  %(prog)s --concurrent --stock 10 --quantity 6
        """,
    )
    parser.add_argument("--quantity", type=int, default=2, help="Laptops per basket (default: 2)")
    parser.add_argument("--stock", type=int, default=10, help="Opening laptop stock (default: 10)")
    parser.add_argument("--percent", type=int, default=20, help="Laptop percentage deal (default: 20)")
    parser.add_argument("--concurrent", action="store_true", help="Race two checkouts for the same laptops")
    args = parser.parse_args()

    from protean.utils.globals import current_domain

    from storefront.domain import storefront

    storefront.init()
    with storefront.domain_context():
        if args.concurrent:
            run_concurrent(storefront, current_domain, args)
        else:
            run_single(current_domain, args)


if __name__ == "__main__":
    main()
