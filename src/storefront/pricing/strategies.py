"""Discount strategies and the registry that resolves them.

A strategy is a pure function ``(line, deal) -> Decimal``. Deal types name
their strategy by a stable identifier, and the registry maps identifiers to
functions. Strategies are registered explicitly with ``register_strategy``
at import time; looking up an identifier nobody registered raises
``UnknownStrategy``.

The three shipped strategies do not treat edge cases the same way.
Percentage-off and buy-N return zero for missing or non-positive settings,
while fixed-amount-off caps the discount at the line total. That difference
is intentional.
"""

from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from storefront.exceptions import UnknownStrategy
from storefront.utils.money import ZERO, round2, to_decimal

PERCENTAGE_OFF = "percentage_off"
FIXED_AMOUNT_OFF = "fixed_amount_off"
BUY_N_GET_HALF_OFF = "buy_n_get_half_off"


@dataclass(frozen=True)
class LineItem:
    """A product and quantity priced at a given unit price."""

    product_id: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return round2(self.unit_price * self.quantity)


class DealTerms(Protocol):
    discount_percent: Decimal | None
    discount_amount: Decimal | None
    minimum_quantity: int | None


DiscountStrategy = Callable[[LineItem, DealTerms], Decimal]

_registry: dict[str, DiscountStrategy] = {}


def register_strategy(identifier: str) -> Callable[[DiscountStrategy], DiscountStrategy]:
    """Register the decorated function under ``identifier``."""

    def decorator(fn: DiscountStrategy) -> DiscountStrategy:
        if identifier in _registry and _registry[identifier] is not fn:
            raise ValueError(f"Discount strategy '{identifier}' is already registered")
        _registry[identifier] = fn
        return fn

    return decorator


def strategy_for(identifier: str) -> DiscountStrategy:
    try:
        return _registry[identifier]
    except KeyError:
        raise UnknownStrategy(identifier) from None


def is_registered(identifier: str) -> bool:
    return identifier in _registry


def registered_strategies() -> list[str]:
    return sorted(_registry)


def _minimum(deal: DealTerms, default: int) -> int:
    return deal.minimum_quantity if deal.minimum_quantity is not None else default


# ---------------------------------------------------------------------------
# Shipped strategies
# ---------------------------------------------------------------------------
@register_strategy(PERCENTAGE_OFF)
def percentage_off(line: LineItem, deal: DealTerms) -> Decimal:
    if line.quantity < _minimum(deal, 1):
        return ZERO

    percent = deal.discount_percent
    if percent is None or to_decimal(percent) <= 0:
        return ZERO

    return round2(to_decimal(line.unit_price) * line.quantity * to_decimal(percent) / 100)


@register_strategy(FIXED_AMOUNT_OFF)
def fixed_amount_off(line: LineItem, deal: DealTerms) -> Decimal:
    if line.quantity < _minimum(deal, 1):
        return ZERO

    amount = deal.discount_amount
    if amount is None or to_decimal(amount) <= 0:
        return ZERO

    return min(to_decimal(amount), to_decimal(line.unit_price) * line.quantity)


@register_strategy(BUY_N_GET_HALF_OFF)
def buy_n_get_half_off(line: LineItem, deal: DealTerms) -> Decimal:
    """Every N-th unit is discounted by ``discount_percent`` (50% unless set)."""
    n = _minimum(deal, 2)
    if n <= 0 or line.quantity < n:
        return ZERO

    percent = to_decimal(deal.discount_percent) if deal.discount_percent is not None else Decimal(50)
    discounted_units = line.quantity // n
    return discounted_units * round2(to_decimal(line.unit_price) * percent / 100)
