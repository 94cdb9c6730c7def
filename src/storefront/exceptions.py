"""Business rule violations raised by the storefront domain.

Every error is a ``ValidationError`` so callers that already handle Protean's
validation failures keep working. The ``messages`` dict is keyed by the
offending field, and each error also keeps its context (product, quantities,
basket) as attributes for callers that render their own messages.
"""

from protean.exceptions import ValidationError


class StorefrontError(ValidationError):
    """Base class for caller-visible business rule violations."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__({field: [message]})

    @property
    def message(self) -> str:
        return next(iter(self.messages.values()))[0]


# ---------------------------------------------------------------------------
# Stock
# ---------------------------------------------------------------------------
class ProductUnavailable(StorefrontError):
    def __init__(self, product_id, product_name: str) -> None:
        self.product_id = str(product_id)
        self.product_name = product_name
        super().__init__("product_id", f"{product_name} is currently unavailable")


class InsufficientStock(StorefrontError):
    def __init__(self, product_name: str, requested: int, available: int, product_id=None) -> None:
        self.product_id = str(product_id) if product_id is not None else None
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            "quantity",
            f"Insufficient stock for {product_name}: requested {requested}, available {available}",
        )


class OutOfStock(InsufficientStock):
    """Stock is exactly zero."""

    def __init__(self, product_name: str, requested: int, product_id=None) -> None:
        super().__init__(product_name, requested, 0, product_id=product_id)
        self.messages = {"quantity": [f"{product_name} is out of stock"]}


# ---------------------------------------------------------------------------
# Missing records
# ---------------------------------------------------------------------------
class ProductNotFound(StorefrontError):
    def __init__(self, product_id) -> None:
        self.product_id = str(product_id)
        super().__init__("product_id", f"Product {product_id} not found")


class BasketNotFound(StorefrontError):
    def __init__(self, user_id) -> None:
        self.user_id = str(user_id)
        super().__init__("basket", f"No active basket found for user {user_id}")


class ItemNotFound(StorefrontError):
    def __init__(self, basket_id, product_id) -> None:
        self.basket_id = str(basket_id)
        self.product_id = str(product_id)
        super().__init__("product_id", f"Product {product_id} is not in basket {basket_id}")


class UserNotFound(StorefrontError):
    def __init__(self, user_id) -> None:
        self.user_id = str(user_id)
        super().__init__("user_id", f"User {user_id} not found")


class DealTypeNotFound(StorefrontError):
    def __init__(self, deal_type_id) -> None:
        self.deal_type_id = str(deal_type_id)
        super().__init__("deal_type_id", f"Deal type {deal_type_id} not found")


# ---------------------------------------------------------------------------
# Basket state
# ---------------------------------------------------------------------------
class InvalidBasketState(StorefrontError):
    def __init__(self, basket_id, status: str, action: str) -> None:
        self.basket_id = str(basket_id)
        self.status = status
        self.action = action
        super().__init__("status", f"Cannot {action} basket {basket_id} in state {status}")


class EmptyBasketCheckout(StorefrontError):
    def __init__(self, basket_id) -> None:
        self.basket_id = str(basket_id)
        super().__init__("basket", "Cannot check out an empty basket")


# ---------------------------------------------------------------------------
# Pricing
# ---------------------------------------------------------------------------
class UnknownStrategy(StorefrontError):
    def __init__(self, strategy: str) -> None:
        self.strategy = strategy
        super().__init__("strategy", f"No discount strategy registered as '{strategy}'")


class DuplicateDeal(StorefrontError):
    def __init__(self, product_id, deal_type_id) -> None:
        self.product_id = str(product_id)
        self.deal_type_id = str(deal_type_id)
        super().__init__(
            "deal",
            f"An active deal of type {deal_type_id} already exists for product {product_id}",
        )
