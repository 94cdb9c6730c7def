"""Basket aggregate: a user's in-progress selection of products.

A basket holds at most one item per product; adding a product that is already
present raises its quantity instead. Baskets are ``Active`` until they are
either checked out or superseded by a newer basket for the same user, and
neither of those states can be left again.

The aggregate only guards its own state. Stock checks happen in the command
handlers through the stock ledger before the aggregate is changed.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from storefront.basket.events import (
    BasketCheckedOut,
    BasketCleared,
    BasketCreated,
    BasketExpired,
    BasketItemAdded,
    BasketItemQuantityUpdated,
    BasketItemRemoved,
)
from storefront.domain import storefront
from storefront.exceptions import EmptyBasketCheckout, InvalidBasketState, ItemNotFound


class BasketStatus(Enum):
    ACTIVE = "Active"
    CHECKED_OUT = "CheckedOut"
    EXPIRED = "Expired"


@storefront.entity(part_of="Basket")
class BasketItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@storefront.aggregate
class Basket:
    user_id = Identifier(required=True)
    items = HasMany(BasketItem)
    status = String(choices=BasketStatus, default=BasketStatus.ACTIVE.value)
    created_at = DateTime()
    updated_at = DateTime()
    checked_out_at = DateTime()

    @invariant.post
    def checked_out_basket_must_have_items(self):
        if self.status == BasketStatus.CHECKED_OUT.value and not self.items:
            raise ValidationError({"basket": ["A checked out basket must have items"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id):
        now = datetime.now(UTC)
        basket = cls(
            user_id=user_id,
            status=BasketStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        basket.raise_(
            BasketCreated(
                basket_id=str(basket.id),
                user_id=str(user_id),
                created_at=now,
            )
        )
        return basket

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def is_active(self) -> bool:
        return self.status == BasketStatus.ACTIVE.value

    def item_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def quantity_of(self, product_id) -> int:
        item = self.item_for(product_id)
        return item.quantity if item else 0

    def _ensure_active(self, action):
        if not self.is_active:
            raise InvalidBasketState(self.id, self.status, action)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity):
        """Add units of a product, merging with an existing line for it."""
        self._ensure_active("add items to")
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = datetime.now(UTC)
        existing = self.item_for(product_id)
        if existing:
            existing.quantity += quantity
            new_quantity = existing.quantity
        else:
            self.add_items(BasketItem(product_id=product_id, quantity=quantity, added_at=now))
            new_quantity = quantity

        self.updated_at = now

        self.raise_(
            BasketItemAdded(
                basket_id=str(self.id),
                product_id=str(product_id),
                quantity_added=quantity,
                new_quantity=new_quantity,
            )
        )

    def set_item_quantity(self, product_id, quantity):
        """Set the absolute quantity of a line.

        Zero or less removes the line. Removing a line that is not there is
        accepted silently, while setting a positive quantity on a missing line
        raises ``ItemNotFound``.
        """
        self._ensure_active("update items in")

        item = self.item_for(product_id)
        if quantity <= 0:
            if item is not None:
                self.remove_item(product_id)
            return

        if item is None:
            raise ItemNotFound(self.id, product_id)

        previous_quantity = item.quantity
        item.quantity = quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            BasketItemQuantityUpdated(
                basket_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id):
        self._ensure_active("remove items from")

        item = self.item_for(product_id)
        if item is None:
            raise ItemNotFound(self.id, product_id)

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            BasketItemRemoved(
                basket_id=str(self.id),
                product_id=str(product_id),
            )
        )

    def clear(self):
        """Remove every item. Clearing an empty basket is a no-op."""
        self._ensure_active("clear")

        items = list(self.items)
        if not items:
            return

        for item in items:
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(BasketCleared(basket_id=str(self.id), items_removed=len(items)))

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def check_out(self):
        """Mark the basket as consumed by a checkout."""
        self._ensure_active("check out")
        if not self.items:
            raise EmptyBasketCheckout(self.id)

        now = datetime.now(UTC)
        self.status = BasketStatus.CHECKED_OUT.value
        self.checked_out_at = now
        self.updated_at = now

        self.raise_(
            BasketCheckedOut(
                basket_id=str(self.id),
                user_id=str(self.user_id),
                item_count=len(self.items),
                checked_out_at=now,
            )
        )

    def expire(self):
        """Retire the basket in favour of a newer one."""
        self._ensure_active("expire")

        now = datetime.now(UTC)
        self.status = BasketStatus.EXPIRED.value
        self.updated_at = now

        self.raise_(
            BasketExpired(
                basket_id=str(self.id),
                user_id=str(self.user_id),
                expired_at=now,
            )
        )


@storefront.repository(part_of=Basket)
class BasketRepository:
    def active_baskets_for_user(self, user_id) -> list[Basket]:
        return self._dao.query.filter(user_id=str(user_id), status=BasketStatus.ACTIVE.value).all().items

    def active_for_user(self, user_id) -> Basket | None:
        """The user's active basket, if there is one."""
        active = self.active_baskets_for_user(user_id)
        return active[0] if active else None

    def history_for_user(self, user_id) -> list[Basket]:
        """Every basket the user ever had, newest first."""
        return self._dao.query.filter(user_id=str(user_id)).order_by("-created_at").all().items
