"""Domain events for the Basket aggregate."""

from protean.fields import DateTime, Identifier, Integer

from storefront.domain import storefront


@storefront.event(part_of="Basket")
class BasketCreated:
    """A new active basket was started for a user."""

    __version__ = 1

    basket_id = Identifier(required=True)
    user_id = Identifier(required=True)
    created_at = DateTime(required=True)


@storefront.event(part_of="Basket")
class BasketItemAdded:
    """Units of a product were added to the basket."""

    __version__ = 1

    basket_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity_added = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="Basket")
class BasketItemQuantityUpdated:
    """A basket item was set to a new quantity."""

    __version__ = 1

    basket_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="Basket")
class BasketItemRemoved:
    """A product was taken out of the basket."""

    __version__ = 1

    basket_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.event(part_of="Basket")
class BasketCleared:
    """Every item was taken out of the basket."""

    __version__ = 1

    basket_id = Identifier(required=True)
    items_removed = Integer(required=True)


@storefront.event(part_of="Basket")
class BasketCheckedOut:
    """The basket was consumed by a successful checkout."""

    __version__ = 1

    basket_id = Identifier(required=True)
    user_id = Identifier(required=True)
    item_count = Integer(required=True)
    checked_out_at = DateTime(required=True)


@storefront.event(part_of="Basket")
class BasketExpired:
    """The basket was superseded by a newer basket for the same user."""

    __version__ = 1

    basket_id = Identifier(required=True)
    user_id = Identifier(required=True)
    expired_at = DateTime(required=True)
