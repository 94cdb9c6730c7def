"""Domain events for the Product aggregate."""

from protean.fields import Boolean, DateTime, Decimal, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductAdded:
    """A product was added to the catalogue with its opening stock."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    price = Decimal(required=True)
    stock = Integer(required=True)
    availability = Boolean(required=True)
    added_at = DateTime(required=True)


@storefront.event(part_of="Product")
class StockCommitted:
    """Stock was taken out of the product for a checkout."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    committed_at = DateTime(required=True)


@storefront.event(part_of="Product")
class StockReleased:
    """Stock was put back into the product."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    released_at = DateTime(required=True)
