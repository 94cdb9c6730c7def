"""Product aggregate: price, stock and availability of a sellable item.

Only the stock ledger moves stock. ``decrement_stock`` refuses to take more
than is on hand, and the field itself cannot go below zero.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Decimal, Integer, String, Text

from storefront.catalogue.events import ProductAdded, StockCommitted, StockReleased
from storefront.domain import storefront
from storefront.exceptions import InsufficientStock, OutOfStock, ProductNotFound
from storefront.utils.money import round2


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    description = Text()
    category = String(max_length=100)
    price = Decimal(required=True, min_value=0)
    stock = Integer(default=0, min_value=0)
    availability = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def stock_cannot_be_negative(self):
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def add(cls, name, price, stock=0, availability=True, description=None, category=None):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            description=description,
            category=category,
            price=round2(price),
            stock=stock,
            availability=availability,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductAdded(
                product_id=str(product.id),
                name=name,
                price=product.price,
                stock=product.stock,
                availability=product.availability,
                added_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Stock movements
    # -------------------------------------------------------------------
    def can_supply(self, quantity) -> bool:
        return bool(self.availability) and self.stock >= quantity

    def decrement_stock(self, quantity):
        """Take ``quantity`` units out of stock, refusing to oversell."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        if self.stock == 0:
            raise OutOfStock(self.name, quantity, product_id=self.id)
        if quantity > self.stock:
            raise InsufficientStock(self.name, quantity, self.stock, product_id=self.id)

        previous = self.stock
        self.stock = previous - quantity
        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            StockCommitted(
                product_id=str(self.id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                committed_at=now,
            )
        )

    def increment_stock(self, quantity):
        """Put ``quantity`` units back into stock."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        previous = self.stock
        self.stock = previous + quantity
        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            StockReleased(
                product_id=str(self.id),
                quantity=quantity,
                previous_stock=previous,
                new_stock=self.stock,
                released_at=now,
            )
        )


@storefront.repository(part_of=Product)
class ProductRepository:
    def lookup(self, product_id) -> Product:
        """Fetch a product, translating a miss into ``ProductNotFound``."""
        try:
            return self.get(str(product_id))
        except ObjectNotFoundError:
            raise ProductNotFound(product_id) from None
