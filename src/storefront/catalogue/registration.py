"""Catalogue seeding: add a product with its opening stock."""

from protean import handle
from protean.fields import Boolean, Decimal, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.domain import storefront


@storefront.command(part_of="Product")
class AddProduct:
    name = String(required=True, max_length=255)
    description = Text()
    category = String(max_length=100)
    price = Decimal(required=True, min_value=0)
    stock = Integer(default=0, min_value=0)
    availability = Boolean(default=True)


@storefront.command_handler(part_of=Product)
class AddProductHandler:
    @handle(AddProduct)
    def add_product(self, command):
        product = Product.add(
            name=command.name,
            price=command.price,
            stock=command.stock,
            availability=command.availability,
            description=command.description,
            category=command.category,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)
