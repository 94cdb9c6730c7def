"""Storefront bounded context: baskets, stock, deals and orders.

Handles the shopping basket lifecycle, the stock ledger that guards product
stock against overselling, the discount engine that prices baskets, and the
checkout flow that freezes a basket into an immutable order.
"""

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
storefront = Domain(name="storefront")
