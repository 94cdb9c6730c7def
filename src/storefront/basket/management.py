"""Basket management: opening, restarting and clearing a user's basket.

Starting a basket expires whatever active basket the user still has and
creates the new one in the same Unit of Work. The user record is updated with
the new basket id, so two requests racing to start a basket for the same user
cannot both commit. The loser is retried and then finds the winner's basket.
"""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from storefront.basket.basket import Basket
from storefront.domain import storefront
from storefront.exceptions import BasketNotFound
from storefront.identity.user import User
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def start_basket_for(user) -> Basket:
    """Expire the user's active baskets and start a fresh one."""
    repo = current_domain.repository_for(Basket)

    for stale in repo.active_baskets_for_user(user.id):
        stale.expire()
        repo.add(stale)
        logger.info("basket_expired", basket_id=str(stale.id), user_id=str(user.id))

    basket = Basket.create(user_id=user.id)
    repo.add(basket)

    user.track_basket(basket.id)
    current_domain.repository_for(User).add(user)

    logger.info("basket_started", basket_id=str(basket.id), user_id=str(user.id))
    return basket


def open_basket_for(user) -> Basket:
    """The user's active basket, started on first access."""
    basket = current_domain.repository_for(Basket).active_for_user(user.id)
    if basket is None:
        basket = start_basket_for(user)
    return basket


def active_basket_for(user_id) -> Basket:
    """The user's active basket, or ``BasketNotFound``."""
    user = current_domain.repository_for(User).lookup(user_id)
    basket = current_domain.repository_for(Basket).active_for_user(user.id)
    if basket is None:
        raise BasketNotFound(user_id)
    return basket


@storefront.command(part_of="Basket")
class OpenBasket:
    """Get the user's active basket, creating one if there is none."""

    user_id = Identifier(required=True)


@storefront.command(part_of="Basket")
class StartNewBasket:
    """Abandon the current basket, if any, and start an empty one."""

    user_id = Identifier(required=True)


@storefront.command(part_of="Basket")
class ClearBasket:
    user_id = Identifier(required=True)


@storefront.command_handler(part_of=Basket)
class ManageBasketHandler:
    @handle(OpenBasket)
    def open_basket(self, command):
        user = current_domain.repository_for(User).lookup(command.user_id)
        return open_basket_for(user)

    @handle(StartNewBasket)
    def start_new_basket(self, command):
        user = current_domain.repository_for(User).lookup(command.user_id)
        return start_basket_for(user)

    @handle(ClearBasket)
    def clear_basket(self, command):
        basket = active_basket_for(command.user_id)
        basket.clear()
        current_domain.repository_for(Basket).add(basket)
        return basket
