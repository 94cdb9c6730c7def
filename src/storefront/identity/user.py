"""User aggregate: the owner of baskets and orders.

Authentication lives elsewhere. The storefront only needs to know that a user
exists and which basket is currently active for them. Pointing the user at its
active basket means that starting a basket always writes the user record, so
two concurrent basket creations for the same user collide on the user's
version and one of them is retried.
"""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, String

from storefront.domain import storefront
from storefront.exceptions import UserNotFound


@storefront.aggregate
class User:
    username = String(required=True, max_length=50, unique=True)
    email = String(max_length=254)
    active_basket_id = Identifier()
    registered_at = DateTime()

    @classmethod
    def register(cls, username, email=None):
        return cls(
            username=username,
            email=email,
            registered_at=datetime.now(UTC),
        )

    def track_basket(self, basket_id):
        """Point the user at a freshly started basket."""
        self.active_basket_id = str(basket_id)


@storefront.repository(part_of=User)
class UserRepository:
    def lookup(self, user_id) -> User:
        """Fetch a user, translating a miss into ``UserNotFound``."""
        try:
            return self.get(str(user_id))
        except ObjectNotFoundError:
            raise UserNotFound(user_id) from None
