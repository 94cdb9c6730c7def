"""User registration: command and handler."""

from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.identity.user import User


@storefront.command(part_of="User")
class RegisterUser:
    username = String(required=True, max_length=50)
    email = String(max_length=254)


@storefront.command_handler(part_of=User)
class RegisterUserHandler:
    @handle(RegisterUser)
    def register_user(self, command):
        user = User.register(username=command.username, email=command.email)
        current_domain.repository_for(User).add(user)
        return str(user.id)
