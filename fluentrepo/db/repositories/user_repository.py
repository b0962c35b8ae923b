"""
User repository - users data access on top of the generic fluent repository.
"""

from fluentrepo.db.models.user import User
from fluentrepo.db.repositories.base_repository import Repository


class UserRepository(Repository[User]):
    """User-specific lookups. Soft-deleted users are hidden unless asked for."""

    def __init__(self, session):
        super().__init__(session, User)

    def get_by_email(self, email: str) -> User:
        """Find user by email. Raises NotFoundError."""
        return self.find_by("email", email)

    def for_customer(self, customer_name: str) -> list[User]:
        """All users of one customer, sorted by user name."""
        return self.where("customer_name", customer_name).order_by("user_name").all()

    def restore(self, id: int) -> int:
        """Clear deleted_at on a soft-deleted user; returns affected-row count."""
        return self.only_trashed().update({"deleted_at": None}, id, with_soft_del=True)
