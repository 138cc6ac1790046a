"""User repository for user-specific database operations."""

from sqlalchemy import or_, select

from portfolio_ledger.models.user import User
from portfolio_ledger.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User model with lookups by email and username.

    Example:
        >>> repo = UserRepository(User, db)
        >>> user = await repo.get_by_email("test@example.com")
    """

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email address (case-insensitive)."""
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> User | None:
        """Get user by username."""
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def get_by_username_or_email(self, identifier: str) -> User | None:
        """Get user by username or email address.

        Tries username first, then falls back to email lookup. Login accepts
        either.
        """
        user = await self.get_by_username(identifier)
        if not user:
            user = await self.get_by_email(identifier)
        return user

    async def exists_by_username_or_email(self, username: str, email: str) -> bool:
        """Check whether either the username or the email is already taken."""
        result = await self.db.execute(
            select(User.id)
            .where(or_(User.username == username, User.email == email.lower()))
            .limit(1)
        )
        return result.scalar_one_or_none() is not None
