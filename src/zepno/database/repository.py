"""User repository — data access layer for user lookups."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from zepno.models.user import User


class UserRepository:
    """Encapsulates all read queries related to users.

    Balance changes never go through here; see ``WalletLedger``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_by_id(self, user_id: str) -> User | None:
        """Look up a user by their identity-provider id."""
        return await self._session.get(User, user_id)

    async def find_by_email(self, email: str) -> User | None:
        """Look up a user by email; emails are stored lower-cased."""
        stmt = select(User).where(User.email == email.strip().lower())
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()
