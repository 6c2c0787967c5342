"""Persistence for users and their two-factor state."""

from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from mfa_guard.core.exceptions import ConcurrentUpdateError
from mfa_guard.core.logging_config import get_logger
from mfa_guard.models.user import User
from mfa_guard.utils.datetime_utils import utc_now

logger = get_logger(__name__)


class UserCRUD:
    """CRUD operations for User model."""

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
        """Get user by email."""
        result = await db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> Optional[User]:
        """Get user by ID."""
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()


class SQLAlchemyUserStore:
    """User store bound to one request's session.

    ``save`` commits the pending changes. The UPDATE is guarded by the
    ``mfa_version`` column, so a writer that lost a race gets
    ``ConcurrentUpdateError`` instead of overwriting the winner.
    """

    def __init__(self, db: AsyncSession):
        self._db = db

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        return await user_crud.get_by_id(self._db, user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        return await user_crud.get_by_email(self._db, email)

    async def save(self, user: User) -> None:
        user_id = user.id
        self._db.add(user)
        try:
            await self._db.commit()
        except StaleDataError as e:
            await self._db.rollback()
            logger.warning("user_update_conflict", user_id=str(user_id))
            raise ConcurrentUpdateError() from e

    async def record_login(self, user_id: UUID) -> None:
        """Stamp last_login_at without bumping the MFA version."""
        await self._db.execute(
            update(User)
            .where(User.id == user_id)
            .values(last_login_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        await self._db.commit()


# Create singleton instances
user_crud = UserCRUD()
