"""User repository backing the identity store."""

from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gatekeeper.core.auth.backend import verify_password
from gatekeeper.modules.users.models import User


def _parse_id(user_id: str) -> UUID | None:
    try:
        return UUID(user_id)
    except ValueError:
        return None


class UserRepository:
    """Repository for User database operations.

    Implements ``IdentityStore`` for the token authority. Each call opens
    its own short session because the authority is application-scoped,
    not request-scoped.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def find_by_email(self, email: str) -> User | None:
        """Get a user by email address.

        Args:
            email: The user's email

        Returns:
            User if found, None otherwise
        """
        async with self.session_factory() as session:
            result = await session.execute(select(User).where(User.email == email))
            return result.scalar_one_or_none()

    async def find_by_id(self, user_id: str) -> User | None:
        """Get a user by ID.

        Args:
            user_id: The user's UUID as a string

        Returns:
            User if found, None otherwise (including malformed ids)
        """
        parsed = _parse_id(user_id)
        if parsed is None:
            return None

        async with self.session_factory() as session:
            result = await session.execute(select(User).where(User.id == parsed))
            return result.scalar_one_or_none()

    async def update_last_login(self, user_id: str) -> None:
        """Stamp the user's last successful login."""
        parsed = _parse_id(user_id)
        if parsed is None:
            return

        async with self.session_factory() as session:
            await session.execute(
                update(User)
                .where(User.id == parsed)
                .values(last_login_at=datetime.now(UTC))
            )
            await session.commit()

    async def verify_password(self, user: User, password: str) -> bool:
        """Check a plaintext password against the stored bcrypt hash."""
        if not user.password_hash:
            return False
        return verify_password(password, user.password_hash)
