"""
User Service - Accounts and credentials.
"""

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.core.security import get_password_hash, verify_password
from app.models.user import User


class UserService:
    """
    Service for user accounts.

    Usage:
        users = UserService(db_session)
        user = await users.authenticate("alice", "secret")
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize user service with database session."""
        self.db = db

    async def get_user(self, user_id: int) -> User | None:
        """Get user by ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_user_by_username(self, username: str) -> User | None:
        """Get user by username."""
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def create_user(
        self,
        username: str,
        password: str,
        bio: str | None = None,
    ) -> User:
        """
        Register a new user.

        Raises:
            ValidationError: username is already taken
        """
        if await self.get_user_by_username(username):
            raise ValidationError("Username already exists")

        user = User(
            username=username,
            hashed_password=get_password_hash(password),
            bio=bio,
            rank=settings.default_user_rank,
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError:
            # Lost a race with a concurrent registration of the same name
            await self.db.rollback()
            raise ValidationError("Username already exists")

        logger.info(f"User {user.id} registered: {username}")
        return user

    async def authenticate(self, username: str, password: str) -> User | None:
        """Return the user if the credentials match."""
        user = await self.get_user_by_username(username)
        if not user or not verify_password(password, user.hashed_password):
            return None
        return user
