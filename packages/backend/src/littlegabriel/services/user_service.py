"""User service — accounts, roles, and admin management.

Learn: Service layer separates business logic from HTTP routing. The API
routes and the `gabriel users` CLI commands share these methods, so an
account created from the command line is identical to one created by
the register form.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from littlegabriel.auth.credentials import normalize_email
from littlegabriel.auth.password import hash_password
from littlegabriel.db.models import ROLE_ADMIN, ROLE_USER, ROLES, User

logger = structlog.get_logger()


class DuplicateEmailError(Exception):
    """An account with this email already exists."""


def parse_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class UserService:
    """Business logic for user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, user_id: str) -> Optional[User]:
        uid = parse_uuid(user_id)
        if uid is None:
            return None
        return await self.db.get(User, uid)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalars().first()

    async def list_users(self) -> list[User]:
        result = await self.db.execute(select(User).order_by(User.created_at.desc()))
        return list(result.scalars().all())

    async def create(
        self,
        email: str,
        name: str,
        password: Optional[str] = None,
        role: str = ROLE_USER,
    ) -> User:
        """Create an account. Email is stored lowercase.

        Raises DuplicateEmailError if the email is taken, in any casing.
        """
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")
        email = normalize_email(email)
        if await self.get_by_email(email):
            raise DuplicateEmailError(email)

        user = User(
            email=email,
            name=name,
            password_hash=hash_password(password) if password else None,
            role=role,
        )
        self.db.add(user)
        await self.db.flush()
        logger.info("user.created", user_id=str(user.id), role=role)
        return user

    async def update(
        self,
        user: User,
        name: Optional[str] = None,
        role: Optional[str] = None,
    ) -> User:
        if name is not None:
            user.name = name
        if role is not None:
            if role not in ROLES:
                raise ValueError(f"Unknown role: {role}")
            if role != user.role:
                logger.info(
                    "user.role_changed",
                    user_id=str(user.id),
                    old_role=user.role,
                    new_role=role,
                )
            user.role = role
        await self.db.flush()
        return user

    async def delete(self, user: User) -> None:
        """Delete a user and, by cascade, their prayer requests and chats."""
        await self.db.delete(user)
        await self.db.flush()
        logger.info("user.deleted", user_id=str(user.id))

    async def promote(self, email: str) -> Optional[User]:
        """Make the account with exactly this email an admin."""
        user = await self.get_by_email(email)
        if not user:
            return None
        return await self.update(user, role=ROLE_ADMIN)
