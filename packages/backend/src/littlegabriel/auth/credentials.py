"""Credential Validator — email + password → session claims.

Learn: Each failure is its own exception type with a user-facing message.
Both login routes surface these messages verbatim, so the client can tell
"no such account" from "wrong password" from "this account signs in with
Google".
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from littlegabriel.auth.jwt import SessionClaims
from littlegabriel.auth.password import verify_password
from littlegabriel.db.models import User


class CredentialError(Exception):
    """Base class for login failures. str(e) is safe to show to the user."""

    message = "Invalid credentials"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class UserNotFoundError(CredentialError):
    message = "No user found with this email"


class NoPasswordSetError(CredentialError):
    message = "User has no password set"


class InvalidPasswordError(CredentialError):
    message = "Invalid password"


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def find_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Case-insensitive lookup; emails are stored lowercase."""
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalars().first()


async def validate_credentials(
    db: AsyncSession, email: str, password: str
) -> SessionClaims:
    """Check email/password against the stored hash. Read-only."""
    user = await find_user_by_email(db, email)
    if not user:
        raise UserNotFoundError()
    if not user.password_hash:
        raise NoPasswordSetError()
    if not verify_password(password, user.password_hash):
        raise InvalidPasswordError()
    return SessionClaims.from_user(user)
