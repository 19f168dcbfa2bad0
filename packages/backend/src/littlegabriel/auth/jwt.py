"""Session token creation and verification.

Learn: JWT (JSON Web Token) provides stateless sessions. The token carries
the user's id, email, name, and role, so request handlers can authorize
without a database round-trip.

There is no revocation list. A session ends when its token expires or the
client drops it (logout). renew_session_token() copies claims forward
without re-reading the user, so a role change only takes effect after the
user logs in again or the token expires.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

from littlegabriel.config import settings

TOKEN_TYPE = "session"


class TokenError(Exception):
    """Raised when token creation/verification fails."""


@dataclass(frozen=True)
class SessionClaims:
    """The identity attributes embedded in a session token."""

    id: str
    email: str
    name: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_user(cls, user: Any) -> "SessionClaims":
        return cls(
            id=str(user.id),
            email=user.email,
            name=user.name,
            role=user.role,
        )

    @classmethod
    def from_payload(cls, payload: dict) -> "SessionClaims":
        try:
            return cls(
                id=str(payload["sub"]),
                email=payload["email"],
                name=payload.get("name") or "",
                role=payload.get("role") or "user",
            )
        except KeyError as e:
            raise TokenError(f"Invalid token: missing claim {e}")


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


def issue_session_token(
    claims: SessionClaims,
    max_age: Optional[timedelta] = None,
) -> IssuedToken:
    """Sign a session token for the given claims."""
    now = datetime.now(timezone.utc)
    expires = now + (max_age or timedelta(days=settings.session_max_age_days))
    payload = {
        "sub": claims.id,
        "email": claims.email,
        "name": claims.name,
        "role": claims.role,
        "type": TOKEN_TYPE,
        "iat": now,
        "exp": expires,
    }
    token = jwt.encode(payload, settings.auth_secret, algorithm=settings.jwt_algorithm)
    return IssuedToken(token=token, expires_at=expires)


def verify_token(token: str) -> dict:
    """Verify and decode a session token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    try:
        payload = jwt.decode(
            token,
            settings.auth_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")
    if payload.get("type") != TOKEN_TYPE:
        raise TokenError("Not a session token")
    return payload


def verify_session_token(token: str) -> tuple[SessionClaims, datetime]:
    """Verify a token and return its claims and expiry."""
    payload = verify_token(token)
    expires = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    return SessionClaims.from_payload(payload), expires


def renew_session_token(token: str) -> tuple[SessionClaims, IssuedToken]:
    """Re-sign a still-valid token's claims with a fresh expiry."""
    claims, _ = verify_session_token(token)
    return claims, issue_session_token(claims)
