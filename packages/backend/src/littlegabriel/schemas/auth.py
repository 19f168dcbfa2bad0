"""Pydantic schemas for registration, login, and session endpoints."""

import re
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from littlegabriel.schemas.common import ApiModel

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


# ─── Register ───────────────────────────────────────────

class RegisterRequest(ApiModel):
    name: str = Field("", validate_default=True)
    email: str = Field("", validate_default=True)
    password: str = Field("", validate_default=True)

    @field_validator("name")
    @classmethod
    def name_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        if len(v) > 100:
            raise ValueError("Name must be at most 100 characters")
        return v

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        v = v.strip()
        if not EMAIL_RE.match(v):
            raise ValueError("Invalid email address")
        return v.lower()

    @field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v


class UserPublic(ApiModel):
    """A user as returned to clients. Never carries the password hash."""
    id: str
    name: str
    email: str
    role: str
    created_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v) -> str:
        return str(v)


class RegisterResponse(ApiModel):
    message: str
    user: UserPublic


# ─── Login ──────────────────────────────────────────────

class LoginRequest(ApiModel):
    """Both login routes accept a missing body or null fields so they can
    answer with their own "missing fields" message instead of a
    validation error."""
    email: Optional[str] = None
    password: Optional[str] = None


class ClaimsRead(ApiModel):
    id: str
    email: str
    name: str
    role: str


class LoginResponse(ApiModel):
    user: ClaimsRead
    access_token: str
    token_type: str = "bearer"
    expires: datetime


class DirectLoginResponse(ApiModel):
    success: bool
    user: Optional[ClaimsRead] = None
    error: Optional[str] = None


class CheckAdminRequest(ApiModel):
    email: Optional[str] = None


class CheckAdminUser(ApiModel):
    id: str
    email: str
    role: str


class CheckAdminResponse(ApiModel):
    is_admin: bool
    user: CheckAdminUser


# ─── Reconcile ──────────────────────────────────────────

class ReconcileRequest(ApiModel):
    framework_status: str = Field("unauthenticated", pattern=r"^(loading|authenticated|unauthenticated)$")
    framework_user: Optional[dict] = None
    storage: dict[str, str] = Field(default_factory=dict)
    cookies: dict[str, str] = Field(default_factory=dict)
    pathname: str = "/"


class ReconcileResponse(ApiModel):
    state: str
    is_authenticated: bool
    is_loading: bool
    user: Optional[dict] = None
    source: Optional[str] = None
    authoritative: bool
    redirect_to: Optional[str] = None
    storage_writes: dict[str, str] = Field(default_factory=dict)


# ─── Site password ──────────────────────────────────────

class SitePasswordRequest(ApiModel):
    password: str = ""


class SitePasswordResponse(ApiModel):
    is_valid: bool
