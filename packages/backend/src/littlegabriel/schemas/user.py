"""Pydantic schemas for admin user management."""

from typing import Optional

from pydantic import Field

from littlegabriel.schemas.auth import UserPublic
from littlegabriel.schemas.common import ApiModel


class UserUpdate(ApiModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    role: Optional[str] = Field(None, pattern=r"^(user|admin)$")


class PromoteAdminRequest(ApiModel):
    email: str = ""


class PromoteAdminResponse(ApiModel):
    success: bool
    message: str
    user: UserPublic


class SuccessResponse(ApiModel):
    success: bool = True
