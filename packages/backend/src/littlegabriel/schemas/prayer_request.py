"""Pydantic schemas for prayer requests.

Learn: Reads go through PrayerRequestRead regardless of who is asking.
Masking an anonymous author happens in the service layer before the model
is built, so the schema never sees the real identity of a masked request.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from littlegabriel.schemas.common import ApiModel

TITLE_MIN, TITLE_MAX = 5, 100
CONTENT_MIN, CONTENT_MAX = 10, 1000


def _check_title(v: str) -> str:
    if len(v) < TITLE_MIN:
        raise ValueError(f"Title must be at least {TITLE_MIN} characters")
    if len(v) > TITLE_MAX:
        raise ValueError(f"Title cannot exceed {TITLE_MAX} characters")
    return v


def _check_content(v: str) -> str:
    if len(v) < CONTENT_MIN:
        raise ValueError(f"Content must be at least {CONTENT_MIN} characters")
    if len(v) > CONTENT_MAX:
        raise ValueError(f"Content cannot exceed {CONTENT_MAX} characters")
    return v


class PrayerRequestCreate(ApiModel):
    title: str = Field("", validate_default=True)
    content: str = Field("", validate_default=True)
    is_anonymous: bool = False

    @field_validator("title")
    @classmethod
    def title_length(cls, v: str) -> str:
        return _check_title(v)

    @field_validator("content")
    @classmethod
    def content_length(cls, v: str) -> str:
        return _check_content(v)


class PrayerRequestUpdate(ApiModel):
    """Partial update. Unset fields are left alone."""
    title: Optional[str] = None
    content: Optional[str] = None
    is_anonymous: Optional[bool] = None
    status: Optional[str] = Field(None, pattern=r"^(pending|approved|rejected)$")

    @field_validator("title")
    @classmethod
    def title_length(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _check_title(v)

    @field_validator("content")
    @classmethod
    def content_length(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else _check_content(v)


class PrayerAuthor(ApiModel):
    id: str
    name: str
    email: Optional[str] = None


class PrayerRequestRead(ApiModel):
    id: str
    title: str
    content: str
    is_anonymous: bool
    status: str
    user_id: str  # "anonymous" when masked
    created_at: datetime
    updated_at: datetime
    user: Optional[PrayerAuthor] = None


class DeleteResponse(ApiModel):
    message: str
