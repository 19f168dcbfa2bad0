"""Prayer request service — the community prayer wall.

Learn: Visibility rules live here, not in the routes:
- admins see everything
- everyone else sees their own requests plus approved ones
- an anonymous request shows "Anonymous" to anyone but its owner or an admin

Masking is applied when a request is rendered for a viewer (to_read), so
every read path (list, get, update response) goes through the same rule.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from littlegabriel.auth.jwt import SessionClaims
from littlegabriel.db.models import STATUS_APPROVED, PrayerRequest
from littlegabriel.services.user_service import parse_uuid

logger = structlog.get_logger()

ANONYMOUS_ID = "anonymous"
ANONYMOUS_AUTHOR = {"id": ANONYMOUS_ID, "name": "Anonymous", "email": None}


def is_owner(request: PrayerRequest, viewer: SessionClaims) -> bool:
    return str(request.user_id) == viewer.id


def can_view(request: PrayerRequest, viewer: SessionClaims) -> bool:
    return viewer.is_admin or is_owner(request, viewer) or request.status == STATUS_APPROVED


def can_modify(request: PrayerRequest, viewer: SessionClaims) -> bool:
    return viewer.is_admin or is_owner(request, viewer)


def to_read(request: PrayerRequest, viewer: SessionClaims) -> dict:
    """Render a prayer request for one viewer, masking the author if needed."""
    data = {
        "id": str(request.id),
        "title": request.title,
        "content": request.content,
        "is_anonymous": request.is_anonymous,
        "status": request.status,
        "user_id": str(request.user_id),
        "created_at": request.created_at,
        "updated_at": request.updated_at,
        "user": None,
    }
    if request.is_anonymous and not (viewer.is_admin or is_owner(request, viewer)):
        data["user_id"] = ANONYMOUS_ID
        data["user"] = dict(ANONYMOUS_AUTHOR)
    elif request.user is not None:
        data["user"] = {
            "id": str(request.user.id),
            "name": request.user.name,
            "email": request.user.email,
        }
    return data


class PrayerService:
    """Business logic for prayer requests."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_visible(
        self, viewer: SessionClaims, status: Optional[str] = None
    ) -> list[PrayerRequest]:
        """Requests the viewer may see, newest first."""
        q = select(PrayerRequest).options(selectinload(PrayerRequest.user))
        if status:
            q = q.where(PrayerRequest.status == status)
        if not viewer.is_admin:
            q = q.where(
                or_(
                    PrayerRequest.user_id == uuid.UUID(viewer.id),
                    PrayerRequest.status == STATUS_APPROVED,
                )
            )
        q = q.order_by(PrayerRequest.created_at.desc())
        result = await self.db.execute(q)
        return list(result.scalars().all())

    async def get(self, request_id: str) -> Optional[PrayerRequest]:
        rid = parse_uuid(request_id)
        if rid is None:
            return None
        result = await self.db.execute(
            select(PrayerRequest)
            .where(PrayerRequest.id == rid)
            .options(selectinload(PrayerRequest.user))
        )
        return result.scalars().first()

    async def create(
        self, user_id: str, title: str, content: str, is_anonymous: bool = False
    ) -> PrayerRequest:
        """New requests always start pending."""
        request = PrayerRequest(
            title=title,
            content=content,
            is_anonymous=is_anonymous,
            user_id=uuid.UUID(user_id),
        )
        self.db.add(request)
        await self.db.flush()
        await self.db.refresh(request, attribute_names=["user"])
        logger.info(
            "prayer_request.created",
            prayer_request_id=str(request.id),
            anonymous=is_anonymous,
        )
        return request

    async def update(self, request: PrayerRequest, changes: dict) -> PrayerRequest:
        """Apply a partial update. `changes` holds only the fields that were sent."""
        for field in ("title", "content", "is_anonymous", "status"):
            if field in changes and changes[field] is not None:
                setattr(request, field, changes[field])
        await self.db.flush()
        await self.db.refresh(request)
        await self.db.refresh(request, attribute_names=["user"])
        if "status" in changes:
            logger.info(
                "prayer_request.status_changed",
                prayer_request_id=str(request.id),
                status=request.status,
            )
        return request

    async def delete(self, request: PrayerRequest) -> None:
        await self.db.delete(request)
        await self.db.flush()
        logger.info("prayer_request.deleted", prayer_request_id=str(request.id))
