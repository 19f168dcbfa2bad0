"""Prayer request API routes.

Learn: Every route here needs a verified session (applied at
include_router level in api/__init__.py). Ownership and role checks
happen per request:
- list:    admins see all; others see their own plus approved
- get:     non-approved requests are visible only to owner or admin
- update:  owner or admin; only admins may change `status`
- delete:  owner or admin
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from littlegabriel.auth.dependencies import CurrentSession, get_current_session
from littlegabriel.db.engine import get_db
from littlegabriel.db.models import PrayerRequest
from littlegabriel.schemas.prayer_request import (
    DeleteResponse,
    PrayerRequestCreate,
    PrayerRequestRead,
    PrayerRequestUpdate,
)
from littlegabriel.services.prayer_service import (
    PrayerService,
    can_modify,
    can_view,
    to_read,
)

router = APIRouter(prefix="/prayer-requests")


def _svc(db: AsyncSession = Depends(get_db)) -> PrayerService:
    return PrayerService(db)


async def _get_or_404(svc: PrayerService, request_id: str) -> PrayerRequest:
    request = await svc.get(request_id)
    if not request:
        raise HTTPException(status_code=404, detail="Prayer request not found")
    return request


@router.get("", response_model=list[PrayerRequestRead])
async def list_prayer_requests(
    status: Optional[str] = Query(None, pattern=r"^(pending|approved|rejected)$"),
    session: CurrentSession = Depends(get_current_session),
    svc: PrayerService = Depends(_svc),
):
    requests = await svc.list_visible(session.claims, status=status)
    return [to_read(r, session.claims) for r in requests]


@router.post("", response_model=PrayerRequestRead, status_code=201)
async def create_prayer_request(
    body: PrayerRequestCreate,
    session: CurrentSession = Depends(get_current_session),
    svc: PrayerService = Depends(_svc),
):
    """Create a request. It starts pending until an admin approves it."""
    request = await svc.create(
        user_id=session.user_id,
        title=body.title,
        content=body.content,
        is_anonymous=body.is_anonymous,
    )
    await svc.db.commit()
    return to_read(request, session.claims)


@router.get("/{request_id}", response_model=PrayerRequestRead)
async def get_prayer_request(
    request_id: str,
    session: CurrentSession = Depends(get_current_session),
    svc: PrayerService = Depends(_svc),
):
    request = await _get_or_404(svc, request_id)
    if not can_view(request, session.claims):
        raise HTTPException(status_code=403, detail="Not authorized to view this prayer request")
    return to_read(request, session.claims)


async def _update(
    request_id: str,
    body: PrayerRequestUpdate,
    session: CurrentSession,
    svc: PrayerService,
) -> dict:
    request = await _get_or_404(svc, request_id)
    if not can_modify(request, session.claims):
        raise HTTPException(status_code=403, detail="Not authorized to update this prayer request")
    changes = body.model_dump(exclude_unset=True)
    if changes.get("status") is not None and not session.is_admin:
        raise HTTPException(status_code=403, detail="Only admins can update prayer request status")
    request = await svc.update(request, changes)
    await svc.db.commit()
    return to_read(request, session.claims)


@router.put("/{request_id}", response_model=PrayerRequestRead)
async def replace_prayer_request(
    request_id: str,
    body: PrayerRequestUpdate,
    session: CurrentSession = Depends(get_current_session),
    svc: PrayerService = Depends(_svc),
):
    return await _update(request_id, body, session, svc)


@router.patch("/{request_id}", response_model=PrayerRequestRead)
async def update_prayer_request(
    request_id: str,
    body: PrayerRequestUpdate,
    session: CurrentSession = Depends(get_current_session),
    svc: PrayerService = Depends(_svc),
):
    return await _update(request_id, body, session, svc)


@router.delete("/{request_id}", response_model=DeleteResponse)
async def delete_prayer_request(
    request_id: str,
    session: CurrentSession = Depends(get_current_session),
    svc: PrayerService = Depends(_svc),
):
    request = await _get_or_404(svc, request_id)
    if not can_modify(request, session.claims):
        raise HTTPException(status_code=403, detail="Not authorized to delete this prayer request")
    await svc.delete(request)
    await svc.db.commit()
    return {"message": "Prayer request deleted successfully"}
