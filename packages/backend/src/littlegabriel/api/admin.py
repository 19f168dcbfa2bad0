"""Admin API — user management.

Learn: The whole router is mounted behind require_admin, which answers 401
when there is no verified session and 403 when the session is not an
admin. The admin check reads the role from the token's claims.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from littlegabriel.auth.dependencies import CurrentSession, require_admin
from littlegabriel.db.engine import get_db
from littlegabriel.db.models import User
from littlegabriel.schemas.auth import UserPublic
from littlegabriel.schemas.user import (
    PromoteAdminRequest,
    PromoteAdminResponse,
    SuccessResponse,
    UserUpdate,
)
from littlegabriel.services.user_service import UserService

router = APIRouter(prefix="/admin")


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


async def _get_or_404(svc: UserService, user_id: str) -> User:
    user = await svc.get(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.get("/users", response_model=list[UserPublic])
async def list_users(svc: UserService = Depends(_svc)):
    return await svc.list_users()


@router.get("/users/{user_id}", response_model=UserPublic)
async def get_user(user_id: str, svc: UserService = Depends(_svc)):
    return await _get_or_404(svc, user_id)


@router.put("/users/{user_id}", response_model=UserPublic)
async def update_user(user_id: str, body: UserUpdate, svc: UserService = Depends(_svc)):
    """Change a user's name and/or role."""
    user = await _get_or_404(svc, user_id)
    user = await svc.update(user, name=body.name, role=body.role)
    await svc.db.commit()
    return user


@router.delete("/users/{user_id}", response_model=SuccessResponse)
async def delete_user(
    user_id: str,
    admin: CurrentSession = Depends(require_admin),
    svc: UserService = Depends(_svc),
):
    """Delete a user along with their prayer requests and chat history."""
    user = await _get_or_404(svc, user_id)
    if str(user.id) == admin.user_id:
        raise HTTPException(status_code=400, detail="Admins cannot delete their own account")
    await svc.delete(user)
    await svc.db.commit()
    return {"success": True}


@router.post("/promote-admin", response_model=PromoteAdminResponse)
async def promote_admin(body: PromoteAdminRequest, svc: UserService = Depends(_svc)):
    """Promote the account with exactly this email to admin."""
    if not body.email:
        raise HTTPException(status_code=400, detail="Email is required")
    user = await svc.promote(body.email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    await svc.db.commit()
    return {
        "success": True,
        "message": f"User {user.email} has been promoted to admin",
        "user": UserPublic.model_validate(user),
    }
