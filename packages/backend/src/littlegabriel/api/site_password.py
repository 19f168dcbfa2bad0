"""Site password gate (legacy).

Learn: Before accounts existed the whole site sat behind one shared
password. The check survives for old bookmarks: a plain SITE_PASSWORD is
compared first, then a bcrypt SITE_PASSWORD_HASH. Passing it only sets a
client-side flag; it grants no API access.
"""

import hmac

from fastapi import APIRouter, HTTPException

from littlegabriel.auth.password import verify_password
from littlegabriel.config import settings
from littlegabriel.schemas.auth import SitePasswordRequest, SitePasswordResponse

router = APIRouter()


def check_site_password(password: str) -> bool:
    if settings.site_password and hmac.compare_digest(
        password.encode("utf-8"), settings.site_password.encode("utf-8")
    ):
        return True
    if settings.site_password_hash:
        return verify_password(password, settings.site_password_hash)
    return False


@router.post("/site-password", response_model=SitePasswordResponse)
async def verify_site_password(body: SitePasswordRequest):
    if not settings.site_password and not settings.site_password_hash:
        raise HTTPException(status_code=500, detail="Site password not configured")
    return {"is_valid": check_site_password(body.password)}
