"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Learn: Auth is applied at the include_router level using FastAPI's
dependencies parameter. This protects all routes in each router without
modifying individual handlers. Health, auth, Bible, site-password, and
debug routers are open; auth routes that need a session ask for one
themselves.
"""

from fastapi import APIRouter, Depends

from littlegabriel.api.admin import router as admin_router
from littlegabriel.api.auth import router as auth_router
from littlegabriel.api.bible import router as bible_router
from littlegabriel.api.chat import router as chat_router
from littlegabriel.api.debug import router as debug_router
from littlegabriel.api.health import router as health_router
from littlegabriel.api.prayer_requests import router as prayer_requests_router
from littlegabriel.api.sermon import router as sermon_router
from littlegabriel.api.site_password import router as site_password_router
from littlegabriel.auth.dependencies import get_current_session, require_admin

# Any verified session
_auth = [Depends(get_current_session)]
# Verified session with role == admin
_admin = [Depends(require_admin)]

api_router = APIRouter(prefix="/api")

# Open routes
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(site_password_router, tags=["auth"])
api_router.include_router(bible_router, tags=["bible"])
api_router.include_router(debug_router, tags=["debug"])

# Protected routes
api_router.include_router(prayer_requests_router, tags=["prayer-requests"], dependencies=_auth)
api_router.include_router(chat_router, tags=["chat"], dependencies=_auth)
api_router.include_router(sermon_router, tags=["sermon"], dependencies=_auth)
api_router.include_router(admin_router, tags=["admin"], dependencies=_admin)
