"""
API routers for the Training Portal.

This module contains all API endpoint routers:
- auth: Authentication endpoints (login, register, current user)
- progress: Derived progress and gating checks
- quiz: Quiz delivery and attempt submission
- certificates: Global and per-main-module certificates
- admin: Administrative endpoints for curriculum management
"""

from fastapi import APIRouter

# Import individual routers
from .auth import router as auth_router
from .progress import router as progress_router
from .quiz import router as quiz_router
from .certificates import router as certificates_router

# Import admin sub-routers
from .admin import admin_router

# Create main API router
api_router = APIRouter()

# Include all routers with their prefixes
api_router.include_router(
    auth_router,
    prefix="/auth",
    tags=["authentication"]
)

api_router.include_router(
    progress_router,
    tags=["progress"]
)

api_router.include_router(
    quiz_router,
    tags=["quiz"]
)

api_router.include_router(
    certificates_router,
    tags=["certificates"]
)

api_router.include_router(
    admin_router,
    prefix="/admin",
    tags=["admin"]
)

# Export all routers
__all__ = [
    "api_router",
    "auth_router",
    "progress_router",
    "quiz_router",
    "certificates_router",
    "admin_router"
]
