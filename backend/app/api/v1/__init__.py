"""
API Router.

Combines all API endpoints under the configured prefix.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import auth, forum, users

router = APIRouter()

# Include endpoint routers
router.include_router(auth.router, tags=["Auth"])
router.include_router(forum.router, tags=["Forum"])
router.include_router(users.router, prefix="/users", tags=["Users"])
