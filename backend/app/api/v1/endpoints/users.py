"""
User API Endpoints.

Public profiles with recent activity.
"""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.serializers import post_dict, thread_dict, user_public
from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.modules.forum import ForumService
from app.modules.users import UserService

router = APIRouter()


@router.get("/{user_id}")
async def get_user_profile(
    user_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get user profile with newest threads and posts."""
    user = await UserService(db).get_user(user_id)

    if not user:
        raise NotFoundError("User not found")

    forum = ForumService(db)
    threads = await forum.get_user_threads(user_id)
    posts = await forum.get_user_posts(user_id)

    return {
        **user_public(user),
        "threads": [thread_dict(t, with_category=True) for t in threads],
        "posts": [post_dict(p, with_thread=True) for p in posts],
    }
