"""
Forum API Endpoints.

Categories, threads, reply trees and votes.
"""

from typing import Any, Literal

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.serializers import (
    category_dict,
    post_dict,
    reply_tree_json,
    thread_dict,
    vote_dict,
)
from app.core.database import get_db
from app.core.exceptions import NotFoundError
from app.core.security import get_current_user, get_current_user_optional
from app.models.user import User
from app.modules.forum import ForumService, VoteLedger

router = APIRouter()


# ==================== Schemas ====================


class CreateCategoryRequest(BaseModel):
    """Create new category."""

    name: str = Field(min_length=1, max_length=100)
    description: str
    icon: str | None = Field(default=None, max_length=50)
    sort_order: int = 0


class CreateThreadRequest(BaseModel):
    """Create new thread."""

    category_id: int
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    is_pinned: bool = False
    is_locked: bool = False


class CreatePostRequest(BaseModel):
    """Create new post/reply."""

    thread_id: int
    content: str = Field(min_length=1)
    parent_post_id: int | None = None


class CastVoteRequest(BaseModel):
    """Upvote (1) or downvote (-1) a post."""

    post_id: int
    value: Literal[-1, 1]


# ==================== Stats ====================


@router.get("/stats")
async def get_stats(
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get site-wide totals."""
    stats = await ForumService(db).get_stats()

    return {
        "total_threads": stats.total_threads,
        "total_posts": stats.total_posts,
        "total_users": stats.total_users,
    }


# ==================== Categories ====================


@router.get("/categories")
async def get_categories(
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Get all categories with activity stats."""
    forum = ForumService(db)
    summaries = await forum.get_category_summaries()

    return [
        {
            **category_dict(s.category),
            "thread_count": s.thread_count,
            "post_count": s.post_count,
            "last_thread": (
                thread_dict(s.last_thread, with_author=True) if s.last_thread else None
            ),
        }
        for s in summaries
    ]


@router.get("/categories/{category_id}")
async def get_category(
    category_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get category details."""
    category = await ForumService(db).get_category(category_id)

    if not category:
        raise NotFoundError("Category not found")

    return category_dict(category)


@router.post("/categories", status_code=201)
async def create_category(
    request: CreateCategoryRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Create new category."""
    category = await ForumService(db).create_category(
        name=request.name,
        description=request.description,
        icon=request.icon,
        sort_order=request.sort_order,
    )

    return category_dict(category)


@router.get("/categories/{category_id}/threads")
async def get_category_threads(
    category_id: int,
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Get category threads, pinned first, then by latest activity."""
    threads = await ForumService(db).get_threads(category_id)

    return [thread_dict(t, with_author=True) for t in threads]


# ==================== Threads ====================


@router.get("/threads/recent")
async def get_recent_threads(
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Get most recently created threads."""
    threads = await ForumService(db).get_recent_threads()

    return [thread_dict(t, with_author=True, with_category=True) for t in threads]


@router.get("/threads/{thread_id}")
async def get_thread(
    thread_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get thread details. Every fetch counts as a view."""
    forum = ForumService(db)

    await forum.increment_view_count(thread_id)
    thread = await forum.get_thread(thread_id)

    if not thread:
        raise NotFoundError("Thread not found")

    return thread_dict(thread, with_author=True, with_category=True)


@router.post("/threads", status_code=201)
async def create_thread(
    request: CreateThreadRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Create new thread."""
    thread = await ForumService(db).create_thread(
        category_id=request.category_id,
        author_id=user.id,
        title=request.title,
        content=request.content,
        is_pinned=request.is_pinned,
        is_locked=request.is_locked,
    )

    return thread_dict(thread)


# ==================== Posts ====================


@router.get("/threads/{thread_id}/posts", response_model=None)
async def get_thread_posts(
    thread_id: int,
    user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Get thread posts as a reply tree annotated with the caller's votes."""
    tree = await ForumService(db).get_reply_tree(
        thread_id,
        viewer_id=user.id if user else None,
    )

    # Reply depth is unbounded, so the nested body is encoded without recursion
    return Response(content=reply_tree_json(tree), media_type="application/json")


@router.post("/posts", status_code=201)
async def create_post(
    request: CreatePostRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Create new post/reply."""
    post = await ForumService(db).create_post(
        thread_id=request.thread_id,
        author_id=user.id,
        content=request.content,
        parent_post_id=request.parent_post_id,
    )

    return post_dict(post)


# ==================== Votes ====================


@router.post("/votes", status_code=201)
async def cast_vote(
    request: CastVoteRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Upvote or downvote a post as the current user."""
    vote = await VoteLedger(db).cast_vote(user.id, request.post_id, request.value)

    return vote_dict(vote)
