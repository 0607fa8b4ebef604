"""
Forum Service - Category, thread and post management.

Denormalized counters (thread reply/view counts, user post/thread counts)
are maintained here with relative UPDATE statements in the caller's
transaction.
"""

from dataclasses import dataclass
from datetime import datetime

from loguru import logger
from sqlalchemy import distinct, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.config import settings
from app.core.exceptions import NotFoundError, ThreadLockedError, ValidationError
from app.models.forum import Category, Post, Thread
from app.models.user import User
from app.modules.forum.tree import ReplyNode, build_reply_tree
from app.modules.forum.votes import VoteLedger


@dataclass
class CategorySummary:
    """Category with computed activity stats."""

    category: Category
    thread_count: int
    post_count: int
    last_thread: Thread | None


@dataclass
class ForumStats:
    """Site-wide totals."""

    total_threads: int
    total_posts: int
    total_users: int


class ForumService:
    """
    Service for managing forum categories, threads, and posts.

    Usage:
        forum = ForumService(db_session)
        threads = await forum.get_threads(category_id=1)
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize forum service with database session."""
        self.db = db

    # ==================== Categories ====================

    async def get_categories(self) -> list[Category]:
        """Get all categories in display order."""
        query = select(Category).order_by(Category.sort_order, Category.id)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_category_summaries(self) -> list[CategorySummary]:
        """Get all categories with thread/post counts and newest thread."""
        summaries = []
        for category in await self.get_categories():
            stats_query = (
                select(
                    func.count(distinct(Thread.id)),
                    func.count(distinct(Post.id)),
                )
                .select_from(Thread)
                .outerjoin(Post, Post.thread_id == Thread.id)
                .where(Thread.category_id == category.id)
            )
            thread_count, post_count = (await self.db.execute(stats_query)).one()

            last_thread_query = (
                select(Thread)
                .options(selectinload(Thread.author))
                .where(Thread.category_id == category.id)
                .order_by(Thread.created_at.desc(), Thread.id.desc())
                .limit(1)
            )
            last_thread = (
                await self.db.execute(last_thread_query)
            ).scalar_one_or_none()

            summaries.append(
                CategorySummary(
                    category=category,
                    thread_count=thread_count or 0,
                    post_count=post_count or 0,
                    last_thread=last_thread,
                )
            )
        return summaries

    async def get_category(self, category_id: int) -> Category | None:
        """Get category by ID."""
        query = select(Category).where(Category.id == category_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create_category(
        self,
        name: str,
        description: str,
        icon: str | None = None,
        sort_order: int = 0,
    ) -> Category:
        """Create new forum category."""
        category = Category(
            name=name,
            description=description,
            icon=icon or "folder",
            sort_order=sort_order,
        )
        self.db.add(category)
        await self.db.flush()

        logger.info(f"Category {category.id} created: {name}")
        return category

    # ==================== Threads ====================

    async def get_threads(self, category_id: int) -> list[Thread]:
        """Get a category's threads, pinned first, then by latest activity."""
        query = (
            select(Thread)
            .options(selectinload(Thread.author))
            .where(Thread.category_id == category_id)
            .order_by(
                Thread.is_pinned.desc(),
                Thread.last_activity_at.desc(),
                Thread.id.desc(),
            )
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_recent_threads(self, limit: int | None = None) -> list[Thread]:
        """Get most recently created threads across all categories."""
        if limit is None:
            limit = settings.forum_recent_threads_limit

        query = (
            select(Thread)
            .options(selectinload(Thread.author), selectinload(Thread.category))
            .order_by(Thread.created_at.desc(), Thread.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_thread(self, thread_id: int) -> Thread | None:
        """Get thread by ID with author and category."""
        query = (
            select(Thread)
            .options(
                selectinload(Thread.author),
                selectinload(Thread.category),
            )
            .where(Thread.id == thread_id)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create_thread(
        self,
        category_id: int,
        author_id: int,
        title: str,
        content: str,
        is_pinned: bool = False,
        is_locked: bool = False,
    ) -> Thread:
        """
        Create new thread.

        Args:
            category_id: Category ID
            author_id: Author user ID
            title: Thread title
            content: Opening post content
            is_pinned: Show above unpinned threads
            is_locked: Reject replies

        Returns:
            Created thread

        Raises:
            NotFoundError: category does not exist
        """
        if not await self.get_category(category_id):
            raise NotFoundError("Category not found")

        now = datetime.utcnow()
        thread = Thread(
            category_id=category_id,
            author_id=author_id,
            title=title,
            content=content,
            is_pinned=is_pinned,
            is_locked=is_locked,
            created_at=now,
            updated_at=now,
            last_activity_at=now,
        )
        self.db.add(thread)
        await self.db.flush()

        # Update author stats
        await self.db.execute(
            update(User)
            .where(User.id == author_id)
            .values(thread_count=User.thread_count + 1)
        )

        logger.info(f"Thread {thread.id} created by user {author_id}")
        return thread

    async def increment_view_count(self, thread_id: int) -> None:
        """Increment thread view count."""
        await self.db.execute(
            update(Thread)
            .where(Thread.id == thread_id)
            .values(view_count=Thread.view_count + 1)
        )

    # ==================== Posts ====================

    async def get_posts(self, thread_id: int) -> list[Post]:
        """Get all posts in thread in creation order."""
        query = (
            select(Post)
            .options(selectinload(Post.author))
            .where(Post.thread_id == thread_id)
            .order_by(Post.created_at, Post.id)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_post(self, post_id: int) -> Post | None:
        """Get post by ID."""
        query = select(Post).where(Post.id == post_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def create_post(
        self,
        thread_id: int,
        author_id: int,
        content: str,
        parent_post_id: int | None = None,
    ) -> Post:
        """
        Create new post in thread.

        Args:
            thread_id: Thread ID
            author_id: Author user ID
            content: Post content
            parent_post_id: Post being replied to, None for a top-level post

        Returns:
            Created post

        Raises:
            NotFoundError: thread does not exist
            ThreadLockedError: thread is locked
            ValidationError: parent post is not in this thread
        """
        result = await self.db.execute(select(Thread).where(Thread.id == thread_id))
        thread = result.scalar_one_or_none()
        if not thread:
            raise NotFoundError("Thread not found")
        if thread.is_locked:
            raise ThreadLockedError("Thread is locked")

        if parent_post_id is not None:
            parent = await self.get_post(parent_post_id)
            if not parent or parent.thread_id != thread_id:
                raise ValidationError("Parent post not found in this thread")

        now = datetime.utcnow()
        post = Post(
            thread_id=thread_id,
            author_id=author_id,
            content=content,
            parent_post_id=parent_post_id,
            created_at=now,
            updated_at=now,
        )
        self.db.add(post)
        await self.db.flush()

        # Update thread stats
        await self.db.execute(
            update(Thread)
            .where(Thread.id == thread_id)
            .values(
                reply_count=Thread.reply_count + 1,
                last_activity_at=now,
            )
        )

        # Update author stats
        await self.db.execute(
            update(User)
            .where(User.id == author_id)
            .values(post_count=User.post_count + 1)
        )

        logger.info(f"Post {post.id} created in thread {thread_id} by user {author_id}")
        return post

    async def get_reply_tree(
        self,
        thread_id: int,
        viewer_id: int | None = None,
    ) -> list[ReplyNode]:
        """
        Get thread posts as a nested reply tree.

        Args:
            thread_id: Thread ID
            viewer_id: Current user ID, used to annotate each node with
                their own vote (None for anonymous viewers)

        Returns:
            Top-level reply nodes in creation order
        """
        result = await self.db.execute(select(Thread.id).where(Thread.id == thread_id))
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Thread not found")

        posts = await self.get_posts(thread_id)

        user_votes: dict[int, int] = {}
        if viewer_id is not None:
            ledger = VoteLedger(self.db)
            user_votes = await ledger.get_user_votes(viewer_id, [p.id for p in posts])

        return build_reply_tree(posts, user_votes)

    # ==================== Users ====================

    async def get_user_threads(
        self,
        user_id: int,
        limit: int | None = None,
    ) -> list[Thread]:
        """Get a user's newest threads with their categories."""
        if limit is None:
            limit = settings.forum_profile_activity_limit

        query = (
            select(Thread)
            .options(selectinload(Thread.category))
            .where(Thread.author_id == user_id)
            .order_by(Thread.created_at.desc(), Thread.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_user_posts(
        self,
        user_id: int,
        limit: int | None = None,
    ) -> list[Post]:
        """Get a user's newest posts with their threads."""
        if limit is None:
            limit = settings.forum_profile_activity_limit

        query = (
            select(Post)
            .options(selectinload(Post.thread))
            .where(Post.author_id == user_id)
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    # ==================== Stats ====================

    async def get_stats(self) -> ForumStats:
        """Get site-wide totals."""
        total_threads = await self.db.scalar(select(func.count(Thread.id)))
        total_posts = await self.db.scalar(select(func.count(Post.id)))
        total_users = await self.db.scalar(select(func.count(User.id)))

        return ForumStats(
            total_threads=total_threads or 0,
            total_posts=total_posts or 0,
            total_users=total_users or 0,
        )
