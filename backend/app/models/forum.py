"""
Forum models for community discussions.

Includes:
- Categories (flat, sorted by sort_order)
- Threads
- Posts (replies, nested through parent_post_id)
- Votes (one per user and post)
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

if TYPE_CHECKING:
    from app.models.user import User


class Category(Base):
    """Forum category/section."""

    __tablename__ = "forum_categories"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100))
    description: Mapped[str] = mapped_column(Text)
    icon: Mapped[str] = mapped_column(String(50), default="folder")  # Icon name
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    # Relationships
    threads: Mapped[list["Thread"]] = relationship(
        back_populates="category",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Category {self.name}>"


class Thread(Base):
    """Forum thread."""

    __tablename__ = "forum_threads"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("forum_categories.id", ondelete="CASCADE"), index=True
    )
    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )

    title: Mapped[str] = mapped_column(String(255))
    content: Mapped[str] = mapped_column(Text)  # Opening post content

    # Status
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False)

    # Stats
    view_count: Mapped[int] = mapped_column(Integer, default=0)
    reply_count: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    last_activity_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, index=True
    )

    # Relationships
    category: Mapped["Category"] = relationship(back_populates="threads")
    author: Mapped["User"] = relationship(back_populates="threads")
    posts: Mapped[list["Post"]] = relationship(
        back_populates="thread",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Thread {self.title[:30]}>"


class Post(Base):
    """Forum post/reply."""

    __tablename__ = "forum_posts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    thread_id: Mapped[int] = mapped_column(
        ForeignKey("forum_threads.id", ondelete="CASCADE"), index=True
    )
    author_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    parent_post_id: Mapped[int | None] = mapped_column(
        ForeignKey("forum_posts.id", ondelete="CASCADE"), index=True
    )

    content: Mapped[str] = mapped_column(Text)

    # Stats (derived from votes)
    upvotes: Mapped[int] = mapped_column(Integer, default=0)
    downvotes: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    thread: Mapped["Thread"] = relationship(back_populates="posts")
    author: Mapped["User"] = relationship(back_populates="posts")
    parent: Mapped["Post | None"] = relationship(
        "Post", remote_side=[id], back_populates="replies"
    )
    replies: Mapped[list["Post"]] = relationship(
        "Post", back_populates="parent", passive_deletes=True
    )
    votes: Mapped[list["Vote"]] = relationship(
        back_populates="post", passive_deletes=True
    )

    @property
    def net_votes(self) -> int:
        return self.upvotes - self.downvotes

    def __repr__(self) -> str:
        return f"<Post {self.id} in thread {self.thread_id}>"


class Vote(Base):
    """Up (+1) or down (-1) vote on a post."""

    __tablename__ = "forum_votes"
    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_forum_vote_user_post"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    post_id: Mapped[int] = mapped_column(
        ForeignKey("forum_posts.id", ondelete="CASCADE"), index=True
    )
    value: Mapped[int] = mapped_column(Integer)  # -1 or +1
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="votes")
    post: Mapped["Post"] = relationship(back_populates="votes")

    def __repr__(self) -> str:
        return f"<Vote {self.value:+d} by {self.user_id} on post {self.post_id}>"
