"""
User model for authentication and forum activity.
"""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base

if TYPE_CHECKING:
    from app.models.forum import Post, Thread, Vote


class User(Base):
    """User account model."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))

    # Profile
    bio: Mapped[str | None] = mapped_column(Text)
    rank: Mapped[str] = mapped_column(String(50), default="Newbie")

    # Stats (denormalized, relative updates only)
    post_count: Mapped[int] = mapped_column(Integer, default=0)
    thread_count: Mapped[int] = mapped_column(Integer, default=0)
    reputation: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    threads: Mapped[list["Thread"]] = relationship(
        back_populates="author", passive_deletes=True
    )
    posts: Mapped[list["Post"]] = relationship(
        back_populates="author", passive_deletes=True
    )
    votes: Mapped[list["Vote"]] = relationship(
        back_populates="user", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<User {self.username}>"
