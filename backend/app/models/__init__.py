"""
ORM models. Importing this package registers every table on Base.metadata.
"""

from app.models.forum import Category, Post, Thread, Vote
from app.models.user import User

__all__ = ["User", "Category", "Thread", "Post", "Vote"]
