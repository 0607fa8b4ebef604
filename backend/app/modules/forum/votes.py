"""
Vote Ledger - Post votes and author reputation.
"""

from typing import Iterable

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.models.forum import Post, Vote
from app.models.user import User

VALID_VOTE_VALUES = (-1, 1)


class VoteLedger:
    """
    Keeps Vote rows, post up/down counters and author reputation consistent.

    Usage:
        ledger = VoteLedger(db_session)
        vote = await ledger.cast_vote(user_id, post_id, value=1)
    """

    def __init__(self, db: AsyncSession) -> None:
        """Initialize ledger with database session."""
        self.db = db

    async def get_vote(self, user_id: int, post_id: int) -> Vote | None:
        """Get a user's vote on a post."""
        query = select(Vote).where(Vote.user_id == user_id, Vote.post_id == post_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_user_votes(
        self,
        user_id: int,
        post_ids: Iterable[int],
    ) -> dict[int, int]:
        """Get a user's vote values for many posts, keyed by post id."""
        post_ids = list(post_ids)
        if not post_ids:
            return {}

        query = select(Vote.post_id, Vote.value).where(
            Vote.user_id == user_id,
            Vote.post_id.in_(post_ids),
        )
        result = await self.db.execute(query)
        return {post_id: value for post_id, value in result.all()}

    async def cast_vote(self, user_id: int, post_id: int, value: int) -> Vote:
        """
        Record an upvote (+1) or downvote (-1).

        A first vote bumps the matching counter and moves the author's
        reputation by value. Repeating the stored value changes nothing.
        Flipping moves one unit from the old counter to the new one and
        moves reputation by new - old.

        Args:
            user_id: Voting user ID
            post_id: Target post ID
            value: +1 or -1

        Returns:
            The stored vote

        Raises:
            ValidationError: value is not +1 or -1
            NotFoundError: post does not exist
        """
        if value not in VALID_VOTE_VALUES:
            raise ValidationError("Vote value must be 1 or -1")

        # Row lock on the post serializes concurrent votes on it
        result = await self.db.execute(
            select(Post).where(Post.id == post_id).with_for_update()
        )
        post = result.scalar_one_or_none()
        if not post:
            raise NotFoundError("Post not found")

        existing = await self.get_vote(user_id, post_id)

        if existing is None:
            vote = Vote(user_id=user_id, post_id=post_id, value=value)
            self.db.add(vote)
            await self.db.flush()

            if value == 1:
                await self._adjust_counters(post_id, upvotes=1)
            else:
                await self._adjust_counters(post_id, downvotes=1)
            await self._adjust_reputation(post.author_id, value)

            logger.info(f"User {user_id} voted {value:+d} on post {post_id}")
            return vote

        if existing.value == value:
            logger.debug(f"User {user_id} repeated vote {value:+d} on post {post_id}")
            return existing

        old_value = existing.value
        existing.value = value
        await self.db.flush()

        await self._adjust_counters(post_id, upvotes=value, downvotes=-value)
        await self._adjust_reputation(post.author_id, value - old_value)

        logger.info(
            f"User {user_id} changed vote on post {post_id} "
            f"from {old_value:+d} to {value:+d}"
        )
        return existing

    async def _adjust_counters(
        self,
        post_id: int,
        upvotes: int = 0,
        downvotes: int = 0,
    ) -> None:
        """Relative update of a post's vote counters."""
        await self.db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(
                upvotes=Post.upvotes + upvotes,
                downvotes=Post.downvotes + downvotes,
            )
        )

    async def _adjust_reputation(self, user_id: int, delta: int) -> None:
        """Relative update of a user's reputation."""
        await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(reputation=User.reputation + delta)
        )
