"""
Forum Module - Threaded community discussions.

Features:
- Categories and threads
- Nested replies assembled into a reply tree
- Post voting with author reputation
- Denormalized activity counters
"""

from app.modules.forum.service import CategorySummary, ForumService, ForumStats
from app.modules.forum.tree import ReplyNode, build_reply_tree
from app.modules.forum.votes import VoteLedger

__all__ = [
    "ForumService",
    "CategorySummary",
    "ForumStats",
    "VoteLedger",
    "ReplyNode",
    "build_reply_tree",
]
