"""
Reply tree assembly.

Posts are stored flat with a parent_post_id pointer. The tree is rebuilt per
request from the creation-ordered list of a thread's posts.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from app.models.forum import Post


@dataclass
class ReplyNode:
    """A post with the viewer's vote and its direct replies."""

    post: Post
    user_vote: int | None = None
    replies: list["ReplyNode"] = field(default_factory=list)


def index_by_parent(posts: Iterable[Post]) -> dict[int | None, list[Post]]:
    """Group posts by parent_post_id, keeping input order within each group."""
    children: dict[int | None, list[Post]] = defaultdict(list)
    for post in posts:
        children[post.parent_post_id].append(post)
    return children


def build_reply_tree(
    posts: Iterable[Post],
    user_votes: Mapping[int, int] | None = None,
) -> list[ReplyNode]:
    """
    Build the reply forest of a thread.

    Args:
        posts: Posts of one thread in ascending creation order
        user_votes: Viewer's vote value keyed by post id

    Returns:
        Top-level nodes (parent_post_id is None), each holding its replies
        in the same order as the input. Posts that cannot be reached from a
        top-level post are left out.
    """
    user_votes = user_votes or {}
    children = index_by_parent(posts)

    def make_node(post: Post) -> ReplyNode:
        return ReplyNode(post=post, user_vote=user_votes.get(post.id))

    roots = [make_node(post) for post in children.get(None, [])]

    # Explicit stack so reply depth is not bounded by the recursion limit
    stack = list(roots)
    while stack:
        node = stack.pop()
        node.replies = [make_node(child) for child in children.get(node.post.id, [])]
        stack.extend(node.replies)

    return roots
