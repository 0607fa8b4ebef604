"""
Response payload builders shared by the endpoint modules.

Only relationships that the calling query eager-loaded may be requested.
"""

from typing import Any

import orjson

from app.models.forum import Category, Post, Thread, Vote
from app.models.user import User
from app.modules.forum.tree import ReplyNode


def user_public(user: User) -> dict[str, Any]:
    """Public user fields (never the password hash)."""
    return {
        "id": user.id,
        "username": user.username,
        "joined_at": user.joined_at.isoformat(),
        "post_count": user.post_count,
        "thread_count": user.thread_count,
        "reputation": user.reputation,
        "rank": user.rank,
        "bio": user.bio,
    }


def category_dict(category: Category) -> dict[str, Any]:
    return {
        "id": category.id,
        "name": category.name,
        "description": category.description,
        "icon": category.icon,
        "sort_order": category.sort_order,
    }


def thread_dict(
    thread: Thread,
    with_author: bool = False,
    with_category: bool = False,
) -> dict[str, Any]:
    data = {
        "id": thread.id,
        "category_id": thread.category_id,
        "author_id": thread.author_id,
        "title": thread.title,
        "content": thread.content,
        "view_count": thread.view_count,
        "reply_count": thread.reply_count,
        "is_pinned": thread.is_pinned,
        "is_locked": thread.is_locked,
        "created_at": thread.created_at.isoformat(),
        "updated_at": thread.updated_at.isoformat(),
        "last_activity_at": thread.last_activity_at.isoformat(),
    }
    if with_author:
        data["author"] = user_public(thread.author) if thread.author else None
    if with_category:
        data["category"] = category_dict(thread.category) if thread.category else None
    return data


def post_dict(
    post: Post,
    with_author: bool = False,
    with_thread: bool = False,
) -> dict[str, Any]:
    data = {
        "id": post.id,
        "thread_id": post.thread_id,
        "author_id": post.author_id,
        "parent_post_id": post.parent_post_id,
        "content": post.content,
        "upvotes": post.upvotes,
        "downvotes": post.downvotes,
        "net_votes": post.net_votes,
        "created_at": post.created_at.isoformat(),
        "updated_at": post.updated_at.isoformat(),
    }
    if with_author:
        data["author"] = user_public(post.author) if post.author else None
    if with_thread:
        data["thread"] = thread_dict(post.thread) if post.thread else None
    return data


def reply_node_fields(node: ReplyNode) -> dict[str, Any]:
    """Flat fields of a reply node, without its replies."""
    data = post_dict(node.post, with_author=True)
    data["user_vote"] = node.user_vote
    return data


def _push_siblings(stack: list[ReplyNode | bytes], nodes: list[ReplyNode]) -> None:
    # Reversed, with separators, so nodes pop in their original order
    for index, node in enumerate(reversed(nodes)):
        if index:
            stack.append(b",")
        stack.append(node)


def reply_tree_json(nodes: list[ReplyNode]) -> bytes:
    """
    Encode a reply forest as a JSON array.

    orjson refuses documents nested deeper than 255 levels, and every reply
    level adds two. Each node's flat fields are encoded on their own and the
    "replies" arrays are stitched around them from an explicit stack, so
    reply depth has no limit.
    """
    parts = [b"["]
    stack: list[ReplyNode | bytes] = []
    _push_siblings(stack, nodes)

    while stack:
        item = stack.pop()
        if isinstance(item, bytes):
            parts.append(item)
            continue

        head = orjson.dumps(reply_node_fields(item))
        parts.append(head[:-1] + b',"replies":[')
        stack.append(b"]}")
        _push_siblings(stack, item.replies)

    parts.append(b"]")
    return b"".join(parts)


def vote_dict(vote: Vote) -> dict[str, Any]:
    return {
        "id": vote.id,
        "user_id": vote.user_id,
        "post_id": vote.post_id,
        "value": vote.value,
        "created_at": vote.created_at.isoformat(),
    }
