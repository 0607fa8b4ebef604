from datetime import datetime

import orjson

import app.models  # noqa: F401
from app.api.v1.serializers import reply_tree_json
from app.models.forum import Post
from app.modules.forum.tree import build_reply_tree, index_by_parent


def make_posts(*pairs):
    return [
        Post(id=post_id, parent_post_id=parent_id, thread_id=1, author_id=1, content=f"post {post_id}")
        for post_id, parent_id in pairs
    ]


def shape(nodes):
    return [{"id": node.post.id, "replies": shape(node.replies)} for node in nodes]


def test_builds_nested_forest_in_creation_order():
    posts = make_posts((1, None), (2, 1), (3, 1), (4, 2))

    tree = build_reply_tree(posts)

    assert shape(tree) == [
        {
            "id": 1,
            "replies": [
                {"id": 2, "replies": [{"id": 4, "replies": []}]},
                {"id": 3, "replies": []},
            ],
        }
    ]


def test_siblings_keep_input_order():
    posts = make_posts((1, None), (5, None), (2, None), (9, 5), (3, 5))

    tree = build_reply_tree(posts)

    assert [node.post.id for node in tree] == [1, 5, 2]
    assert [node.post.id for node in tree[1].replies] == [9, 3]


def test_annotates_viewer_votes():
    posts = make_posts((1, None), (2, 1), (3, None))

    tree = build_reply_tree(posts, {1: 1, 2: -1})

    assert tree[0].user_vote == 1
    assert tree[0].replies[0].user_vote == -1
    assert tree[1].user_vote is None


def test_anonymous_viewer_has_no_votes():
    tree = build_reply_tree(make_posts((1, None)))

    assert tree[0].user_vote is None


def test_empty_thread():
    assert build_reply_tree([]) == []


def test_unreachable_posts_are_omitted():
    posts = make_posts((1, None), (2, 99), (3, 2))

    tree = build_reply_tree(posts)

    assert shape(tree) == [{"id": 1, "replies": []}]


def test_deep_reply_chain():
    depth = 5000
    posts = make_posts((1, None), *[(i, i - 1) for i in range(2, depth + 1)])

    tree = build_reply_tree(posts)

    node = tree[0]
    levels = 1
    while node.replies:
        assert len(node.replies) == 1
        node = node.replies[0]
        levels += 1
    assert levels == depth


def test_index_by_parent_groups_children():
    posts = make_posts((1, None), (2, 1), (3, None), (4, 1))

    children = index_by_parent(posts)

    assert [p.id for p in children[None]] == [1, 3]
    assert [p.id for p in children[1]] == [2, 4]
    assert 2 not in children


def encodable(posts):
    stamp = datetime(2024, 1, 1, 12, 0)
    for post in posts:
        post.created_at = post.updated_at = stamp
        post.upvotes = post.downvotes = 0
    return posts


def test_tree_json_matches_nested_structure():
    posts = encodable(make_posts((1, None), (2, 1), (3, 1), (4, 2), (5, None)))

    body = orjson.loads(reply_tree_json(build_reply_tree(posts, {3: -1})))

    assert shape_of(body) == [
        {
            "id": 1,
            "replies": [
                {"id": 2, "replies": [{"id": 4, "replies": []}]},
                {"id": 3, "replies": []},
            ],
        },
        {"id": 5, "replies": []},
    ]
    assert body[0]["replies"][1]["user_vote"] == -1
    assert body[0]["user_vote"] is None
    assert body[0]["author"] is None
    assert body[0]["created_at"] == "2024-01-01T12:00:00"
    assert body[0]["net_votes"] == 0


def test_tree_json_of_empty_thread():
    assert reply_tree_json([]) == b"[]"


def test_tree_json_of_deep_reply_chain():
    depth = 2000
    posts = encodable(make_posts((1, None), *[(i, i - 1) for i in range(2, depth + 1)]))

    body = reply_tree_json(build_reply_tree(posts))

    assert body.startswith(b'[{"id":1,')
    assert body.endswith(b'"replies":[' + b"]}" * depth + b"]")
    assert body.count(b'"replies":[') == depth


def shape_of(items):
    return [{"id": item["id"], "replies": shape_of(item["replies"])} for item in items]
