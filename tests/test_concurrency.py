"""
Counter and ledger updates under concurrent sessions.

Each task runs in its own session and transaction against a shared SQLite
file. Transactions start with BEGIN IMMEDIATE, so writers queue on the
database lock the way row locks queue them on PostgreSQL.
"""

import asyncio

import pytest_asyncio
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import app.models  # noqa: F401
from app.core.database import Base
from app.models.forum import Post, Thread, Vote
from app.models.user import User
from app.modules.forum import ForumService, VoteLedger
from app.modules.users import UserService


@pytest_asyncio.fixture
async def maker(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'forum.db'}",
        connect_args={"timeout": 30},
        poolclass=NullPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    await engine.dispose()


async def in_session(maker, work):
    async with maker() as session:
        result = await work(session)
        await session.commit()
        return result


async def setup_forum(maker, voter_count=0):
    async def work(session):
        users = UserService(session)
        forum = ForumService(session)
        alice = await users.create_user(username="alice", password="password123")
        bob = await users.create_user(username="bob", password="password123")
        voters = [
            await users.create_user(username=f"voter{i}", password="password123")
            for i in range(voter_count)
        ]
        category = await forum.create_category(name="General", description="Anything goes")
        thread = await forum.create_thread(
            category_id=category.id, author_id=alice.id, title="Hello", content="First!"
        )
        post = await forum.create_post(thread_id=thread.id, author_id=bob.id, content="Hi")
        return alice, bob, voters, category, thread, post

    return await in_session(maker, work)


async def test_concurrent_threads_posts_and_votes(maker):
    alice, bob, voters, category, thread, post = await setup_forum(maker, voter_count=8)

    def new_thread(author, title):
        return in_session(
            maker,
            lambda s: ForumService(s).create_thread(
                category_id=category.id, author_id=author.id, title=title, content="Body"
            ),
        )

    def new_post(author, content):
        return in_session(
            maker,
            lambda s: ForumService(s).create_post(
                thread_id=thread.id, author_id=author.id, content=content, parent_post_id=post.id
            ),
        )

    def upvote(voter):
        return in_session(maker, lambda s: VoteLedger(s).cast_vote(voter.id, post.id, 1))

    tasks = [new_thread(alice, f"Alice {i}") for i in range(5)]
    tasks += [new_thread(bob, f"Bob {i}") for i in range(3)]
    tasks += [new_post(alice if i % 2 else bob, f"Reply {i}") for i in range(20)]
    tasks += [upvote(voter) for voter in voters]

    await asyncio.gather(*tasks)

    async with maker() as session:
        alice = await session.get(User, alice.id)
        bob = await session.get(User, bob.id)
        thread = await session.get(Thread, thread.id)
        post = await session.get(Post, post.id)
        total_threads = await session.scalar(select(func.count(Thread.id)))
        total_votes = await session.scalar(select(func.count(Vote.id)))

    assert total_threads == 9
    assert alice.thread_count == 6
    assert bob.thread_count == 3
    assert thread.reply_count == 21
    assert alice.post_count == 10
    assert bob.post_count == 11
    assert total_votes == 8
    assert (post.upvotes, post.downvotes) == (8, 0)
    assert bob.reputation == 8
    assert alice.reputation == 0


async def test_one_user_racing_opposite_votes(maker):
    alice, bob, _, _, _, post = await setup_forum(maker)

    def vote(value):
        return in_session(maker, lambda s: VoteLedger(s).cast_vote(alice.id, post.id, value))

    await asyncio.gather(vote(1), vote(-1), vote(1), vote(-1), vote(1))

    async with maker() as session:
        votes = list((await session.execute(select(Vote).where(Vote.post_id == post.id))).scalars())
        post = await session.get(Post, post.id)
        bob = await session.get(User, bob.id)

    assert len(votes) == 1
    value = votes[0].value
    assert value in (1, -1)
    assert post.upvotes + post.downvotes == 1
    assert post.net_votes == value
    assert bob.reputation == value
