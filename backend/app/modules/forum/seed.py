"""
Default forum categories created on first startup.
"""

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.forum import Category

DEFAULT_CATEGORIES = [
    {
        "name": "General Discussion",
        "description": "General tech discussions, announcements, and community topics",
        "icon": "message-square",
        "sort_order": 1,
    },
    {
        "name": "Security & Exploits",
        "description": "Security research, vulnerability discussions, and exploit development",
        "icon": "shield-alert",
        "sort_order": 2,
    },
    {
        "name": "Programming",
        "description": "Code, algorithms, languages, and development techniques",
        "icon": "code",
        "sort_order": 3,
    },
    {
        "name": "Cryptography",
        "description": "Encryption, blockchain, cryptocurrency, and cryptographic protocols",
        "icon": "lock",
        "sort_order": 4,
    },
    {
        "name": "Tools & Resources",
        "description": "Share and discuss tools, scripts, resources, and utilities",
        "icon": "wrench",
        "sort_order": 5,
    },
    {
        "name": "Off-Topic",
        "description": "Everything else - gaming, hardware, lifestyle, and random discussions",
        "icon": "coffee",
        "sort_order": 6,
    },
]


async def seed_categories(db: AsyncSession) -> int:
    """
    Create any default category whose name is not taken yet.

    Returns:
        Number of categories created
    """
    result = await db.execute(select(Category.name))
    existing = set(result.scalars().all())

    created = 0
    for data in DEFAULT_CATEGORIES:
        if data["name"] in existing:
            continue
        db.add(Category(**data))
        created += 1
        logger.info(f"Created category: {data['name']}")

    await db.flush()
    return created
