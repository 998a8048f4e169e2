"""
Per-user destination tallies.

Every new post bumps an all-time Highlight counter for its continent,
country and city, and the same values on a TopDestination leaderboard that
is trimmed to the TOP_DESTINATION_LIMIT best rows per type.
"""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Highlight, Post, TopDestination, utcnow
from ..utils import continent_of, normalize_value

logger = logging.getLogger(__name__)

DESTINATION_TYPES = ("continent", "country", "city")
TOP_DESTINATION_LIMIT = 3


async def _increment(db: AsyncSession, model, user_id: int, type_: str, value: str, **extra):
    stmt = select(model).where(
        model.user_id == user_id,
        model.type == type_,
        model.value == value,
    )
    row = (await db.execute(stmt)).scalar_one_or_none()
    now = utcnow()
    if row is None:
        row = model(user_id=user_id, type=type_, value=value,
                    count=1, updated_at=now, **extra)
        db.add(row)
    else:
        row.count += 1
        row.updated_at = now
        for key, val in extra.items():
            setattr(row, key, val)
    await db.flush()
    return row


async def trim_top_destinations(db: AsyncSession, user_id: int, type_: str) -> List[TopDestination]:
    """Delete every row past rank TOP_DESTINATION_LIMIT.

    Ranking is count descending; equal counts go to the most recently
    updated row, then to the newest id.
    """
    stmt = (
        select(TopDestination)
        .where(TopDestination.user_id == user_id, TopDestination.type == type_)
        .order_by(
            TopDestination.count.desc(),
            TopDestination.updated_at.desc(),
            TopDestination.id.desc(),
        )
    )
    rows = (await db.execute(stmt)).scalars().all()
    for row in rows[TOP_DESTINATION_LIMIT:]:
        await db.delete(row)
    await db.flush()
    return list(rows[:TOP_DESTINATION_LIMIT])


async def record_visit(db: AsyncSession, user_id: int, type_: str, value: Optional[str]) -> Optional[Highlight]:
    if type_ not in DESTINATION_TYPES:
        raise ValueError(f"Unknown destination type: {type_}")
    value = normalize_value(value)
    if not value:
        return None

    highlight = await _increment(db, Highlight, user_id, type_, value)
    await _increment(db, TopDestination, user_id, type_, value, visited=True)
    await trim_top_destinations(db, user_id, type_)
    return highlight


async def record_post_destinations(db: AsyncSession, post: Post) -> None:
    """Count the post's continent, country and city for its author.

    The caller commits.
    """
    continent = continent_of(post.country)
    if continent is None:
        logger.info(
            f"No continent mapping for country '{post.country}' (post {post.id})")
    else:
        await record_visit(db, post.user_id, "continent", continent)
    await record_visit(db, post.user_id, "country", post.country)
    await record_visit(db, post.user_id, "city", post.city)
