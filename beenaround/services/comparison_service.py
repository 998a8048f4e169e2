from typing import Dict, Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Highlight, User
from ..utils import round_half_up
from .destination_service import DESTINATION_TYPES


def _zero_counts() -> Dict[str, int]:
    return {t: 0 for t in DESTINATION_TYPES}


def percentile_below(current: int, others: Iterable[int]) -> int:
    """Share of `others` strictly below `current`, as a 0-100 integer."""
    others = list(others)
    if not others:
        return 0
    below = sum(1 for count in others if count < current)
    return round_half_up(below / len(others) * 100)


async def distinct_destination_counts(db: AsyncSession) -> Dict[int, Dict[str, int]]:
    """Distinct highlight values per type for every user, zero-filled."""
    user_ids = (await db.execute(select(User.id))).scalars().all()
    counts: Dict[int, Dict[str, int]] = {
        user_id: _zero_counts() for user_id in user_ids}

    stmt = (
        select(Highlight.user_id, Highlight.type,
               func.count(func.distinct(Highlight.value)))
        .group_by(Highlight.user_id, Highlight.type)
    )
    for user_id, type_, count in (await db.execute(stmt)).all():
        if type_ in DESTINATION_TYPES:
            counts.setdefault(user_id, _zero_counts())[type_] = int(count)
    return counts


async def comparison_percentages(db: AsyncSession, user_id: int) -> Dict[str, int]:
    """Percentile of `user_id` against every other user, per destination type.

    Users without any highlights are part of the pool with a count of 0.
    """
    counts = await distinct_destination_counts(db)
    mine = counts.get(user_id) or _zero_counts()
    others = [c for uid, c in counts.items() if uid != user_id]
    return {
        type_: percentile_below(mine[type_], (o[type_] for o in others))
        for type_ in DESTINATION_TYPES
    }
