"""
The caller's own travel passport: visited countries and cities, and per
country / per city statistics over their posts.
"""
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..exceptions import ValidationFailed
from ..models import Post, TopDestination, User
from ..utils import like_pattern

VIEWS = ("all", "recent", "rating")
SORT_FIELDS = (
    "visit_date",
    "overall_rating",
    "cost_rating",
    "safety_rating",
    "food_rating",
    "like_count",
    "comment_count",
)
SORT_ORDERS = ("ASC", "DESC")
DEFAULT_SORT = ("visit_date", "DESC")


def resolve_sort(view: str, sort_by: Optional[str], sort_order: Optional[str]) -> Tuple[str, str]:
    """Sort column and direction for a stats query.

    Without explicit sort parameters the "all" view is oldest first and the
    other views newest first. Invalid values fall back to visit_date DESC.
    """
    if not sort_by and not sort_order:
        return ("visit_date", "ASC") if view == "all" else DEFAULT_SORT

    field = sort_by or "visit_date"
    order = (sort_order or "DESC").upper()
    if field not in SORT_FIELDS or order not in SORT_ORDERS:
        return DEFAULT_SORT
    return field, order


async def _visited_values(db: AsyncSession, user_id: int, type_: str) -> List[str]:
    stmt = (
        select(TopDestination.value)
        .where(
            TopDestination.user_id == user_id,
            TopDestination.type == type_,
            TopDestination.visited.is_(True),
        )
        .distinct()
        .order_by(TopDestination.value)
    )
    return list((await db.execute(stmt)).scalars().all())


async def visited_countries(db: AsyncSession, user: User) -> List[str]:
    return await _visited_values(db, user.id, "country")


async def visited_cities(db: AsyncSession, user: User) -> List[str]:
    return await _visited_values(db, user.id, "city")


def _photo_dicts(post: Post) -> List[Dict]:
    return [{"id": p.id, "image_url": p.image_url} for p in post.photos]


def _format_post(post: Post, place_field: str) -> Dict:
    return {
        "id": post.id,
        place_field: getattr(post, place_field),
        "visit_date": post.visit_date,
        "reason_for_visit": post.reason_for_visit,
        "overall_rating": post.overall_rating,
        "experience": post.experience,
        "cost_rating": post.cost_rating,
        "safety_rating": post.safety_rating,
        "food_rating": post.food_rating,
        "like_count": post.like_count,
        "comment_count": post.comment_count,
        "photos": _photo_dicts(post),
    }


async def _stats_posts(
    db: AsyncSession,
    user_id: int,
    match_column,
    match_value: str,
    keyword_column,
    keyword: Optional[str],
    view: str,
    sort: Tuple[str, str],
) -> List[Post]:
    conditions = [
        Post.user_id == user_id,
        func.lower(match_column) == match_value.strip().lower(),
    ]
    if keyword:
        pattern = like_pattern(keyword.strip().lower())
        conditions.append(or_(
            func.lower(keyword_column).like(pattern, escape="\\"),
            func.lower(Post.experience).like(pattern, escape="\\"),
        ))
    if view == "rating":
        conditions.append(Post.overall_rating.is_not(None))

    column = getattr(Post, sort[0])
    ordering = column.asc() if sort[1] == "ASC" else column.desc()
    stmt = (
        select(Post)
        .options(selectinload(Post.photos))
        .where(*conditions)
        .order_by(ordering, Post.id.desc())
    )
    return list((await db.execute(stmt)).scalars().all())


def _check_view(view: Optional[str]) -> str:
    """Unknown views behave like "recent"."""
    return view if view in VIEWS else "recent"


def _all_images(posts: List[Post]) -> List[Dict]:
    return [
        {"id": photo.id, "image_url": photo.image_url, "post_id": post.id}
        for post in posts
        for photo in post.photos
    ]


async def country_stats(
    db: AsyncSession,
    user: User,
    country: Optional[str],
    keyword: Optional[str] = None,
    view: str = "recent",
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> Dict:
    if not country or not country.strip():
        raise ValidationFailed("Country is required")
    view = _check_view(view)
    sort = resolve_sort(view, sort_by, sort_order)

    posts = await _stats_posts(db, user.id, Post.country, country, Post.city, keyword, view, sort)
    return {
        "visitCount": len(posts),
        "citiesVisited": len({p.city.strip().lower() for p in posts if p.city}),
        "lastVisit": posts[0].visit_date if posts else None,
        "posts": [_format_post(p, "city") for p in posts],
        "allImages": _all_images(posts),
        "filters": {"keyword": keyword, "view": view, "sortBy": sort[0], "sortOrder": sort[1]},
    }


async def city_stats(
    db: AsyncSession,
    user: User,
    city: Optional[str],
    keyword: Optional[str] = None,
    view: str = "recent",
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
) -> Dict:
    if not city or not city.strip():
        raise ValidationFailed("City is required")
    view = _check_view(view)
    sort = resolve_sort(view, sort_by, sort_order)

    posts = await _stats_posts(db, user.id, Post.city, city, Post.country, keyword, view, sort)
    # Every user's posts from this city
    review_count = await db.scalar(
        select(func.count(Post.id)).where(func.lower(Post.city) == city.strip().lower())) or 0
    return {
        "visitCount": len(posts),
        "countriesVisited": len({p.country.strip().lower() for p in posts if p.country}),
        "lastVisit": posts[0].visit_date if posts else None,
        "reviewCount": review_count,
        "posts": [_format_post(p, "country") for p in posts],
        "allImages": _all_images(posts),
        "filters": {"keyword": keyword, "view": view, "sortBy": sort[0], "sortOrder": sort[1]},
    }


async def country_cities(db: AsyncSession, user: User, country: Optional[str]) -> List[Dict]:
    """The user's posts in `country` grouped by city, most recent visit first."""
    if not country or not country.strip():
        raise ValidationFailed("Country is required")

    posts = (await db.execute(
        select(Post)
        .where(Post.user_id == user.id, func.lower(Post.country) == country.strip().lower())
        .order_by(Post.visit_date.desc(), Post.id.desc())
    )).scalars().all()

    cities: Dict[str, Dict] = {}
    for post in posts:
        entry = cities.setdefault(post.city, {
            "city": post.city,
            "longitude": post.longitude,
            "latitude": post.latitude,
            "visits": [],
        })
        entry["visits"].append({
            "id": post.id,
            "visit_date": post.visit_date,
            "overall_rating": post.overall_rating,
        })
    return list(cities.values())
