"""
Location search over posts.

A location query is a comma separated string such as "paris, france".
Tokens are matched as case-insensitive substrings of city and country.
"""
import logging
from datetime import timedelta
from typing import Dict, List, Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import ValidationFailed
from ..models import Photo, Post, User, utcnow
from ..utils import like_pattern, location_tokens
from .post_service import post_load_options, serialize_post
from .social_service import blocked_user_ids, followed_user_ids

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(hours=24)


def _contains_any(column, tokens: List[str]):
    return or_(*[func.lower(column).like(like_pattern(t), escape="\\") for t in tokens])


def _contains(column, token: str):
    return func.lower(column).like(like_pattern(token), escape="\\")


def _tokens_or_raise(location: Optional[str]) -> List[str]:
    tokens = location_tokens(location)
    if not tokens:
        raise ValidationFailed("Location is required")
    return tokens


def _average(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0


async def location_condition(db: AsyncSession, tokens: List[str]):
    """City OR-match, narrowed by country when any post matches a country token."""
    city_match = _contains_any(Post.city, tokens)
    country_match = _contains_any(Post.country, tokens)
    any_country = await db.scalar(select(Post.id).where(country_match).limit(1))
    if any_country is not None:
        return and_(city_match, country_match)
    return city_match


async def search_by_location(db: AsyncSession, viewer: User, location: Optional[str]) -> Dict:
    tokens = _tokens_or_raise(location)
    condition = await location_condition(db, tokens)

    conditions = [condition]
    blocked = await blocked_user_ids(db, viewer.id)
    if blocked:
        conditions.append(Post.user_id.not_in(blocked))

    posts = (await db.execute(
        select(Post)
        .options(*post_load_options())
        .where(*conditions)
        .order_by(Post.created_at.desc(), Post.id.desc())
    )).scalars().all()
    following = set(await followed_user_ids(db, viewer.id))

    items, follower_ratings, public_ratings = [], [], []
    for post in posts:
        is_following = post.user_id in following
        rating = post.overall_rating or 0
        (follower_ratings if is_following else public_ratings).append(rating)
        items.append(serialize_post(
            post,
            isFollowing=is_following,
            stats={
                "followerCount": 1 if is_following else 0,
                "publicCount": 0 if is_following else 1,
                "overallRating": rating,
            },
        ))

    return {
        "posts": items,
        "statistics": {
            "totalFollowerPosts": len(follower_ratings),
            "totalPublicPosts": len(public_ratings),
            "totalFollowerReviews": _average(follower_ratings),
            "totalPublicReviews": _average(public_ratings),
        },
    }


async def search_by_location_filtered(
    db: AsyncSession,
    viewer: User,
    location: Optional[str],
    followed: Optional[int] = None,
    recent: Optional[int] = None,
) -> Dict:
    """First token is the city, the last one (if there are two or more) the country."""
    tokens = _tokens_or_raise(location)
    conditions = [_contains(Post.city, tokens[0])]
    if len(tokens) > 1:
        conditions.append(_contains(Post.country, tokens[-1]))

    following = await followed_user_ids(db, viewer.id)
    if followed == 1:
        conditions.append(Post.user_id.in_(following))
    elif followed == 0:
        conditions.append(Post.user_id.not_in(following + [viewer.id]))

    blocked = await blocked_user_ids(db, viewer.id)
    if blocked:
        conditions.append(Post.user_id.not_in(blocked))
    if recent == 1:
        conditions.append(Post.created_at >= utcnow() - RECENT_WINDOW)

    posts = (await db.execute(
        select(Post)
        .options(*post_load_options())
        .where(*conditions)
        .order_by(Post.created_at.desc(), Post.id.desc())
    )).scalars().all()

    photos = []
    if posts:
        photos = (await db.execute(
            select(Photo)
            .where(Photo.post_id.in_([p.id for p in posts]))
            .order_by(Photo.post_id.desc(), Photo.id)
        )).scalars().all()

    following_set = set(following)
    return {
        "posts": [serialize_post(p, isFollowing=p.user_id in following_set) for p in posts],
        "locationPhotos": [
            {"id": photo.id, "url": photo.image_url, "postId": photo.post_id}
            for photo in photos
        ],
    }
