"""
Travel posts: creation with photos, feeds, detail pages, wishlists and
moderation flags.
"""
import logging
from datetime import date
from typing import Dict, List, Optional

from fastapi import UploadFile
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config import settings
from ..exceptions import Forbidden, NotFound, ValidationFailed
from ..models import (
    Comment,
    FlaggedContent,
    Highlight,
    Like,
    Photo,
    Post,
    TopDestination,
    User,
    Wishlist,
)
from ..schemas import (
    CommentResponse,
    HighlightResponse,
    PostResponse,
    UserResponse,
    UserSummary,
)
from ..utils import continent_of, total_pages
from .comparison_service import comparison_percentages
from .destination_service import record_post_destinations
from .social_service import (
    blocked_user_ids,
    follow_state,
    followed_user_ids,
    has_user_blocked,
    user_stats,
)
from .storage import StorageService

logger = logging.getLogger(__name__)

FEED_ALL = 1
FEED_FOLLOWING = 2


def post_load_options():
    return [selectinload(Post.user), selectinload(Post.photos)]


def serialize_post(post: Post, **extra) -> Dict:
    return {**PostResponse.model_validate(post).model_dump(), **extra}


async def get_post(db: AsyncSession, post_id: int) -> Post:
    stmt = (
        select(Post)
        .options(*post_load_options())
        .where(Post.id == post_id)
        .execution_options(populate_existing=True)
    )
    post = (await db.execute(stmt)).scalar_one_or_none()
    if post is None:
        raise NotFound("Post not found")
    return post


def _clean_required(value: Optional[str], field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationFailed(f"{field} is required")
    return value


async def create_post(
    db: AsyncSession,
    storage: StorageService,
    user: User,
    *,
    country: str,
    city: str,
    visit_date: date,
    reason_for_visit: str,
    longitude: Optional[float] = None,
    latitude: Optional[float] = None,
    overall_rating: Optional[int] = None,
    cost_rating: Optional[int] = None,
    safety_rating: Optional[int] = None,
    food_rating: Optional[int] = None,
    experience: Optional[str] = None,
    place_type: Optional[str] = None,
    tags: Optional[str] = None,
    photos: Optional[List[UploadFile]] = None,
) -> Post:
    """Persist a post, upload its photos and update the author's tallies.

    Everything runs in one transaction; a failed upload leaves no post behind.
    """
    photos = [p for p in (photos or []) if p is not None and p.filename]
    if len(photos) > settings.max_post_photos:
        raise ValidationFailed(
            f"You can upload a maximum of {settings.max_post_photos} photos")

    country = _clean_required(country, "Country")
    post = Post(
        user_id=user.id,
        country=country,
        city=_clean_required(city, "City"),
        continent=continent_of(country),
        longitude=longitude,
        latitude=latitude,
        visit_date=visit_date,
        reason_for_visit=_clean_required(reason_for_visit, "Reason for visit"),
        overall_rating=overall_rating,
        cost_rating=cost_rating,
        safety_rating=safety_rating,
        food_rating=food_rating,
        experience=experience,
        place_type=place_type,
        tags=tags,
        like_count=0,
        comment_count=0,
    )
    uploaded: List[str] = []
    try:
        db.add(post)
        await db.flush()

        for upload in photos:
            content = await upload.read()
            url = await storage.upload_image(upload.filename, content, settings.photo_max_mb)
            uploaded.append(url)
            db.add(Photo(post_id=post.id, image_url=url))

        await record_post_destinations(db, post)
        await db.commit()
    except Exception:
        await db.rollback()
        # A failed post keeps none of its uploads
        for url in uploaded:
            await storage.delete_by_url(url)
        raise
    logger.info(f"User {user.id} created post {post.id} with {len(photos)} photo(s)")
    return await get_post(db, post.id)


async def list_posts(db: AsyncSession, viewer: User, feed_type: int, page: int, limit: int) -> Dict:
    """Feed of everyone (type 1) or of followed users (type 2), newest first."""
    if feed_type not in (FEED_ALL, FEED_FOLLOWING):
        raise ValidationFailed("Invalid type. Use 1 for all posts or 2 for following")

    conditions = []
    blocked = await blocked_user_ids(db, viewer.id)
    if blocked:
        conditions.append(Post.user_id.not_in(blocked))
    if feed_type == FEED_FOLLOWING:
        conditions.append(Post.user_id.in_(await followed_user_ids(db, viewer.id)))

    total = await db.scalar(select(func.count(Post.id)).where(*conditions)) or 0
    stmt = (
        select(Post)
        .options(*post_load_options())
        .where(*conditions)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    posts = (await db.execute(stmt)).scalars().all()

    liked = set()
    if posts:
        liked = set((await db.execute(
            select(Like.post_id).where(
                Like.user_id == viewer.id,
                Like.post_id.in_([p.id for p in posts]),
            )
        )).scalars().all())

    return {
        "posts": [serialize_post(p, isLiked=p.id in liked) for p in posts],
        "totalCount": total,
        "currentPage": page,
        "totalPages": total_pages(total, limit),
    }


async def post_detail(db: AsyncSession, viewer: User, post_id: int, page: int, limit: int) -> Dict:
    post = await get_post(db, post_id)

    total_comments = await db.scalar(
        select(func.count(Comment.id)).where(Comment.post_id == post.id)) or 0
    comments = (await db.execute(
        select(Comment)
        .options(selectinload(Comment.user))
        .where(Comment.post_id == post.id)
        .order_by(Comment.created_at.asc(), Comment.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
    )).scalars().all()

    is_liked = await db.scalar(select(func.count(Like.id)).where(
        Like.user_id == viewer.id, Like.post_id == post.id))
    is_wishlisted = await db.scalar(select(func.count(Wishlist.id)).where(
        Wishlist.user_id == viewer.id, Wishlist.post_id == post.id))

    return {
        "post": serialize_post(post),
        "comments": [CommentResponse.model_validate(c).model_dump() for c in comments],
        "totalComments": total_comments,
        "currentPage": page,
        "totalPages": total_pages(total_comments, limit),
        "isLiked": bool(is_liked),
        "isWishlisted": bool(is_wishlisted),
    }


async def user_highlights(db: AsyncSession, user_id: int) -> List[Dict]:
    rows = (await db.execute(
        select(Highlight)
        .where(Highlight.user_id == user_id)
        .order_by(Highlight.type, Highlight.count.desc(), Highlight.id)
    )).scalars().all()
    return [HighlightResponse.model_validate(h).model_dump() for h in rows]


async def user_details(db: AsyncSession, viewer: User, user_id: int) -> Dict:
    """Public profile of another user as seen by `viewer`."""
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")

    wishlist = (await db.execute(
        select(Wishlist.id, Wishlist.post_id, Wishlist.destination)
        .where(Wishlist.user_id == user.id)
        .order_by(Wishlist.created_at.desc(), Wishlist.id.desc())
    )).all()

    return {
        "user": UserResponse.model_validate(user).model_dump(),
        "stats": await user_stats(db, user.id),
        "follow": await follow_state(db, viewer.id, user.id),
        "owner": viewer.id == user.id,
        "isBlocked": await has_user_blocked(db, viewer.id, user.id),
        "highlights": await user_highlights(db, user.id),
        "topDestinations": await top_destinations(db, viewer, user.id),
        "wishlist": [
            {"wishlistId": w_id, "postId": p_id, "destination": dest}
            for w_id, p_id, dest in wishlist
        ],
        "comparison": await comparison_percentages(db, user.id),
    }


async def delete_post(db: AsyncSession, storage: StorageService, user: User, post_id: int) -> None:
    post = await get_post(db, post_id)
    if post.user_id != user.id:
        raise Forbidden("You can only delete your own posts")
    await remove_post(db, storage, post)


async def remove_post(db: AsyncSession, storage: StorageService, post: Post) -> None:
    """Delete a post with its photos, likes, comments, wishlist entries and flags."""
    urls = [p.image_url for p in post.photos]
    await db.execute(delete(Post).where(Post.id == post.id))
    await db.commit()
    for url in urls:
        await storage.delete_by_url(url)
    logger.info(f"Deleted post {post.id} ({len(urls)} photo(s))")


# Wishlist

async def toggle_wishlist(db: AsyncSession, user: User, post_id: int) -> bool:
    """Add or remove a post from the user's wishlist; returns the new state."""
    post = await db.get(Post, post_id)
    if post is None:
        raise NotFound("Post not found.")

    removed = await db.execute(
        delete(Wishlist).where(Wishlist.user_id == user.id, Wishlist.post_id == post.id)
    )
    if removed.rowcount:
        await db.commit()
        return False

    db.add(Wishlist(user_id=user.id, post_id=post.id,
                    destination=f"{post.city},{post.country}"))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
    return True


async def _visitors_by(db: AsyncSession, column, values: List[str], among: List[int]) -> Dict[str, List[Dict]]:
    """Followed users who posted from each value of `column`, keyed lower-case."""
    visitors: Dict[str, Dict[int, Dict]] = {}
    if not values or not among:
        return {}
    stmt = (
        select(func.lower(column), User)
        .join(User, User.id == Post.user_id)
        .where(func.lower(column).in_(values), Post.user_id.in_(among))
    )
    for value, user in (await db.execute(stmt)).all():
        visitors.setdefault(value, {})[user.id] = UserSummary.model_validate(user).model_dump()
    return {k: list(v.values()) for k, v in visitors.items()}


async def _visit_counts(db: AsyncSession, column, values: List[str]) -> Dict[str, int]:
    if not values:
        return {}
    stmt = (
        select(func.lower(column), func.count(Post.id))
        .where(func.lower(column).in_(values))
        .group_by(func.lower(column))
    )
    return {value: count for value, count in (await db.execute(stmt)).all()}


async def get_wishlist(db: AsyncSession, user: User) -> List[Dict]:
    wishlists = (await db.execute(
        select(Wishlist)
        .options(
            selectinload(Wishlist.post).selectinload(Post.user),
            selectinload(Wishlist.post).selectinload(Post.photos),
        )
        .where(Wishlist.user_id == user.id)
        .order_by(Wishlist.created_at.desc(), Wishlist.id.desc())
    )).scalars().all()

    posts = [w.post for w in wishlists if w.post is not None]
    cities = sorted({p.city.lower() for p in posts})
    countries = sorted({p.country.lower() for p in posts})
    following = await followed_user_ids(db, user.id)

    city_counts = await _visit_counts(db, Post.city, cities)
    country_counts = await _visit_counts(db, Post.country, countries)
    city_visitors = await _visitors_by(db, Post.city, cities, following)
    country_visitors = await _visitors_by(db, Post.country, countries, following)

    items = []
    for w in wishlists:
        if w.post is None:
            continue
        city, country = w.post.city.lower(), w.post.country.lower()
        items.append({
            "wishlistId": w.id,
            "destination": w.destination,
            "post": serialize_post(w.post),
            "cityVisitCount": city_counts.get(city, 0),
            "countryVisitCount": country_counts.get(country, 0),
            "cityVisitors": city_visitors.get(city, []),
            "countryVisitors": country_visitors.get(country, []),
        })
    return items


_TYPE_COLUMNS = {
    "continent": Post.continent,
    "country": Post.country,
    "city": Post.city,
}


async def top_destinations(db: AsyncSession, viewer: User, user_id: int) -> List[Dict]:
    """The user's leaderboard with matching posts and followed visitors."""
    rows = (await db.execute(
        select(TopDestination)
        .where(TopDestination.user_id == user_id)
        .order_by(
            TopDestination.type,
            TopDestination.count.desc(),
            TopDestination.updated_at.desc(),
            TopDestination.id.desc(),
        )
    )).scalars().all()
    following = await followed_user_ids(db, viewer.id)

    items = []
    for row in rows:
        column = _TYPE_COLUMNS.get(row.type)
        if column is None:
            continue
        posts = (await db.execute(
            select(Post)
            .options(*post_load_options())
            .where(Post.user_id == user_id, func.lower(column) == row.value)
            .order_by(Post.visit_date.desc(), Post.id.desc())
        )).scalars().all()
        visitors = await _visitors_by(db, column, [row.value], following)
        items.append({
            "destinationId": row.id,
            "type": row.type,
            "value": row.value,
            "count": row.count,
            "visited": row.visited,
            "posts": [serialize_post(p) for p in posts],
            "visitCount": len(posts),
            "visitors": visitors.get(row.value, []),
        })
    return items


# Moderation

async def flag_post(db: AsyncSession, user: User, post_id: int, reason: Optional[str]) -> FlaggedContent:
    post = await db.get(Post, post_id)
    if post is None:
        raise NotFound("Post not found")

    pending = (await db.execute(
        select(FlaggedContent.id).where(
            FlaggedContent.post_id == post.id,
            FlaggedContent.user_id == user.id,
            FlaggedContent.status == "pending",
        ).limit(1)
    )).scalar_one_or_none()
    if pending is not None:
        raise ValidationFailed("You have already flagged this post")

    flag = FlaggedContent(post_id=post.id, user_id=user.id,
                          reason=(reason or "").strip() or None)
    db.add(flag)
    await db.commit()
    logger.info(f"User {user.id} flagged post {post.id}")
    return flag
