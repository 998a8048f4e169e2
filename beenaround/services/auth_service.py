"""
Account lifecycle for app users: registration, login, profile editing,
password changes, terms acceptance and account deletion.
"""
import logging
import re
from typing import Any, Dict, Optional, Tuple

from fastapi import UploadFile
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config import settings
from ..exceptions import Forbidden, Unauthorized, ValidationFailed
from ..models import Post, TopDestination, User, utcnow
from ..schemas import RegisterRequest, TopDestinationResponse, UserResponse
from .comparison_service import comparison_percentages
from .jwt_service import JWTService
from .password_service import hash_password, verify_password
from .post_service import get_wishlist, user_highlights
from .social_service import user_stats
from .storage import StorageService
from ..utils import normalize_phone

logger = logging.getLogger(__name__)

NOTIFICATION_TYPE_RE = re.compile(r"^(?:[0-7](?:,[0-7])*)?$")
PROFILE_FIELDS = (
    "full_name",
    "phone",
    "email",
    "address",
    "public_profile",
    "location_sharing",
    "message_request",
    "instagram_sync",
    "contact_sync",
    "notification_type",
)


async def _email_in_use(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(User.id).where(func.lower(User.email) == email.strip().lower())
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    return (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None


async def register(db: AsyncSession, data: RegisterRequest) -> Tuple[User, str]:
    if await _email_in_use(db, data.email):
        raise ValidationFailed("Email already in use")

    user = User(
        full_name=data.name.strip(),
        phone=normalize_phone(data.phone) or None,
        email=data.email.strip().lower(),
        password=await hash_password(data.password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValidationFailed("Email already in use")

    logger.info(f"Registered user {user.id}")
    return user, JWTService.create_user_token(user)


async def login(db: AsyncSession, email: str, password: str) -> Tuple[User, str]:
    user = (await db.execute(
        select(User).where(func.lower(User.email) == email.strip().lower())
    )).scalar_one_or_none()
    if user is None or not await verify_password(password, user.password):
        raise Unauthorized("Invalid email or password")
    if user.block:
        raise Forbidden("Your account has been blocked")
    return user, JWTService.create_user_token(user)


def public_user(user: User) -> Dict[str, Any]:
    return UserResponse.model_validate(user).model_dump()


async def profile(db: AsyncSession, user: User) -> Dict[str, Any]:
    destinations = (await db.execute(
        select(TopDestination)
        .where(TopDestination.user_id == user.id)
        .order_by(TopDestination.type, TopDestination.count.desc(), TopDestination.id)
    )).scalars().all()
    return {
        "user": public_user(user),
        "wishlist": await get_wishlist(db, user),
        "highlights": await user_highlights(db, user.id),
        "topDestinations": [TopDestinationResponse.model_validate(d).model_dump() for d in destinations],
        "stats": await user_stats(db, user.id),
        "comparison": await comparison_percentages(db, user.id),
    }


async def edit_profile(
    db: AsyncSession,
    storage: StorageService,
    user: User,
    fields: Dict[str, Any],
    image: Optional[UploadFile] = None,
) -> User:
    """Partial update; keys whose value is None are left untouched."""
    updates = {k: v for k, v in fields.items() if k in PROFILE_FIELDS and v is not None}

    notification_type = updates.get("notification_type")
    if notification_type is not None and not NOTIFICATION_TYPE_RE.match(notification_type):
        raise ValidationFailed("Invalid notification_type format")
    if "phone" in updates:
        updates["phone"] = normalize_phone(updates["phone"]) or None
    if "email" in updates:
        updates["email"] = updates["email"].strip().lower()
        if await _email_in_use(db, updates["email"], exclude_id=user.id):
            raise ValidationFailed("Email already in use")

    if image is not None and image.filename:
        content = await image.read()
        new_url = await storage.upload_image(image.filename, content, settings.avatar_max_mb)
        if user.image:
            await storage.delete_by_url(user.image)
        updates["image"] = new_url

    for key, value in updates.items():
        setattr(user, key, value)
    await db.commit()
    return user


async def change_password(db: AsyncSession, user: User, current_password: str, new_password: str) -> None:
    if not await verify_password(current_password, user.password):
        raise ValidationFailed("Current password is incorrect")
    user.password = await hash_password(new_password)
    await db.commit()
    logger.info(f"User {user.id} changed password")


async def accept_terms(db: AsyncSession, user: User) -> User:
    user.terms_accepted = True
    user.terms_accepted_at = utcnow()
    await db.commit()
    return user


async def delete_account(db: AsyncSession, storage: StorageService, user: User) -> None:
    """Delete a user and, through cascades, everything they own."""
    posts = (await db.execute(
        select(Post).options(selectinload(Post.photos)).where(Post.user_id == user.id)
    )).scalars().all()
    urls = [photo.image_url for post in posts for photo in post.photos]
    if user.image:
        urls.append(user.image)

    await db.execute(delete(User).where(User.id == user.id))
    await db.commit()
    for url in urls:
        await storage.delete_by_url(url)
    logger.info(f"Deleted user {user.id} and {len(urls)} stored file(s)")
