"""
Admin panel operations: user management, admin accounts, moderation and
platform analytics.
"""
import calendar
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional

from fastapi import UploadFile
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config import settings
from ..exceptions import Forbidden, NotFound, Unauthorized, ValidationFailed
from ..models import AdminUser, FlaggedContent, Post, TopDestination, User
from ..utils import like_pattern, parse_bool, total_pages
from .auth_service import delete_account
from .password_service import hash_password, verify_password
from .post_service import post_load_options, remove_post
from .storage import StorageService

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
TOP_COUNTRIES_LIMIT = 5
SIGNUP_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
USER_UPDATE_FIELDS = ("full_name", "country", "address", "block", "public_profile", "image")
BOOLEAN_FIELDS = ("block", "public_profile")
FLAG_STATUSES = ("pending", "approved", "declined")


def pagination(total: int, page: int, limit: int) -> Dict[str, Any]:
    return {
        "totalItems": total,
        "currentPage": page,
        "totalPages": total_pages(total, limit),
        "itemsPerPage": limit,
        "hasNextPage": page * limit < total,
        "hasPreviousPage": page > 1,
    }


# Admin login

async def authenticate_admin(db: AsyncSession, email: str, password: str) -> AdminUser:
    admin = (await db.execute(
        select(AdminUser).where(func.lower(AdminUser.email) == email.strip().lower())
    )).scalar_one_or_none()
    if admin is None or not await verify_password(password, admin.password):
        raise Unauthorized("Invalid email or password")
    return admin


# Users

async def list_users(
    db: AsyncSession,
    search: Optional[str] = None,
    country: Optional[str] = None,
    signup_date: Optional[str] = None,
    blocked: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
) -> Any:
    """Every user newest first, or a filtered page when any filter is given."""
    order = (User.created_at.desc(), User.id.desc())
    if not any([search, country, signup_date, blocked is not None]):
        return list((await db.execute(select(User).order_by(*order))).scalars().all())

    if page < 1:
        raise ValidationFailed("Page must be a positive integer")
    if limit < 1:
        raise ValidationFailed("Limit must be a positive integer")
    limit = min(limit, MAX_PAGE_SIZE)

    conditions = []
    if search and search.strip():
        pattern = like_pattern(search.strip().lower())
        conditions.append(or_(
            func.lower(User.full_name).like(pattern, escape="\\"),
            func.lower(User.email).like(pattern, escape="\\"),
            func.lower(User.address).like(pattern, escape="\\"),
        ))
    if country and country.strip():
        conditions.append(func.lower(User.address).like(
            like_pattern(country.strip().lower()), escape="\\"))
    if blocked is not None:
        conditions.append(User.block.is_(parse_bool(blocked) is True))
    if signup_date:
        if not SIGNUP_DATE_RE.match(signup_date):
            raise ValidationFailed("signup_date must be in YYYY-MM-DD format")
        try:
            day = datetime.strptime(signup_date, "%Y-%m-%d").replace(tzinfo=timezone.utc)
        except ValueError:
            raise ValidationFailed("signup_date must be in YYYY-MM-DD format")
        conditions.append(User.created_at >= day)
        conditions.append(User.created_at < day + timedelta(days=1))

    total = await db.scalar(select(func.count(User.id)).where(*conditions)) or 0
    users = (await db.execute(
        select(User)
        .where(*conditions)
        .order_by(*order)
        .offset((page - 1) * limit)
        .limit(limit)
    )).scalars().all()
    return {"users": list(users), "pagination": pagination(total, page, limit)}


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def update_user(
    db: AsyncSession,
    storage: StorageService,
    user_id: int,
    fields: Mapping[str, Any],
    image: Optional[UploadFile] = None,
) -> User:
    """Apply the allowed fields; `country` is stored in the address column."""
    user = await get_user(db, user_id)

    updates, errors = {}, []
    for key, value in fields.items():
        if key not in USER_UPDATE_FIELDS:
            errors.append(f"Field '{key}' is not allowed for update")
        elif key in BOOLEAN_FIELDS:
            parsed = parse_bool(value)
            if parsed is None:
                errors.append(f"Invalid value for {key}")
            else:
                updates[key] = parsed
        elif key == "country":
            updates["address"] = value
        else:
            updates[key] = value
    if errors:
        raise ValidationFailed(", ".join(errors))

    if image is not None and image.filename:
        content = await image.read()
        new_url = await storage.upload_image(image.filename, content, settings.avatar_max_mb)
        if user.image:
            await storage.delete_by_url(user.image)
        updates["image"] = new_url

    for key, value in updates.items():
        setattr(user, key, value)
    await db.commit()
    logger.info(f"Admin updated user {user.id}: {sorted(updates)}")
    return user


async def set_user_block(db: AsyncSession, user_id: int, block: bool) -> User:
    user = await get_user(db, user_id)
    user.block = bool(block)
    await db.commit()
    logger.info(f"User {user.id} {'blocked' if user.block else 'unblocked'} by admin")
    return user


async def delete_user(db: AsyncSession, storage: StorageService, user_id: int) -> None:
    """Delete a user and, through cascades, everything they own."""
    user = await get_user(db, user_id)
    await delete_account(db, storage, user)


# Analytics

async def _top_value(db: AsyncSession, type_: str) -> Optional[str]:
    return await db.scalar(
        select(TopDestination.value)
        .where(TopDestination.type == type_)
        .order_by(TopDestination.count.desc(), TopDestination.id)
        .limit(1)
    )


async def platform_stats(db: AsyncSession) -> Dict[str, Any]:
    return {
        "totalUsers": await db.scalar(select(func.count(User.id))) or 0,
        "totalPosts": await db.scalar(select(func.count(Post.id))) or 0,
        "topVisitedCountry": await _top_value(db, "country"),
        "topVisitedCity": await _top_value(db, "city"),
    }


async def most_visited_countries(db: AsyncSession, top_only: bool = False) -> List[Dict[str, Any]]:
    """Countries by number of distinct users who visited them."""
    visitors = func.count(func.distinct(TopDestination.user_id))
    stmt = (
        select(TopDestination.value, visitors)
        .where(TopDestination.type == "country", TopDestination.visited.is_(True))
        .group_by(TopDestination.value)
        .order_by(visitors.desc(), TopDestination.value)
    )
    if top_only:
        stmt = stmt.limit(TOP_COUNTRIES_LIMIT)
    return [{"name": name, "value": int(count)} for name, count in (await db.execute(stmt)).all()]


async def user_signups(db: AsyncSession, year: int) -> List[Dict[str, Any]]:
    """New users per calendar month of `year`."""
    start = datetime(year, 1, 1, tzinfo=timezone.utc)
    end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    created = (await db.execute(
        select(User.created_at).where(User.created_at >= start, User.created_at < end)
    )).scalars().all()

    per_month = [0] * 12
    for ts in created:
        if ts is not None:
            per_month[ts.month - 1] += 1
    return [
        {"month": calendar.month_name[i + 1], "users": per_month[i]}
        for i in range(12)
    ]


# Admin accounts

async def _email_taken(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(AdminUser.id).where(func.lower(AdminUser.email) == email.lower())
    if exclude_id is not None:
        stmt = stmt.where(AdminUser.id != exclude_id)
    return (await db.execute(stmt.limit(1))).scalar_one_or_none() is not None


async def create_admin(db: AsyncSession, full_name: str, email: str, password: str) -> AdminUser:
    if await _email_taken(db, email):
        raise ValidationFailed("Email already in use")
    admin = AdminUser(full_name=full_name, email=email.lower(),
                      password=await hash_password(password))
    db.add(admin)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValidationFailed("Email already in use")
    logger.info(f"Created admin user {admin.id}")
    return admin


async def list_admins(db: AsyncSession, page: int = 1, limit: int = 10) -> Dict[str, Any]:
    if page < 1 or limit < 1:
        raise ValidationFailed("Page and limit must be positive integers")
    limit = min(limit, MAX_PAGE_SIZE)
    total = await db.scalar(select(func.count(AdminUser.id))) or 0
    admins = (await db.execute(
        select(AdminUser)
        .order_by(AdminUser.created_at.desc(), AdminUser.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )).scalars().all()
    return {"adminUsers": list(admins), "pagination": pagination(total, page, limit)}


async def _get_admin(db: AsyncSession, admin_id: int) -> AdminUser:
    admin = await db.get(AdminUser, admin_id)
    if admin is None:
        raise NotFound("Admin user not found")
    return admin


async def update_admin(
    db: AsyncSession,
    admin_id: int,
    full_name: Optional[str] = None,
    email: Optional[str] = None,
    password: Optional[str] = None,
) -> AdminUser:
    admin = await _get_admin(db, admin_id)
    if email is not None:
        if await _email_taken(db, email, exclude_id=admin.id):
            raise ValidationFailed("Email already in use")
        admin.email = email.lower()
    if full_name is not None:
        admin.full_name = full_name
    if password is not None:
        admin.password = await hash_password(password)
    await db.commit()
    return admin


async def delete_admin(db: AsyncSession, current: AdminUser, admin_id: int) -> None:
    if current.id == admin_id:
        raise Forbidden("You cannot delete your own account")
    admin = await _get_admin(db, admin_id)
    await db.delete(admin)
    await db.commit()
    logger.info(f"Admin {current.id} deleted admin user {admin_id}")


async def change_admin_password(db: AsyncSession, admin: AdminUser, current_password: str, new_password: str) -> None:
    if not await verify_password(current_password, admin.password):
        raise ValidationFailed("Current password is incorrect")
    admin.password = await hash_password(new_password)
    await db.commit()


async def update_admin_profile(
    db: AsyncSession,
    storage: StorageService,
    admin: AdminUser,
    full_name: Optional[str] = None,
    email: Optional[str] = None,
    image: Optional[UploadFile] = None,
) -> AdminUser:
    if email:
        if await _email_taken(db, email, exclude_id=admin.id):
            raise ValidationFailed("Email already in use")
        admin.email = email.strip().lower()
    if full_name:
        admin.full_name = full_name.strip()
    if image is not None and image.filename:
        content = await image.read()
        new_url = await storage.upload_image(image.filename, content, settings.avatar_max_mb)
        if admin.image:
            await storage.delete_by_url(admin.image)
        admin.image = new_url
    await db.commit()
    return admin


# Moderation

def _flag_options():
    return [
        selectinload(FlaggedContent.user),
        selectinload(FlaggedContent.post).selectinload(Post.user),
        selectinload(FlaggedContent.post).selectinload(Post.photos),
    ]


async def list_flagged_content(db: AsyncSession, status: Optional[str], page: int, limit: int) -> Dict[str, Any]:
    if status is not None and status not in FLAG_STATUSES:
        raise ValidationFailed("Status must be one of: pending, approved, declined")
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    page = max(page, 1)

    conditions = [FlaggedContent.status == status] if status else []
    total = await db.scalar(select(func.count(FlaggedContent.id)).where(*conditions)) or 0
    flags = (await db.execute(
        select(FlaggedContent)
        .options(*_flag_options())
        .where(*conditions)
        .order_by(FlaggedContent.created_at.desc(), FlaggedContent.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )).scalars().all()
    return {"flags": list(flags), "pagination": pagination(total, page, limit)}


async def review_flag(db: AsyncSession, flag_id: int, status: str, admin_response: Optional[str]) -> FlaggedContent:
    flag = (await db.execute(
        select(FlaggedContent)
        .options(*_flag_options())
        .where(FlaggedContent.id == flag_id)
    )).scalar_one_or_none()
    if flag is None:
        raise NotFound("Flagged content not found")
    flag.status = status
    flag.admin_response = admin_response
    await db.commit()
    logger.info(f"Flag {flag.id} marked {status}")
    return flag


async def admin_delete_post(db: AsyncSession, storage: StorageService, post_id: int) -> None:
    post = (await db.execute(
        select(Post).options(*post_load_options()).where(Post.id == post_id)
    )).scalar_one_or_none()
    if post is None:
        raise NotFound("Post not found")
    await remove_post(db, storage, post)
