from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile as StarletteUploadFile

from ..database import get_db
from ..dependencies import get_storage
from ..exceptions import ValidationFailed
from ..models import AdminUser, utcnow
from ..responses import success, success_with_data
from ..schemas import (
    AdminBlockRequest,
    AdminUserCreate,
    AdminUserResponse,
    AdminUserUpdate,
    ChangePasswordRequest,
    FlaggedContentResponse,
    FlagReviewRequest,
    UserResponse,
)
from ..services import admin_service
from ..services.jwt_service import JWTService
from ..services.storage import StorageService

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    responses={
        403: {"description": "Admin access only"},
    }
)


def _user(user) -> dict:
    return UserResponse.model_validate(user).model_dump()


def _admin(admin) -> dict:
    return AdminUserResponse.model_validate(admin).model_dump()


@router.get("/users")
async def list_users(
    search: Optional[str] = Query(None),
    country: Optional[str] = Query(None),
    signup_date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    blocked: Optional[str] = Query(None, description="true | false"),
    page: int = Query(1),
    limit: int = Query(10),
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Without filters every user is returned, newest first. Any of search,
    country, signup_date or blocked switches to a paginated result.
    """
    result = await admin_service.list_users(db, search, country, signup_date, blocked, page, limit)
    if isinstance(result, list):
        data = [_user(u) for u in result]
    else:
        data = {"users": [_user(u) for u in result["users"]], "pagination": result["pagination"]}
    return success_with_data("Users fetched successfully", data)


@router.get("/user/{user_id}")
async def get_user(
    user_id: int,
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await admin_service.get_user(db, user_id)
    return success_with_data("User details fetched successfully", _user(user))


@router.put("/user/{user_id}")
async def update_user(
    user_id: int,
    request: Request,
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    """Accepts JSON or multipart; an `image` file part replaces the avatar."""
    image = None
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data") or content_type.startswith("application/x-www-form-urlencoded"):
        form = await request.form()
        fields = {}
        for key, value in form.multi_items():
            if isinstance(value, StarletteUploadFile):
                if key == "image":
                    image = value
                else:
                    fields[key] = value.filename
            else:
                fields[key] = value
    else:
        try:
            fields = await request.json() if await request.body() else {}
        except ValueError:
            raise ValidationFailed("Request body must be valid JSON")
        if not isinstance(fields, dict):
            raise ValidationFailed("Request body must be a JSON object")

    user = await admin_service.update_user(db, storage, user_id, fields, image)
    return success_with_data("User updated successfully", _user(user))


@router.post("/user/block")
async def block_user(
    payload: AdminBlockRequest,
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    user = await admin_service.set_user_block(db, payload.user_id, payload.block)
    return success_with_data(
        f"User {'blocked' if user.block else 'unblocked'} successfully",
        {"id": user.id, "block": user.block},
    )


@router.delete("/user/{user_id}")
async def delete_user(
    user_id: int,
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    await admin_service.delete_user(db, storage, user_id)
    return success("User deleted successfully")


@router.get("/platform-stats")
async def platform_stats(
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    data = await admin_service.platform_stats(db)
    return success_with_data("Platform stats fetched successfully", data)


@router.get("/most-visited-countries")
async def most_visited_countries(
    type: int = Query(1, description="1 = all countries, 2 = top 5"),
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    data = await admin_service.most_visited_countries(db, top_only=type == 2)
    return success_with_data("Most visited countries fetched successfully", data)


@router.get("/analytics/user-signups")
async def user_signups(
    year: Optional[int] = Query(None, ge=1970, le=9999),
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    year = year or utcnow().year
    data = await admin_service.user_signups(db, year)
    return success_with_data("User signup analytics fetched successfully", {"year": year, "months": data})


@router.post("/admin-user")
async def create_admin_user(
    payload: AdminUserCreate,
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    created = await admin_service.create_admin(db, payload.full_name, payload.email, payload.password)
    return success_with_data("Admin user created successfully", _admin(created))


@router.get("/admin-users")
async def list_admin_users(
    page: int = Query(1),
    limit: int = Query(10),
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await admin_service.list_admins(db, page, limit)
    return success_with_data("Admin users fetched successfully", {
        "adminUsers": [_admin(a) for a in result["adminUsers"]],
        "pagination": result["pagination"],
    })


@router.put("/admin-user/{admin_id}")
async def update_admin_user(
    admin_id: int,
    payload: AdminUserUpdate,
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    updated = await admin_service.update_admin(
        db, admin_id, payload.full_name, payload.email, payload.password)
    return success_with_data("Admin user updated successfully", _admin(updated))


@router.delete("/admin-user/{admin_id}")
async def delete_admin_user(
    admin_id: int,
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    await admin_service.delete_admin(db, admin, admin_id)
    return success("Admin user deleted successfully")


@router.post("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    await admin_service.change_admin_password(db, admin, payload.current_password, payload.new_password)
    return success("Password changed successfully")


@router.put("/profile")
async def update_profile(
    full_name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    updated = await admin_service.update_admin_profile(db, storage, admin, full_name, email, image)
    return success_with_data("Profile updated successfully", _admin(updated))


@router.get("/flagged-content")
async def list_flagged_content(
    status: Optional[str] = Query(None, description="pending | approved | declined"),
    page: int = Query(1),
    limit: int = Query(10),
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await admin_service.list_flagged_content(db, status, page, limit)
    return success_with_data("Flagged content fetched successfully", {
        "flags": [FlaggedContentResponse.model_validate(f).model_dump() for f in result["flags"]],
        "pagination": result["pagination"],
    })


@router.put("/flagged-content/{flag_id}")
async def review_flagged_content(
    flag_id: int,
    payload: FlagReviewRequest,
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    flag = await admin_service.review_flag(db, flag_id, payload.status, payload.admin_response)
    return success_with_data("Flagged content reviewed", FlaggedContentResponse.model_validate(flag).model_dump())


@router.delete("/post/{post_id}")
async def delete_post(
    post_id: int,
    admin: AdminUser = Depends(JWTService.get_current_admin),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    await admin_service.admin_delete_post(db, storage, post_id)
    return success("Post deleted successfully")
