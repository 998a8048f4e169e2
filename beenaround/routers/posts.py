from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_storage
from ..models import User
from ..responses import success, success_with_data
from ..schemas import FlagPostRequest, PostRef
from ..services import post_service
from ..services.jwt_service import JWTService
from ..services.storage import StorageService

router = APIRouter(tags=["posts"])


@router.post("/post")
async def create_post(
    country: str = Form(...),
    city: str = Form(...),
    visit_date: date = Form(...),
    reason_for_visit: str = Form(...),
    longitude: Optional[float] = Form(None),
    latitude: Optional[float] = Form(None),
    overall_rating: Optional[int] = Form(None, ge=1, le=5),
    cost_rating: Optional[int] = Form(None, ge=1, le=5),
    safety_rating: Optional[int] = Form(None, ge=1, le=5),
    food_rating: Optional[int] = Form(None, ge=1, le=5),
    experience: Optional[str] = Form(None),
    place_type: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    photos: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    """
    Create a travel post with up to five photos.

    The author's continent, country and city tallies are updated in the same
    transaction.
    """
    post = await post_service.create_post(
        db,
        storage,
        current_user,
        country=country,
        city=city,
        visit_date=visit_date,
        reason_for_visit=reason_for_visit,
        longitude=longitude,
        latitude=latitude,
        overall_rating=overall_rating,
        cost_rating=cost_rating,
        safety_rating=safety_rating,
        food_rating=food_rating,
        experience=experience,
        place_type=place_type,
        tags=tags,
        photos=photos,
    )
    return success_with_data("Post created successfully", post_service.serialize_post(post))


@router.get("/posts")
async def list_posts(
    type: int = Query(1, description="1 = all posts, 2 = posts from followed users"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await post_service.list_posts(db, current_user, type, page, limit)
    return success_with_data("Posts fetched successfully", data)


@router.post("/post/wishlist")
async def toggle_wishlist(
    payload: PostRef,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    added = await post_service.toggle_wishlist(db, current_user, payload.post_id)
    message = "Added to wishlist" if added else "Removed from wishlist"
    return success_with_data(message, {"isWishlisted": added})


@router.get("/post/wishlist")
async def get_wishlist(
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items = await post_service.get_wishlist(db, current_user)
    return success_with_data("Wishlist fetched successfully", items)


@router.get("/post/topDestinations")
async def get_top_destinations(
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items = await post_service.top_destinations(db, current_user, current_user.id)
    return success_with_data("Top destinations fetched successfully", items)


@router.post("/post/flag")
async def flag_post(
    payload: FlagPostRequest,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    flag = await post_service.flag_post(db, current_user, payload.post_id, payload.reason)
    return success_with_data("Post flagged for review", {
        "id": flag.id,
        "post_id": flag.post_id,
        "reason": flag.reason,
        "status": flag.status,
    })


@router.get("/post/userDetails/{user_id}")
async def user_details(
    user_id: int,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await post_service.user_details(db, current_user, user_id)
    return success_with_data("User details fetched successfully", data)


@router.get("/post/{post_id}")
async def get_post(
    post_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await post_service.post_detail(db, current_user, post_id, page, limit)
    return success_with_data("Post fetched successfully", data)


@router.delete("/post/{post_id}")
async def delete_post(
    post_id: int,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
    storage: StorageService = Depends(get_storage),
):
    await post_service.delete_post(db, storage, current_user, post_id)
    return success("Post deleted successfully")
