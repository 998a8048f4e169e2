from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_instagram
from ..models import User
from ..responses import success_with_data
from ..schemas import InstagramSyncRequest
from ..services import instagram_service
from ..services.instagram_service import InstagramClient
from ..services.jwt_service import JWTService

router = APIRouter(prefix="/instagram", tags=["instagram"])


@router.post("/sync")
async def sync_instagram(
    payload: InstagramSyncRequest,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
    client: InstagramClient = Depends(get_instagram),
):
    """Exchange an OAuth code for a long-lived token and link the account."""
    data = await instagram_service.sync_instagram(db, client, current_user, payload.code)
    return success_with_data("Instagram account linked successfully", data)


@router.get("/posts")
async def instagram_posts(
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
    client: InstagramClient = Depends(get_instagram),
):
    data = await instagram_service.instagram_posts(db, client, current_user)
    return success_with_data("Instagram posts fetched successfully", data)


@router.get("/posts/{media_id}")
async def instagram_post(
    media_id: str,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
    client: InstagramClient = Depends(get_instagram),
):
    data = await instagram_service.instagram_post_detail(db, client, current_user, media_id)
    return success_with_data("Instagram post fetched successfully", data)
