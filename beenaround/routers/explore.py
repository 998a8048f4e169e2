from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import User
from ..responses import success_with_data
from ..services import explore_service
from ..services.jwt_service import JWTService

router = APIRouter(prefix="/explore", tags=["explore"])


@router.get("/location")
async def search_by_location(
    location: Optional[str] = Query(None, description='Comma separated, e.g. "paris, france"'),
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await explore_service.search_by_location(db, current_user, location)
    return success_with_data("Posts fetched successfully", data)


@router.get("/location/filtered")
async def search_by_location_filtered(
    location: Optional[str] = Query(None),
    followed: Optional[int] = Query(None, ge=0, le=1),
    recent: Optional[int] = Query(None, ge=0, le=1),
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await explore_service.search_by_location_filtered(
        db, current_user, location, followed, recent)
    return success_with_data("Filtered posts fetched successfully", data)
