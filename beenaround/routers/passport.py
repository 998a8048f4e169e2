from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import User
from ..responses import success_with_data
from ..services import passport_service
from ..services.jwt_service import JWTService

router = APIRouter(prefix="/passport", tags=["passport"])


@router.get("/countries")
async def visited_countries(
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    countries = await passport_service.visited_countries(db, current_user)
    return success_with_data("Countries fetched successfully", {"countries": countries})


@router.get("/country/stats")
async def country_stats(
    country: Optional[str] = Query(None),
    keyword: Optional[str] = Query(None),
    view: str = Query("recent", description="all | recent | rating"),
    sortBy: Optional[str] = Query(None),
    sortOrder: Optional[str] = Query(None),
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await passport_service.country_stats(
        db, current_user, country, keyword, view, sortBy, sortOrder)
    return success_with_data("Country stats fetched successfully", data)


@router.get("/country/cities")
async def country_cities(
    country: Optional[str] = Query(None),
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    cities = await passport_service.country_cities(db, current_user, country)
    return success_with_data("Visited cities fetched successfully", {"cities": cities})


@router.get("/cities")
async def visited_cities(
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    cities = await passport_service.visited_cities(db, current_user)
    return success_with_data("Cities fetched successfully", {"cities": cities})


@router.get("/city/stats")
async def city_stats(
    city: Optional[str] = Query(None),
    keyword: Optional[str] = Query(None),
    view: str = Query("recent", description="all | recent | rating"),
    sortBy: Optional[str] = Query(None),
    sortOrder: Optional[str] = Query(None),
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await passport_service.city_stats(
        db, current_user, city, keyword, view, sortBy, sortOrder)
    return success_with_data("City stats fetched successfully", data)
