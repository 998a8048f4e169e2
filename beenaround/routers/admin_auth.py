from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..responses import success_with_data
from ..schemas import AdminUserResponse, LoginRequest
from ..services import admin_service
from ..services.jwt_service import JWTService

router = APIRouter(prefix="/admin/auth", tags=["admin"])


@router.post("/login")
async def admin_login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Admin panel login; the token carries role "admin" and lasts seven days."""
    admin = await admin_service.authenticate_admin(db, payload.email, payload.password)
    return success_with_data("Admin login successful", {
        "token": JWTService.create_admin_token(admin),
        "admin": AdminUserResponse.model_validate(admin).model_dump(),
    })
