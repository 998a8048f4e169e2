from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models import User
from ..responses import success, success_with_data
from ..schemas import TargetUserRequest, UserSummary
from ..services import social_service
from ..services.jwt_service import JWTService

router = APIRouter(prefix="/user-block", tags=["user-block"])


@router.post("/block")
async def block_user(
    payload: TargetUserRequest,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    block = await social_service.block_user(db, current_user, payload.target_user_id)
    return success_with_data("User blocked successfully", {
        "id": block.id,
        "user_id": block.user_id,
        "target_user_id": block.target_user_id,
    })


@router.post("/unblock")
async def unblock_user(
    payload: TargetUserRequest,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await social_service.unblock_user(db, current_user, payload.target_user_id)
    return success("User unblocked successfully")


@router.get("/blocked")
async def list_blocked(
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    users = await social_service.list_blocked(db, current_user)
    return success_with_data(
        "Blocked users fetched successfully",
        [UserSummary.model_validate(u).model_dump() for u in users],
    )
