from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_notifier
from ..exceptions import NotFound
from ..models import User
from ..responses import success_with_data
from ..schemas import (
    FcmTokenRequest,
    NotificationCreate,
    NotificationReadRequest,
    NotificationResponse,
)
from ..services import notification_service
from ..services.jwt_service import JWTService
from ..services.notification_service import NotificationKind, PushNotifier

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items = await notification_service.list_notifications(db, current_user.id, limit, offset)
    return success_with_data(
        "Notifications fetched successfully",
        [NotificationResponse.model_validate(n).model_dump() for n in items],
    )


@router.post("")
async def send_notification(
    payload: NotificationCreate,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: PushNotifier = Depends(get_notifier),
):
    """Store a notification for another user and push it to their devices."""
    if await db.get(User, payload.user_id) is None:
        raise NotFound("User not found")
    notification = await notification_service.notify_user(
        db,
        notifier,
        payload.user_id,
        NotificationKind(payload.notification_type),
        payload.message,
        title=payload.title,
        data={"senderId": current_user.id},
    )
    return success_with_data(
        "Notification sent successfully",
        NotificationResponse.model_validate(notification).model_dump(),
    )


@router.post("/read")
async def mark_read(
    payload: NotificationReadRequest,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await notification_service.mark_read(db, current_user.id, payload.ids)
    return success_with_data("Notifications marked as read", {"updated": updated})


@router.post("/fcm-token")
async def register_fcm_token(
    payload: FcmTokenRequest,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    row = await notification_service.register_fcm_token(
        db, current_user.id, payload.token, payload.device_type)
    return success_with_data("FCM token saved", {"id": row.id, "device_type": row.device_type})
