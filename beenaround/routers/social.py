from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..dependencies import get_notifier
from ..models import FollowRequest, User
from ..responses import success_with_data
from ..schemas import (
    CommentRequest,
    CommentResponse,
    FollowRequestAction,
    FollowRequestResponse,
    PostRef,
    TargetUserRequest,
)
from ..services import social_service
from ..services.jwt_service import JWTService
from ..services.notification_service import PushNotifier

router = APIRouter(tags=["social"])


def _request_dict(request: FollowRequest) -> dict:
    return {
        "id": request.id,
        "requester_id": request.requester_id,
        "target_user_id": request.target_user_id,
        "status": request.status,
    }


@router.post("/follow")
async def toggle_follow(
    payload: TargetUserRequest,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: PushNotifier = Depends(get_notifier),
):
    following = await social_service.toggle_follow(db, notifier, current_user, payload.target_user_id)
    message = "Followed successfully." if following else "Unfollowed successfully."
    return success_with_data(message, {"isFollowing": following})


@router.get("/follow/followers")
async def list_followers(
    user_id: Optional[int] = Query(None, description="Defaults to the caller"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await social_service.list_followers(
        db, current_user, user_id or current_user.id, limit, offset)
    return success_with_data("Followers fetched successfully", data)


@router.get("/follow/following")
async def list_following(
    user_id: Optional[int] = Query(None, description="Defaults to the caller"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    data = await social_service.list_following(
        db, current_user, user_id or current_user.id, limit, offset)
    return success_with_data("Following fetched successfully", data)


@router.post("/follow/request")
async def request_follow(
    payload: TargetUserRequest,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: PushNotifier = Depends(get_notifier),
):
    request = await social_service.request_follow(db, notifier, current_user, payload.target_user_id)
    return success_with_data("Follow request sent", _request_dict(request))


@router.get("/follow/requests")
async def list_follow_requests(
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    requests = await social_service.list_follow_requests(db, current_user)
    return success_with_data(
        "Follow requests fetched successfully",
        [FollowRequestResponse.model_validate(r).model_dump() for r in requests],
    )


@router.post("/follow/request/{request_id}/respond")
async def respond_follow_request(
    request_id: int,
    payload: FollowRequestAction,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: PushNotifier = Depends(get_notifier),
):
    request = await social_service.respond_follow_request(
        db, notifier, current_user, request_id, payload.action)
    message = "Follow request accepted" if payload.action == "accept" else "Follow request rejected"
    return success_with_data(message, _request_dict(request))


@router.delete("/follow/request/{request_id}")
async def cancel_follow_request(
    request_id: int,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
):
    request = await social_service.cancel_follow_request(db, current_user, request_id)
    return success_with_data("Follow request cancelled", _request_dict(request))


@router.post("/post/like")
async def toggle_like(
    payload: PostRef,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: PushNotifier = Depends(get_notifier),
):
    liked, like_count = await social_service.toggle_like(db, notifier, current_user, payload.post_id)
    message = "Post liked." if liked else "Post unliked."
    return success_with_data(message, {"isLiked": liked, "like_count": like_count})


@router.post("/post/comment/{post_id}")
async def add_comment(
    post_id: int,
    payload: CommentRequest,
    current_user: User = Depends(JWTService.get_current_user),
    db: AsyncSession = Depends(get_db),
    notifier: PushNotifier = Depends(get_notifier),
):
    comment = await social_service.add_comment(db, notifier, current_user, post_id, payload.comment)
    return success_with_data("Comment added successfully.", CommentResponse.model_validate(comment).model_dump())
