"""
Follow, like, comment and block edges between users and posts.

Toggles delete the edge first and insert only when nothing was deleted.
Each edge table has a unique constraint, so a concurrent duplicate insert
fails with IntegrityError and is reported as the "on" state. Post counters
move only inside the transaction that changed the edge.
"""
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..exceptions import Forbidden, NotFound, ValidationFailed
from ..models import Comment, Follower, FollowRequest, Like, Post, User, UserBlock
from ..schemas import UserSummary
from ..utils import normalize_phone
from .notification_service import NotificationKind, PushNotifier, notify_user

logger = logging.getLogger(__name__)


async def followed_user_ids(db: AsyncSession, user_id: int) -> List[int]:
    """Ids of the users `user_id` follows."""
    stmt = select(Follower.user_id).where(Follower.follower_id == user_id)
    return list((await db.execute(stmt)).scalars().all())


async def blocked_user_ids(db: AsyncSession, user_id: int) -> List[int]:
    """Ids of the users `user_id` has blocked."""
    stmt = select(UserBlock.target_user_id).where(
        UserBlock.user_id == user_id)
    return list((await db.execute(stmt)).scalars().all())


async def has_user_blocked(db: AsyncSession, blocker_id: int, target_id: int) -> bool:
    """Return True if `blocker_id` has blocked `target_id`."""
    if blocker_id == target_id:
        return False
    stmt = select(UserBlock.id).where(
        UserBlock.user_id == blocker_id,
        UserBlock.target_user_id == target_id,
    ).limit(1)
    return (await db.execute(stmt)).scalar_one_or_none() is not None


async def is_following(db: AsyncSession, follower_id: int, user_id: int) -> bool:
    stmt = select(Follower.id).where(
        Follower.follower_id == follower_id,
        Follower.user_id == user_id,
    ).limit(1)
    return (await db.execute(stmt)).scalar_one_or_none() is not None


async def user_stats(db: AsyncSession, user_id: int) -> Dict[str, int]:
    total_posts = await db.scalar(select(func.count(Post.id)).where(Post.user_id == user_id))
    total_followers = await db.scalar(select(func.count(Follower.id)).where(Follower.user_id == user_id))
    total_following = await db.scalar(select(func.count(Follower.id)).where(Follower.follower_id == user_id))
    return {
        "totalPosts": total_posts or 0,
        "totalFollowers": total_followers or 0,
        "totalFollowing": total_following or 0,
    }


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def _get_post_or_404(db: AsyncSession, post_id: int) -> Post:
    post = await db.get(Post, post_id)
    if post is None:
        raise NotFound("Post not found.")
    return post


async def toggle_follow(db: AsyncSession, notifier: PushNotifier, follower: User, target_user_id: int) -> bool:
    """Follow or unfollow; returns the new following state."""
    if follower.id == target_user_id:
        raise ValidationFailed("You cannot follow yourself.")
    target = await _get_user_or_404(db, target_user_id)

    removed = await db.execute(
        delete(Follower).where(
            Follower.follower_id == follower.id,
            Follower.user_id == target.id,
        )
    )
    if removed.rowcount:
        await db.commit()
        return False

    if await has_user_blocked(db, target.id, follower.id):
        raise Forbidden("You cannot follow this user")

    db.add(Follower(follower_id=follower.id, user_id=target.id))
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent request created the same edge
        await db.rollback()
        return True

    await notify_user(
        db, notifier, target.id, NotificationKind.NEW_FOLLOWER,
        f"{follower.full_name or 'Someone'} started following you",
        title="New follower",
        data={"userId": follower.id},
    )
    return True


async def _like_count(db: AsyncSession, post_id: int) -> int:
    return await db.scalar(select(Post.like_count).where(Post.id == post_id)) or 0


async def toggle_like(db: AsyncSession, notifier: PushNotifier, user: User, post_id: int) -> Tuple[bool, int]:
    """Like or unlike; returns the new liked state and the post's like_count."""
    post = await _get_post_or_404(db, post_id)

    removed = await db.execute(
        delete(Like).where(Like.user_id == user.id, Like.post_id == post.id)
    )
    if removed.rowcount:
        await db.execute(
            update(Post)
            .where(Post.id == post.id)
            .values(like_count=Post.like_count - 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return False, await _like_count(db, post.id)

    try:
        db.add(Like(user_id=user.id, post_id=post.id))
        await db.flush()
        await db.execute(
            update(Post)
            .where(Post.id == post.id)
            .values(like_count=Post.like_count + 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        return True, await _like_count(db, post.id)

    if post.user_id != user.id:
        await notify_user(
            db, notifier, post.user_id, NotificationKind.LIKE_COMMENT,
            f"{user.full_name or 'Someone'} liked your post",
            title="New like",
            data={"postId": post.id},
        )
    return True, await _like_count(db, post.id)


async def add_comment(db: AsyncSession, notifier: PushNotifier, user: User, post_id: int, text: str) -> Comment:
    post = await _get_post_or_404(db, post_id)
    text = (text or "").strip()
    if not text:
        raise ValidationFailed("Comment cannot be empty")

    comment = Comment(post_id=post.id, user=user, comment=text)
    db.add(comment)
    await db.flush()
    await db.execute(
        update(Post)
        .where(Post.id == post.id)
        .values(comment_count=Post.comment_count + 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    if post.user_id != user.id:
        await notify_user(
            db, notifier, post.user_id, NotificationKind.LIKE_COMMENT,
            f"{user.full_name or 'Someone'} commented on your post",
            title="New comment",
            data={"postId": post.id, "commentId": comment.id},
        )
    return comment


# Blocking

async def block_user(db: AsyncSession, user: User, target_user_id: int) -> UserBlock:
    if user.id == target_user_id:
        raise ValidationFailed("Cannot block yourself")
    await _get_user_or_404(db, target_user_id)

    if await has_user_blocked(db, user.id, target_user_id):
        raise ValidationFailed("User already blocked")

    block = UserBlock(user_id=user.id, target_user_id=target_user_id)
    db.add(block)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ValidationFailed("User already blocked")
    return block


async def unblock_user(db: AsyncSession, user: User, target_user_id: int) -> None:
    result = await db.execute(
        delete(UserBlock).where(
            UserBlock.user_id == user.id,
            UserBlock.target_user_id == target_user_id,
        )
    )
    if not result.rowcount:
        await db.rollback()
        raise NotFound("Block not found")
    await db.commit()


async def list_blocked(db: AsyncSession, user: User) -> List[User]:
    stmt = (
        select(UserBlock)
        .options(selectinload(UserBlock.blocked))
        .where(UserBlock.user_id == user.id)
        .order_by(UserBlock.created_at.desc(), UserBlock.id.desc())
    )
    blocks = (await db.execute(stmt)).scalars().all()
    return [b.blocked for b in blocks if b.blocked is not None]


# Follow requests

async def request_follow(db: AsyncSession, notifier: PushNotifier, user: User, target_user_id: int) -> FollowRequest:
    if user.id == target_user_id:
        raise ValidationFailed("You cannot follow yourself.")
    await _get_user_or_404(db, target_user_id)

    if await is_following(db, user.id, target_user_id):
        raise ValidationFailed("You already follow this user")
    if await has_user_blocked(db, target_user_id, user.id):
        raise Forbidden("You cannot follow this user")

    pending = (await db.execute(
        select(FollowRequest.id).where(
            FollowRequest.requester_id == user.id,
            FollowRequest.target_user_id == target_user_id,
            FollowRequest.status == "pending",
        ).limit(1)
    )).scalar_one_or_none()
    if pending is not None:
        raise ValidationFailed("Follow request already sent")

    request = FollowRequest(requester_id=user.id,
                            target_user_id=target_user_id)
    db.add(request)
    await db.commit()

    await notify_user(
        db, notifier, target_user_id, NotificationKind.FOLLOW_REQUEST,
        f"{user.full_name or 'Someone'} wants to follow you",
        title="Follow request",
        data={"requestId": request.id},
    )
    return request


async def list_follow_requests(db: AsyncSession, user: User) -> List[FollowRequest]:
    stmt = (
        select(FollowRequest)
        .options(selectinload(FollowRequest.requester))
        .where(FollowRequest.target_user_id == user.id, FollowRequest.status == "pending")
        .order_by(FollowRequest.created_at.desc(), FollowRequest.id.desc())
    )
    return list((await db.execute(stmt)).scalars().all())


async def respond_follow_request(db: AsyncSession, notifier: PushNotifier, user: User, request_id: int, action: str) -> FollowRequest:
    stmt = select(FollowRequest).where(
        FollowRequest.id == request_id,
        FollowRequest.target_user_id == user.id,
        FollowRequest.status == "pending",
    )
    request = (await db.execute(stmt)).scalar_one_or_none()
    if request is None:
        raise NotFound("Follow request not found")

    if action == "accept":
        request.status = "accepted"
        if not await is_following(db, request.requester_id, user.id):
            db.add(Follower(follower_id=request.requester_id, user_id=user.id))
        kind, message = NotificationKind.FOLLOW_REQUEST_ACCEPTED, "accepted your follow request"
    else:
        request.status = "rejected"
        kind, message = NotificationKind.FOLLOW_REQUEST_REJECTED, "declined your follow request"
    await db.commit()

    await notify_user(
        db, notifier, request.requester_id, kind,
        f"{user.full_name or 'Someone'} {message}",
        title="Follow request",
        data={"requestId": request.id},
    )
    return request


async def cancel_follow_request(db: AsyncSession, user: User, request_id: int) -> FollowRequest:
    stmt = select(FollowRequest).where(
        FollowRequest.id == request_id,
        FollowRequest.requester_id == user.id,
        FollowRequest.status == "pending",
    )
    request = (await db.execute(stmt)).scalar_one_or_none()
    if request is None:
        raise NotFound("Follow request not found")
    request.status = "cancelled"
    await db.commit()
    return request


# Follower lists

async def _follow_page(db: AsyncSession, viewer: User, user_column, match_column, user_id: int, limit: int, offset: int) -> Dict:
    total = await db.scalar(select(func.count(Follower.id)).where(match_column == user_id)) or 0
    stmt = (
        select(User, Follower.created_at)
        .join(Follower, user_column == User.id)
        .where(match_column == user_id)
        .order_by(Follower.created_at.desc(), Follower.id.desc())
        .limit(limit)
        .offset(offset)
    )
    rows = (await db.execute(stmt)).all()
    mine = set(await followed_user_ids(db, viewer.id))
    items = [
        {
            **UserSummary.model_validate(u).model_dump(),
            "followedAt": followed_at,
            "isFollowing": u.id in mine,
        }
        for u, followed_at in rows
    ]
    return {"items": items, "total": total, "limit": limit, "offset": offset}


async def list_followers(db: AsyncSession, viewer: User, user_id: int, limit: int, offset: int) -> Dict:
    """Users who follow `user_id`."""
    await _get_user_or_404(db, user_id)
    return await _follow_page(db, viewer, Follower.follower_id, Follower.user_id, user_id, limit, offset)


async def list_following(db: AsyncSession, viewer: User, user_id: int, limit: int, offset: int) -> Dict:
    """Users `user_id` follows."""
    await _get_user_or_404(db, user_id)
    return await _follow_page(db, viewer, Follower.user_id, Follower.follower_id, user_id, limit, offset)


async def sync_contacts(db: AsyncSession, user: User, contacts: List[str]) -> List[Dict]:
    normalized = sorted({normalize_phone(c) for c in contacts if normalize_phone(c)})
    if not normalized:
        raise ValidationFailed("Contacts array is required")

    stmt = select(User).where(User.phone.in_(normalized), User.id != user.id)
    users = (await db.execute(stmt)).scalars().all()
    following = set(await followed_user_ids(db, user.id))
    return [
        {
            "id": u.id,
            "full_name": u.full_name,
            "phone": u.phone,
            "image": u.image,
            "email": u.email,
            "isFollowing": u.id in following,
            "showFollow": u.id not in following,
        }
        for u in users
    ]


async def follow_state(db: AsyncSession, viewer_id: int, user_id: int) -> Optional[str]:
    """"following", "requested" or "follow"; None when viewing yourself."""
    if viewer_id == user_id:
        return None
    if await is_following(db, viewer_id, user_id):
        return "following"
    pending = (await db.execute(
        select(FollowRequest.id).where(
            FollowRequest.requester_id == viewer_id,
            FollowRequest.target_user_id == user_id,
            FollowRequest.status == "pending",
        ).limit(1)
    )).scalar_one_or_none()
    return "requested" if pending is not None else "follow"
