"""
In-app notifications and Firebase Cloud Messaging push.

`notify_user` always stores a Notification row; the push is sent only when
the recipient's `notification_type` preference allows that kind. Push
failures are logged and never reach the caller.
"""
import asyncio
import logging
from enum import IntEnum
from typing import Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, messaging
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import AsyncRetrying, RetryError, before_sleep_log, stop_after_attempt, wait_fixed

from ..config import settings
from ..models import FcmToken, Notification, User

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "beenaround"


class NotificationKind(IntEnum):
    ALL = 0
    NEW_FOLLOWER = 1
    MESSAGE = 2
    LIKE_COMMENT = 3
    FOLLOW = 4
    FOLLOW_REQUEST = 5
    FOLLOW_REQUEST_ACCEPTED = 6
    FOLLOW_REQUEST_REJECTED = 7


def push_allowed(preference: Optional[str], kind: int) -> bool:
    """`preference` is the comma separated code list stored on the user."""
    codes = {c.strip() for c in (preference or "").split(",") if c.strip()}
    return str(int(NotificationKind.ALL)) in codes or str(int(kind)) in codes


class PushNotifier:
    """Sends FCM messages with a fixed-wait retry per token."""

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        retry_attempts: int = 3,
        retry_wait_seconds: float = 1.0,
        batch_size: int = 5,
    ):
        self.credentials_path = credentials_path
        self.retry_attempts = max(1, retry_attempts)
        self.retry_wait_seconds = retry_wait_seconds
        self.batch_size = max(1, batch_size)
        self._app = None

    @classmethod
    def from_settings(cls) -> "PushNotifier":
        return cls(
            credentials_path=settings.firebase_credentials_path,
            retry_attempts=settings.push_retry_attempts,
            retry_wait_seconds=settings.push_retry_wait_seconds,
            batch_size=settings.push_batch_size,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.credentials_path)

    def _firebase_app(self):
        if self._app is None:
            try:
                self._app = firebase_admin.get_app(FIREBASE_APP_NAME)
            except ValueError:
                cred = credentials.Certificate(self.credentials_path)
                self._app = firebase_admin.initialize_app(
                    cred, name=FIREBASE_APP_NAME)
        return self._app

    @staticmethod
    def build_message(token: str, title: str, body: str, data: Optional[Dict] = None) -> messaging.Message:
        return messaging.Message(
            token=token,
            notification=messaging.Notification(title=title, body=body),
            # FCM only accepts string values in the data payload
            data={k: str(v) for k, v in (data or {}).items()},
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(
                    sound="default", channel_id="default_channel"),
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound="default"))),
        )

    async def _dispatch(self, message: messaging.Message) -> str:
        return await asyncio.to_thread(messaging.send, message, app=self._firebase_app())

    async def _send_with_retry(self, token: str, message: messaging.Message) -> Dict:
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_fixed(self.retry_wait_seconds),
                before_sleep=before_sleep_log(logger, logging.WARNING),
            ):
                with attempt:
                    result = await self._dispatch(message)
        except RetryError as e:
            error = e.last_attempt.exception()
            logger.error(f"Push to token {token[:12]}... failed: {error}")
            return {"token": token, "error": str(error)}
        return {"token": token, "result": result}

    async def send(self, tokens: List[str], title: str, body: str, data: Optional[Dict] = None) -> List[Dict]:
        if not tokens:
            return []
        if not self.enabled:
            logger.info(
                f"Firebase not configured; skipping push '{title}' to {len(tokens)} device(s)")
            return []

        results = []
        for i in range(0, len(tokens), self.batch_size):
            batch = tokens[i:i + self.batch_size]
            results.extend(await asyncio.gather(*[
                self._send_with_retry(
                    t, self.build_message(t, title, body, data))
                for t in batch
            ]))
        return results


async def notify_user(
    db: AsyncSession,
    notifier: PushNotifier,
    user_id: int,
    kind: NotificationKind,
    message: str,
    title: Optional[str] = None,
    data: Optional[Dict] = None,
) -> Notification:
    """Store a notification for `user_id` and push it to their devices."""
    notification = Notification(
        user_id=user_id,
        notification_type=int(kind),
        title=title,
        message=message,
    )
    db.add(notification)
    await db.commit()

    recipient = await db.get(User, user_id)
    if recipient is None or not push_allowed(recipient.notification_type, kind):
        return notification

    tokens = (await db.execute(
        select(FcmToken.token).where(FcmToken.user_id == user_id)
    )).scalars().all()
    try:
        await notifier.send(list(tokens), title or "Been Around", message,
                            {"type": int(kind), **(data or {})})
    except Exception as e:
        logger.error(f"Push notification to user {user_id} failed: {e}")
    return notification


async def list_notifications(db: AsyncSession, user_id: int, limit: int, offset: int) -> List[Notification]:
    stmt = (
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list((await db.execute(stmt)).scalars().all())


async def mark_read(db: AsyncSession, user_id: int, ids: Optional[List[int]] = None) -> int:
    stmt = update(Notification).where(
        Notification.user_id == user_id, Notification.is_read.is_(False))
    if ids:
        stmt = stmt.where(Notification.id.in_(ids))
    result = await db.execute(stmt.values(is_read=True))
    await db.commit()
    return result.rowcount or 0


async def register_fcm_token(db: AsyncSession, user_id: int, token: str, device_type: Optional[str]) -> FcmToken:
    """A device token belongs to the last user who registered it."""
    row = (await db.execute(select(FcmToken).where(FcmToken.token == token))).scalar_one_or_none()
    if row is None:
        row = FcmToken(user_id=user_id, token=token, device_type=device_type)
        db.add(row)
    else:
        row.user_id = user_id
        row.device_type = device_type or row.device_type
    await db.commit()
    return row
