import pytest
from sqlalchemy import func, select

from beenaround.models import FcmToken, Notification
from beenaround.services.notification_service import NotificationKind, PushNotifier, push_allowed


class FlakyNotifier(PushNotifier):

    def __init__(self, failures, **kwargs):
        super().__init__(credentials_path="unused.json", retry_wait_seconds=0, **kwargs)
        self.failures = failures
        self.calls = 0

    async def _dispatch(self, message):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("fcm unavailable")
        return "ok"


@pytest.mark.parametrize("preference,kind,expected", [
    ("0", NotificationKind.LIKE_COMMENT, True),
    ("1,3", NotificationKind.LIKE_COMMENT, True),
    ("1,3", NotificationKind.FOLLOW_REQUEST, False),
    ("", NotificationKind.NEW_FOLLOWER, False),
    (None, NotificationKind.NEW_FOLLOWER, False),
])
def test_push_allowed(preference, kind, expected):
    assert push_allowed(preference, kind) is expected


class TestPushNotifier:

    async def test_retries_until_success(self):
        notifier = FlakyNotifier(failures=2, retry_attempts=3)

        results = await notifier.send(["token-a"], "Hi", "Body")

        assert results == [{"token": "token-a", "result": "ok"}]
        assert notifier.calls == 3

    async def test_gives_up_after_attempts(self):
        notifier = FlakyNotifier(failures=5, retry_attempts=2)

        results = await notifier.send(["token-a"], "Hi", "Body")

        assert results[0]["token"] == "token-a"
        assert "fcm unavailable" in results[0]["error"]
        assert notifier.calls == 2

    async def test_disabled_without_credentials(self):
        notifier = PushNotifier(credentials_path=None)

        assert await notifier.send(["token-a"], "Hi", "Body") == []

    async def test_batches_every_token(self):
        notifier = FlakyNotifier(failures=0, retry_attempts=1, batch_size=2)
        tokens = [f"t{i}" for i in range(5)]

        results = await notifier.send(tokens, "Hi", "Body", {"postId": 7})

        assert [r["token"] for r in results] == tokens

    def test_message_data_is_stringified(self):
        message = PushNotifier.build_message("tok", "Title", "Body", {"type": 3, "postId": 12})

        assert message.data == {"type": "3", "postId": "12"}
        assert message.token == "tok"


class TestNotificationRoutes:

    async def test_push_respects_preference(self, client, db, make_user, auth_headers, notifier):
        me = await make_user("me@example.com")
        likes_only = await make_user("likes@example.com", notification_type="3")
        everything = await make_user("all@example.com", notification_type="0")
        db.add_all([
            FcmToken(user_id=likes_only.id, token="tok-likes"),
            FcmToken(user_id=everything.id, token="tok-all"),
        ])
        await db.commit()

        await client.post("/follow", headers=auth_headers(me), json={"target_user_id": likes_only.id})
        await client.post("/follow", headers=auth_headers(me), json={"target_user_id": everything.id})

        assert [m.token for m in notifier.sent] == ["tok-all"]
        assert notifier.sent[0].data["type"] == str(int(NotificationKind.NEW_FOLLOWER))
        # Both notifications are stored regardless of push preference
        assert await db.scalar(select(func.count(Notification.id))) == 2

    async def test_list_and_mark_read(self, client, db, make_user, auth_headers):
        me = await make_user("me@example.com")
        sender = await make_user("sender@example.com")

        for text in ("first", "second"):
            r = await client.post("/notifications", headers=auth_headers(sender), json={
                "user_id": me.id, "notification_type": 2, "message": text})
            assert r.status_code == 200

        r = await client.get("/notifications", headers=auth_headers(me))
        items = r.json()["data"]
        assert [n["message"] for n in items] == ["second", "first"]
        assert all(n["is_read"] is False for n in items)

        r = await client.post("/notifications/read", headers=auth_headers(me), json={"ids": [items[1]["id"]]})
        assert r.json()["data"] == {"updated": 1}

        r = await client.post("/notifications/read", headers=auth_headers(me), json={})
        assert r.json()["data"] == {"updated": 1}

    async def test_send_to_unknown_user(self, client, make_user, auth_headers):
        me = await make_user()

        r = await client.post("/notifications", headers=auth_headers(me), json={
            "user_id": 999, "notification_type": 1, "message": "hi"})

        assert r.status_code == 404

    async def test_fcm_token_moves_to_latest_user(self, client, db, make_user, auth_headers):
        first = await make_user("first@example.com")
        second = await make_user("second@example.com")

        await client.post("/notifications/fcm-token", headers=auth_headers(first),
                          json={"token": "device-1", "device_type": "ios"})
        r = await client.post("/notifications/fcm-token", headers=auth_headers(second),
                              json={"token": "device-1"})

        assert r.status_code == 200
        assert r.json()["data"]["device_type"] == "ios"
        owner = await db.scalar(select(FcmToken.user_id).where(FcmToken.token == "device-1"))
        assert owner == second.id
