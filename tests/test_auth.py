from datetime import timedelta

import pytest
from sqlalchemy import func, select

from beenaround.models import Follower, Post, User
from beenaround.services.jwt_service import JWTService


REGISTER_BODY = {
    "name": "Jane Traveler",
    "email": "Jane@Example.com",
    "phone": "5551234567",
    "password": "Secret1!",
    "confirmPassword": "Secret1!",
}


class TestRegisterAndLogin:

    async def test_register_returns_token_and_user(self, client, db):
        r = await client.post("/auth/register", json=REGISTER_BODY)

        assert r.status_code == 200
        body = r.json()
        assert body["success"] is True
        assert body["token"]
        assert body["data"]["email"] == "jane@example.com"
        assert body["data"]["name"] == "Jane Traveler"

        payload = JWTService.verify_token(body["token"])
        assert payload["id"] == body["data"]["id"]

    async def test_duplicate_email_is_rejected_without_new_row(self, client, db):
        await client.post("/auth/register", json=REGISTER_BODY)
        r = await client.post("/auth/register", json={**REGISTER_BODY, "email": "jane@example.com"})

        assert r.status_code == 422
        assert r.json()["message"] == "Email already in use"
        assert await db.scalar(select(func.count(User.id))) == 1

    @pytest.mark.parametrize("password,message", [
        ("Ab1!", "Password must be at least 6 characters long"),
        ("Secret!!", "Password must contain at least one number"),
        ("Secret11", "Password must contain at least one special character"),
    ])
    async def test_weak_password_is_rejected(self, client, password, message):
        r = await client.post("/auth/register", json={
            **REGISTER_BODY, "password": password, "confirmPassword": password})

        assert r.status_code == 422
        assert message in r.json()["message"]

    async def test_password_confirmation_must_match(self, client):
        r = await client.post("/auth/register", json={**REGISTER_BODY, "confirmPassword": "Other1!"})

        assert r.status_code == 422
        assert "Passwords do not match" in r.json()["message"]

    async def test_login(self, client, make_user):
        await make_user("amal@example.com")

        r = await client.post("/auth/login", json={"email": "AMAL@example.com", "password": "Secret1!"})

        assert r.status_code == 200
        assert r.json()["token"]
        assert r.json()["data"]["email"] == "amal@example.com"

    async def test_login_wrong_password(self, client, make_user):
        await make_user("amal@example.com")

        r = await client.post("/auth/login", json={"email": "amal@example.com", "password": "Wrong1!"})

        assert r.status_code == 401
        assert r.json() == {"status": 401, "success": False, "message": "Invalid email or password"}

    async def test_blocked_user_cannot_log_in(self, client, make_user):
        await make_user("amal@example.com", block=True)

        r = await client.post("/auth/login", json={"email": "amal@example.com", "password": "Secret1!"})

        assert r.status_code == 403


class TestTokens:

    async def test_missing_header(self, client):
        r = await client.get("/auth/profile")

        assert r.status_code == 401
        assert r.json()["message"] == "Missing authorization header"

    async def test_expired_token(self, client, make_user):
        user = await make_user()
        token = JWTService.create_access_token({"id": user.id}, timedelta(seconds=-5))

        r = await client.get("/auth/profile", headers={"Authorization": f"Bearer {token}"})

        assert r.status_code == 401
        assert r.json()["message"] == "Token Expired"

    async def test_garbage_token(self, client):
        r = await client.get("/auth/profile", headers={"Authorization": "Bearer not-a-jwt"})

        assert r.status_code == 401
        assert r.json()["message"] == "Invalid token"

    async def test_admin_token_rejected_on_user_routes(self, client, make_admin, admin_headers):
        admin = await make_admin()

        r = await client.get("/auth/profile", headers=admin_headers(admin))

        assert r.status_code == 401

    async def test_blocked_user_token_is_refused(self, client, make_user, auth_headers):
        user = await make_user(block=True)

        r = await client.get("/auth/profile", headers=auth_headers(user))

        assert r.status_code == 403


class TestProfile:

    async def test_profile_shape(self, client, make_user, make_post, auth_headers):
        user = await make_user()
        await make_post(user, "Japan", "Tokyo")

        r = await client.get("/auth/profile", headers=auth_headers(user))

        assert r.status_code == 200
        data = r.json()["data"]
        assert data["user"]["email"] == user.email
        assert "password" not in data["user"]
        assert data["stats"] == {"totalPosts": 1, "totalFollowers": 0, "totalFollowing": 0}
        assert {(h["type"], h["value"]) for h in data["highlights"]} == {
            ("continent", "asia"), ("country", "japan"), ("city", "tokyo")}
        assert data["wishlist"] == []
        assert data["comparison"] == {"continent": 0, "country": 0, "city": 0}

    async def test_edit_profile_fields(self, client, db, make_user, auth_headers):
        user = await make_user()

        r = await client.put("/auth/editProfile", headers=auth_headers(user), data={
            "full_name": "New Name",
            "public_profile": "false",
            "notification_type": "1,3,5",
        })

        assert r.status_code == 200
        data = r.json()["data"]
        assert data["full_name"] == "New Name"
        assert data["public_profile"] is False
        assert data["notification_type"] == "1,3,5"

    @pytest.mark.parametrize("value", ["1,,2", "a", "8", "1,2,"])
    async def test_edit_profile_rejects_bad_notification_type(self, client, make_user, auth_headers, value):
        user = await make_user()

        r = await client.put("/auth/editProfile", headers=auth_headers(user),
                             data={"notification_type": value})

        assert r.status_code == 422
        assert r.json()["message"] == "Invalid notification_type format"

    async def test_edit_profile_email_must_be_unique(self, client, make_user, auth_headers):
        await make_user("taken@example.com")
        user = await make_user("me@example.com")

        r = await client.put("/auth/editProfile", headers=auth_headers(user),
                             data={"email": "Taken@example.com"})

        assert r.status_code == 422
        assert r.json()["message"] == "Email already in use"

    async def test_edit_profile_replaces_image(self, client, make_user, auth_headers, storage, png_bytes):
        user = await make_user(image="http://test/media/uploads/old.png")

        r = await client.put(
            "/auth/editProfile",
            headers=auth_headers(user),
            files={"image": ("avatar.png", png_bytes, "image/png")},
        )

        assert r.status_code == 200
        image = r.json()["data"]["image"]
        assert image.startswith("http://test/media/uploads/")
        assert image.endswith(".png")
        assert storage.deleted == ["http://test/media/uploads/old.png"]

    async def test_edit_profile_rejects_non_image(self, client, make_user, auth_headers):
        user = await make_user()

        r = await client.put(
            "/auth/editProfile",
            headers=auth_headers(user),
            files={"image": ("notes.txt", b"hello", "text/plain")},
        )

        assert r.status_code == 422

    async def test_change_password(self, client, make_user, auth_headers):
        user = await make_user()

        r = await client.post("/auth/changePassword", headers=auth_headers(user), json={
            "current_password": "Secret1!",
            "new_password": "Better2@",
            "confirm_password": "Better2@",
        })
        assert r.status_code == 200

        r = await client.post("/auth/login", json={"email": user.email, "password": "Better2@"})
        assert r.status_code == 200

    async def test_change_password_wrong_current(self, client, make_user, auth_headers):
        user = await make_user()

        r = await client.post("/auth/changePassword", headers=auth_headers(user), json={
            "current_password": "Wrong1!",
            "new_password": "Better2@",
            "confirm_password": "Better2@",
        })

        assert r.status_code == 422
        assert r.json()["message"] == "Current password is incorrect"

    async def test_accept_terms(self, client, make_user, auth_headers):
        user = await make_user()

        r = await client.post("/auth/terms", headers=auth_headers(user))

        assert r.status_code == 200
        assert r.json()["data"]["terms_accepted"] is True
        assert r.json()["data"]["terms_accepted_at"]


class TestContactsAndDeletion:

    async def test_sync_contacts_matches_normalized_phones(self, client, db, make_user, auth_headers):
        me = await make_user("me@example.com")
        friend = await make_user("friend@example.com", phone="15551234567")
        followed = await make_user("followed@example.com", phone="15559876543")
        db.add(Follower(follower_id=me.id, user_id=followed.id))
        await db.commit()

        r = await client.post("/auth/syncContacts", headers=auth_headers(me), json={
            "contacts": ["+1 (555) 123-4567", "+1 555 987 6543", "000"],
        })

        assert r.status_code == 200
        by_id = {u["id"]: u for u in r.json()["data"]}
        assert set(by_id) == {friend.id, followed.id}
        assert by_id[friend.id]["showFollow"] is True
        assert by_id[followed.id]["isFollowing"] is True
        assert by_id[followed.id]["showFollow"] is False

    async def test_registered_phone_is_found_by_contact_sync(self, client, db, make_user, auth_headers):
        me = await make_user("me@example.com")
        r = await client.post("/auth/register", json={**REGISTER_BODY, "phone": "+1 (555) 123-4567"})
        new_id = r.json()["data"]["id"]

        assert await db.scalar(select(User.phone).where(User.id == new_id)) == "15551234567"

        r = await client.post("/auth/syncContacts", headers=auth_headers(me), json={"contacts": ["+15551234567"]})

        assert r.status_code == 200
        assert [u["id"] for u in r.json()["data"]] == [new_id]

    async def test_edited_phone_is_stored_normalized(self, client, db, make_user, auth_headers):
        user = await make_user()

        r = await client.put("/auth/editProfile", headers=auth_headers(user), data={"phone": "+44 20-7946-0958"})

        assert r.status_code == 200
        assert await db.scalar(select(User.phone).where(User.id == user.id)) == "442079460958"

    async def test_sync_contacts_requires_contacts(self, client, make_user, auth_headers):
        user = await make_user()

        r = await client.post("/auth/syncContacts", headers=auth_headers(user), json={"contacts": []})

        assert r.status_code == 422

    async def test_delete_account_cascades(self, client, db, make_user, make_post, auth_headers):
        user = await make_user()
        other = await make_user("other@example.com")
        await make_post(user, "Italy", "Rome")
        db.add(Follower(follower_id=other.id, user_id=user.id))
        await db.commit()

        r = await client.delete("/auth/deleteAccount", headers=auth_headers(user))

        assert r.status_code == 200
        assert await db.scalar(select(func.count(User.id))) == 1
        assert await db.scalar(select(func.count(Post.id))) == 0
        assert await db.scalar(select(func.count(Follower.id))) == 0
