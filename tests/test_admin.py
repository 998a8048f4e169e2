from datetime import datetime, timezone

from sqlalchemy import func, select, update

from beenaround.models import AdminUser, FlaggedContent, Post, User


class TestAdminAuth:

    async def test_login(self, client, make_admin):
        await make_admin("root@example.com")

        r = await client.post("/admin/auth/login", json={"email": "root@example.com", "password": "Secret1!"})

        assert r.status_code == 200
        data = r.json()["data"]
        assert data["token"]
        assert data["admin"]["email"] == "root@example.com"

    async def test_login_wrong_password(self, client, make_admin):
        await make_admin("root@example.com")

        r = await client.post("/admin/auth/login", json={"email": "root@example.com", "password": "Nope12!"})

        assert r.status_code == 401

    async def test_user_token_is_forbidden(self, client, make_user, auth_headers):
        user = await make_user()

        r = await client.get("/admin/platform-stats", headers=auth_headers(user))

        assert r.status_code == 403
        assert r.json()["message"] == "Forbidden: Admin access only"


class TestUserManagement:

    async def test_list_without_filters_is_plain_list(self, client, make_admin, make_user, admin_headers):
        admin = await make_admin()
        await make_user("a@example.com")
        await make_user("b@example.com")

        r = await client.get("/admin/users", headers=admin_headers(admin))

        assert r.status_code == 200
        assert isinstance(r.json()["data"], list)
        assert len(r.json()["data"]) == 2

    async def test_filtered_list_is_paginated(self, client, make_admin, make_user, admin_headers):
        admin = await make_admin()
        await make_user("alice@example.com", address="Cairo, Egypt")
        await make_user("bob@example.com", address="Oslo, Norway", block=True)
        await make_user("carol@example.com", address="Alexandria, Egypt")

        r = await client.get("/admin/users", headers=admin_headers(admin),
                             params={"country": "egypt", "limit": 1})
        data = r.json()["data"]
        assert len(data["users"]) == 1
        assert data["pagination"]["totalItems"] == 2
        assert data["pagination"]["totalPages"] == 2
        assert data["pagination"]["hasNextPage"] is True

        r = await client.get("/admin/users", headers=admin_headers(admin), params={"blocked": "true"})
        assert [u["email"] for u in r.json()["data"]["users"]] == ["bob@example.com"]

        r = await client.get("/admin/users", headers=admin_headers(admin), params={"search": "CAROL"})
        assert [u["email"] for u in r.json()["data"]["users"]] == ["carol@example.com"]

    async def test_bad_signup_date(self, client, make_admin, admin_headers):
        admin = await make_admin()

        r = await client.get("/admin/users", headers=admin_headers(admin), params={"signup_date": "01/02/2024"})

        assert r.status_code == 422

    async def test_update_user_json(self, client, make_admin, make_user, admin_headers):
        admin = await make_admin()
        user = await make_user()

        r = await client.put(f"/admin/user/{user.id}", headers=admin_headers(admin),
                             json={"full_name": "Renamed", "country": "Oman", "block": "true"})

        assert r.status_code == 200
        data = r.json()["data"]
        assert data["full_name"] == "Renamed"
        assert data["address"] == "Oman"
        assert data["block"] is True

    async def test_update_user_rejects_unknown_fields(self, client, make_admin, make_user, admin_headers):
        admin = await make_admin()
        user = await make_user()

        r = await client.put(f"/admin/user/{user.id}", headers=admin_headers(admin),
                             json={"email": "x@example.com", "block": "maybe"})

        assert r.status_code == 422
        assert "Field 'email' is not allowed for update" in r.json()["message"]
        assert "Invalid value for block" in r.json()["message"]

    async def test_update_user_multipart_image(self, client, make_admin, make_user, admin_headers, png_bytes):
        admin = await make_admin()
        user = await make_user()

        r = await client.put(f"/admin/user/{user.id}", headers=admin_headers(admin),
                             data={"public_profile": "false"},
                             files={"image": ("face.png", png_bytes, "image/png")})

        assert r.status_code == 200
        assert r.json()["data"]["public_profile"] is False
        assert r.json()["data"]["image"].startswith("http://test/media/uploads/")

    async def test_block_and_delete_user(self, client, db, make_admin, make_user, make_post, admin_headers):
        admin = await make_admin()
        user = await make_user()
        await make_post(user)

        r = await client.post("/admin/user/block", headers=admin_headers(admin),
                              json={"user_id": user.id, "block": True})
        assert r.json()["data"] == {"id": user.id, "block": True}

        r = await client.delete(f"/admin/user/{user.id}", headers=admin_headers(admin))
        assert r.status_code == 200
        assert await db.scalar(select(func.count(User.id))) == 0
        assert await db.scalar(select(func.count(Post.id))) == 0

        r = await client.get(f"/admin/user/{user.id}", headers=admin_headers(admin))
        assert r.status_code == 404


class TestAnalytics:

    async def test_platform_stats_and_countries(self, client, make_admin, make_user, make_post, admin_headers):
        admin = await make_admin()
        a = await make_user("a@example.com")
        b = await make_user("b@example.com")
        await make_post(a, "Brazil", "Rio")
        await make_post(a, "Brazil", "Rio")
        await make_post(b, "Brazil", "Salvador")
        await make_post(b, "Chile", "Santiago")

        r = await client.get("/admin/platform-stats", headers=admin_headers(admin))
        data = r.json()["data"]
        assert data["totalUsers"] == 2
        assert data["totalPosts"] == 4
        assert data["topVisitedCountry"] == "brazil"
        assert data["topVisitedCity"] == "rio"

        r = await client.get("/admin/most-visited-countries", headers=admin_headers(admin))
        assert r.json()["data"] == [{"name": "brazil", "value": 2}, {"name": "chile", "value": 1}]

    async def test_user_signups_by_month(self, client, db, make_admin, make_user, admin_headers):
        admin = await make_admin()
        a = await make_user("a@example.com")
        b = await make_user("b@example.com")
        await db.execute(update(User).where(User.id == a.id).values(
            created_at=datetime(2023, 3, 5, tzinfo=timezone.utc)))
        await db.execute(update(User).where(User.id == b.id).values(
            created_at=datetime(2023, 3, 20, tzinfo=timezone.utc)))
        await db.commit()

        r = await client.get("/admin/analytics/user-signups", headers=admin_headers(admin),
                             params={"year": 2023})

        data = r.json()["data"]
        assert data["year"] == 2023
        assert len(data["months"]) == 12
        assert data["months"][2] == {"month": "March", "users": 2}
        assert data["months"][0] == {"month": "January", "users": 0}


class TestAdminAccounts:

    async def test_create_list_update_delete(self, client, db, make_admin, admin_headers):
        admin = await make_admin()

        r = await client.post("/admin/admin-user", headers=admin_headers(admin), json={
            "full_name": "Second", "email": "second@example.com", "password": "Secret1!"})
        assert r.status_code == 200
        second_id = r.json()["data"]["id"]

        r = await client.post("/admin/admin-user", headers=admin_headers(admin), json={
            "full_name": "Dup", "email": "SECOND@example.com", "password": "Secret1!"})
        assert r.status_code == 422
        assert r.json()["message"] == "Email already in use"

        r = await client.get("/admin/admin-users", headers=admin_headers(admin))
        assert r.json()["data"]["pagination"]["totalItems"] == 2

        r = await client.put(f"/admin/admin-user/{second_id}", headers=admin_headers(admin),
                             json={"full_name": "Renamed"})
        assert r.json()["data"]["full_name"] == "Renamed"

        r = await client.delete(f"/admin/admin-user/{admin.id}", headers=admin_headers(admin))
        assert r.status_code == 403

        r = await client.delete(f"/admin/admin-user/{second_id}", headers=admin_headers(admin))
        assert r.status_code == 200
        assert await db.scalar(select(func.count(AdminUser.id))) == 1

    async def test_change_password(self, client, make_admin, admin_headers):
        admin = await make_admin("root@example.com")

        r = await client.post("/admin/change-password", headers=admin_headers(admin), json={
            "current_password": "Secret1!", "new_password": "Newer9(", "confirm_password": "Newer9("})
        assert r.status_code == 200

        r = await client.post("/admin/auth/login", json={"email": "root@example.com", "password": "Newer9("})
        assert r.status_code == 200

    async def test_update_own_profile(self, client, make_admin, admin_headers):
        admin = await make_admin()

        r = await client.put("/admin/profile", headers=admin_headers(admin), data={"full_name": " Boss "})

        assert r.status_code == 200
        assert r.json()["data"]["full_name"] == "Boss"


class TestModeration:

    async def test_review_flag_and_delete_post(self, client, db, make_admin, make_user, make_post,
                                               admin_headers, auth_headers):
        admin = await make_admin()
        author = await make_user("author@example.com")
        reporter = await make_user("reporter@example.com")
        post = await make_post(author)
        await client.post("/post/flag", headers=auth_headers(reporter), json={"post_id": post.id, "reason": "Spam"})

        r = await client.get("/admin/flagged-content", headers=admin_headers(admin), params={"status": "pending"})
        flags = r.json()["data"]["flags"]
        assert len(flags) == 1
        assert flags[0]["post"]["id"] == post.id
        assert flags[0]["user"]["id"] == reporter.id

        r = await client.put(f"/admin/flagged-content/{flags[0]['id']}", headers=admin_headers(admin),
                             json={"status": "approved", "admin_response": "Removed"})
        assert r.json()["data"]["status"] == "approved"

        r = await client.delete(f"/admin/post/{post.id}", headers=admin_headers(admin))
        assert r.status_code == 200
        assert await db.scalar(select(func.count(Post.id))) == 0
        assert await db.scalar(select(func.count(FlaggedContent.id))) == 0

    async def test_bad_status_filter(self, client, make_admin, admin_headers):
        admin = await make_admin()

        r = await client.get("/admin/flagged-content", headers=admin_headers(admin), params={"status": "lost"})

        assert r.status_code == 422
