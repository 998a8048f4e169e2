from sqlalchemy import func, select

from beenaround.models import AdminUser
from scripts.create_admin_user import create_admin_user


class TestCreateAdminUser:

    async def test_creates_admin_that_can_log_in(self, client, session_factory):
        admin, created = await create_admin_user(session_factory, " Root@Example.com ", "Secret1!", "Root")

        assert created is True
        assert admin.email == "root@example.com"
        r = await client.post("/admin/auth/login", json={"email": "root@example.com", "password": "Secret1!"})
        assert r.status_code == 200
        assert r.json()["data"]["token"]

    async def test_existing_admin_is_reused(self, db, session_factory, make_admin):
        existing = await make_admin(email="root@example.com")

        admin, created = await create_admin_user(session_factory, "root@example.com", "Other1!")

        assert created is False
        assert admin.id == existing.id
        assert await db.scalar(select(func.count(AdminUser.id))) == 1
