import io
import os

# Settings are read at import time
os.environ["APP_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["APP_STORAGE_BACKEND"] = "s3"
os.environ["APP_BCRYPT_ROUNDS"] = "4"
os.environ["APP_DEBUG"] = "false"
os.environ["APP_JWT_SECRET_KEY"] = "test-secret"

from datetime import date

import httpx
import pytest
import pytest_asyncio
from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from beenaround.database import enable_sqlite_foreign_keys, get_db
from beenaround.dependencies import get_instagram, get_mailer, get_notifier, get_storage
from beenaround.main import app
from beenaround.models import AdminUser, Base, User
from beenaround.services import post_service
from beenaround.services.email_service import EmailService
from beenaround.services.instagram_service import InstagramClient
from beenaround.services.jwt_service import JWTService
from beenaround.services.notification_service import PushNotifier
from beenaround.services.password_service import hash_password
from beenaround.services.storage import StorageService

DEFAULT_PASSWORD = "Secret1!"


class FakeStorage(StorageService):
    """Local backend that keeps uploads in memory."""

    def __init__(self):
        super().__init__(backend="local", local_base_url="http://test")
        self.saved = {}
        self.deleted = []

    async def _put_local(self, key: str, content: bytes) -> None:
        self.saved[key] = content

    async def delete_by_url(self, url):
        self.deleted.append(url)
        key = self.key_from_url(url)
        return self.saved.pop(key, None) is not None if key else False


class FakeNotifier(PushNotifier):
    """Firebase stand-in that records every message instead of sending it."""

    def __init__(self):
        super().__init__(credentials_path="unused.json", retry_attempts=1, retry_wait_seconds=0)
        self.sent = []

    async def _dispatch(self, message):
        self.sent.append(message)
        return f"msg-{len(self.sent)}"


class Recorder:
    def __init__(self, responder):
        self.requests = []
        self._responder = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)


def _instagram_responses(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/oauth/access_token":
        return httpx.Response(200, json={"access_token": "short-token", "user_id": 1784})
    if path == "/access_token":
        return httpx.Response(200, json={"access_token": "long-token", "expires_in": 5184000})
    if path == "/refresh_access_token":
        return httpx.Response(200, json={"access_token": "refreshed-token", "expires_in": 5184000})
    if path.endswith("/me/media"):
        return httpx.Response(200, json={"data": [{"id": "m1", "caption": "Lisbon"}]})
    if path.endswith("/m1"):
        return httpx.Response(200, json={"id": "m1", "caption": "Lisbon", "permalink": "https://instagram.com/p/m1"})
    return httpx.Response(404, json={"error": {"message": "unknown media"}})


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def mail_outbox():
    return Recorder(lambda request: httpx.Response(202))


@pytest.fixture
def mailer(mail_outbox):
    return EmailService(
        api_key="test-key",
        from_email="no-reply@beenaround.test",
        transport=httpx.MockTransport(mail_outbox),
    )


@pytest.fixture
def instagram_calls():
    return Recorder(_instagram_responses)


@pytest.fixture
def instagram(instagram_calls):
    return InstagramClient(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="beenaround://auth/instagram/",
        transport=httpx.MockTransport(instagram_calls),
    )


@pytest_asyncio.fixture
async def client(session_factory, storage, notifier, mailer, instagram):
    """Test client with the database and external clients overridden."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides = {
        get_db: override_get_db,
        get_storage: lambda: storage,
        get_notifier: lambda: notifier,
        get_mailer: lambda: mailer,
        get_instagram: lambda: instagram,
    }
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides = {}


@pytest.fixture
def make_user(db):
    async def _make(email="traveler@example.com", password=DEFAULT_PASSWORD, **fields):
        fields.setdefault("full_name", email.split("@")[0].title())
        user = User(email=email, password=await hash_password(password), **fields)
        db.add(user)
        await db.commit()
        return user
    return _make


@pytest.fixture
def make_admin(db):
    async def _make(email="admin@example.com", password=DEFAULT_PASSWORD, full_name="Admin"):
        admin = AdminUser(email=email, password=await hash_password(password), full_name=full_name)
        db.add(admin)
        await db.commit()
        return admin
    return _make


@pytest.fixture
def make_post(db, storage):
    async def _make(user, country="France", city="Paris", **fields):
        fields.setdefault("visit_date", date(2024, 5, 1))
        fields.setdefault("reason_for_visit", "Leisure")
        return await post_service.create_post(db, storage, user, country=country, city=city, **fields)
    return _make


@pytest.fixture
def auth_headers():
    def _headers(user) -> dict:
        return {"Authorization": f"Bearer {JWTService.create_user_token(user)}"}
    return _headers


@pytest.fixture
def admin_headers():
    def _headers(admin) -> dict:
        return {"Authorization": f"Bearer {JWTService.create_admin_token(admin)}"}
    return _headers


@pytest.fixture
def png_bytes():
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()
