import pytest
import httpx
from beenaround.main import app


@pytest.mark.asyncio
async def test_root_ok():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        r = await client.get("/")
        assert r.status_code == 200
        data = r.json()
        assert data["success"] is True
        assert data["status"] == 200
        assert r.headers.get("X-Request-ID")


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        r = await client.get("/does-not-exist")
        assert r.status_code == 404
        assert r.json()["success"] is False
        assert r.json()["status"] == 404


@pytest.mark.asyncio
async def test_metrics_requires_token_outside_debug():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        r = await client.get("/metrics")
        assert r.status_code == 403
        assert r.json()["message"] == "Forbidden"
