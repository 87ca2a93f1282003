import pytest
from aiohttp.test_utils import TestClient, TestServer

from slayer_bot.utils.health import build_app


@pytest.mark.asyncio
async def test_health_endpoints():
    state = {"ready": False}
    app = build_app(lambda: state["ready"], stats=lambda: {"cached_tables": 2, "reloads": 5})

    async with TestClient(TestServer(app)) as client:
        resp = await client.get("/health")
        assert resp.status == 200
        assert (await resp.json()) == {"status": "ok"}

        resp = await client.get("/ready")
        assert resp.status == 503
        state["ready"] = True
        resp = await client.get("/ready")
        assert resp.status == 200

        resp = await client.get("/metrics")
        data = await resp.json()
        assert data["cached_tables"] == 2
        assert data["reloads"] == 5
        assert "uptime" in data
