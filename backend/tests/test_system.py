from __future__ import annotations
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from tournament.db import get_session
from tournament.main import app


@pytest.mark.asyncio
async def test_health_ok(client):
    r = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "ok"
    assert data["request_id"] == "req-123"
    assert r.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
async def test_health_generates_request_id(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json()["request_id"] == r.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_health_degraded_when_db_unreachable(client, tmp_path):
    broken = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/missing/dir/db.sqlite")
    factory = async_sessionmaker(broken)

    async def _session():
        async with factory() as s:
            yield s

    app.dependency_overrides[get_session] = _session
    r = await client.get("/health")
    await broken.dispose()
    assert r.status_code == 503
    assert r.json()["status"] == "degraded"


def test_version_ok():
    r = TestClient(app).get("/version")
    assert r.status_code == 200
    data = r.json()
    assert "version" in data and "git_sha" in data
    assert data["contest"]["timezone"] == "Europe/Moscow"
