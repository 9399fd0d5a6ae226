from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError

from ticketgate.main import app


@pytest.mark.asyncio
async def test_health_ok():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        resp = await client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "version": "0.1.0"}


@pytest.mark.asyncio
async def test_ready_reports_database_outage():
    transport = ASGITransport(app=app)
    with patch("ticketgate.db.ping", AsyncMock(side_effect=OperationalError("SELECT 1", {}, Exception("down")))):
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/health/ready")

    assert resp.status_code == 503
    assert resp.json() == {"status": "unavailable", "retryable": True}


@pytest.mark.asyncio
async def test_ready_ok():
    transport = ASGITransport(app=app)
    with patch("ticketgate.db.ping", AsyncMock(return_value=None)):
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            resp = await client.get("/health/ready")

    assert resp.status_code == 200
