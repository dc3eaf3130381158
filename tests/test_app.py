"""Tests for application startup and shutdown."""

from unittest.mock import AsyncMock

from alertroute.main import app, lifespan
from tests.conftest import ORIGIN, north_of


async def test_lifespan_starts_scheduler_and_resumes_timers(
    engine, store, fake_scheduler, monkeypatch
):
    store.add_responder(*north_of(ORIGIN, 1))
    result = await engine.create_alert(store.add_requester().id, *ORIGIN)
    # Timers do not survive a restart
    fake_scheduler.jobs.clear()

    close_database = AsyncMock()
    monkeypatch.setattr("alertroute.main.get_dispatch_engine", lambda: engine)
    monkeypatch.setattr("alertroute.main.reset_dispatch_engine", engine.escalation.shutdown)
    monkeypatch.setattr("alertroute.main.close_database", close_database)

    async with lifespan(app):
        assert engine.escalation.running
        assert engine.escalation.is_armed(result.alert.id)

    assert not engine.escalation.running
    close_database.assert_awaited_once()


async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == "AlertRoute API"
