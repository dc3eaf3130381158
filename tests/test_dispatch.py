"""Tests for alert creation and routing to the nearest responder."""

import uuid

import pytest

from alertroute.core.errors import (
    InternalError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)
from alertroute.models.alert import AlertStatus
from alertroute.services.escalation import EscalationScheduler
from alertroute.services.media import MediaStorage, MediaUpload, MediaUploadError
from tests.conftest import ORIGIN, north_of


class BrokenMediaStorage(MediaStorage):
    async def store(self, owner_id, media):
        raise MediaUploadError("bucket unavailable")

    async def delete(self, url):
        raise AssertionError("nothing was stored")


class TestCreateAlert:
    async def test_assigns_nearest_and_records_first_attempt(self, engine, store):
        requester = store.add_requester(full_name="Thandi", phone_number="+27821234567")
        a = store.add_responder(*north_of(ORIGIN, 2), company_name="Alpha Security")
        store.add_responder(*north_of(ORIGIN, 5), company_name="Bravo Security")

        result = await engine.create_alert(requester.id, *map(str, ORIGIN))

        assert result.responder.id == a.id
        assert result.distance_km == pytest.approx(2.0, abs=1e-6)
        assert result.alert.status == AlertStatus.PENDING
        assert result.alert.responder_id == a.id
        assert result.alert.requester_name == "Thandi"
        assert result.alert.requester_phone == "+27821234567"

        history = await store.get_routing_history(result.alert.id)
        assert [(e.responder_id, e.attempt) for e in history] == [(a.id, 1)]

    async def test_arms_escalation_timer(self, engine, store, fake_scheduler, clock):
        requester = store.add_requester()
        store.add_responder(*north_of(ORIGIN, 2))

        result = await engine.create_alert(requester.id, *ORIGIN)

        job = fake_scheduler.get_job(EscalationScheduler.job_id(result.alert.id))
        assert job is not None
        assert job.args == [result.alert.id, 1]
        assert job.run_date == clock.now + engine.escalation.timeout

    async def test_notifies_assigned_responder(self, engine, store, notifier):
        requester = store.add_requester()
        a = store.add_responder(*north_of(ORIGIN, 2))

        result = await engine.create_alert(requester.id, *ORIGIN)

        assert notifier.assignments == [(a.id, result.alert.id)]

    async def test_no_available_responder(self, engine, store, fake_scheduler):
        requester = store.add_requester()
        store.add_responder(*north_of(ORIGIN, 1), is_available=False)

        with pytest.raises(ServiceUnavailableError) as exc_info:
            await engine.create_alert(requester.id, *ORIGIN)

        assert exc_info.value.status_code == 503
        assert store.alerts == {}
        assert store.routing_history == []
        assert fake_scheduler.jobs == {}

    async def test_missing_location(self, engine, store):
        requester = store.add_requester()
        store.add_responder(*north_of(ORIGIN, 1))

        with pytest.raises(ValidationError, match="Missing location data"):
            await engine.create_alert(requester.id, None, "28.0")
        assert store.alerts == {}

    async def test_unknown_requester(self, engine, store):
        store.add_responder(*north_of(ORIGIN, 1))

        with pytest.raises(NotFoundError):
            await engine.create_alert(uuid.uuid4(), *ORIGIN)

    async def test_stores_recording(self, engine, store):
        requester = store.add_requester()
        store.add_responder(*north_of(ORIGIN, 1))

        result = await engine.create_alert(
            requester.id, *ORIGIN, media=MediaUpload(data=b"\x00\x01audio")
        )

        assert result.alert.audio_url.startswith(
            f"https://media.test/alert-recordings/{requester.id}_"
        )
        assert result.alert.audio_url.endswith(".m4a")

    async def test_media_failure_does_not_block_alert(self, engine, store):
        engine._media_storage = BrokenMediaStorage()
        requester = store.add_requester()
        store.add_responder(*north_of(ORIGIN, 1))

        result = await engine.create_alert(
            requester.id, *ORIGIN, media=MediaUpload(data=b"audio")
        )

        assert result.alert.audio_url is None
        assert result.alert.id in store.alerts

    async def test_recording_removed_when_alert_not_saved(
        self, engine, store, tmp_path, monkeypatch
    ):
        requester = store.add_requester()
        store.add_responder(*north_of(ORIGIN, 1))

        async def failing_create(alert, notified_at):
            raise InternalError("Failed to create alert")

        monkeypatch.setattr(store, "create_alert", failing_create)

        with pytest.raises(InternalError):
            await engine.create_alert(
                requester.id, *ORIGIN, media=MediaUpload(data=b"audio")
            )

        assert list((tmp_path / "recordings").iterdir()) == []
        assert store.alerts == {}

    async def test_notification_failure_does_not_block_alert(
        self, engine, store, notifier
    ):
        notifier.fail = True
        requester = store.add_requester()
        store.add_responder(*north_of(ORIGIN, 1))

        result = await engine.create_alert(requester.id, *ORIGIN)

        assert result.alert.id in store.alerts
        assert engine.escalation.is_armed(result.alert.id)

    async def test_coverage_radius_flag(self, engine, store):
        requester = store.add_requester()
        far = store.add_responder(*north_of(ORIGIN, 50), coverage_radius_km=10)

        result = await engine.create_alert(requester.id, *ORIGIN)
        assert result.responder.id == far.id

        engine.enforce_coverage_radius = True
        with pytest.raises(ServiceUnavailableError):
            await engine.create_alert(requester.id, *ORIGIN)
