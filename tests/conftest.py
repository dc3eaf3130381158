"""Pytest configuration and shared fixtures.

Behavioural tests run against the in-memory store and a fake scheduler,
so escalation timers fire only when a test drives them.
"""

import math
import os
import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from apscheduler.jobstores.base import ConflictingIdError, JobLookupError
from httpx import ASGITransport, AsyncClient

# Set testing mode BEFORE importing app so rate limiting is disabled
os.environ["TESTING"] = "true"

from alertroute.config import settings

settings.testing = True

from alertroute.core.geo import EARTH_RADIUS_KM
from alertroute.core.security import create_access_token
from alertroute.dependencies import get_dispatch_engine, get_store
from alertroute.main import app
from alertroute.models.alert import Alert
from alertroute.models.responder import Responder
from alertroute.services.dispatch import DispatchEngine
from alertroute.services.escalation import EscalationScheduler
from alertroute.services.media import LocalMediaStorage
from alertroute.services.notifications import PushNotificationError, PushNotifier
from alertroute.stores.memory import MemoryDispatchStore

ORIGIN = (-26.2041, 28.0473)


def north_of(origin: tuple[float, float], km: float) -> tuple[float, float]:
    """Point ``km`` due north of ``origin``; haversine gives exactly ``km`` back."""
    return origin[0] + math.degrees(km / EARTH_RADIUS_KM), origin[1]


def auth_headers(subject_id: uuid.UUID, role: str) -> dict[str, str]:
    token = create_access_token(subject_id, role)
    return {"Authorization": f"Bearer {token}"}


class FakeJob:
    def __init__(self, job_id, func, args, run_date):
        self.id = job_id
        self.func = func
        self.args = args
        self.run_date = run_date


class FakeScheduler:
    """Stands in for AsyncIOScheduler; jobs run only via ``run_job``."""

    def __init__(self):
        self.jobs: dict[str, FakeJob] = {}
        self.running = False

    def start(self):
        self.running = True

    def shutdown(self, wait=True):
        self.running = False
        self.jobs.clear()

    def add_job(self, func, trigger, args=None, id=None, replace_existing=False, **kwargs):
        if id in self.jobs and not replace_existing:
            raise ConflictingIdError(id)
        self.jobs[id] = FakeJob(id, func, list(args or []), trigger.run_date)
        return self.jobs[id]

    def remove_job(self, job_id):
        if job_id not in self.jobs:
            raise JobLookupError(job_id)
        del self.jobs[job_id]

    def get_job(self, job_id):
        return self.jobs.get(job_id)

    def get_jobs(self):
        return list(self.jobs.values())

    async def run_job(self, job_id):
        # Date-triggered jobs are removed once they run
        job = self.jobs.pop(job_id)
        await job.func(*job.args)


class RecordingNotifier(PushNotifier):
    """Collects notifications; raises when ``fail`` is set."""

    def __init__(self):
        self.assignments: list[tuple[uuid.UUID, uuid.UUID]] = []
        self.exhausted: list[tuple[uuid.UUID, int, str]] = []
        self.fail = False

    async def notify_assignment(self, responder: Responder, alert: Alert) -> None:
        if self.fail:
            raise PushNotificationError("push service down")
        self.assignments.append((responder.id, alert.id))

    async def notify_escalation_exhausted(self, alert, attempts, reason) -> None:
        if self.fail:
            raise PushNotificationError("push service down")
        self.exhausted.append((alert.id, attempts, reason))


class MutableClock:
    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def store() -> MemoryDispatchStore:
    return MemoryDispatchStore()


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def media_storage(tmp_path) -> LocalMediaStorage:
    return LocalMediaStorage(
        root=tmp_path / "recordings",
        base_url="https://media.test/alert-recordings",
        max_bytes=1024,
    )


@pytest.fixture
def escalation(store, notifier, fake_scheduler, clock) -> EscalationScheduler:
    return EscalationScheduler(
        store.unit_of_work,
        notifier,
        timeout=timedelta(minutes=3),
        max_attempts=3,
        scheduler=fake_scheduler,
        clock=clock,
    )


@pytest.fixture
def engine(store, escalation, notifier, media_storage, clock) -> DispatchEngine:
    return DispatchEngine(
        store.unit_of_work,
        escalation,
        notifier,
        media_storage,
        clock=clock,
    )


@pytest_asyncio.fixture
async def client(engine, store) -> AsyncGenerator[AsyncClient, None]:
    """API client wired to the in-memory store and test engine."""
    app.dependency_overrides[get_dispatch_engine] = lambda: engine
    app.dependency_overrides[get_store] = lambda: store
    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
