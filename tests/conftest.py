"""
Shared fixtures for the court tracker test suite.

Provides: fake clock, recording scheduler, fake observers, small court catalogs
and a configured tracker bound to the running event loop.
"""

import asyncio
import json
import os
import tempfile

# Point the persistence layer at a throwaway database before the package is imported
os.environ.setdefault("DATABASE_URL", f"sqlite:///{tempfile.mkdtemp()}/court_tracker_test.db")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from starlette.websockets import WebSocketState

from court_tracker.config import Settings
from court_tracker.data_models import INITIAL_COURTS, Court, SportType
from court_tracker.registry import CourtRegistry
from court_tracker.tracker import CourtTracker

HOUR_MS = 3600000


class FakeClock:
    """Epoch milliseconds under test control."""

    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class RecordingScheduler:
    """Stands in for ExpiryScheduler where no event loop is needed."""

    def __init__(self):
        self.armed = {}
        self.cancelled = []

    def arm(self, session):
        self.armed[session.id] = session

    def cancel(self, session_id):
        self.cancelled.append(session_id)
        self.armed.pop(session_id, None)


class FakeObserver:
    """Collects every pushed message, decoded."""

    def __init__(self, fail: bool = False):
        self.messages = []
        self.fail = fail
        self.client_state = WebSocketState.CONNECTED

    async def send_text(self, message: str) -> None:
        if self.fail:
            raise ConnectionError("observer went away")
        self.messages.append(json.loads(message))

    def types(self):
        return [message["type"] for message in self.messages]


class HungObserver(FakeObserver):
    """Takes the snapshot, then never finishes another send."""

    async def send_text(self, message: str) -> None:
        if self.messages:
            await asyncio.Event().wait()
        await super().send_text(message)


def make_courts(*court_ids):
    return [
        Court(id=court_id, sport=SportType.TENNIS, name=f"Court {court_id[-1]}", court_number=number)
        for number, court_id in enumerate(court_ids, start=1)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def registry():
    return CourtRegistry(make_courts("court-A", "court-B", "court-C"))


@pytest.fixture
def catalog_registry():
    return CourtRegistry(Court(**court) for court in INITIAL_COURTS)


@pytest.fixture
def settings():
    return Settings(session_duration_ms=HOUR_MS, warning_lead_ms=10 * 60 * 1000)


@pytest.fixture
async def tracker(registry, settings, clock):
    tracker = CourtTracker(registry, settings, clock=clock)
    yield tracker
    await tracker.shutdown()
