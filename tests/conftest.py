from datetime import datetime, timedelta

import pytest

from ambr.store import EventStore


class FakeClock:
    """Settable stand-in for the store's wall clock."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)

    def set(self, when: datetime) -> None:
        self.current = when


@pytest.fixture
def clock():
    # A Monday, mid-afternoon.
    return FakeClock(datetime(2026, 10, 19, 14, 30, 0))


@pytest.fixture
def store(clock):
    s = EventStore.from_url("sqlite://", clock=clock)
    s.initialize()
    yield s
    s.dispose()


@pytest.fixture
def live_store():
    """In-memory store on the real wall clock."""
    s = EventStore.from_url("sqlite://")
    s.initialize()
    yield s
    s.dispose()
