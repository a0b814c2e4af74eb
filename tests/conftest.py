"""Shared fixtures for devkaki tests."""

from datetime import datetime, timedelta, timezone

import pytest
import tzlocal

# Monday
NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime = NOW):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def berlin_system_zone(monkeypatch):
    """Make Europe/Berlin the system zone for the duration of a test."""
    monkeypatch.setenv("TZ", "Europe/Berlin")
    yield tzlocal.reload_localzone()
    monkeypatch.undo()
    tzlocal.reload_localzone()
