"""
Pytest configuration and shared fixtures for the engagement tests.
"""
from datetime import datetime, timezone

import pytest
from rest_framework.test import APIClient

from engagement.services import lead_store

T0 = datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta):
        self.now = self.now + delta
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def make_lead(db):
    def _make(name="Priya Patel", created_by="rep-1", **fields):
        return lead_store.create_lead(name, created_by=created_by, **fields)
    return _make


@pytest.fixture
def lead(make_lead):
    return make_lead(email="priya.patel@example.com", phone="+1-555-0105", notes="Asked about pricing")


@pytest.fixture
def api_client():
    return APIClient(HTTP_X_ACTOR="rep-1")
