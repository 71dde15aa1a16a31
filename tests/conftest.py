"""Shared fixtures for the test suite."""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from strava_ftp_coach.analysis.records import ActivityRecord
from strava_ftp_coach.db.database import Database

# Wednesday midday
NOW = datetime(2024, 6, 12, 12, 0, tzinfo=timezone.utc)

_ids = itertools.count(1)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_activity():
    """Factory for activity records relative to NOW."""

    def factory(days_ago=1, moving_time=3600, average_watts=None, **kwargs):
        kwargs.setdefault("activity_id", str(next(_ids)))
        kwargs.setdefault("name", "Morning Ride")
        kwargs.setdefault("type", "Ride")
        return ActivityRecord(
            start_date=NOW - timedelta(days=days_ago),
            moving_time=moving_time,
            elapsed_time=moving_time,
            average_watts=average_watts,
            **kwargs,
        )

    return factory


@pytest.fixture
def db():
    """Fresh in-memory database."""
    database = Database("sqlite:///:memory:")
    database.create_tables()
    yield database
    database.close()
