"""Tests for the shared database and activity store queries."""

from datetime import datetime, timezone

import pytest

from strava_ftp_coach.config import config
from strava_ftp_coach.db import close_db, get_db
from strava_ftp_coach.db.models import Activity
from strava_ftp_coach.db.repository import ActivityStore


class TestSharedDatabase:
    """Test the process-wide database handle."""

    def setup_method(self):
        close_db()

    def teardown_method(self):
        close_db()

    def test_reused_until_closed(self, monkeypatch):
        """get_db returns one instance until close_db disposes of it."""
        monkeypatch.setattr(config, "DATABASE_URL", "sqlite:///:memory:")

        first = get_db()
        assert get_db() is first

        close_db()
        assert get_db() is not first

    def test_close_without_open(self):
        """Closing when nothing is open is a no-op."""
        close_db()
        close_db()

    def test_session_rolls_back_on_error(self, db):
        """A failing session leaves no partial writes behind."""
        with pytest.raises(RuntimeError):
            with db.get_session() as session:
                session.add(Activity(user_id="u1", strava_id="1", name="Ride", type="Ride",
                                     start_date=datetime(2024, 6, 11)))
                session.flush()
                raise RuntimeError("boom")

        with db.get_session() as session:
            assert session.query(Activity).count() == 0


class TestLastSynced:
    """Test the per-user last sync time."""

    def setup_method(self):
        self.user_one_time = datetime(2024, 6, 10, 8, 0)
        self.user_two_time = datetime(2024, 6, 12, 9, 30)

    def _store(self, db, user_id, activity, created_at):
        store = ActivityStore(db)
        store.upsert(user_id, activity)
        with db.get_session() as session:
            row = session.query(Activity).filter_by(
                user_id=user_id, strava_id=activity.activity_id
            ).one()
            row.created_at = created_at
        return store

    def test_unknown_user(self, db):
        """A user with no stored activities has never synced."""
        assert ActivityStore(db).last_synced("nobody") is None

    def test_scoped_to_user(self, db, make_activity):
        """Another user's newer activity does not change the result."""
        self._store(db, "u1", make_activity(days_ago=2), self.user_one_time)
        store = self._store(db, "u2", make_activity(days_ago=1), self.user_two_time)

        assert store.last_synced("u1") == self.user_one_time.replace(tzinfo=timezone.utc)
        assert store.last_synced("u2") == self.user_two_time.replace(tzinfo=timezone.utc)

    def test_most_recent_row(self, db, make_activity):
        """The newest saved activity wins."""
        self._store(db, "u1", make_activity(days_ago=3), self.user_one_time)
        store = self._store(db, "u1", make_activity(days_ago=2), self.user_two_time)

        assert store.last_synced("u1") == self.user_two_time.replace(tzinfo=timezone.utc)
