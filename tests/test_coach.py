"""Tests for the weekly coaching workflows."""

from datetime import timedelta

import pytest

from strava_ftp_coach.analysis.adaptive_plan import InvalidPlanInputError
from strava_ftp_coach.analysis.readiness import ComplianceStatus, ReadinessLevel
from strava_ftp_coach.analysis.records import ActivityRecord
from strava_ftp_coach.api.client import UnauthorizedError
from strava_ftp_coach.auth.oauth import RefreshFailedError
from strava_ftp_coach.coach import WeeklyCoach, validate_plan_input


class FakeAuthManager:
    """Hands out tokens and counts refreshes."""

    def __init__(self, token="token"):
        self.token = token
        self.refreshes = 0

    def get_valid_token(self):
        return self.token

    def refresh(self):
        self.refreshes += 1
        self.token = f"refreshed-{self.refreshes}"
        return self.token


class FakeClient:
    """Returns canned payloads; optionally rejects the first tokens."""

    def __init__(self, payloads=None, unauthorized=0):
        self.payloads = payloads or []
        self.unauthorized = unauthorized
        self.calls = []

    def fetch_recent_activities_raw(self, token, lookback_days, now=None):
        self.calls.append(token)
        if self.unauthorized > 0:
            self.unauthorized -= 1
            raise UnauthorizedError("rejected", status_code=401)
        return list(self.payloads)

    def fetch_recent_activities(self, token, lookback_days, now=None):
        return [ActivityRecord.from_strava(p) for p in self.fetch_recent_activities_raw(token, lookback_days, now)]


def ride_payloads(now, count=10, watts=250, moving_time=1500):
    return [
        {
            "id": 1000 + i,
            "name": "Lunch Ride",
            "type": "Ride",
            "start_date": (now - timedelta(days=i)).isoformat(),
            "moving_time": moving_time,
            "elapsed_time": moving_time,
            "average_watts": watts,
        }
        for i in range(1, count + 1)
    ]


@pytest.fixture
def make_coach(db):
    def factory(client=None, auth=None):
        return WeeklyCoach("rider", db=db, client=client or FakeClient(), auth_manager=auth or FakeAuthManager())
    return factory


class TestValidatePlanInput:
    """Test plan input checks."""

    def test_rest_days_dropped(self):
        """Zero durations are rest days."""
        assert validate_plan_input(3, [60, 0, 45, 0, 90, 0, 0]) == [60, 45, 90]

    def test_no_sessions(self):
        """At least one session is required."""
        with pytest.raises(InvalidPlanInputError, match="at least one session"):
            validate_plan_input(0, [])

    def test_count_mismatch(self):
        """Session count must equal the number of training days."""
        with pytest.raises(InvalidPlanInputError, match="expected 3 workout sessions but found 2"):
            validate_plan_input(3, [60, 0, 60, 0, 0, 0, 0])

    def test_more_than_seven_days(self):
        """A week has at most seven daily durations."""
        with pytest.raises(InvalidPlanInputError):
            validate_plan_input(1, [60, 0, 0, 0, 0, 0, 0, 0])


class TestTokenHandling:
    """Test the refresh-once retry."""

    def test_refresh_once_on_401(self, make_coach, now):
        """A single 401 triggers one refresh and a retry."""
        client = FakeClient(ride_payloads(now, 2), unauthorized=1)
        auth = FakeAuthManager()
        coach = make_coach(client, auth)

        assert coach.sync_activities(now=now) == 2
        assert auth.refreshes == 1
        assert client.calls == ["token", "refreshed-1"]

    def test_second_401_propagates(self, make_coach, now):
        """A refreshed token that is still rejected is not retried again."""
        auth = FakeAuthManager()
        coach = make_coach(FakeClient(unauthorized=2), auth)

        with pytest.raises(UnauthorizedError):
            coach.fetch_activities(now=now)
        assert auth.refreshes == 1

    def test_not_connected(self, make_coach, now):
        """Without a token no request is made."""
        client = FakeClient()
        coach = make_coach(client, FakeAuthManager(token=None))

        with pytest.raises(RefreshFailedError):
            coach.fetch_activities(now=now)
        assert client.calls == []


class TestSync:
    """Test activity sync."""

    def test_sync_stores_activities(self, make_coach, now):
        """Synced activities are stored once and feed the FTP estimate."""
        coach = make_coach(FakeClient(ride_payloads(now)))

        assert coach.sync_activities(now=now) == 10
        assert coach.sync_activities(now=now) == 10

        stored = coach.activity_store.list_by_user("rider")
        assert len(stored) == 10
        assert stored[0].start_date < stored[-1].start_date
        assert coach.current_ftp(now).value == 238


class TestWeeklyRecommendations:
    """Test recommendation generation and storage."""

    def test_invalid_input_before_io(self, make_coach, now):
        """Bad input fails before Strava is contacted."""
        client = FakeClient()
        coach = make_coach(client)

        with pytest.raises(InvalidPlanInputError):
            coach.generate_weekly_recommendations(3, [60, 0, 0, 0, 0, 0, 0], now=now)
        assert client.calls == []

    def test_sessions_mapped_to_days(self, make_coach, now):
        """Recommendations are numbered by day of week, Sunday = 1."""
        coach = make_coach(FakeClient(ride_payloads(now, 3)))

        result = coach.generate_weekly_recommendations(3, [60, 0, 60, 0, 90, 0, 0], now=now)

        assert [r.session_number for r in result.recommendations] == [1, 3, 5]
        assert result.plan.week_start_date == now - timedelta(days=3, hours=12)
        assert result.plan.workout_days == [0, 2, 4]
        assert result.plan.planned_minutes == 210

    def test_recommendations_replaced(self, make_coach, now):
        """Regenerating a week replaces the stored recommendations."""
        coach = make_coach(FakeClient(ride_payloads(now, 3)))

        coach.generate_weekly_recommendations(3, [60, 0, 60, 0, 90, 0, 0], now=now)
        coach.generate_weekly_recommendations(2, [0, 45, 0, 0, 0, 0, 90], now=now)

        stored = coach.get_week_recommendations(now)
        assert [r.session_number for r in stored] == [2, 7]
        assert len(coach.list_upcoming_plans(now)) == 1

    def test_ftp_override(self, make_coach, now):
        """An explicit FTP is used for the metrics."""
        coach = make_coach(FakeClient(ride_payloads(now, 1, watts=200, moving_time=3600)))

        result = coach.generate_weekly_recommendations(1, [60, 0, 0, 0, 0, 0, 0], now=now, ftp=200)

        assert result.metrics.weekly_tss == pytest.approx(110.25)


class TestPlans:
    """Test weekly plan storage."""

    def test_save_normalizes_week(self, make_coach, now):
        """Plans are stored against the Sunday week start."""
        coach = make_coach()

        plan = coach.save_weekly_plan(now, 2, [0, 60, 0, 60, 0, 0, 0])

        assert plan.week_start_date == now - timedelta(days=3, hours=12)
        assert plan.session_count == 2

    def test_save_rejects_mismatch(self, make_coach, now):
        """Plans are validated before saving."""
        with pytest.raises(InvalidPlanInputError):
            make_coach().save_weekly_plan(now, 2, [60, 0, 0, 0, 0, 0, 0])

    def test_save_rejects_eighth_day(self, make_coach, now):
        """An eighth duration is rejected rather than mapped past Saturday."""
        coach = make_coach()

        with pytest.raises(InvalidPlanInputError):
            coach.save_weekly_plan(now, 2, [0, 60, 0, 0, 0, 0, 0, 60])

        assert coach.list_upcoming_plans(now) == []

    def test_upcoming(self, make_coach, now):
        """Upcoming plans start with the current week, in order."""
        coach = make_coach()
        coach.save_weekly_plan(now + timedelta(weeks=2), 1, [60, 0, 0, 0, 0, 0, 0])
        coach.save_weekly_plan(now, 1, [60, 0, 0, 0, 0, 0, 0])
        coach.save_weekly_plan(now - timedelta(weeks=1), 1, [60, 0, 0, 0, 0, 0, 0])

        weeks = [plan.week_start_date for plan in coach.list_upcoming_plans(now)]

        assert len(weeks) == 2
        assert weeks == sorted(weeks)


class TestFTPReport:
    """Test the combined report."""

    def test_without_plan(self, make_coach, now):
        """With no plan, compliance is neutral and the default plan is used."""
        coach = make_coach(FakeClient(ride_payloads(now)))
        coach.sync_activities(now=now)

        report = coach.build_ftp_report(now)

        assert report.ftp_estimate.value == 238
        assert report.ftp_estimate.confidence == 20
        assert report.compliance.compliance_percentage == 0
        assert report.compliance.status == ComplianceStatus.ON_TRACK
        assert len(report.adaptive_plan.sessions) == 4
        assert report.projections.assumptions[2] == "No illness or injury interruptions"
        assert "Estimated FTP: 238W" in report.summary

    def test_with_plan(self, make_coach, now):
        """A stored plan drives compliance and the adaptive plan."""
        coach = make_coach(FakeClient(ride_payloads(now, 3, watts=200, moving_time=3600)))
        coach.sync_activities(now=now)
        coach.save_weekly_plan(now, 3, [60, 0, 60, 0, 60, 0, 0])

        report = coach.build_ftp_report(now)

        assert report.compliance.planned_tss == pytest.approx(210)
        assert len(report.adaptive_plan.sessions) == 3
        assert report.to_dict()["compliance"]["planned_hours"] == pytest.approx(3)

    def test_empty_history(self, make_coach, now):
        """No activities still yields a complete report."""
        report = make_coach().build_ftp_report(now)

        assert report.ftp_estimate.value == 200
        assert report.training_load.chronic_load == 0
        assert report.readiness.status == ReadinessLevel.BALANCED
        assert report.projections.confidence_label == "low"
        assert [s.duration for s in report.adaptive_plan.sessions] == [90] * 4
