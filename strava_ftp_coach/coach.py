"""Weekly coaching workflows: sync, recommendations and the FTP report."""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from .analysis.adaptive_plan import AdaptivePlan, InvalidPlanInputError, generate_adaptive_plan
from .analysis.catalog import WorkoutCatalog
from .analysis.ftp import FTPEstimate, days_since_last_ride, estimate_ftp, qualifying_rides
from .analysis.projection import (
    ProjectionMetrics,
    TrendMetrics,
    ZoneMix,
    calculate_trend_metrics,
    calculate_zone_mix,
    generate_projection_summary,
    generate_projections,
)
from .analysis.readiness import (
    ComplianceMetrics,
    ComplianceStatus,
    ReadinessStatus,
    assess_readiness,
    generate_summary,
    weekly_compliance,
)
from .analysis.records import ActivityRecord
from .analysis.recommendations import Recommendation, RecommendationEngine
from .analysis.stress import calculate_tss, classify_workout
from .analysis.training_load import TrainingLoadSnapshot, calculate_activity_load
from .analysis.training_metrics import (
    TrainingMetrics,
    TrainingNeeds,
    calculate_training_metrics,
    determine_training_needs,
)
from .api import StravaClient, UnauthorizedError
from .auth import AuthManager, RefreshFailedError
from .config import config
from .db import Database, get_db
from .db.repository import ActivityStore, RecommendationStore, WeeklyPlan, WeeklyPlanStore
from .weeks import get_week_start

logger = logging.getLogger(__name__)

T = TypeVar("T")

DAYS_PER_WEEK = 7


def validate_plan_input(session_count: int, session_durations: Sequence[float]) -> List[float]:
    """Check a weekly plan request and return the training-day durations.

    Durations are given per day of the week, Sunday first; rest days are
    entered as zero and dropped.

    Raises:
        InvalidPlanInputError: If there are no sessions, more than seven days,
            or the number of non-zero durations differs from session_count
    """
    if not session_count or session_count < 1:
        raise InvalidPlanInputError("Invalid input: at least one session is required")
    if len(session_durations) > DAYS_PER_WEEK:
        raise InvalidPlanInputError(
            f"Invalid input: expected at most {DAYS_PER_WEEK} daily durations "
            f"but found {len(session_durations)}"
        )

    workout_durations = [duration for duration in session_durations if duration > 0]
    if len(workout_durations) != session_count:
        raise InvalidPlanInputError(
            f"Invalid input: expected {session_count} workout sessions "
            f"but found {len(workout_durations)}"
        )
    return workout_durations


@dataclass
class WeeklyRecommendationResult:
    plan: WeeklyPlan
    recommendations: List[Recommendation]  # session_number = day of week (1 = Sunday)
    metrics: TrainingMetrics
    needs: TrainingNeeds

    def to_dict(self) -> Dict:
        return {
            "plan": self.plan.to_dict(),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "metrics": self.metrics.to_dict(),
            "needs": self.needs.to_dict(),
        }


@dataclass
class FTPReport:
    ftp_estimate: FTPEstimate
    training_load: TrainingLoadSnapshot
    compliance: ComplianceMetrics
    readiness: ReadinessStatus
    adaptive_plan: AdaptivePlan
    summary: str
    trends: TrendMetrics
    zone_mix: ZoneMix
    projections: ProjectionMetrics
    projection_headline: str
    projection_message: str
    activities: List[ActivityRecord] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "ftp_estimate": self.ftp_estimate.to_dict(),
            "training_load": self.training_load.to_dict(),
            "compliance": self.compliance.to_dict(),
            "readiness": self.readiness.to_dict(),
            "adaptive_plan": self.adaptive_plan.to_dict(),
            "summary": self.summary,
            "trends": self.trends.to_dict(),
            "zone_mix": self.zone_mix.to_dict(),
            "projections": self.projections.to_dict(),
            "projection_summary": {
                "headline": self.projection_headline,
                "message": self.projection_message,
            },
        }


class WeeklyCoach:
    """Coordinates Strava, the stores and the analysis for one user."""

    def __init__(
        self,
        user_id: str = "default",
        db: Optional[Database] = None,
        client: Optional[StravaClient] = None,
        auth_manager: Optional[AuthManager] = None,
        catalog: Optional[WorkoutCatalog] = None,
    ):
        self.user_id = user_id
        self.db = db or get_db()
        self.client = client or StravaClient()
        self.auth_manager = auth_manager or AuthManager(user_id, self.db)
        self.catalog = catalog or WorkoutCatalog(self.db)
        self.activity_store = ActivityStore(self.db)
        self.plan_store = WeeklyPlanStore(self.db)
        self.recommendation_store = RecommendationStore(self.db)

    def _with_token(self, call: Callable[[str], T]) -> T:
        """Run a Strava call, refreshing the token once if Strava answers 401.

        Raises:
            RefreshFailedError: If the account is not connected or cannot be refreshed
            UnauthorizedError: If Strava still rejects the refreshed token
        """
        token = self.auth_manager.get_valid_token()
        if not token:
            raise RefreshFailedError("Strava account not connected")

        try:
            return call(token)
        except UnauthorizedError:
            logger.warning("Strava returned 401, attempting token refresh")
            token = self.auth_manager.refresh()
            return call(token)

    def fetch_activities(
        self,
        lookback_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[ActivityRecord]:
        """Recent activities straight from Strava."""
        days = lookback_days or config.SYNC_LOOKBACK_DAYS
        return self._with_token(lambda token: self.client.fetch_recent_activities(token, days, now))

    def current_ftp(self, now: Optional[datetime] = None) -> FTPEstimate:
        """FTP estimate from stored activities."""
        now = now or datetime.now(timezone.utc)
        since = now - timedelta(days=config.FTP_LOOKBACK_DAYS)
        return estimate_ftp(self.activity_store.list_by_user(self.user_id, since), now)

    def sync_activities(self, lookback_days: Optional[int] = None, now: Optional[datetime] = None) -> int:
        """Fetch recent activities and store them with stress score and category.

        Returns:
            Number of activities synced
        """
        now = now or datetime.now(timezone.utc)
        days = lookback_days or config.SYNC_LOOKBACK_DAYS
        payloads = self._with_token(
            lambda token: self.client.fetch_recent_activities_raw(token, days, now)
        )
        fetched = [(ActivityRecord.from_strava(data), data) for data in payloads]

        # Score against FTP estimated from everything known, fresh data included
        since = now - timedelta(days=config.FTP_LOOKBACK_DAYS)
        known = {a.activity_id: a for a in self.activity_store.list_by_user(self.user_id, since)}
        known.update((record.activity_id, record) for record, _ in fetched)
        ftp = estimate_ftp(known.values(), now).value

        created = 0
        for record, data in fetched:
            if self.activity_store.upsert(
                self.user_id,
                record,
                tss=calculate_tss(record, ftp),
                category=classify_workout(record, ftp),
                raw_data=data,
            ):
                created += 1

        logger.info(f"Synced {len(fetched)} activities ({created} new) using FTP {ftp}W")
        return len(fetched)

    def save_weekly_plan(
        self,
        week_start: datetime,
        session_count: int,
        session_durations: Sequence[int],
    ) -> WeeklyPlan:
        validate_plan_input(session_count, session_durations)
        return self.plan_store.upsert(
            self.user_id, get_week_start(week_start), session_count, list(session_durations)
        )

    def list_upcoming_plans(self, now: Optional[datetime] = None) -> List[WeeklyPlan]:
        return self.plan_store.list_upcoming(self.user_id, get_week_start(now), limit=config.UPCOMING_WEEKS)

    def generate_weekly_recommendations(
        self,
        session_count: int,
        session_durations: Sequence[int],
        week_start: Optional[datetime] = None,
        now: Optional[datetime] = None,
        ftp: Optional[float] = None,
    ) -> WeeklyRecommendationResult:
        """Recommend catalog workouts for a week and save them with the plan.

        Args:
            session_count: Number of training days
            session_durations: Minutes per day of the week, Sunday first; 0 = rest
            week_start: Any time inside the target week (defaults to the current week)
            now: Reference time (defaults to current UTC time)
            ftp: FTP override; estimated from stored rides when omitted

        Raises:
            InvalidPlanInputError: Before any Strava or database access
            RefreshFailedError: If Strava access cannot be restored
        """
        workout_durations = validate_plan_input(session_count, session_durations)
        now = now or datetime.now(timezone.utc)

        activities = self.fetch_activities(config.SYNC_LOOKBACK_DAYS, now)
        if ftp is None:
            ftp = self.current_ftp(now).value

        metrics = calculate_training_metrics(activities, ftp, now)
        engine = RecommendationEngine(metrics, session_count, workout_durations, self.catalog)
        recommendations = engine.generate_recommendations()

        plan = self.plan_store.upsert(
            self.user_id, get_week_start(week_start or now), session_count, list(session_durations)
        )

        # Sessions are stored against their day of the week
        by_day = [
            replace(recommendation, session_number=day + 1)
            for day, recommendation in zip(plan.workout_days, recommendations)
        ]
        self.recommendation_store.replace_all(plan.id, by_day)

        logger.info(f"Saved {len(by_day)} recommendations for week of {plan.week_start_date:%Y-%m-%d}")

        return WeeklyRecommendationResult(
            plan=plan,
            recommendations=by_day,
            metrics=metrics,
            needs=determine_training_needs(metrics),
        )

    def get_week_recommendations(self, week_start: Optional[datetime] = None) -> List[Recommendation]:
        plan = self.plan_store.find(self.user_id, get_week_start(week_start))
        if plan is None:
            return []
        return self.recommendation_store.list_for_plan(plan.id)

    def build_ftp_report(self, now: Optional[datetime] = None) -> FTPReport:
        """FTP, load, compliance, readiness, next-week plan and projections from stored activities."""
        now = now or datetime.now(timezone.utc)
        activities = self.activity_store.list_by_user(
            self.user_id, now - timedelta(days=config.FTP_LOOKBACK_DAYS)
        )

        ftp_estimate = estimate_ftp(activities, now)
        ftp = ftp_estimate.value
        load = calculate_activity_load(activities, ftp, now)

        plan = self.plan_store.find_latest(self.user_id, now)
        if plan is not None:
            compliance = weekly_compliance(activities, plan.planned_minutes, ftp, now)
            readiness = assess_readiness(load, compliance)
            adaptive_plan = generate_adaptive_plan(
                plan.session_count, plan.planned_minutes, readiness, compliance.planned_tss
            )
        else:
            week = [a for a in activities if a.start_date >= now - timedelta(days=7)]
            compliance = ComplianceMetrics(
                planned_tss=0,
                actual_tss=sum(calculate_tss(a, ftp) for a in week),
                planned_hours=0,
                actual_hours=sum(a.hours for a in week),
                compliance_percentage=0,
                status=ComplianceStatus.ON_TRACK,
            )
            readiness = assess_readiness(load, compliance)
            adaptive_plan = generate_adaptive_plan(
                config.DEFAULT_PLAN_SESSIONS,
                config.DEFAULT_PLAN_MINUTES,
                readiness,
                config.DEFAULT_PLAN_TSS,
            )

        trends = calculate_trend_metrics(activities, ftp, load.chronic_load, now)
        zone_mix = calculate_zone_mix(activities, ftp, now)

        rides = qualifying_rides(activities, now)
        days_since = days_since_last_ride(rides, now)
        if days_since is None:
            days_since = config.FTP_LOOKBACK_DAYS

        projections = generate_projections(
            current_ftp=ftp,
            current_ctl=load.chronic_load,
            current_tsb=load.balance,
            trends=trends,
            zone_mix=zone_mix,
            ride_count=len(rides),
            days_since_last_ride=days_since,
        )
        headline, message = generate_projection_summary(projections, ftp, trends)

        return FTPReport(
            ftp_estimate=ftp_estimate,
            training_load=load,
            compliance=compliance,
            readiness=readiness,
            adaptive_plan=adaptive_plan,
            summary=generate_summary(ftp_estimate, load, readiness),
            trends=trends,
            zone_mix=zone_mix,
            projections=projections,
            projection_headline=headline,
            projection_message=message,
            activities=activities,
        )
