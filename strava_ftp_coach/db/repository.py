"""Stores for activities, weekly plans and recommendations."""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

from ..analysis.catalog import CatalogWorkout
from ..analysis.records import ActivityRecord, parse_timestamp
from ..analysis.recommendations import Recommendation
from ..analysis.stress import WorkoutCategory
from .database import Database
from .models import Activity, Recommendation as RecommendationRow, WeeklyPlan as WeeklyPlanRow

logger = logging.getLogger(__name__)


def _naive_utc(value: datetime) -> datetime:
    """Columns store naive UTC datetimes."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass
class WeeklyPlan:
    """A user's planned sessions for one Sunday-based week.

    ``session_durations`` holds minutes per day, Sunday first; zero marks a
    rest day.
    """

    id: Optional[int]
    user_id: str
    week_start_date: datetime
    session_count: int
    session_durations: List[int] = field(default_factory=list)

    @property
    def planned_minutes(self) -> int:
        return sum(self.session_durations)

    @property
    def planned_hours(self) -> float:
        return self.planned_minutes / 60

    @property
    def workout_durations(self) -> List[int]:
        """Durations of training days only."""
        return [duration for duration in self.session_durations if duration > 0]

    @property
    def workout_days(self) -> List[int]:
        """Zero-based day indices of training days."""
        return [i for i, duration in enumerate(self.session_durations) if duration > 0]

    @classmethod
    def from_row(cls, row: WeeklyPlanRow) -> "WeeklyPlan":
        return cls(
            id=row.id,
            user_id=row.user_id,
            week_start_date=parse_timestamp(row.week_start_date),
            session_count=row.session_count,
            session_durations=json.loads(row.session_durations or "[]"),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "week_start_date": self.week_start_date.isoformat(),
            "session_count": self.session_count,
            "session_durations": self.session_durations,
        }


class ActivityStore:
    """Activities synced from Strava, keyed by (user, Strava id)."""

    def __init__(self, db: Database):
        self.db = db

    def upsert(
        self,
        user_id: str,
        activity: ActivityRecord,
        tss: Optional[float] = None,
        category: Optional[WorkoutCategory] = None,
        raw_data: Optional[dict] = None,
    ) -> bool:
        """Insert or update an activity.

        Returns:
            True if the activity was new
        """
        with self.db.get_session() as session:
            row = session.query(Activity).filter_by(
                user_id=user_id, strava_id=activity.activity_id
            ).first()

            created = row is None
            if created:
                row = Activity(user_id=user_id, strava_id=activity.activity_id)
                session.add(row)

            row.name = activity.name
            row.type = activity.type
            row.start_date = _naive_utc(activity.start_date)
            row.distance = activity.distance
            row.moving_time = activity.moving_time
            row.elapsed_time = activity.elapsed_time
            row.total_elevation_gain = activity.total_elevation_gain
            row.average_heartrate = activity.average_heartrate
            row.max_heartrate = activity.max_heartrate
            row.average_speed = activity.average_speed
            row.max_speed = activity.max_speed
            row.average_cadence = activity.average_cadence
            row.average_watts = activity.average_watts
            row.max_watts = activity.max_watts
            row.kilojoules = activity.kilojoules
            row.suffer_score = activity.suffer_score
            row.perceived_exertion = activity.perceived_exertion
            row.tss = tss
            row.workout_category = category.value if category else None
            if raw_data is not None:
                row.raw_data = json.dumps(raw_data)

        return created

    def last_synced(self, user_id: str) -> Optional[datetime]:
        """When the user's most recently stored activity was saved, None if never."""
        with self.db.get_session() as session:
            row = (
                session.query(Activity)
                .filter(Activity.user_id == user_id)
                .order_by(Activity.created_at.desc())
                .first()
            )
            return parse_timestamp(row.created_at) if row else None

    def list_by_user(self, user_id: str, since: Optional[datetime] = None) -> List[ActivityRecord]:
        """Activities for a user, oldest first."""
        with self.db.get_session() as session:
            query = session.query(Activity).filter(Activity.user_id == user_id)
            if since is not None:
                query = query.filter(Activity.start_date >= _naive_utc(since))

            return [
                ActivityRecord(
                    activity_id=row.strava_id,
                    name=row.name or "",
                    type=row.type or "",
                    start_date=parse_timestamp(row.start_date),
                    moving_time=row.moving_time or 0,
                    elapsed_time=row.elapsed_time or 0,
                    distance=row.distance or 0.0,
                    total_elevation_gain=row.total_elevation_gain or 0.0,
                    average_watts=row.average_watts,
                    max_watts=row.max_watts,
                    average_heartrate=row.average_heartrate,
                    max_heartrate=row.max_heartrate,
                    perceived_exertion=row.perceived_exertion,
                    average_speed=row.average_speed,
                    max_speed=row.max_speed,
                    average_cadence=row.average_cadence,
                    kilojoules=row.kilojoules,
                    suffer_score=row.suffer_score,
                )
                for row in query.order_by(Activity.start_date.asc()).all()
            ]


class WeeklyPlanStore:
    """Weekly plans, one per (user, week start)."""

    def __init__(self, db: Database):
        self.db = db

    def upsert(
        self,
        user_id: str,
        week_start: datetime,
        session_count: int,
        session_durations: List[int],
    ) -> WeeklyPlan:
        with self.db.get_session() as session:
            row = session.query(WeeklyPlanRow).filter_by(
                user_id=user_id, week_start_date=_naive_utc(week_start)
            ).first()

            if row is None:
                row = WeeklyPlanRow(user_id=user_id, week_start_date=_naive_utc(week_start))
                session.add(row)

            row.session_count = session_count
            row.session_durations = json.dumps(list(session_durations))
            session.flush()

            return WeeklyPlan.from_row(row)

    def find(self, user_id: str, week_start: datetime) -> Optional[WeeklyPlan]:
        with self.db.get_session() as session:
            row = session.query(WeeklyPlanRow).filter_by(
                user_id=user_id, week_start_date=_naive_utc(week_start)
            ).first()
            return WeeklyPlan.from_row(row) if row else None

    def find_latest(self, user_id: str, on_or_before: datetime) -> Optional[WeeklyPlan]:
        """Most recent plan whose week started on or before the given time."""
        with self.db.get_session() as session:
            row = (
                session.query(WeeklyPlanRow)
                .filter(
                    WeeklyPlanRow.user_id == user_id,
                    WeeklyPlanRow.week_start_date <= _naive_utc(on_or_before),
                )
                .order_by(WeeklyPlanRow.week_start_date.desc())
                .first()
            )
            return WeeklyPlan.from_row(row) if row else None

    def list_upcoming(self, user_id: str, from_week: datetime, limit: int = 4) -> List[WeeklyPlan]:
        with self.db.get_session() as session:
            rows = (
                session.query(WeeklyPlanRow)
                .filter(
                    WeeklyPlanRow.user_id == user_id,
                    WeeklyPlanRow.week_start_date >= _naive_utc(from_week),
                )
                .order_by(WeeklyPlanRow.week_start_date.asc())
                .limit(limit)
                .all()
            )
            return [WeeklyPlan.from_row(row) for row in rows]


class RecommendationStore:
    """Saved recommendations for a weekly plan."""

    def __init__(self, db: Database):
        self.db = db

    def replace_all(self, plan_id: int, recommendations: List[Recommendation]) -> int:
        """Delete the plan's recommendations and save the given ones."""
        with self.db.get_session() as session:
            deleted = session.query(RecommendationRow).filter_by(weekly_plan_id=plan_id).delete()
            for recommendation in recommendations:
                workout = recommendation.workout
                session.add(RecommendationRow(
                    weekly_plan_id=plan_id,
                    session_number=recommendation.session_number,
                    workout_name=workout.name,
                    workout_url=workout.url,
                    workout_type=workout.category.value,
                    duration=workout.duration,
                    tss=workout.tss,
                    description=workout.description,
                    reason=recommendation.reason,
                ))

        logger.debug(f"Plan {plan_id}: replaced {deleted} recommendations with {len(recommendations)}")
        return len(recommendations)

    def list_for_plan(self, plan_id: int) -> List[Recommendation]:
        with self.db.get_session() as session:
            rows = (
                session.query(RecommendationRow)
                .filter_by(weekly_plan_id=plan_id)
                .order_by(RecommendationRow.session_number)
                .all()
            )
            return [
                Recommendation(
                    session_number=row.session_number,
                    workout=CatalogWorkout(
                        name=row.workout_name,
                        url=row.workout_url or "",
                        duration=row.duration or 0,
                        category=WorkoutCategory.parse(row.workout_type),
                        tss=row.tss or 0,
                        description=row.description or "",
                    ),
                    reason=row.reason or "",
                )
                for row in rows
            ]
