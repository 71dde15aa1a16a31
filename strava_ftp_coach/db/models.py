"""Database models for activities, weekly plans, recommendations and the workout catalog."""

from datetime import datetime
import time

from sqlalchemy import Column, Integer, String, Float, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class Activity(Base):
    """Strava activity with its computed stress score."""

    __tablename__ = "activities"
    __table_args__ = (UniqueConstraint("user_id", "strava_id", name="uq_activity_user_strava"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), nullable=False, index=True)
    strava_id = Column(String(50), nullable=False)
    name = Column(String(255))
    type = Column(String(50))  # Ride, VirtualRide, Run, etc.
    start_date = Column(DateTime, nullable=False)  # naive UTC
    distance = Column(Float)  # meters
    moving_time = Column(Integer)  # seconds
    elapsed_time = Column(Integer)  # seconds
    total_elevation_gain = Column(Float)  # meters
    average_heartrate = Column(Float)  # bpm
    max_heartrate = Column(Float)  # bpm
    average_speed = Column(Float)  # m/s
    max_speed = Column(Float)  # m/s
    average_cadence = Column(Float)  # rpm
    average_watts = Column(Float)  # watts
    max_watts = Column(Float)  # watts
    kilojoules = Column(Float)
    suffer_score = Column(Integer)  # Strava's relative effort
    perceived_exertion = Column(Float)
    tss = Column(Float)  # unrounded stress score at sync time
    workout_category = Column(String(20))  # Recovery, Endurance, ...
    raw_data = Column(Text)  # JSON string of the provider payload
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Activity(strava_id={self.strava_id}, name={self.name}, date={self.start_date})>"


class WeeklyPlan(Base):
    """Sessions a user plans to train in a given week."""

    __tablename__ = "weekly_plans"
    __table_args__ = (UniqueConstraint("user_id", "week_start_date", name="uq_plan_user_week"),)

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), nullable=False, index=True)
    week_start_date = Column(DateTime, nullable=False)  # Sunday 00:00 UTC
    session_count = Column(Integer, nullable=False)
    session_durations = Column(Text, nullable=False)  # JSON list of minutes per day, Sunday first
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    recommendations = relationship(
        "Recommendation",
        back_populates="weekly_plan",
        cascade="all, delete-orphan",
        order_by="Recommendation.session_number",
    )

    def __repr__(self):
        return f"<WeeklyPlan(user_id={self.user_id}, week={self.week_start_date}, sessions={self.session_count})>"


class Recommendation(Base):
    """Catalog workout recommended for one session of a weekly plan."""

    __tablename__ = "recommendations"

    id = Column(Integer, primary_key=True)
    weekly_plan_id = Column(Integer, ForeignKey("weekly_plans.id"), nullable=False, index=True)
    session_number = Column(Integer, nullable=False)  # 1-based day of the week
    workout_name = Column(String(255), nullable=False)
    workout_url = Column(String(500))
    workout_type = Column(String(20))
    duration = Column(Integer)  # minutes
    tss = Column(Integer)
    description = Column(Text)
    reason = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    weekly_plan = relationship("WeeklyPlan", back_populates="recommendations")

    def __repr__(self):
        return f"<Recommendation(session={self.session_number}, workout={self.workout_name})>"


class Workout(Base):
    """Structured workout in the catalog."""

    __tablename__ = "workouts"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    url = Column(String(500), unique=True, nullable=False)
    duration = Column(Integer, nullable=False)  # minutes
    type = Column(String(20), nullable=False)
    tss = Column(Integer)
    description = Column(Text)
    intervals = Column(Text)  # JSON
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Workout(name={self.name}, type={self.type}, duration={self.duration})>"


class AuthToken(Base):
    """Store OAuth tokens."""

    __tablename__ = "auth_tokens"

    id = Column(Integer, primary_key=True)
    user_id = Column(String(50), unique=True, nullable=False)
    access_token = Column(Text, nullable=False)
    refresh_token = Column(Text, nullable=False)
    expires_at = Column(Integer, nullable=False)  # Unix timestamp
    athlete_id = Column(String(50))
    athlete_name = Column(String(255))
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def is_expired(self) -> bool:
        """Check if the access token is expired."""
        return time.time() >= self.expires_at

    def __repr__(self):
        return f"<AuthToken(user_id={self.user_id}, athlete_name={self.athlete_name})>"
