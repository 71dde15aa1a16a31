"""Database module for Strava FTP Coach."""

from .database import Database, close_db, get_db
from .models import Activity, AuthToken, Recommendation, WeeklyPlan, Workout

__all__ = ["Database", "close_db", "get_db", "Activity", "AuthToken", "Recommendation", "WeeklyPlan", "Workout"]
