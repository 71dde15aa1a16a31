"""Strava API client."""

from .client import StravaClient, StravaAPIError, UnauthorizedError

__all__ = ["StravaClient", "StravaAPIError", "UnauthorizedError"]
