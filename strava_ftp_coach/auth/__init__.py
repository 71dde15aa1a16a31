"""Authentication module for Strava API."""

from .oauth import StravaOAuth, AuthManager, RefreshFailedError

__all__ = ["StravaOAuth", "AuthManager", "RefreshFailedError"]
