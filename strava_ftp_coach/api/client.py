"""Strava API client implementation."""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Dict, Any, Optional
import requests
from requests.exceptions import RequestException

from ..config import config
from ..analysis.records import ActivityRecord

logger = logging.getLogger(__name__)


class StravaAPIError(Exception):
    """Strava answered with an error or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class UnauthorizedError(StravaAPIError):
    """Strava rejected the access token (HTTP 401)."""
    pass


class StravaClient:
    """Client for interacting with Strava API.

    Stateless with respect to credentials: every call takes the access token,
    so token refresh stays with the caller.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        self.base_url = base_url or config.STRAVA_API_BASE_URL
        self.timeout = timeout or config.REQUEST_TIMEOUT

    def _get(self, path: str, access_token: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = requests.get(
                f"{self.base_url}{path}",
                headers={"Authorization": f"Bearer {access_token}"},
                params=params,
                timeout=self.timeout,
            )
        except RequestException as e:
            raise StravaAPIError(f"Strava request failed: {e}") from e

        if response.status_code == 401:
            raise UnauthorizedError("Strava rejected the access token", status_code=401)
        if not response.ok:
            raise StravaAPIError(
                f"Strava API error {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )
        return response.json()

    def get_athlete(self, access_token: str) -> Dict[str, Any]:
        """Get authenticated athlete information."""
        return self._get("/athlete", access_token)

    def get_activities(
        self,
        access_token: str,
        after: Optional[datetime] = None,
        before: Optional[datetime] = None,
        page: int = 1,
        per_page: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Get one page of athlete activities."""
        params = {
            "page": page,
            "per_page": per_page or config.STRAVA_PAGE_SIZE,
        }

        if after:
            params["after"] = int(after.timestamp())
        if before:
            params["before"] = int(before.timestamp())

        return self._get("/athlete/activities", access_token, params)

    def fetch_recent_activities_raw(
        self,
        access_token: str,
        lookback_days: int,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """All activity payloads started within the lookback window."""
        now = now or datetime.now(timezone.utc)
        after = now - timedelta(days=lookback_days)
        per_page = config.STRAVA_PAGE_SIZE

        activities = []
        page = 1
        while True:
            batch = self.get_activities(access_token, after=after, page=page, per_page=per_page)
            activities.extend(batch)
            if len(batch) < per_page:
                break
            page += 1

        logger.info(f"Fetched {len(activities)} activities from the last {lookback_days} days")
        return activities

    def fetch_recent_activities(
        self,
        access_token: str,
        lookback_days: int,
        now: Optional[datetime] = None,
    ) -> List[ActivityRecord]:
        """Activities started within the lookback window as records.

        Raises:
            UnauthorizedError: If the access token is invalid or expired
            StravaAPIError: On any other API failure
        """
        return [
            ActivityRecord.from_strava(data)
            for data in self.fetch_recent_activities_raw(access_token, lookback_days, now)
        ]
