"""Functional Threshold Power estimation from ride history.

This is a heuristic proxy for a 20-minute power test, not a physiological
measurement: the best average power from rides of 20-60 minutes stands in for
20-minute power.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from ..config import config
from .records import ActivityRecord
from .stats import clamp, round_half_up

logger = logging.getLogger(__name__)

MIN_RIDE_SECONDS = 900  # rides must be longer than 15 minutes
TWENTY_MIN_BAND = (1200, 3600)  # 20-60 minute rides approximate 20-min power
TWENTY_MIN_FACTOR = 0.95
PEAK_POWER_FACTOR = 0.75
FULL_CONFIDENCE_RIDES = 50


@dataclass
class FTPEstimate:
    """Estimated FTP with a 0-100 confidence score."""

    value: int  # watts
    confidence: int  # 0-100
    sample_size: int  # qualifying rides
    source: str = "calculated"  # calculated | manual
    last_updated: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict:
        return {
            "ftp": self.value,
            "accuracy": self.confidence,
            "ride_count": self.sample_size,
            "source": self.source,
            "last_updated": self.last_updated.isoformat(),
        }


def qualifying_rides(
    activities: Iterable[ActivityRecord],
    now: Optional[datetime] = None,
    lookback_days: Optional[int] = None,
) -> List[ActivityRecord]:
    """Rides with power data, longer than 15 minutes, inside the lookback window."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=lookback_days or config.FTP_LOOKBACK_DAYS)

    return [
        activity for activity in activities
        if activity.start_date >= cutoff
        and activity.is_ride
        and activity.moving_time > MIN_RIDE_SECONDS
        and activity.has_power
    ]


def days_since_last_ride(rides: List[ActivityRecord], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days since the most recent ride, None if there are no rides."""
    if not rides:
        return None
    now = now or datetime.now(timezone.utc)
    latest = max(ride.start_date for ride in rides)
    return math.floor((now - latest).total_seconds() / 86400)


def estimate_ftp(
    activities: Iterable[ActivityRecord],
    now: Optional[datetime] = None,
    lookback_days: Optional[int] = None,
) -> FTPEstimate:
    """Estimate FTP from the last 90 days of rides.

    Args:
        activities: Activity history (any order, any sport)
        now: Reference time (defaults to current UTC time)
        lookback_days: Window length, defaults to 90 days

    Returns:
        FTPEstimate; the configured default FTP with confidence 0 when no
        ride qualifies
    """
    now = now or datetime.now(timezone.utc)
    rides = qualifying_rides(activities, now, lookback_days)

    if not rides:
        return FTPEstimate(value=config.DEFAULT_FTP, confidence=0, sample_size=0, last_updated=now)

    low, high = TWENTY_MIN_BAND
    twenty_min_rides = [ride for ride in rides if low <= ride.moving_time <= high]

    if twenty_min_rides:
        best_power = max(ride.average_watts for ride in twenty_min_rides)
        estimated_ftp = round_half_up(best_power * TWENTY_MIN_FACTOR)
    else:
        best_power = max(ride.max_watts or ride.average_watts for ride in rides)
        estimated_ftp = round_half_up(best_power * PEAK_POWER_FACTOR)

    confidence = _confidence(len(rides), days_since_last_ride(rides, now))

    logger.info(f"Estimated FTP {estimated_ftp}W from {len(rides)} rides ({confidence}% confidence)")

    return FTPEstimate(
        value=estimated_ftp,
        confidence=confidence,
        sample_size=len(rides),
        last_updated=now,
    )


def _confidence(ride_count: int, days_since_last: int) -> int:
    confidence = min(100, ride_count / FULL_CONFIDENCE_RIDES * 100)

    # Recent data on a large sample
    if confidence > 70 and days_since_last < 5:
        confidence = min(100, confidence + 10)

    # Stale data
    if days_since_last > 14:
        confidence = max(0, confidence - 15)

    # Small sample
    if ride_count < 10:
        confidence = max(0, confidence - 20)

    return round_half_up(clamp(confidence, 0, 100))
