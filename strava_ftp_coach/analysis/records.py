"""Activity records as read from the activity provider."""

from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, Optional


def parse_timestamp(value: Any) -> datetime:
    """Parse a Strava ISO timestamp (or datetime) into an aware UTC datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class ActivityRecord:
    """One completed exercise session. Never mutated once built."""

    activity_id: str
    name: str
    type: str  # Ride, VirtualRide, Run, ...
    start_date: datetime  # aware UTC
    moving_time: int = 0  # seconds
    elapsed_time: int = 0  # seconds
    distance: float = 0.0  # meters
    total_elevation_gain: float = 0.0  # meters
    average_watts: Optional[float] = None
    max_watts: Optional[float] = None
    average_heartrate: Optional[float] = None
    max_heartrate: Optional[float] = None
    perceived_exertion: Optional[float] = None
    average_speed: Optional[float] = None  # m/s
    max_speed: Optional[float] = None  # m/s
    average_cadence: Optional[float] = None
    kilojoules: Optional[float] = None
    suffer_score: Optional[int] = None

    @classmethod
    def from_strava(cls, data: Dict[str, Any]) -> "ActivityRecord":
        """Build a record from a Strava summary activity payload."""
        return cls(
            activity_id=str(data["id"]),
            name=data.get("name") or "",
            type=data.get("type") or data.get("sport_type") or "",
            start_date=parse_timestamp(data["start_date"]),
            moving_time=int(data.get("moving_time") or 0),
            elapsed_time=int(data.get("elapsed_time") or 0),
            distance=float(data.get("distance") or 0.0),
            total_elevation_gain=float(data.get("total_elevation_gain") or 0.0),
            average_watts=data.get("average_watts"),
            max_watts=data.get("max_watts"),
            average_heartrate=data.get("average_heartrate"),
            max_heartrate=data.get("max_heartrate"),
            perceived_exertion=data.get("perceived_exertion"),
            average_speed=data.get("average_speed"),
            max_speed=data.get("max_speed"),
            average_cadence=data.get("average_cadence"),
            kilojoules=data.get("kilojoules"),
            suffer_score=data.get("suffer_score"),
        )

    @property
    def hours(self) -> float:
        return self.moving_time / 3600

    @property
    def is_ride(self) -> bool:
        return "ride" in self.type.lower()

    @property
    def has_power(self) -> bool:
        return bool(self.average_watts) and self.average_watts > 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["start_date"] = self.start_date.isoformat()
        return data
