"""Training Stress Score and workout category calculations."""

from enum import Enum
from typing import Optional, Tuple

from .records import ActivityRecord

# Normalized power is approximated from average power.
NORMALIZED_POWER_FACTOR = 1.05

# Assumed maximum heart rate for HR-based stress estimates.
REFERENCE_MAX_HR = 170

# TSS per hour multipliers when neither power nor heart rate exists.
SPORT_INTENSITY_MULTIPLIERS = {
    "Run": 0.7,
    "Ride": 0.6,
    "VirtualRide": 0.6,
}
DEFAULT_INTENSITY_MULTIPLIER = 0.5


class WorkoutCategory(Enum):
    """Training categories shared by activities, plans and the catalog."""

    RECOVERY = "Recovery"
    ENDURANCE = "Endurance"
    TEMPO = "Tempo"
    THRESHOLD = "Threshold"
    VO2MAX = "VO2Max"
    ANAEROBIC = "Anaerobic"
    MIXED = "Mixed"  # catalog-only, never assigned to an activity

    @classmethod
    def parse(cls, value) -> "WorkoutCategory":
        """Accept an enum member, its value or its name (case-insensitive)."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for category in cls:
            if category.value.lower() == text or category.name.lower() == text:
                return category
        raise ValueError(f"Unknown workout category: {value!r}")


# Upper bounds (exclusive) of intensity as a percentage of FTP.
INTENSITY_BANDS: Tuple[Tuple[float, WorkoutCategory], ...] = (
    (55, WorkoutCategory.RECOVERY),
    (75, WorkoutCategory.ENDURANCE),
    (90, WorkoutCategory.TEMPO),
    (105, WorkoutCategory.THRESHOLD),
    (120, WorkoutCategory.VO2MAX),
)

# Name keyword rules, checked in order; first match wins.
NAME_KEYWORDS: Tuple[Tuple[Tuple[str, ...], WorkoutCategory], ...] = (
    (("recovery", "easy"), WorkoutCategory.RECOVERY),
    (("endurance", "long"), WorkoutCategory.ENDURANCE),
    (("tempo",), WorkoutCategory.TEMPO),
    (("threshold", "ftp"), WorkoutCategory.THRESHOLD),
    (("vo2", "intervals"), WorkoutCategory.VO2MAX),
    (("sprint", "anaerobic"), WorkoutCategory.ANAEROBIC),
)


def calculate_tss(activity: ActivityRecord, ftp: float) -> float:
    """Calculate Training Stress Score for a single activity.

    Power based when average power is available:
        TSS = hours * NP * IF / FTP * 100, with NP = avg power * 1.05

    Otherwise estimated from average heart rate against a fixed 170 bpm
    reference, and finally from duration and sport type alone.

    The result is unrounded; callers round at presentation time.

    Args:
        activity: Activity to score
        ftp: Reference threshold power in watts (must be positive)

    Returns:
        Non-negative TSS value
    """
    hours = activity.hours

    if activity.has_power and ftp:
        normalized_power = activity.average_watts * NORMALIZED_POWER_FACTOR
        intensity_factor = normalized_power / ftp
        return hours * normalized_power * intensity_factor / ftp * 100

    if activity.average_heartrate:
        estimated_intensity = activity.average_heartrate / REFERENCE_MAX_HR
        return hours * 100 * estimated_intensity ** 2

    multiplier = SPORT_INTENSITY_MULTIPLIERS.get(activity.type, DEFAULT_INTENSITY_MULTIPLIER)
    return hours * 100 * multiplier


def category_from_intensity(average_watts: float, ftp: float) -> WorkoutCategory:
    """Bucket average power as a percentage of FTP into a category."""
    intensity = average_watts / ftp * 100
    for upper_bound, category in INTENSITY_BANDS:
        if intensity < upper_bound:
            return category
    return WorkoutCategory.ANAEROBIC


def category_from_name(name: Optional[str]) -> Optional[WorkoutCategory]:
    """Match an activity name against the keyword table."""
    lowered = (name or "").lower()
    for keywords, category in NAME_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return None


def classify_workout(activity: ActivityRecord, ftp: float) -> WorkoutCategory:
    """Determine the training category of an activity.

    Uses power relative to FTP when present, then the activity name, and
    defaults to Endurance.
    """
    if activity.has_power and ftp:
        return category_from_intensity(activity.average_watts, ftp)

    return category_from_name(activity.name) or WorkoutCategory.ENDURANCE
