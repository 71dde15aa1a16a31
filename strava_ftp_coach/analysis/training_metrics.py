"""Acute/chronic load metrics and training-needs rules for weekly recommendations."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from ..config import config
from .records import ActivityRecord
from .stats import clamp, round_half_up
from .stress import WorkoutCategory, calculate_tss, classify_workout

# Acute:chronic ratio thresholds
OVERREACHING_RATIO = 1.5
UNDERTRAINED_RATIO = 0.8
HIGH_LOAD_RATIO = 1.3
LOW_LOAD_RATIO = 0.9

# Session TSS per hour bounds
EASY_TSS_PER_HOUR = 40
HARD_TSS_PER_HOUR = 120


@dataclass
class IntensityDistribution:
    """Share of training time spent in each category (0-1)."""

    recovery: float = 0.0
    endurance: float = 0.0
    tempo: float = 0.0
    threshold: float = 0.0
    vo2max: float = 0.0
    anaerobic: float = 0.0

    @property
    def low_intensity(self) -> float:
        return self.recovery + self.endurance

    @property
    def high_intensity(self) -> float:
        return self.threshold + self.vo2max + self.anaerobic

    def add(self, category: WorkoutCategory, share: float):
        attribute = category.name.lower()
        if hasattr(self, attribute):
            setattr(self, attribute, getattr(self, attribute) + share)

    def to_dict(self) -> Dict[str, float]:
        return {
            "recovery": self.recovery,
            "endurance": self.endurance,
            "tempo": self.tempo,
            "threshold": self.threshold,
            "vo2max": self.vo2max,
            "anaerobic": self.anaerobic,
        }


@dataclass
class TrainingMetrics:
    weekly_tss: float
    acute_tss: float  # 7-day total
    chronic_tss: float  # 42-day total per week
    training_load: float  # acute:chronic ratio
    intensity_distribution: IntensityDistribution
    total_time: float  # hours, last 7 days
    total_distance: float  # km, last 7 days
    recent_workout_types: List[WorkoutCategory] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "weekly_tss": round_half_up(self.weekly_tss),
            "acute_tss": round_half_up(self.acute_tss),
            "chronic_tss": round_half_up(self.chronic_tss),
            "training_load": round(self.training_load, 2),
            "intensity_distribution": self.intensity_distribution.to_dict(),
            "total_time": round(self.total_time, 1),
            "total_distance": round(self.total_distance, 1),
            "recent_workout_types": [category.value for category in self.recent_workout_types],
        }


@dataclass
class TrainingNeeds:
    primary_focus: WorkoutCategory
    secondary_focus: WorkoutCategory
    reasoning: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "primary_focus": self.primary_focus.value,
            "secondary_focus": self.secondary_focus.value,
            "reasoning": self.reasoning,
        }


def intensity_distribution(activities: List[ActivityRecord], ftp: float) -> IntensityDistribution:
    """Time-weighted category distribution of the given activities."""
    distribution = IntensityDistribution()
    total_time = sum(activity.moving_time for activity in activities)
    if total_time == 0:
        return distribution

    for activity in activities:
        distribution.add(classify_workout(activity, ftp), activity.moving_time / total_time)

    return distribution


def calculate_training_metrics(
    activities: Iterable[ActivityRecord],
    ftp: float,
    now: Optional[datetime] = None,
) -> TrainingMetrics:
    """Summarise the last 7 and 42 days of training.

    Chronic TSS is the 42-day total divided by six, i.e. an average week, so
    the load ratio compares this week with a typical recent week.
    """
    now = now or datetime.now(timezone.utc)
    activities = list(activities)
    last_7_days = [a for a in activities if a.start_date >= now - timedelta(days=7)]
    last_42_days = [
        a for a in activities if a.start_date >= now - timedelta(days=config.CHRONIC_LOAD_DAYS)
    ]

    weekly_tss = sum(calculate_tss(a, ftp) for a in last_7_days)
    chronic_tss = sum(calculate_tss(a, ftp) for a in last_42_days) / (config.CHRONIC_LOAD_DAYS / 7)
    training_load = weekly_tss / chronic_tss if chronic_tss > 0 else 1.0

    recent_types = []
    for activity in last_7_days:
        category = classify_workout(activity, ftp)
        if category not in recent_types:
            recent_types.append(category)

    return TrainingMetrics(
        weekly_tss=weekly_tss,
        acute_tss=weekly_tss,
        chronic_tss=chronic_tss,
        training_load=training_load,
        intensity_distribution=intensity_distribution(last_42_days, ftp),
        total_time=sum(a.moving_time for a in last_7_days) / 3600,
        total_distance=sum(a.distance for a in last_7_days) / 1000,
        recent_workout_types=recent_types,
    )


def determine_training_needs(metrics: TrainingMetrics) -> TrainingNeeds:
    """Pick the week's primary and secondary focus.

    Load ratio is checked first, then polarization (roughly 80% easy and 20%
    hard), then specific gaps. First matching rule wins.
    """
    ratio = metrics.training_load
    weekly_tss = metrics.weekly_tss
    distribution = metrics.intensity_distribution

    if ratio > OVERREACHING_RATIO:
        return TrainingNeeds(
            WorkoutCategory.RECOVERY,
            WorkoutCategory.ENDURANCE,
            "Training load is high. Focus on recovery to prevent overtraining.",
        )

    if ratio < UNDERTRAINED_RATIO and weekly_tss < 300:
        return TrainingNeeds(
            WorkoutCategory.THRESHOLD,
            WorkoutCategory.ENDURANCE,
            "Training load is low. Time to build fitness with structured intervals.",
        )

    if distribution.high_intensity > 0.3:
        return TrainingNeeds(
            WorkoutCategory.ENDURANCE,
            WorkoutCategory.RECOVERY,
            "Too much high-intensity work. Need more aerobic base building.",
        )

    if distribution.high_intensity < 0.1 and weekly_tss > 200:
        return TrainingNeeds(
            WorkoutCategory.THRESHOLD,
            WorkoutCategory.VO2MAX,
            "Good aerobic base. Time to add intensity for performance gains.",
        )

    if distribution.threshold < 0.05:
        return TrainingNeeds(
            WorkoutCategory.THRESHOLD,
            WorkoutCategory.TEMPO,
            "Missing threshold work. Critical for improving FTP and race performance.",
        )

    if distribution.vo2max < 0.05 and weekly_tss > 250:
        return TrainingNeeds(
            WorkoutCategory.VO2MAX,
            WorkoutCategory.THRESHOLD,
            "Need VO2max work to improve top-end fitness and aerobic capacity.",
        )

    return TrainingNeeds(
        WorkoutCategory.THRESHOLD,
        WorkoutCategory.ENDURANCE,
        "Balanced training plan with mix of intensity and volume.",
    )


def calculate_optimal_tss(metrics: TrainingMetrics, duration_minutes: float) -> int:
    """Target TSS for a session of the given length under the current load."""
    hours = duration_minutes / 60
    base_tss = hours * config.PLANNED_TSS_PER_HOUR

    if metrics.training_load > HIGH_LOAD_RATIO:
        base_tss *= 0.7
    elif metrics.training_load < LOW_LOAD_RATIO:
        base_tss *= 1.2

    return round_half_up(clamp(base_tss, hours * EASY_TSS_PER_HOUR, hours * HARD_TSS_PER_HOUR))
