"""Adaptive weekly session plan driven by readiness."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from .readiness import ReadinessLevel, ReadinessStatus
from .stats import round_half_up
from .stress import WorkoutCategory

logger = logging.getLogger(__name__)


class InvalidPlanInputError(ValueError):
    """Session count or duration list cannot form a plan."""
    pass


@dataclass(frozen=True)
class SessionTemplate:
    name: str
    zone: str
    intensity: float  # intensity factor used for the TSS estimate
    category: WorkoutCategory


SESSION_TEMPLATES: Dict[ReadinessLevel, Tuple[SessionTemplate, ...]] = {
    # Recovery / endurance weighted
    ReadinessLevel.FATIGUED: (
        SessionTemplate("Recovery Spin", "Z1", 0.4, WorkoutCategory.RECOVERY),
        SessionTemplate("Endurance Ride", "Z2", 0.6, WorkoutCategory.ENDURANCE),
        SessionTemplate("Easy Tempo", "Z2-Z3", 0.7, WorkoutCategory.TEMPO),
        SessionTemplate("Endurance Ride", "Z2", 0.6, WorkoutCategory.ENDURANCE),
    ),
    # Build focused
    ReadinessLevel.FRESH: (
        SessionTemplate("Endurance Ride", "Z2", 0.65, WorkoutCategory.ENDURANCE),
        SessionTemplate("Tempo Session", "Z3", 0.85, WorkoutCategory.TEMPO),
        SessionTemplate("Threshold Intervals", "Z4", 1.0, WorkoutCategory.THRESHOLD),
        SessionTemplate("VO2Max Intervals", "Z5", 1.2, WorkoutCategory.VO2MAX),
    ),
    ReadinessLevel.BALANCED: (
        SessionTemplate("Endurance Ride", "Z2", 0.65, WorkoutCategory.ENDURANCE),
        SessionTemplate("Tempo Session", "Z3", 0.85, WorkoutCategory.TEMPO),
        SessionTemplate("Threshold Work", "Z4", 1.0, WorkoutCategory.THRESHOLD),
        SessionTemplate("Recovery Ride", "Z1-Z2", 0.5, WorkoutCategory.RECOVERY),
    ),
}


@dataclass
class PlannedSession:
    name: str
    duration: int  # minutes
    zone: str
    category: WorkoutCategory
    estimated_tss: int

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "duration": self.duration,
            "zone": self.zone,
            "category": self.category.value,
            "estimated_tss": self.estimated_tss,
        }


@dataclass
class AdaptivePlan:
    adjusted_minutes: int
    adjusted_tss: int  # informational; sessions are built from minutes
    sessions: List[PlannedSession] = field(default_factory=list)

    @property
    def total_duration(self) -> int:
        return self.adjusted_minutes

    @property
    def total_tss(self) -> int:
        return sum(session.estimated_tss for session in self.sessions)

    def to_dict(self) -> Dict:
        return {
            "sessions": [session.to_dict() for session in self.sessions],
            "total_duration": self.total_duration,
            "total_tss": self.total_tss,
            "adjusted_tss": self.adjusted_tss,
        }


def generate_adaptive_plan(
    session_count: int,
    total_minutes: float,
    readiness: ReadinessStatus,
    target_tss: float,
) -> AdaptivePlan:
    """Generate next week's sessions scaled by the readiness multiplier.

    Volume is split evenly across sessions. Session types come from the
    template for the readiness status; when more sessions are requested than
    the template holds, the template repeats from the start.

    Args:
        session_count: Number of sessions to prescribe (>= 1)
        total_minutes: Weekly time budget before adjustment
        readiness: Readiness verdict supplying status and multiplier
        target_tss: Weekly TSS budget before adjustment

    Returns:
        AdaptivePlan with one PlannedSession per requested session
    """
    if session_count < 1:
        raise InvalidPlanInputError("At least one session is required")

    multiplier = readiness.recommended_load
    adjusted_minutes = round_half_up(total_minutes * multiplier)
    adjusted_tss = round_half_up(target_tss * multiplier)

    template = SESSION_TEMPLATES[readiness.status]
    if session_count > len(template):
        logger.info(
            f"{session_count} sessions requested, repeating the {readiness.status.value} "
            f"template of {len(template)}"
        )

    duration = round_half_up(adjusted_minutes / session_count)
    sessions = []
    for i in range(session_count):
        entry = template[i % len(template)]
        sessions.append(PlannedSession(
            name=entry.name,
            duration=duration,
            zone=entry.zone,
            category=entry.category,
            estimated_tss=round_half_up(duration / 60 * entry.intensity * 100),
        ))

    return AdaptivePlan(adjusted_minutes=adjusted_minutes, adjusted_tss=adjusted_tss, sessions=sessions)
