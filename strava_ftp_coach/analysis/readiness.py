"""Weekly compliance and training readiness assessment."""

from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Dict, Iterable, Optional

from ..config import config
from .ftp import FTPEstimate
from .records import ActivityRecord
from .stats import round_half_up
from .stress import calculate_tss
from .training_load import TrainingLoadSnapshot


class ReadinessLevel(Enum):
    """Readiness verdicts."""

    FRESH = "fresh"
    BALANCED = "balanced"
    FATIGUED = "fatigued"


class ComplianceStatus(Enum):
    """How the week's actual load compares with the plan."""

    UNDER = "under"
    ON_TRACK = "on-track"
    OVER = "over"


# Compliance thresholds (% of planned TSS)
UNDER_THRESHOLD = 80
OVER_THRESHOLD = 110
OVERREACH_THRESHOLD = 120

# Readiness thresholds
FRESH_TSB = 10
FATIGUED_TSB = -10
UNDERTRAINED_TSB = 5
HIGH_ATL = 100
AGGRESSIVE_RAMP = 6


@dataclass
class ComplianceMetrics:
    """Planned versus actual load for a week."""

    planned_tss: float
    actual_tss: float
    planned_hours: float
    actual_hours: float
    compliance_percentage: int
    status: ComplianceStatus

    def to_dict(self) -> Dict:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class ReadinessStatus:
    """Readiness verdict and the volume multiplier for the next cycle."""

    status: ReadinessLevel
    message: str
    recommended_load: float  # 0.85 - 1.15

    def to_dict(self) -> Dict:
        return {
            "status": self.status.value,
            "message": self.message,
            "recommended_load": self.recommended_load,
        }


def calculate_compliance(
    planned_tss: float,
    actual_tss: float,
    planned_hours: float,
    actual_hours: float,
) -> ComplianceMetrics:
    """Compare planned and actual weekly load."""
    # Float error must not move a value across the 80 / 110 boundaries
    compliance_percentage = round(actual_tss * 100 / planned_tss, 6) if planned_tss > 0 else 0

    status = ComplianceStatus.ON_TRACK
    if compliance_percentage < UNDER_THRESHOLD:
        status = ComplianceStatus.UNDER
    if compliance_percentage > OVER_THRESHOLD:
        status = ComplianceStatus.OVER

    return ComplianceMetrics(
        planned_tss=planned_tss,
        actual_tss=actual_tss,
        planned_hours=planned_hours,
        actual_hours=actual_hours,
        compliance_percentage=round_half_up(compliance_percentage),
        status=status,
    )


def weekly_compliance(
    activities: Iterable[ActivityRecord],
    planned_minutes: float,
    ftp: float,
    now: Optional[datetime] = None,
) -> ComplianceMetrics:
    """Compliance of the trailing seven days against a planned weekly volume.

    Planned TSS assumes moderate intensity (70 TSS per planned hour).
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=7)
    week = [activity for activity in activities if activity.start_date >= cutoff]

    actual_tss = sum(calculate_tss(activity, ftp) for activity in week)
    actual_hours = sum(activity.hours for activity in week)
    planned_hours = planned_minutes / 60

    return calculate_compliance(
        planned_tss=planned_hours * config.PLANNED_TSS_PER_HOUR,
        actual_tss=actual_tss,
        planned_hours=planned_hours,
        actual_hours=actual_hours,
    )


def assess_readiness(load: TrainingLoadSnapshot, compliance: ComplianceMetrics) -> ReadinessStatus:
    """Turn load balance and compliance into a readiness verdict.

    Rules are evaluated in order; the first match wins.
    """
    tsb = load.balance
    compliance_pct = compliance.compliance_percentage

    if tsb > FRESH_TSB:
        return ReadinessStatus(
            status=ReadinessLevel.FRESH,
            message="Well-rested and ready to build. Consider increasing volume.",
            recommended_load=1.10,
        )

    if tsb < FATIGUED_TSB or load.acute_load > HIGH_ATL or compliance_pct > OVERREACH_THRESHOLD:
        return ReadinessStatus(
            status=ReadinessLevel.FATIGUED,
            message="Signs of overload detected. Reducing volume for recovery.",
            recommended_load=0.85,
        )

    # Rapid growth is flagged without cutting volume
    if load.ramp_rate > AGGRESSIVE_RAMP:
        return ReadinessStatus(
            status=ReadinessLevel.FATIGUED,
            message="Training load increasing rapidly. Maintaining volume.",
            recommended_load=1.0,
        )

    if compliance_pct < UNDER_THRESHOLD and tsb > UNDERTRAINED_TSB:
        return ReadinessStatus(
            status=ReadinessLevel.FRESH,
            message="Training volume below target. Slightly increasing load.",
            recommended_load=1.05,
        )

    return ReadinessStatus(
        status=ReadinessLevel.BALANCED,
        message="Training load is balanced. Maintaining current volume.",
        recommended_load=1.0,
    )


def generate_summary(
    ftp_estimate: FTPEstimate,
    load: TrainingLoadSnapshot,
    readiness: ReadinessStatus,
) -> str:
    """Short human-readable status summary."""
    tsb = load.balance
    ramp = load.ramp_rate

    parts = [
        f"Estimated FTP: {ftp_estimate.value}W "
        f"({ftp_estimate.confidence}% confidence from {ftp_estimate.sample_size} rides)"
    ]

    if tsb > FRESH_TSB:
        parts.append(f"TSB: +{tsb} (well-rested)")
    elif tsb < FATIGUED_TSB:
        parts.append(f"TSB: {tsb} (fatigued)")
    else:
        parts.append(f"TSB: {'+' if tsb >= 0 else ''}{tsb} (balanced)")

    if ramp > AGGRESSIVE_RAMP:
        parts.append(f"Ramp rate: {ramp}/week (aggressive - watch recovery)")
    elif ramp > 3:
        parts.append(f"Ramp rate: {ramp}/week (safe build)")
    else:
        parts.append(f"Ramp rate: {ramp}/week (maintenance)")

    parts.append(f"\n{readiness.message}")

    return "\n".join(parts)
