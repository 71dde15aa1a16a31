"""FTP and CTL trend analysis and 4-6 week projections.

Projections combine three signals, each clamped to a plausible monthly range:
the recent FTP trend, heart-rate efficiency (HR per watt) and the CTL ramp.
A zone-mix modifier and a fatigue penalty then scale the combined rate, and
the total projected change is capped at +/-10%.
"""

import logging
from dataclasses import dataclass, asdict, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..config import config
from .ftp import estimate_ftp
from .records import ActivityRecord
from .stats import clamp, pct_change, round_half_up, std_dev
from .stress import WorkoutCategory, classify_workout
from .training_load import build_tss_history, rolling_average_tss

logger = logging.getLogger(__name__)

# CTL ramp bounds used for projection (CTL/week)
SAFE_RAMP_MIN = 1.0
SAFE_RAMP_MAX = 6.0

# Monthly FTP change bounds (%)
FTP_MONTHLY_CHANGE_MIN = -3
FTP_MONTHLY_CHANGE_MAX = 5
HRE_BOOST_MIN = -2
HRE_BOOST_MAX = 3
LOAD_BOOST_MIN = -1.5
LOAD_BOOST_MAX = 1.5
PROJECTED_MONTHLY_MIN = -3
PROJECTED_MONTHLY_MAX = 6
FTP_MAX_TOTAL_CHANGE = 10  # % over the projection horizon

# Zone mix modifiers applied to the baseline trend
RECOVERY_HEAVY_SHARE = 0.7
RECOVERY_HEAVY_MODIFIER = -0.25
PROGRESSION_HEAVY_SHARE = 0.5
PROGRESSION_HEAVY_MODIFIER = 0.10

# Fatigue penalties by TSB
SEVERE_FATIGUE_TSB = -15
MODERATE_FATIGUE_TSB = -10

VOLATILITY_WEEKS = 8
HIGH_VOLATILITY = 0.3
LOW_SAMPLE_RIDES = 20

RECOVERY_ZONES = (WorkoutCategory.RECOVERY, WorkoutCategory.ENDURANCE)
PROGRESSION_ZONES = (
    WorkoutCategory.TEMPO,
    WorkoutCategory.THRESHOLD,
    WorkoutCategory.VO2MAX,
    WorkoutCategory.ANAEROBIC,
)


@dataclass
class TrendMetrics:
    ftp_30d_change_pct: float
    hre_30d_change_pct: float  # positive = improving efficiency
    ctl_ramp_per_week: float
    volatility_factor: float
    weekly_tss_mean: float
    weekly_tss_std_dev: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class ZoneMix:
    """Share of recent training time in recovery and progression zones (0-1)."""

    recovery: float
    progression: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class ProjectionMetrics:
    ftp_in_4_weeks: int
    ftp_in_6_weeks: int
    ctl_in_4_weeks: int
    ctl_in_6_weeks: int
    confidence: int  # 0-100
    confidence_label: str  # low | medium | high
    projected_monthly_ftp_change_pct: float
    volatility: float
    assumptions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


def _efficiency_ratio(activities: Sequence[ActivityRecord]) -> float:
    """Average heart rate per watt over activities carrying both signals."""
    paired = [a for a in activities if a.has_power and a.average_heartrate]
    if not paired:
        return 0.0
    avg_hr = np.mean([a.average_heartrate for a in paired])
    avg_power = np.mean([a.average_watts for a in paired])
    return float(avg_hr / avg_power) if avg_power > 0 else 0.0


def weekly_tss_totals(
    activities: Iterable[ActivityRecord],
    ftp: float,
    now: Optional[datetime] = None,
    weeks: int = VOLATILITY_WEEKS,
) -> List[float]:
    """TSS totals for consecutive 7-day buckets ending at now, oldest first."""
    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=weeks * 7)

    history = [(date, tss) for date, tss in build_tss_history(activities, ftp) if start <= date < now]
    if not history:
        return [0.0] * weeks

    frame = pd.DataFrame(history, columns=["date", "tss"])
    frame["week"] = ((frame["date"] - start) // pd.Timedelta(days=7)).astype(int)
    totals = frame.groupby("week")["tss"].sum().reindex(range(weeks), fill_value=0.0)
    return [float(value) for value in totals]


def calculate_trend_metrics(
    activities: Iterable[ActivityRecord],
    current_ftp: float,
    current_ctl: float,
    now: Optional[datetime] = None,
) -> TrendMetrics:
    """Compute 30-day FTP / efficiency trends, CTL ramp and weekly volatility.

    Args:
        activities: Activity history covering at least the last 60 days
        current_ftp: Current FTP estimate in watts
        current_ctl: Current chronic training load
        now: Reference time (defaults to current UTC time)
    """
    now = now or datetime.now(timezone.utc)
    activities = list(activities)
    thirty_days_ago = now - timedelta(days=30)
    sixty_days_ago = now - timedelta(days=60)

    recent = [a for a in activities if a.start_date >= thirty_days_ago]
    previous = [a for a in activities if sixty_days_ago <= a.start_date < thirty_days_ago]

    # FTP 30 days ago, re-estimated from the older half only
    previous_estimate = estimate_ftp(previous, now=now)
    ftp_30d_ago = previous_estimate.value if previous_estimate.sample_size > 0 else current_ftp
    ftp_30d_change_pct = pct_change(current_ftp, ftp_30d_ago)

    # Lower HR per watt is better, so the change is inverted
    hre_recent = _efficiency_ratio(recent)
    hre_previous = _efficiency_ratio(previous)
    hre_30d_change_pct = -pct_change(hre_recent, hre_previous) if hre_previous > 0 and hre_recent > 0 else 0.0

    ramp_cutoff = now - timedelta(days=14)
    ctl_14d_ago = rolling_average_tss(
        build_tss_history([a for a in activities if a.start_date <= ramp_cutoff], current_ftp),
        config.CHRONIC_LOAD_DAYS,
        now,
    )
    ctl_ramp_per_week = (current_ctl - ctl_14d_ago) / 2

    weekly = weekly_tss_totals(activities, current_ftp, now)
    weekly_mean = float(np.mean(weekly)) if weekly else 0.0
    weekly_std = std_dev(weekly)
    volatility = weekly_std / weekly_mean if weekly_mean > 0 else 0.0

    return TrendMetrics(
        ftp_30d_change_pct=ftp_30d_change_pct,
        hre_30d_change_pct=hre_30d_change_pct,
        ctl_ramp_per_week=ctl_ramp_per_week,
        volatility_factor=volatility,
        weekly_tss_mean=weekly_mean,
        weekly_tss_std_dev=weekly_std,
    )


def calculate_zone_mix(
    activities: Iterable[ActivityRecord],
    ftp: float,
    now: Optional[datetime] = None,
    days: Optional[int] = None,
) -> ZoneMix:
    """Time-weighted share of recent training in recovery and progression zones.

    Recovery covers Recovery and Endurance; progression covers Tempo and above.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=days or config.ZONE_MIX_DAYS)
    recent = [a for a in activities if a.start_date >= cutoff and a.moving_time > 0]

    total_time = sum(a.moving_time for a in recent)
    if total_time == 0:
        return ZoneMix(recovery=0.0, progression=0.0)

    recovery_time = 0
    progression_time = 0
    for activity in recent:
        category = classify_workout(activity, ftp)
        if category in RECOVERY_ZONES:
            recovery_time += activity.moving_time
        elif category in PROGRESSION_ZONES:
            progression_time += activity.moving_time

    return ZoneMix(recovery=recovery_time / total_time, progression=progression_time / total_time)


def project_ctl(current_ctl: float, ramp_rate: float, weeks: int) -> int:
    """Project CTL forward assuming a safe ramp rate."""
    clamped_ramp = clamp(ramp_rate, SAFE_RAMP_MIN, SAFE_RAMP_MAX)
    return round_half_up(current_ctl + clamped_ramp * weeks)


def project_ftp(
    current_ftp: float,
    trends: TrendMetrics,
    zone_mix: ZoneMix,
    tsb: float,
    weeks: int,
) -> Tuple[int, float]:
    """Project FTP a number of weeks out.

    Returns:
        (projected FTP in watts, projected monthly change in %)
    """
    baseline = clamp(trends.ftp_30d_change_pct, FTP_MONTHLY_CHANGE_MIN, FTP_MONTHLY_CHANGE_MAX)
    hre_boost = clamp(trends.hre_30d_change_pct * 0.5, HRE_BOOST_MIN, HRE_BOOST_MAX)
    load_boost = clamp((trends.ctl_ramp_per_week - 3) * 0.25, LOAD_BOOST_MIN, LOAD_BOOST_MAX)

    zone_modifier = 0.0
    if zone_mix.recovery >= RECOVERY_HEAVY_SHARE:
        zone_modifier = RECOVERY_HEAVY_MODIFIER
    elif zone_mix.progression >= PROGRESSION_HEAVY_SHARE:
        zone_modifier = PROGRESSION_HEAVY_MODIFIER

    tsb_penalty = 0.0
    if tsb < SEVERE_FATIGUE_TSB:
        tsb_penalty = -0.15
    elif tsb < MODERATE_FATIGUE_TSB:
        tsb_penalty = -0.10

    monthly_pct = baseline + hre_boost + load_boost + zone_modifier * baseline
    monthly_pct = clamp(monthly_pct, PROJECTED_MONTHLY_MIN, PROJECTED_MONTHLY_MAX)
    monthly_pct *= 1 + tsb_penalty

    # 4 weeks ~ 1 month
    total_pct = clamp(monthly_pct * weeks / 4, -FTP_MAX_TOTAL_CHANGE, FTP_MAX_TOTAL_CHANGE)

    return round_half_up(current_ftp * (1 + total_pct / 100)), monthly_pct


def compute_projection_confidence(
    ride_count: int,
    days_since_last_ride: float,
    volatility: float,
) -> Tuple[int, str]:
    """Blend data volume, recency and volatility into a 0-100 confidence."""
    volume_score = clamp(ride_count / 60 * 100, 20, 100)
    recency_score = clamp(100 - days_since_last_ride * 2, 20, 100)
    volatility_score = clamp(100 - volatility * 100, 20, 100)

    confidence = round_half_up(0.4 * volume_score + 0.3 * recency_score + 0.3 * volatility_score)

    label = "medium"
    if confidence < 60:
        label = "low"
    elif confidence > 80:
        label = "high"

    return confidence, label


def generate_projections(
    current_ftp: float,
    current_ctl: float,
    current_tsb: float,
    trends: TrendMetrics,
    zone_mix: ZoneMix,
    ride_count: int,
    days_since_last_ride: float,
) -> ProjectionMetrics:
    """Build 4 and 6 week FTP / CTL projections with confidence and assumptions."""
    ftp_in_4_weeks, monthly_pct = project_ftp(current_ftp, trends, zone_mix, current_tsb, 4)
    ftp_in_6_weeks, _ = project_ftp(current_ftp, trends, zone_mix, current_tsb, 6)

    confidence, label = compute_projection_confidence(
        ride_count, days_since_last_ride, trends.volatility_factor
    )

    assumptions = [
        f"Current zone mix: {round_half_up(zone_mix.recovery * 100)}% recovery, "
        f"{round_half_up(zone_mix.progression * 100)}% progression",
        f"CTL ramp rate: {trends.ctl_ramp_per_week:+.1f}/week",
        "No illness or injury interruptions",
    ]
    if trends.volatility_factor > HIGH_VOLATILITY:
        assumptions.append("High training volatility detected")
    if ride_count < LOW_SAMPLE_RIDES:
        assumptions.append("Limited data - projections less reliable")
    if current_tsb < SEVERE_FATIGUE_TSB:
        assumptions.append("Current fatigue limiting projected gains")

    return ProjectionMetrics(
        ftp_in_4_weeks=ftp_in_4_weeks,
        ftp_in_6_weeks=ftp_in_6_weeks,
        ctl_in_4_weeks=project_ctl(current_ctl, trends.ctl_ramp_per_week, 4),
        ctl_in_6_weeks=project_ctl(current_ctl, trends.ctl_ramp_per_week, 6),
        confidence=confidence,
        confidence_label=label,
        projected_monthly_ftp_change_pct=monthly_pct,
        volatility=trends.volatility_factor,
        assumptions=assumptions,
    )


def generate_projection_summary(
    projections: ProjectionMetrics,
    current_ftp: float,
    trends: TrendMetrics,
) -> Tuple[str, str]:
    """Headline and message describing the 6-week projection."""
    ftp_gain = projections.ftp_in_6_weeks - round_half_up(current_ftp)
    confidence = projections.confidence

    if projections.volatility > 0.35 or confidence < 60:
        return (
            "High Volatility / Low Confidence",
            f"Training variability is high; projection confidence {confidence}%. "
            "Normalize weekly TSS to improve predictability.",
        )

    if ftp_gain > 5:
        trend = "improving" if trends.hre_30d_change_pct > 0 else "stable"
        message = (
            f"At {trends.ctl_ramp_per_week:+.1f} CTL/wk and {trend} HR efficiency "
            f"({trends.hre_30d_change_pct:+.1f}%), FTP is projected +{ftp_gain} W in 6 weeks "
            f"(confidence {confidence}%)."
        )
        if projections.projected_monthly_ftp_change_pct > 2:
            message += " Keep the Z2/Z3 base with one Z4 focus day."
        return "Projected Build", message

    if abs(ftp_gain) <= 2:
        return (
            "Balanced",
            f"Stable load and efficiency; FTP expected to hold within {abs(ftp_gain)} W in 6 weeks "
            f"(confidence {confidence}%). Progress comes from consistency.",
        )

    return (
        "Maintenance Phase",
        f"Current training pattern projects {ftp_gain:+d} W in 6 weeks. "
        "Consider adding stimulus if building is the goal.",
    )
