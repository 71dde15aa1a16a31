"""Rolling training load (CTL / ATL / TSB) from stress score history."""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import config
from .records import ActivityRecord
from .stats import round_half_up, round_to_tenth
from .stress import calculate_tss

logger = logging.getLogger(__name__)

TSSHistory = List[Tuple[datetime, float]]

# Ramp rate compares chronic load now with chronic load two weeks ago.
RAMP_LOOKBACK_DAYS = 14


@dataclass
class TrainingLoadSnapshot:
    """Fitness / fatigue / form at a point in time."""

    chronic_load: float  # CTL
    acute_load: float  # ATL
    balance: float  # TSB = CTL - ATL
    ramp_rate: float  # CTL change per week

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def build_tss_history(activities: Iterable[ActivityRecord], ftp: float) -> TSSHistory:
    """Score each activity and return (start_date, tss) pairs in date order."""
    history = [(activity.start_date, calculate_tss(activity, ftp)) for activity in activities]
    history.sort(key=lambda entry: entry[0])
    return history


def rolling_average_tss(history: TSSHistory, days: int, now: Optional[datetime] = None) -> float:
    """Daily average TSS over the trailing window.

    The sum is divided by the window length rather than the number of
    entries, so days without training count as zero load.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=days)

    total = sum(tss for date, tss in history if date >= cutoff)
    if total == 0:
        return 0.0
    return total / days


def calculate_training_load(
    history: TSSHistory,
    now: Optional[datetime] = None,
    chronic_days: Optional[int] = None,
    acute_days: Optional[int] = None,
) -> TrainingLoadSnapshot:
    """Calculate CTL, ATL, TSB and ramp rate from a TSS history.

    Args:
        history: (date, tss) pairs, any order
        now: Reference time (defaults to current UTC time)
        chronic_days: Chronic window, defaults to 42 days
        acute_days: Acute window, defaults to 7 days

    Returns:
        TrainingLoadSnapshot with integer CTL/ATL/TSB and ramp rate to 0.1
    """
    now = now or datetime.now(timezone.utc)
    chronic_days = chronic_days or config.CHRONIC_LOAD_DAYS
    acute_days = acute_days or config.ACUTE_LOAD_DAYS

    if not history:
        return TrainingLoadSnapshot(chronic_load=0, acute_load=0, balance=0, ramp_rate=0.0)

    ctl = rolling_average_tss(history, chronic_days, now)
    atl = rolling_average_tss(history, acute_days, now)
    tsb = ctl - atl

    ramp_cutoff = now - timedelta(days=RAMP_LOOKBACK_DAYS)
    old_ctl = rolling_average_tss(
        [(date, tss) for date, tss in history if date <= ramp_cutoff],
        chronic_days,
        now,
    )
    ramp_rate = (ctl - old_ctl) / 2  # two weeks -> per week

    logger.debug(f"Training load: CTL={ctl:.1f} ATL={atl:.1f} ramp={ramp_rate:.2f}")

    return TrainingLoadSnapshot(
        chronic_load=round_half_up(ctl),
        acute_load=round_half_up(atl),
        balance=round_half_up(tsb),
        ramp_rate=round_to_tenth(ramp_rate),
    )


def calculate_activity_load(
    activities: Iterable[ActivityRecord],
    ftp: float,
    now: Optional[datetime] = None,
) -> TrainingLoadSnapshot:
    """Score activities against FTP and compute the training load snapshot."""
    return calculate_training_load(build_tss_history(activities, ftp), now)
