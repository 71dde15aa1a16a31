"""Tests for acute/chronic metrics and training-needs rules."""

import pytest

from strava_ftp_coach.analysis.stress import WorkoutCategory
from strava_ftp_coach.analysis.training_metrics import (
    IntensityDistribution,
    TrainingMetrics,
    calculate_optimal_tss,
    calculate_training_metrics,
    determine_training_needs,
)


def make_metrics(ratio=1.0, weekly_tss=250.0, **distribution):
    return TrainingMetrics(
        weekly_tss=weekly_tss,
        acute_tss=weekly_tss,
        chronic_tss=weekly_tss / ratio if ratio else 0.0,
        training_load=ratio,
        intensity_distribution=IntensityDistribution(**distribution),
        total_time=5.0,
        total_distance=150.0,
    )


class TestCalculateTrainingMetrics:
    """Test the 7 / 42 day summary."""

    def test_no_history(self, now):
        """Empty history has a neutral 1.0 load ratio."""
        metrics = calculate_training_metrics([], 200, now)

        assert metrics.weekly_tss == 0
        assert metrics.chronic_tss == 0
        assert metrics.training_load == 1.0
        assert metrics.recent_workout_types == []

    def test_ratio(self, make_activity, now):
        """Chronic TSS is the 42-day total per week."""
        activities = [
            make_activity(days_ago=1, average_watts=200, distance=30000),
            make_activity(days_ago=20, average_watts=200, distance=30000),
        ]
        metrics = calculate_training_metrics(activities, 200, now)

        assert metrics.weekly_tss == pytest.approx(110.25)
        assert metrics.chronic_tss == pytest.approx(36.75)
        assert metrics.training_load == pytest.approx(3.0)
        assert metrics.total_time == pytest.approx(1.0)
        assert metrics.total_distance == pytest.approx(30.0)
        assert metrics.recent_workout_types == [WorkoutCategory.THRESHOLD]

    def test_distribution(self, make_activity, now):
        """Distribution is time-weighted over 42 days."""
        activities = [
            make_activity(days_ago=2, moving_time=5400, average_watts=120),  # Endurance
            make_activity(days_ago=10, moving_time=1800, average_watts=230),  # VO2Max
            make_activity(days_ago=50, moving_time=3600, average_watts=200),  # outside
        ]
        distribution = calculate_training_metrics(activities, 200, now).intensity_distribution

        assert distribution.endurance == pytest.approx(0.75)
        assert distribution.vo2max == pytest.approx(0.25)
        assert distribution.low_intensity == pytest.approx(0.75)
        assert distribution.high_intensity == pytest.approx(0.25)

    def test_to_dict(self, make_activity, now):
        """Serialised metrics round the totals."""
        metrics = calculate_training_metrics([make_activity(days_ago=1, average_watts=200)], 200, now)
        data = metrics.to_dict()

        assert data["weekly_tss"] == 110
        assert data["recent_workout_types"] == ["Threshold"]


class TestTrainingNeeds:
    """Test the ordered focus rules."""

    def test_overreaching(self):
        """High load ratio calls for recovery."""
        needs = determine_training_needs(make_metrics(ratio=1.6))

        assert (needs.primary_focus, needs.secondary_focus) == (
            WorkoutCategory.RECOVERY, WorkoutCategory.ENDURANCE
        )

    def test_undertrained(self):
        """Low ratio and low weekly TSS call for intervals."""
        needs = determine_training_needs(make_metrics(ratio=0.7, weekly_tss=200))

        assert (needs.primary_focus, needs.secondary_focus) == (
            WorkoutCategory.THRESHOLD, WorkoutCategory.ENDURANCE
        )
        assert needs.reasoning.startswith("Training load is low")

    def test_too_much_intensity(self):
        """More than 30% hard time calls for aerobic base."""
        needs = determine_training_needs(make_metrics(threshold=0.2, vo2max=0.15))

        assert (needs.primary_focus, needs.secondary_focus) == (
            WorkoutCategory.ENDURANCE, WorkoutCategory.RECOVERY
        )

    def test_base_ready_for_intensity(self):
        """Little hard time on decent volume adds intensity."""
        needs = determine_training_needs(make_metrics(endurance=0.9, threshold=0.05))

        assert (needs.primary_focus, needs.secondary_focus) == (
            WorkoutCategory.THRESHOLD, WorkoutCategory.VO2MAX
        )

    def test_missing_threshold(self):
        """Threshold below 5% of time."""
        needs = determine_training_needs(make_metrics(weekly_tss=150, vo2max=0.15))

        assert (needs.primary_focus, needs.secondary_focus) == (
            WorkoutCategory.THRESHOLD, WorkoutCategory.TEMPO
        )

    def test_missing_vo2max(self):
        """VO2Max below 5% on a big week."""
        needs = determine_training_needs(make_metrics(weekly_tss=300, threshold=0.15))

        assert (needs.primary_focus, needs.secondary_focus) == (
            WorkoutCategory.VO2MAX, WorkoutCategory.THRESHOLD
        )

    def test_balanced(self):
        """Default rule."""
        needs = determine_training_needs(make_metrics(weekly_tss=300, threshold=0.1, vo2max=0.1))

        assert (needs.primary_focus, needs.secondary_focus) == (
            WorkoutCategory.THRESHOLD, WorkoutCategory.ENDURANCE
        )
        assert needs.reasoning == "Balanced training plan with mix of intensity and volume."


class TestOptimalTSS:
    """Test per-session TSS targets."""

    @pytest.mark.parametrize("ratio,minutes,expected", [
        (1.0, 60, 70),
        (1.4, 60, 49),
        (0.5, 60, 84),
        (1.0, 90, 105),
    ])
    def test_targets(self, ratio, minutes, expected):
        """70 TSS per hour, reduced under high load and raised under low load."""
        assert calculate_optimal_tss(make_metrics(ratio=ratio), minutes) == expected
