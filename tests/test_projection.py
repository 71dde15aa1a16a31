"""Tests for trend metrics and FTP / CTL projections."""

from datetime import timedelta

import pytest

from strava_ftp_coach.analysis.projection import (
    ProjectionMetrics,
    TrendMetrics,
    ZoneMix,
    calculate_trend_metrics,
    calculate_zone_mix,
    compute_projection_confidence,
    generate_projection_summary,
    generate_projections,
    project_ctl,
    project_ftp,
    weekly_tss_totals,
)


def trends(ftp=0.0, hre=0.0, ramp=3.0, volatility=0.0):
    return TrendMetrics(
        ftp_30d_change_pct=ftp,
        hre_30d_change_pct=hre,
        ctl_ramp_per_week=ramp,
        volatility_factor=volatility,
        weekly_tss_mean=300.0,
        weekly_tss_std_dev=300.0 * volatility,
    )


NEUTRAL_MIX = ZoneMix(recovery=0.5, progression=0.3)


class TestProjectCTL:
    """Test CTL projection."""

    @pytest.mark.parametrize("ramp,weeks,expected", [
        (0.5, 4, 54),  # ramp raised to 1
        (10, 6, 86),  # ramp capped at 6
        (3.25, 4, 63),
        (-4, 4, 54),
    ])
    def test_ramp_clamped(self, ramp, weeks, expected):
        """Ramp is held within 1-6 CTL per week."""
        assert project_ctl(50, ramp, weeks) == expected


class TestProjectFTP:
    """Test FTP projection."""

    def test_neutral(self):
        """Flat trends at a 3 CTL/week ramp project no change."""
        projected, monthly = project_ftp(200, trends(), NEUTRAL_MIX, 0, 6)

        assert projected == 200
        assert monthly == pytest.approx(0.0)

    def test_monthly_rate_clamped(self):
        """Strong signals cap the monthly rate at 6% and the total at 10%."""
        strong = trends(ftp=50, hre=50, ramp=20)
        mix = ZoneMix(recovery=0.0, progression=0.6)

        projected_4, monthly = project_ftp(200, strong, mix, 0, 4)
        projected_6, _ = project_ftp(200, strong, mix, 0, 6)

        assert monthly == pytest.approx(6.0)
        assert projected_4 == 212
        assert projected_6 == 218  # 9% over six weeks

    def test_fatigue_penalty(self):
        """Deep fatigue trims 15% and moderate fatigue 10% off the monthly rate."""
        steady = trends(ftp=4)

        assert project_ftp(200, steady, NEUTRAL_MIX, 0, 4) == (208, pytest.approx(4.0))
        assert project_ftp(200, steady, NEUTRAL_MIX, -12, 4) == (207, pytest.approx(3.6))
        assert project_ftp(200, steady, NEUTRAL_MIX, -20, 4) == (207, pytest.approx(3.4))

    def test_recovery_heavy_mix(self):
        """Mostly easy riding slows the baseline trend by a quarter."""
        projected, monthly = project_ftp(200, trends(ftp=4), ZoneMix(recovery=0.8, progression=0.1), 0, 4)

        assert monthly == pytest.approx(3.0)
        assert projected == 206

    def test_decline_floor(self):
        """Declines are limited to -3% per month."""
        projected, monthly = project_ftp(200, trends(ftp=-20, hre=-20, ramp=-10), NEUTRAL_MIX, 0, 4)

        assert monthly == pytest.approx(-3.0)
        assert projected == 194

    def test_total_change_bounded(self):
        """Projected FTP never moves more than 10% in six weeks."""
        for ftp_trend in (-30, -3, 0, 3, 30):
            for hre in (-20, 0, 20):
                for ramp in (-5, 0, 3, 12):
                    for tsb in (-30, -12, 0, 20):
                        for mix in (NEUTRAL_MIX, ZoneMix(0.9, 0.1), ZoneMix(0.1, 0.9)):
                            projected, _ = project_ftp(250, trends(ftp_trend, hre, ramp), mix, tsb, 6)
                            assert abs(projected - 250) <= 25


class TestConfidence:
    """Test projection confidence."""

    def test_high(self):
        """Plenty of recent, steady data."""
        assert compute_projection_confidence(60, 0, 0.0) == (100, "high")

    def test_low(self):
        """No data, long gap, volatile."""
        assert compute_projection_confidence(0, 90, 1.0) == (20, "low")

    def test_medium(self):
        """Weighted blend of volume, recency and volatility."""
        # 0.4 * 50 + 0.3 * 80 + 0.3 * 80
        assert compute_projection_confidence(30, 10, 0.2) == (68, "medium")


class TestGenerateProjections:
    """Test the projection bundle."""

    def test_assumptions(self):
        """Standard assumptions plus warnings for volatility, sample size and fatigue."""
        projections = generate_projections(
            current_ftp=250,
            current_ctl=60,
            current_tsb=-20,
            trends=trends(ramp=2.0, volatility=0.4),
            zone_mix=NEUTRAL_MIX,
            ride_count=10,
            days_since_last_ride=2,
        )

        assert projections.assumptions == [
            "Current zone mix: 50% recovery, 30% progression",
            "CTL ramp rate: +2.0/week",
            "No illness or injury interruptions",
            "High training volatility detected",
            "Limited data - projections less reliable",
            "Current fatigue limiting projected gains",
        ]

    def test_quiet_assumptions(self):
        """No warnings when data is plentiful, steady and rested."""
        projections = generate_projections(250, 60, 0, trends(), NEUTRAL_MIX, 40, 1)

        assert len(projections.assumptions) == 3
        assert projections.ctl_in_4_weeks == 72
        assert projections.ctl_in_6_weeks == 78
        assert projections.ftp_in_6_weeks == 250


class TestProjectionSummary:
    """Test headline selection."""

    def projection(self, ftp_6=250, confidence=75, volatility=0.1, monthly=0.0):
        return ProjectionMetrics(
            ftp_in_4_weeks=ftp_6,
            ftp_in_6_weeks=ftp_6,
            ctl_in_4_weeks=60,
            ctl_in_6_weeks=66,
            confidence=confidence,
            confidence_label="medium",
            projected_monthly_ftp_change_pct=monthly,
            volatility=volatility,
        )

    def test_low_confidence(self):
        """Volatility or low confidence takes precedence."""
        headline, _ = generate_projection_summary(self.projection(ftp_6=270, volatility=0.4), 250, trends())
        assert headline == "High Volatility / Low Confidence"

        headline, message = generate_projection_summary(self.projection(confidence=50), 250, trends())
        assert headline == "High Volatility / Low Confidence"
        assert "50%" in message

    def test_build(self):
        """Gains above 5W are a build."""
        headline, message = generate_projection_summary(
            self.projection(ftp_6=262, monthly=3.0), 250, trends(hre=2.0, ramp=4.0)
        )

        assert headline == "Projected Build"
        assert "+12 W" in message
        assert "improving" in message
        assert "Z4 focus day" in message

    def test_balanced(self):
        """Within 2W is balanced."""
        headline, _ = generate_projection_summary(self.projection(ftp_6=251), 250, trends())

        assert headline == "Balanced"

    def test_maintenance(self):
        """Anything else is maintenance."""
        headline, message = generate_projection_summary(self.projection(ftp_6=246), 250, trends())

        assert headline == "Maintenance Phase"
        assert "-4 W" in message


class TestTrendMetrics:
    """Test trend calculations from activity history."""

    def test_weekly_totals(self, make_activity, now):
        """Activities fall into eight 7-day bins ending now, oldest first."""
        activities = [
            make_activity(days_ago=1, average_watts=200),
            make_activity(days_ago=8, average_watts=200),
            make_activity(days_ago=50, average_watts=200),
            make_activity(days_ago=60, average_watts=200),  # before the first bin
        ]
        totals = weekly_tss_totals(activities, 200, now)

        assert len(totals) == 8
        assert totals[0] == pytest.approx(110.25)
        assert totals[6] == pytest.approx(110.25)
        assert totals[7] == pytest.approx(110.25)
        assert sum(totals[1:6]) == 0

    def test_weekly_totals_empty(self, now):
        """No history gives eight empty weeks."""
        assert weekly_tss_totals([], 200, now) == [0.0] * 8

    def test_steady_training(self, make_activity, now):
        """One identical ride per week: no volatility and a flat FTP trend."""
        activities = [
            make_activity(days_ago=7 * k + 3, moving_time=1500, average_watts=250)
            for k in range(8)
        ]
        result = calculate_trend_metrics(activities, 238, 10, now)

        assert result.volatility_factor == pytest.approx(0.0)
        assert result.weekly_tss_std_dev == pytest.approx(0.0)
        assert result.weekly_tss_mean > 0
        assert result.ftp_30d_change_pct == pytest.approx(0.0)

    def test_ftp_change(self, make_activity, now):
        """FTP 30 days ago is re-estimated from the older half."""
        previous = [make_activity(days_ago=40 + i, moving_time=1500, average_watts=200) for i in range(5)]
        result = calculate_trend_metrics(previous, 209, 10, now)

        # 200 * 0.95 = 190 -> 209 is +10%
        assert result.ftp_30d_change_pct == pytest.approx(10.0)

    def test_no_previous_rides(self, make_activity, now):
        """Without older rides the FTP trend is flat."""
        recent = [make_activity(days_ago=2, moving_time=1500, average_watts=300)]

        assert calculate_trend_metrics(recent, 285, 10, now).ftp_30d_change_pct == 0.0

    def test_heart_rate_efficiency(self, make_activity, now):
        """Lower HR for the same power is a positive efficiency change."""
        activities = [
            make_activity(days_ago=40, average_watts=200, average_heartrate=150),
            make_activity(days_ago=5, average_watts=200, average_heartrate=140),
        ]
        result = calculate_trend_metrics(activities, 200, 10, now)

        assert result.hre_30d_change_pct == pytest.approx(100 / 15)

    def test_efficiency_needs_heart_rate_and_power(self, make_activity, now):
        """Activities missing either signal are ignored."""
        activities = [
            make_activity(days_ago=40, average_heartrate=150),
            make_activity(days_ago=5, average_watts=200, average_heartrate=140),
        ]

        assert calculate_trend_metrics(activities, 200, 10, now).hre_30d_change_pct == 0.0

    def test_ramp(self, make_activity, now):
        """CTL ramp compares current CTL with CTL from two weeks ago."""
        # Only the 110.25 TSS ride twenty days ago counts towards CTL two weeks ago
        activities = [make_activity(days_ago=20, moving_time=3600, average_watts=200)]
        result = calculate_trend_metrics(activities, 200, 20, now)

        assert result.ctl_ramp_per_week == pytest.approx((20 - 110.25 / 42) / 2)


class TestZoneMix:
    """Test time-weighted zone mix."""

    def test_mix(self, make_activity, now):
        """Endurance time counts as recovery, Threshold as progression."""
        activities = [
            make_activity(days_ago=2, moving_time=3600, average_watts=120),  # Endurance
            make_activity(days_ago=4, moving_time=1800, average_watts=180),  # Threshold
            make_activity(days_ago=6, moving_time=1800),  # Endurance by name
            make_activity(days_ago=40, moving_time=3600, average_watts=180),  # too old
        ]
        mix = calculate_zone_mix(activities, 200, now)

        assert mix.recovery == pytest.approx(0.75)
        assert mix.progression == pytest.approx(0.25)

    def test_empty(self, now):
        """No recent training time gives an empty mix."""
        assert calculate_zone_mix([], 200, now) == ZoneMix(recovery=0.0, progression=0.0)
