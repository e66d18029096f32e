"""Tests for the statistics helpers."""
import math

import pytest

from sitepulse.core.statistics import (
    daily_means,
    detect_anomalies,
    linear_trend,
    mean_std,
    season_for,
    seasonal_factor,
)


class TestLinearTrend:
    """Test least squares trend fitting."""

    def test_perfect_decline(self):
        """Test slope, intercept and correlation for an exact line."""
        trend = linear_trend([10, 8, 6, 4, 2])
        assert trend.slope == pytest.approx(-2.0)
        assert trend.intercept == pytest.approx(10.0)
        assert trend.correlation == pytest.approx(-1.0)

    def test_flat_series_has_zero_correlation(self):
        """No variance in y gives slope 0 and correlation 0."""
        trend = linear_trend([5, 5, 5, 5])
        assert trend.slope == pytest.approx(0.0)
        assert trend.correlation == 0.0

    def test_missing_values_are_dropped(self):
        """Test that None and NaN are dropped before fitting."""
        trend = linear_trend([1, None, 2, float("nan"), 3])
        assert trend.slope == pytest.approx(1.0)

    def test_requires_two_points(self):
        """Test that a single point raises ValueError."""
        with pytest.raises(ValueError):
            linear_trend([1.0])


class TestAnomalies:
    """Test z-score anomaly detection."""

    def test_mean_std_is_population(self):
        """Test that the population standard deviation is used."""
        mean, std = mean_std([2, 4, 4, 4, 5, 5, 7, 9])
        assert mean == pytest.approx(5.0)
        assert std == pytest.approx(2.0)

    def test_mean_std_empty(self):
        """Test mean and standard deviation of an empty series."""
        assert mean_std([]) == (0.0, 0.0)

    def test_outliers_flagged(self):
        """Test that a value beyond two sigma is flagged."""
        values = [10.0] * 50 + [30.0]
        summary = detect_anomalies(values)
        assert summary.count == 1
        assert summary.sample_count == 51
        assert summary.average_impact > 19

    def test_constant_series_has_no_anomalies(self):
        """Test that a constant series has no anomalies."""
        summary = detect_anomalies([3.0] * 24)
        assert summary.count == 0
        assert summary.average_impact == 0.0


class TestSeasons:
    """Test season lookup for both hemispheres."""

    @pytest.mark.parametrize("month,season", [
        (1, "summer"), (4, "autumn"), (7, "winter"), (10, "spring"), (12, "summer"),
    ])
    def test_southern_hemisphere_default(self, month, season):
        """Test the southern calendar with and without coordinates."""
        assert season_for(month) == season
        assert season_for(month, -33.9) == season

    @pytest.mark.parametrize("month,season", [
        (1, "winter"), (4, "spring"), (7, "summer"), (10, "autumn"), (12, "winter"),
    ])
    def test_northern_hemisphere(self, month, season):
        """Test the shifted calendar north of the equator."""
        assert season_for(month, 51.5) == season

    def test_seasonal_factors(self):
        """Test the seasonal baseline factors."""
        assert seasonal_factor("summer") == 1.2
        assert seasonal_factor("winter") == 0.7
        assert seasonal_factor("unknown") == 1.0


class TestDailyMeans:

    def test_groups_in_first_seen_order(self):
        """Test that daily means keep the first-seen day order."""
        pairs = [("d1", 1.0), ("d1", 3.0), ("d2", 10.0), ("d2", None), ("d3", math.nan)]
        assert daily_means(pairs) == [2.0, 10.0]
