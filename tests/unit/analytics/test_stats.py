"""Tests for descriptive statistics helpers."""

import math

import pytest

from trade_report.analytics import stats


class TestNearestRank:
    def test_positions(self):
        values = list(range(10))
        assert stats.nearest_rank(values, 0.05) == 0
        assert stats.nearest_rank(values, 0.5) == 5
        assert stats.nearest_rank(values, 0.95) == 9

    def test_clamped(self):
        assert stats.nearest_rank([1.0, 2.0], 1.0) == 2.0

    def test_empty(self):
        assert stats.nearest_rank([], 0.5) == 0.0


class TestMoments:
    def test_mean_median(self):
        assert stats.mean([1, 2, 3, 10]) == 4.0
        assert stats.median([1, 2, 3, 10]) == 2.5
        assert stats.mean([]) == 0.0

    def test_sample_std(self):
        assert stats.sample_std([1, 2, 3, 4]) == pytest.approx(1.2909944)
        assert stats.sample_std([5]) == 0.0

    def test_symmetric_skew_is_zero(self):
        assert stats.skewness([-2, -1, 0, 1, 2]) == pytest.approx(0.0)

    def test_right_skew_positive(self):
        assert stats.skewness([1, 1, 1, 1, 10]) > 0

    def test_short_series_neutral(self):
        assert stats.skewness([1, 2]) == 0.0
        assert stats.excess_kurtosis([1, 2, 3]) == 0.0

    def test_constant_series_neutral(self):
        assert stats.skewness([3, 3, 3, 3]) == 0.0
        assert stats.excess_kurtosis([3, 3, 3, 3]) == 0.0

    def test_heavy_tail_positive_kurtosis(self):
        values = [0.0] * 18 + [10.0, -10.0]
        assert stats.excess_kurtosis(values) > 0


class TestTailsAndVar:
    def test_tail_ratio(self):
        values = [-4.0, -2.0] + [1.0] * 17 + [6.0]
        assert stats.tail_ratio(values) == pytest.approx(3.0)

    def test_tail_ratio_short_series(self):
        assert stats.tail_ratio([-1.0, 2.0] * 5) == 1.0

    def test_tail_ratio_same_sign(self):
        assert stats.tail_ratio([float(i) for i in range(1, 21)]) == 1.0

    def test_historical_var(self):
        values = [-5, -3, -1, 0, 1, 2, 3, 4, 5, 6]
        assert stats.historical_var(values) == 5.0

    def test_var_needs_ten(self):
        assert stats.historical_var([-5, 1, 2]) == 0.0


class TestSerialDependence:
    def test_alternating_autocorrelation(self):
        assert stats.autocorrelation([1.0, -1.0] * 5) == pytest.approx(-0.9)

    def test_autocorrelation_short(self):
        assert stats.autocorrelation([1.0, 2.0, 3.0]) == 0.0

    def test_downside_deviation(self):
        assert stats.downside_deviation([-3, 4, -4]) == pytest.approx(math.sqrt(12.5))
        assert stats.downside_deviation([1, 2]) == 0.0


class TestPearson:
    def test_perfect(self):
        assert stats.pearson([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
        assert stats.pearson([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)

    def test_constant_series(self):
        assert stats.pearson([1, 1, 1], [1, 2, 3]) == 0.0

    def test_mismatched_or_short(self):
        assert stats.pearson([1], [1]) == 0.0
        assert stats.pearson([1, 2], [1, 2, 3]) == 0.0
