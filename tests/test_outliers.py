"""Tests for outlier detection module."""
import numpy as np
import pandas as pd
import pytest

from dstat_ml.exceptions import InvalidInputError
from dstat_ml.outliers import detect_outliers, outlier_limits, summarize_outliers


class TestDetectOutliers:
    """Test suite for detect_outliers."""

    @pytest.fixture
    def spiked_sample(self):
        """19 ones and a single extreme value.

        mean = 50.95, sample std ~ 223.38, upper limit ~ 721.10
        """
        return [1] * 19 + [1000]

    def test_flags_extreme_value(self, spiked_sample):
        assert detect_outliers(spiked_sample) == [1000]

    def test_ten_values_cannot_exceed_three_sigma(self):
        """With n=10 and the n-1 denominator a single point stays within 3 SD."""
        # mean = 100.9, sample std ~ 315.91, upper limit ~ 1048.6
        assert detect_outliers([1] * 9 + [1000]) == []

    def test_flags_low_value(self):
        assert detect_outliers([100] * 19 + [-1000]) == [-1000]

    def test_values_within_three_sigma(self):
        assert detect_outliers([1, 2, 3, 4, 5]) == []

    def test_constant_sample_has_no_outliers(self):
        assert detect_outliers([5.0] * 10) == []
        assert detect_outliers([0.1] * 7) == []

    def test_custom_sigma(self):
        # upper limit at 2 SD ~ 732.7
        assert detect_outliers([1] * 9 + [1000], n_sigma=2) == [1000]

    def test_preserves_order(self):
        sample = [-1000] + [0] * 38 + [1000]
        assert detect_outliers(sample, n_sigma=2) == [-1000, 1000]

    def test_does_not_mutate_input(self, spiked_sample):
        original = list(spiked_sample)
        detect_outliers(spiked_sample)
        assert spiked_sample == original

    def test_series_keeps_index(self, spiked_sample):
        series = pd.Series(spiked_sample, index=[f"p{i}" for i in range(20)])
        result = detect_outliers(series)

        assert isinstance(result, pd.Series)
        assert result.index.tolist() == ["p19"]
        assert result.tolist() == [1000]

    def test_numpy_input(self, spiked_sample):
        result = detect_outliers(np.array(spiked_sample, dtype=float))
        assert result == [1000.0]

    @pytest.mark.parametrize("sample", [[], [42.0]])
    def test_too_few_values(self, sample):
        with pytest.raises(InvalidInputError):
            detect_outliers(sample)

    def test_missing_values_rejected(self):
        with pytest.raises(InvalidInputError):
            detect_outliers([1.0, np.nan, 3.0])

    def test_invalid_input_is_value_error(self):
        with pytest.raises(ValueError):
            detect_outliers([])


class TestOutlierLimits:
    """Test suite for outlier_limits."""

    def test_limits_use_sample_std(self):
        sample = [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]
        lower, upper = outlier_limits(sample)

        mean_val = np.mean(sample)
        std_val = np.std(sample, ddof=1)

        assert lower == pytest.approx(mean_val - 3 * std_val)
        assert upper == pytest.approx(mean_val + 3 * std_val)

    def test_constant_sample_limits_collapse(self):
        lower, upper = outlier_limits([3.0, 3.0, 3.0])
        assert lower == upper == 3.0


class TestSummarizeOutliers:
    """Test suite for summarize_outliers."""

    def test_counts_per_column(self):
        df = pd.DataFrame(
            {
                "spiked": [1.0] * 19 + [1000.0],
                "flat": [2.0] * 20,
                "sparse": [np.nan] * 19 + [1.0],
            }
        )

        summary = summarize_outliers(df, ["spiked", "flat", "sparse"])

        assert summary["feature"].tolist() == ["spiked", "flat"]
        counts = dict(zip(summary["feature"], summary["n_outliers"]))
        assert counts == {"spiked": 1, "flat": 0}
        assert summary.loc[0, "pct_outliers"] == pytest.approx(5.0)

    def test_missing_values_are_ignored(self):
        df = pd.DataFrame({"x": [1.0] * 19 + [1000.0, np.nan]})
        summary = summarize_outliers(df, ["x"])

        assert summary.loc[0, "n"] == 20
        assert summary.loc[0, "n_outliers"] == 1

    def test_infinite_values_are_ignored(self):
        df = pd.DataFrame({"x": [1.0] * 19 + [1000.0, np.inf, -np.inf]})
        summary = summarize_outliers(df, ["x"])

        assert summary.loc[0, "n"] == 20
        assert summary.loc[0, "n_outliers"] == 1

    def test_empty_column_list(self):
        summary = summarize_outliers(pd.DataFrame({"x": [1.0, 2.0]}), [])
        assert len(summary) == 0
