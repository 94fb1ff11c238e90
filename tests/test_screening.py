"""Tests for univariate exploration and chi-squared screening."""
import math

import numpy as np
import pandas as pd
import pytest

from dstat_ml.screening import chi2_independence, describe_by_outcome, screen_features


@pytest.fixture
def screening_df():
    """100 patients: 'linked' mirrors the outcome, 'balanced' is independent of it."""
    outcome = ["Dead"] * 50 + ["Alive"] * 50
    return pd.DataFrame(
        {
            "linked": ["Yes"] * 45 + ["No"] * 5 + ["No"] * 45 + ["Yes"] * 5,
            "balanced": ["A", "B"] * 50,
            "constant": ["X"] * 100,
            "score": list(np.arange(50) + 100) + list(np.arange(50)),
            "DSTAT": outcome,
        }
    )


class TestChi2Independence:
    """Test suite for chi2_independence."""

    def test_associated_feature(self, screening_df):
        result = chi2_independence(screening_df, "linked")

        assert result.p_value < 1e-6
        assert result.dof == 1
        assert result.n == 100
        assert not result.binned

    def test_independent_feature(self, screening_df):
        result = chi2_independence(screening_df, "balanced")

        assert result.statistic == pytest.approx(0.0)
        assert result.p_value == pytest.approx(1.0)

    def test_constant_feature_is_undefined(self, screening_df):
        result = chi2_independence(screening_df, "constant")

        assert math.isnan(result.statistic)
        assert math.isnan(result.p_value)

    def test_numeric_feature_is_binned(self, screening_df):
        result = chi2_independence(screening_df, "score", n_bins=4)

        assert result.binned
        assert result.dof == 3
        assert result.p_value < 1e-6

    def test_missing_rows_ignored(self, screening_df):
        df = screening_df.copy()
        df.loc[:9, "linked"] = np.nan

        assert chi2_independence(df, "linked").n == 90


class TestScreenFeatures:
    """Test suite for screen_features."""

    def test_retains_dependent_features(self, screening_df):
        results, retained = screen_features(
            screening_df, ["balanced", "linked", "constant", "score"], alpha=0.05
        )

        assert retained == ["linked", "score"]
        assert results["feature"].tolist()[-1] == "constant"
        assert not results.set_index("feature").loc["balanced", "retained"]

    def test_empty_feature_list(self, screening_df):
        results, retained = screen_features(screening_df, [])

        assert retained == []
        assert len(results) == 0


class TestDescribeByOutcome:
    """Test suite for describe_by_outcome."""

    def test_numeric_and_categorical(self, screening_df):
        desc = describe_by_outcome(screening_df, ["score", "linked"])

        assert len(desc) == 4
        score = desc[desc["feature"] == "score"].set_index("outcome")
        assert score.loc["Dead", "mean"] == pytest.approx(124.5)
        assert score.loc["Alive", "median"] == pytest.approx(24.5)

        linked = desc[desc["feature"] == "linked"].set_index("outcome")
        assert linked.loc["Dead", "top_level"] == "Yes"
        assert linked.loc["Alive", "top_count"] == 45
