"""Tests for data loading and cleaning."""
import numpy as np
import pandas as pd
import pytest

from dstat_ml.exceptions import UnknownLabelError
from dstat_ml.io import (
    apply_completion_filter,
    clean_dataset,
    detect_feature_variables,
    load_data,
    prepare_dataset,
)


class TestLoadData:
    """Test suite for load_data."""

    def test_adds_binary_target(self, clinical_csv, clinical_df):
        df = load_data(clinical_csv)

        assert "target" in df.columns
        expected = (clinical_df["DSTAT"] == "Dead").astype(int).tolist()
        assert df["target"].tolist() == expected

    def test_missing_outcome_column(self, tmp_path):
        path = tmp_path / "no_outcome.csv"
        pd.DataFrame({"AGE": [1, 2]}).to_csv(path, index=False)

        with pytest.raises(ValueError, match="DSTAT"):
            load_data(path)

    def test_unknown_outcome_label(self, tmp_path):
        path = tmp_path / "bad_label.csv"
        pd.DataFrame({"AGE": [1, 2, 3], "DSTAT": ["Dead", "Alive", "Transferred"]}).to_csv(
            path, index=False
        )

        with pytest.raises(UnknownLabelError) as exc_info:
            load_data(path)
        assert exc_info.value.label == "Transferred"

    def test_drops_missing_outcome_and_strips_whitespace(self, tmp_path):
        path = tmp_path / "messy.csv"
        path.write_text("AGE,DSTAT\n70, Dead\n50,Alive \n60,\n")

        df = load_data(path)

        assert len(df) == 2
        assert df["DSTAT"].tolist() == ["Dead", "Alive"]
        assert df["target"].tolist() == [1, 0]

    def test_custom_labels(self, tmp_path):
        path = tmp_path / "coded.csv"
        pd.DataFrame({"AGE": [1, 2], "STATUS": ["D", "A"]}).to_csv(path, index=False)

        df = load_data(path, outcome_col="STATUS", positive_label="D", negative_label="A")
        assert df["target"].tolist() == [1, 0]


class TestCleanDataset:
    """Test suite for clean_dataset."""

    def test_drops_duplicates(self):
        df = pd.DataFrame({"a": [1, 1, 2], "b": ["x", "x", "y"]})
        cleaned = clean_dataset(df)
        assert len(cleaned) == 2

    def test_converts_numeric_text(self):
        df = pd.DataFrame({"a": ["1.5", "2", np.nan], "b": ["x", "2", "3"]})
        cleaned = clean_dataset(df)

        assert pd.api.types.is_numeric_dtype(cleaned["a"])
        assert not pd.api.types.is_numeric_dtype(cleaned["b"])

    def test_does_not_modify_input(self):
        df = pd.DataFrame({"a": ["1", "1"]})
        clean_dataset(df)
        assert df["a"].tolist() == ["1", "1"]

    def test_infinite_values_become_missing(self):
        df = pd.DataFrame({"a": [1.0, np.inf, -np.inf, 4.0], "b": ["x", "y", "z", "w"]})
        cleaned = clean_dataset(df)

        assert cleaned["a"].isna().tolist() == [False, True, True, False]
        assert np.isinf(df["a"]).sum() == 2


class TestFeatureSelection:
    """Test suite for feature detection and completion filter."""

    def test_detect_feature_variables(self, clinical_csv):
        df = load_data(clinical_csv)
        features = detect_feature_variables(df)

        assert features == ["AGE", "HR", "SEX", "SHOCK", "LACTATE"]

    def test_completion_filter(self):
        df = pd.DataFrame(
            {
                "full": np.arange(10.0),
                "sparse": [np.nan] * 5 + list(range(5)),
                "DSTAT": ["Dead", "Alive"] * 5,
                "target": [1, 0] * 5,
            }
        )

        filtered, retained, rates = apply_completion_filter(df, ["full", "sparse"], threshold=0.9)

        assert retained == ["full"]
        assert rates["sparse"] == pytest.approx(0.5)
        assert filtered.columns.tolist() == ["full", "DSTAT", "target"]


class TestPrepareDataset:
    """Test suite for prepare_dataset."""

    def test_end_to_end(self, clinical_csv):
        df, features, rates = prepare_dataset(clinical_csv)

        # LACTATE is 96% complete and survives the 90% filter
        assert features == ["AGE", "HR", "SEX", "SHOCK", "LACTATE"]
        assert set(rates) == set(features)
        assert "ID" in df.columns
        assert df["target"].nunique() == 2

    def test_config_overrides_threshold(self, clinical_csv):
        _, features, _ = prepare_dataset(clinical_csv, config={"completion_threshold": 0.99})
        assert "LACTATE" not in features

    def test_single_outcome_rejected(self, tmp_path):
        path = tmp_path / "all_alive.csv"
        pd.DataFrame({"AGE": [1, 2, 3], "DSTAT": ["Alive"] * 3}).to_csv(path, index=False)

        with pytest.raises(ValueError, match="one discharge status"):
            prepare_dataset(path)
