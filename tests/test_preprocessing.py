"""Tests for split and preprocessing pipeline."""
import numpy as np
import pandas as pd
import pytest

from dstat_ml.preprocessing import PreprocessingPipeline, split_dataset


class TestSplitDataset:
    """Test suite for split_dataset."""

    def test_stratified_split(self, clinical_df):
        X = clinical_df[["AGE", "HR"]]
        y = (clinical_df["DSTAT"] == "Dead").astype(int).values

        X_train, X_test, y_train, y_test, train_idx, test_idx = split_dataset(
            X, y, test_size=0.25, random_state=0
        )

        assert len(X_train) + len(X_test) == len(X)
        assert len(test_idx) == 50
        assert set(train_idx).isdisjoint(test_idx)
        assert abs(y_train.mean() - y_test.mean()) < 0.05
        assert np.array_equal(X_test.index.values, X.index.values[test_idx])

    def test_reproducible(self, clinical_df):
        X = clinical_df[["AGE"]]
        y = (clinical_df["DSTAT"] == "Dead").astype(int).values

        first = split_dataset(X, y, random_state=7)[5]
        second = split_dataset(X, y, random_state=7)[5]
        assert np.array_equal(first, second)


class TestPreprocessingPipeline:
    """Test suite for PreprocessingPipeline."""

    @pytest.fixture
    def features(self, clinical_df):
        return clinical_df[["AGE", "HR", "SEX", "SHOCK", "LACTATE"]]

    @pytest.fixture
    def target(self, clinical_df):
        return (clinical_df["DSTAT"] == "Dead").astype(int).values

    def test_fit_transform_imputes_and_scales(self, features, target):
        pipeline = PreprocessingPipeline(knn_neighbors=5)
        X_out, y_out = pipeline.fit_transform(features, target)

        assert X_out.shape == (len(features), 5)
        assert not np.isnan(X_out).any()
        assert np.allclose(X_out.mean(axis=0), 0.0, atol=1e-8)
        assert np.array_equal(y_out, target)
        assert pipeline.numeric_features_ == ["AGE", "HR", "LACTATE"]
        assert pipeline.categorical_features_ == ["SEX", "SHOCK"]
        assert pipeline.output_feature_names_ == ["AGE", "HR", "LACTATE", "SEX", "SHOCK"]

    def test_transform_before_fit(self, features):
        with pytest.raises(ValueError, match="not fitted"):
            PreprocessingPipeline().transform(features)

    def test_transform_handles_unseen_levels(self, features, target):
        pipeline = PreprocessingPipeline(knn_neighbors=5)
        pipeline.fit_transform(features, target)

        new_rows = features.head(3).copy()
        new_rows["SEX"] = ["U", "M", np.nan]
        X_new = pipeline.transform(new_rows)

        assert X_new.shape == (3, 5)
        assert not np.isnan(X_new).any()

    def test_smote_balances_classes(self, features, target):
        pipeline = PreprocessingPipeline(knn_neighbors=5)
        _, y_out = pipeline.fit_transform(features, target, apply_smote=True)

        counts = np.bincount(y_out)
        assert counts[0] == counts[1]

    def test_smote_needs_two_classes(self, features):
        pipeline = PreprocessingPipeline(knn_neighbors=5)
        with pytest.raises(ValueError):
            pipeline.fit_transform(features, np.zeros(len(features), dtype=int), apply_smote=True)
