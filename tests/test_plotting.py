"""Smoke tests for figure generation."""
import numpy as np
import pandas as pd

from dstat_ml.metrics import evaluate
from dstat_ml.plotting import plot_all_figures, plot_missing_data


def test_plot_all_figures(tmp_path, clinical_df):
    results = {
        model_type: {
            split: {"confusion": evaluate(["Dead", "Alive", "Alive"], ["Dead", "Dead", "Alive"])}
            for split in ("train", "test")
        }
        for model_type in ("nn_small", "nn_medium")
    }
    screening = pd.DataFrame(
        {"feature": ["AGE", "SEX"], "p_value": [1e-8, 0.4], "retained": [True, False]}
    )

    plot_all_figures(
        results,
        tmp_path,
        screening_results=screening,
        df=clinical_df,
        features=["AGE", "SEX"],
    )

    assert (tmp_path / "confusion_matrices_test.png").exists()
    assert (tmp_path / "confusion_matrices_train.svg").exists()
    assert (tmp_path / "chi2_pvalues.png").exists()
    assert (tmp_path / "univariate" / "hist_AGE.png").exists()
    assert (tmp_path / "univariate" / "box_AGE.png").exists()
    assert (tmp_path / "univariate" / "bar_SEX.png").exists()


def test_plot_missing_data(tmp_path):
    output_path = tmp_path / "missing.png"
    plot_missing_data(
        {"AGE": 1.0, "LACTATE": 0.96, "NOTES": np.float64(0.4)},
        retained_features=["AGE", "LACTATE"],
        output_path=output_path,
    )
    assert output_path.exists()
