"""Shared fixtures: a small synthetic discharge status dataset."""
import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def clinical_df():
    """200 synthetic patients; AGE and SHOCK depend on outcome, HR and SEX do not."""
    rng = np.random.default_rng(42)
    n = 200

    dead = rng.random(n) < 0.3
    # Guarantee both outcomes regardless of the draw
    dead[:10] = True
    dead[10:20] = False

    age = np.where(dead, rng.normal(75, 6, n), rng.normal(55, 8, n)).round(0)
    heart_rate = rng.normal(85, 12, n).round(0)
    sex = rng.choice(["M", "F"], size=n)
    shock = np.where(
        dead,
        np.where(rng.random(n) < 0.8, "Yes", "No"),
        np.where(rng.random(n) < 0.1, "Yes", "No"),
    )
    lactate = np.where(dead, rng.normal(4.0, 1.0, n), rng.normal(1.5, 0.5, n)).round(2)
    lactate[rng.choice(n, size=8, replace=False)] = np.nan

    return pd.DataFrame(
        {
            "ID": np.arange(1, n + 1),
            "AGE": age,
            "HR": heart_rate,
            "SEX": sex,
            "SHOCK": shock,
            "LACTATE": lactate,
            "DSTAT": np.where(dead, "Dead", "Alive"),
        }
    )


@pytest.fixture
def clinical_csv(tmp_path, clinical_df):
    """The synthetic dataset written to a CSV file."""
    path = tmp_path / "clinical.csv"
    clinical_df.to_csv(path, index=False)
    return path
