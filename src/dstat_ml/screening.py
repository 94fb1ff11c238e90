"""
Univariate exploration and chi-squared screening against discharge status.

Includes:
- Per-outcome descriptive statistics for every feature
- Chi-squared test of independence between each feature and the outcome
- Post-hoc feature screening: features independent of the outcome are dropped
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np
import pandas as pd
from scipy.stats import chi2_contingency

from dstat_ml import OUTCOME_COLUMN

logger = logging.getLogger(__name__)


@dataclass
class Chi2Result:
    """Result of a chi-squared independence test for a single feature."""

    feature: str
    statistic: float
    p_value: float
    dof: int
    n: int
    binned: bool  # numeric feature discretized into quantile bins


def describe_by_outcome(
    df: pd.DataFrame,
    features: List[str],
    outcome_col: str = OUTCOME_COLUMN,
) -> pd.DataFrame:
    """
    Describe each feature separately for every outcome label.

    Numeric features get mean, standard deviation and median; categorical
    features get their most frequent level and number of levels.

    Parameters
    ----------
    df : pd.DataFrame
        Input dataframe
    features : list
        Feature columns to describe
    outcome_col : str
        Outcome column name

    Returns
    -------
    pd.DataFrame
        Long table: one row per feature per outcome label
    """
    rows = []

    for feature in features:
        is_numeric = pd.api.types.is_numeric_dtype(df[feature])

        for label, group in df.groupby(outcome_col):
            values = group[feature].dropna()
            row = {
                "feature": feature,
                "outcome": label,
                "type": "numeric" if is_numeric else "categorical",
                "n": len(values),
                "missing": int(group[feature].isna().sum()),
            }

            if is_numeric:
                row["mean"] = values.mean() if len(values) else np.nan
                row["std"] = values.std(ddof=1) if len(values) > 1 else np.nan
                row["median"] = values.median() if len(values) else np.nan
            else:
                counts = values.value_counts()
                row["top_level"] = counts.index[0] if len(counts) else None
                row["top_count"] = int(counts.iloc[0]) if len(counts) else 0
                row["n_levels"] = len(counts)

            rows.append(row)

    return pd.DataFrame(rows)


def _contingency_table(
    df: pd.DataFrame,
    feature: str,
    outcome_col: str,
    n_bins: int,
) -> Tuple[pd.DataFrame, bool]:
    """Cross-tabulate a feature against the outcome, binning wide numeric features."""
    data = df[[feature, outcome_col]].dropna()
    values = data[feature]
    binned = False

    if pd.api.types.is_numeric_dtype(values) and values.nunique() > n_bins:
        values = pd.qcut(values, q=n_bins, duplicates="drop")
        binned = True

    return pd.crosstab(values, data[outcome_col]), binned


def chi2_independence(
    df: pd.DataFrame,
    feature: str,
    outcome_col: str = OUTCOME_COLUMN,
    n_bins: int = 4,
) -> Chi2Result:
    """
    Chi-squared test of independence between a feature and the outcome.

    Numeric features with more than ``n_bins`` distinct values are split
    into quantile bins first. Rows missing either value are ignored.

    Parameters
    ----------
    df : pd.DataFrame
        Input dataframe
    feature : str
        Feature column
    outcome_col : str
        Outcome column name
    n_bins : int
        Number of quantile bins for numeric features (default: 4)

    Returns
    -------
    Chi2Result
        Test statistic and p-value; NaN when the contingency table has
        fewer than two levels on either axis
    """
    table, binned = _contingency_table(df, feature, outcome_col, n_bins)
    n = int(table.values.sum())

    if table.shape[0] < 2 or table.shape[1] < 2:
        logger.warning(
            f"Chi-squared test undefined for '{feature}': "
            f"contingency table has shape {table.shape}"
        )
        return Chi2Result(feature, np.nan, np.nan, 0, n, binned)

    statistic, p_value, dof, _ = chi2_contingency(table)

    return Chi2Result(feature, float(statistic), float(p_value), int(dof), n, binned)


def screen_features(
    df: pd.DataFrame,
    features: List[str],
    outcome_col: str = OUTCOME_COLUMN,
    alpha: float = 0.05,
    n_bins: int = 4,
) -> Tuple[pd.DataFrame, List[str]]:
    """
    Drop features that are independent of the outcome.

    A feature is retained when its chi-squared p-value is below ``alpha``.
    Features whose test is undefined are dropped.

    Parameters
    ----------
    df : pd.DataFrame
        Input dataframe
    features : list
        Candidate feature columns
    outcome_col : str
        Outcome column name
    alpha : float
        Significance level (default: 0.05)
    n_bins : int
        Number of quantile bins for numeric features

    Returns
    -------
    results : pd.DataFrame
        One row per feature, sorted by p-value, with a 'retained' flag
    retained_features : list
        Features associated with the outcome, in their original order
    """
    results = [
        chi2_independence(df, feature, outcome_col=outcome_col, n_bins=n_bins)
        for feature in features
    ]

    results_df = pd.DataFrame(
        [vars(r) for r in results],
        columns=["feature", "statistic", "p_value", "dof", "n", "binned"],
    )
    results_df["retained"] = results_df["p_value"] < alpha

    undefined = results_df.loc[results_df["p_value"].isna(), "feature"].tolist()
    if undefined:
        logger.warning(f"Dropping {len(undefined)} features with undefined test: {undefined}")

    retained_set = set(results_df.loc[results_df["retained"], "feature"])
    retained_features = [f for f in features if f in retained_set]

    dropped = [f for f in features if f not in retained_set]
    logger.info(
        f"Chi-squared screening (alpha={alpha}): "
        f"{len(retained_features)}/{len(features)} features retained"
    )
    for feature in dropped:
        p_value = results_df.loc[results_df["feature"] == feature, "p_value"].iloc[0]
        logger.info(f"  Dropped {feature} (p={p_value:.3f})")

    results_df = results_df.sort_values("p_value", na_position="last").reset_index(drop=True)

    return results_df, retained_features
