"""
Outlier detection module.

A value is an outlier when it lies strictly more than ``n_sigma`` sample
standard deviations (n-1 denominator) away from the sample mean. The default
of 3 sigma is the rule used throughout the report.
"""

import logging
from typing import List, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from dstat_ml import OUTLIER_N_SIGMA
from dstat_ml.exceptions import InvalidInputError

logger = logging.getLogger(__name__)

Sample = Union[Sequence[float], np.ndarray, pd.Series]


def _as_float_array(sample: Sample) -> np.ndarray:
    """Validate a sample and return it as a float array."""
    try:
        values = np.asarray(sample, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Sample must contain real numbers: {e}") from e

    if values.ndim != 1:
        raise InvalidInputError(
            f"Sample must be one-dimensional, got shape {values.shape}"
        )

    if len(values) < 2:
        raise InvalidInputError(
            f"At least 2 values are needed to compute a standard deviation, "
            f"got {len(values)}"
        )

    if not np.all(np.isfinite(values)):
        raise InvalidInputError(
            "Sample contains missing or non-finite values; drop them first"
        )

    return values


def outlier_limits(
    sample: Sample,
    n_sigma: float = OUTLIER_N_SIGMA,
) -> Tuple[float, float]:
    """
    Calculate the lower and upper outlier limits of a sample.

    Parameters
    ----------
    sample : sequence of float
        Numeric values of a single feature
    n_sigma : float
        Number of sample standard deviations (default: 3)

    Returns
    -------
    lower_limit : float
        mean - n_sigma * std
    upper_limit : float
        mean + n_sigma * std
    """
    values = _as_float_array(sample)

    mean_val = values.mean()
    std_val = values.std(ddof=1)

    return mean_val - n_sigma * std_val, mean_val + n_sigma * std_val


def detect_outliers(
    sample: Sample,
    n_sigma: float = OUTLIER_N_SIGMA,
) -> Union[List, pd.Series]:
    """
    Detect values beyond ``n_sigma`` standard deviations from the mean.

    Parameters
    ----------
    sample : sequence of float
        Numeric values of a single feature. Not modified.
    n_sigma : float
        Number of sample standard deviations (default: 3)

    Returns
    -------
    list or pd.Series
        Outlying elements in their original order. A Series input returns
        the matching subset of the Series (index preserved).

    Raises
    ------
    InvalidInputError
        If the sample has fewer than 2 values or contains non-finite values.
    """
    values = _as_float_array(sample)

    # Constant sample: no spread, nothing can be an outlier
    if np.all(values == values[0]):
        mask = np.zeros(len(values), dtype=bool)
    else:
        lower_limit, upper_limit = outlier_limits(values, n_sigma=n_sigma)
        mask = (values > upper_limit) | (values < lower_limit)

    if isinstance(sample, pd.Series):
        return sample[mask]

    return [item for item, flagged in zip(sample, mask) if flagged]


def summarize_outliers(
    df: pd.DataFrame,
    columns: List[str],
    n_sigma: float = OUTLIER_N_SIGMA,
) -> pd.DataFrame:
    """
    Count outliers per numeric column.

    Missing and infinite values are dropped per column before detection.
    Columns with fewer than two remaining values are skipped.

    Parameters
    ----------
    df : pd.DataFrame
        Input dataframe
    columns : list
        Numeric columns to analyse
    n_sigma : float
        Number of sample standard deviations (default: 3)

    Returns
    -------
    pd.DataFrame
        One row per column with n, mean, std, limits and outlier counts
    """
    rows = []

    for col in columns:
        observed = df[col].dropna()
        finite = np.isfinite(observed.astype(float))
        if not finite.all():
            logger.warning(
                f"Ignoring {int((~finite).sum())} infinite value(s) in '{col}' "
                "for outlier detection"
            )
            observed = observed[finite]

        if len(observed) < 2:
            logger.warning(
                f"Skipping outlier detection for '{col}': "
                f"only {len(observed)} observed value(s)"
            )
            continue

        outliers = detect_outliers(observed, n_sigma=n_sigma)
        lower_limit, upper_limit = outlier_limits(observed, n_sigma=n_sigma)

        rows.append(
            {
                "feature": col,
                "n": len(observed),
                "mean": observed.mean(),
                "std": observed.std(ddof=1),
                "lower_limit": lower_limit,
                "upper_limit": upper_limit,
                "n_outliers": len(outliers),
                "pct_outliers": len(outliers) / len(observed) * 100,
            }
        )

        if len(outliers) > 0:
            logger.info(
                f"  {col}: {len(outliers)} outlier(s) beyond {n_sigma:g} SD "
                f"(limits {lower_limit:.2f} to {upper_limit:.2f})"
            )

    summary = pd.DataFrame(
        rows,
        columns=[
            "feature",
            "n",
            "mean",
            "std",
            "lower_limit",
            "upper_limit",
            "n_outliers",
            "pct_outliers",
        ],
    )

    logger.info(
        f"Outlier detection: {int(summary['n_outliers'].sum())} outliers "
        f"across {len(summary)} numeric features"
    )

    return summary
