"""
Data I/O module for loading and cleaning the discharge status dataset.

Responsibilities:
- Load data from CSV file
- Validate the DSTAT outcome and encode it as a binary target
- Clean obvious problems (whitespace, duplicates, numeric text)
- Detect feature variables
- Apply completion filter
"""

import logging
from pathlib import Path
from typing import Any, Optional, Tuple

import numpy as np
import pandas as pd

from dstat_ml import NEGATIVE_LABEL, OUTCOME_COLUMN, POSITIVE_LABEL, TARGET_COLUMN
from dstat_ml.exceptions import UnknownLabelError

logger = logging.getLogger(__name__)


def load_data(
    filepath: Path,
    outcome_col: str = OUTCOME_COLUMN,
    positive_label: Any = POSITIVE_LABEL,
    negative_label: Any = NEGATIVE_LABEL,
) -> pd.DataFrame:
    """
    Load discharge status dataset from CSV file.

    Parameters
    ----------
    filepath : Path
        Path to CSV file
    outcome_col : str
        Column name containing the discharge status labels
    positive_label : any
        Outcome label encoded as 1 (default: "Dead")
    negative_label : any
        Outcome label encoded as 0 (default: "Alive")

    Returns
    -------
    pd.DataFrame
        Loaded dataframe with binary 'target' outcome column
    """
    logger.info(f"Loading data from {filepath}")

    df = pd.read_csv(filepath)
    logger.info(f"Loaded CSV with shape {df.shape}")

    if outcome_col not in df.columns:
        raise ValueError(
            f"Outcome column '{outcome_col}' not found. "
            f"Available columns: {list(df.columns)}"
        )

    # Strip stray whitespace in text cells
    for col in df.select_dtypes(include=["object"]).columns:
        df[col] = df[col].map(lambda v: v.strip() if isinstance(v, str) else v)
        df[col] = df[col].replace("", np.nan)

    n_missing_outcome = df[outcome_col].isna().sum()
    if n_missing_outcome > 0:
        logger.warning(
            f"Dropping {n_missing_outcome} rows with missing '{outcome_col}'"
        )
        df = df[df[outcome_col].notna()].reset_index(drop=True)

    allowed = (positive_label, negative_label)
    for value in df[outcome_col].unique():
        if value not in allowed:
            raise UnknownLabelError(value, allowed, where=f"column '{outcome_col}'")

    df[TARGET_COLUMN] = (df[outcome_col] == positive_label).astype(int)

    logger.info(
        f"{positive_label} prevalence: {df[TARGET_COLUMN].sum()}/{len(df)} "
        f"({df[TARGET_COLUMN].mean()*100:.1f}%)"
    )

    return df


def clean_dataset(df: pd.DataFrame) -> pd.DataFrame:
    """
    Remove duplicate rows, convert numeric text columns and blank out infinities.

    Parameters
    ----------
    df : pd.DataFrame
        Input dataframe (not modified)

    Returns
    -------
    pd.DataFrame
        Cleaned copy
    """
    df = df.copy()

    n_before = len(df)
    df = df.drop_duplicates().reset_index(drop=True)
    if len(df) < n_before:
        logger.info(f"Dropped {n_before - len(df)} duplicate rows")

    for col in df.select_dtypes(include=["object"]).columns:
        converted = pd.to_numeric(df[col], errors="coerce")
        # Convert only when every observed value parsed as a number
        if df[col].notna().sum() > 0 and converted.notna().sum() == df[col].notna().sum():
            df[col] = converted
            logger.debug(f"Converted '{col}' to numeric")

    numeric_cols = df.select_dtypes(include=[np.number]).columns
    n_infinite = np.isinf(df[numeric_cols]).sum()
    n_infinite = n_infinite[n_infinite > 0]
    if len(n_infinite):
        logger.warning(
            f"Treating infinite values as missing: {n_infinite.to_dict()}"
        )
        df[numeric_cols] = df[numeric_cols].replace([np.inf, -np.inf], np.nan)

    return df


def detect_feature_variables(
    df: pd.DataFrame,
    outcome_col: str = OUTCOME_COLUMN,
    exclude_keywords: Optional[list] = None,
) -> list:
    """
    Detect feature variables based on column names.

    Excludes the outcome, the binary target and identifier-like columns.

    Parameters
    ----------
    df : pd.DataFrame
        Input dataframe
    outcome_col : str
        Outcome column name
    exclude_keywords : list, optional
        Lower-case column names to exclude (e.g., 'id', 'patient_id')

    Returns
    -------
    list
        List of feature variable names
    """
    if exclude_keywords is None:
        exclude_keywords = [
            "id",
            "patient_id",
            "subject_id",
            "record_id",
            "index",
        ]

    excluded = {outcome_col, TARGET_COLUMN}

    features = []
    for col in df.columns:
        if col in excluded or str(col).lower() in exclude_keywords:
            continue
        features.append(col)

    logger.info(f"Detected {len(features)} feature variables")
    logger.debug(f"Feature variables: {features[:10]}...")

    return features


def apply_completion_filter(
    df: pd.DataFrame,
    feature_cols: list,
    threshold: float = 0.90,
    outcome_col: str = OUTCOME_COLUMN,
) -> Tuple[pd.DataFrame, list, dict]:
    """
    Keep features observed in at least ``threshold`` of the patients.

    Parameters
    ----------
    df : pd.DataFrame
        Input dataframe
    feature_cols : list
        Candidate feature columns
    threshold : float
        Minimum share of non-missing values (default: 0.90)
    outcome_col : str
        Outcome column name, carried into the result

    Returns
    -------
    df_filtered : pd.DataFrame
        Identifier columns, kept features, outcome and target
    retained_features : list
        Kept features, in input order
    completion_rates : dict
        Share of non-missing values for every candidate feature
    """
    completion_rates = df[feature_cols].notna().mean().to_dict()
    retained_features = [c for c in feature_cols if completion_rates[c] >= threshold]

    logger.info(
        f"{len(retained_features)} of {len(feature_cols)} features are at least "
        f"{threshold:.0%} complete"
    )
    for col in feature_cols:
        if col not in retained_features:
            logger.info(f"  Dropping {col}: only {completion_rates[col]:.1%} complete")

    keep_cols = retained_features + [outcome_col, TARGET_COLUMN]
    id_cols = [
        c for c in df.columns
        if str(c).lower() in ("id", "patient_id", "subject_id") and c not in keep_cols
    ]

    return df[id_cols + keep_cols].copy(), retained_features, completion_rates


def prepare_dataset(
    filepath: Path,
    completion_threshold: float = 0.90,
    outcome_col: str = OUTCOME_COLUMN,
    positive_label: Any = POSITIVE_LABEL,
    negative_label: Any = NEGATIVE_LABEL,
    exclude_keywords: Optional[list] = None,
    config: Optional[dict] = None,
) -> Tuple[pd.DataFrame, list, dict]:
    """
    Load, clean and filter the dataset in one call.

    Values in ``config`` (keys ``completion_threshold``, ``outcome_column``,
    ``positive_label``, ``negative_label``, ``exclude_columns``) take
    precedence over the keyword arguments.

    Returns
    -------
    df_clean : pd.DataFrame
        Kept features, outcome labels and the binary 'target'
    feature_names : list
        Kept features
    completion_rates : dict
        Completion rate of every detected feature, kept or not
    """
    if config is not None:
        completion_threshold = config.get("completion_threshold", completion_threshold)
        outcome_col = config.get("outcome_column", outcome_col)
        positive_label = config.get("positive_label", positive_label)
        negative_label = config.get("negative_label", negative_label)
        exclude_keywords = config.get("exclude_columns", exclude_keywords)

    df = clean_dataset(
        load_data(
            filepath=filepath,
            outcome_col=outcome_col,
            positive_label=positive_label,
            negative_label=negative_label,
        )
    )

    candidates = detect_feature_variables(
        df=df,
        outcome_col=outcome_col,
        exclude_keywords=exclude_keywords,
    )
    if not candidates:
        raise ValueError(f"No feature columns found besides '{outcome_col}' and identifiers.")

    df_clean, feature_names, completion_rates = apply_completion_filter(
        df=df,
        feature_cols=candidates,
        threshold=completion_threshold,
        outcome_col=outcome_col,
    )
    if not feature_names:
        raise ValueError(
            f"No features passed the {completion_threshold*100:.0f}% completion filter."
        )

    if df_clean[TARGET_COLUMN].nunique() < 2:
        present = df_clean[outcome_col].unique().tolist()
        raise ValueError(
            f"Only one discharge status present in the data: {present}. "
            "Cannot train a classifier without both outcomes."
        )

    prevalence = df_clean[TARGET_COLUMN].mean()
    if prevalence < 0.05:
        logger.warning(
            f"{positive_label} prevalence is only {prevalence:.1%}; "
            "confusion matrices on the test split may have empty rows."
        )

    still_missing = df_clean[feature_names].isna().sum()
    still_missing = still_missing[still_missing > 0]
    if len(still_missing):
        logger.info(f"Missing values left for imputation: {still_missing.to_dict()}")

    logger.info(
        f"Prepared {len(df_clean)} patients x {len(feature_names)} features "
        f"({positive_label}: {int(df_clean[TARGET_COLUMN].sum())})"
    )

    return df_clean, feature_names, completion_rates
