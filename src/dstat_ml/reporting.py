"""
Tables and text outputs of the discharge status report.

Includes:
- Metrics summary tables per model and split (CSV, Markdown)
- Labelled confusion matrix tables
- Outlier and chi-squared screening tables
- Misclassified patient exports
- Console summary

Undefined rates (NaN) are rendered as "undefined", never as 0.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from dstat_ml import CLASSIFICATION_THRESHOLD
from dstat_ml.metrics import ConfusionMatrix
from dstat_ml.models import get_model_name

logger = logging.getLogger(__name__)

UNDEFINED = "undefined"


def format_rate(value: Optional[float], digits: int = 3) -> str:
    """Format a rate, rendering NaN/None as 'undefined'."""
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return UNDEFINED
    return f"{value:.{digits}f}"


def _summary_row(model_name: str, split_result: Dict[str, Any]) -> Dict[str, Any]:
    cm = split_result["confusion"]
    metrics = split_result["metrics"]
    return {
        "Model": model_name,
        "Split": split_result["split"],
        "N": cm.total,
        "TP": cm.true_positive,
        "TN": cm.true_negative,
        "FP": cm.false_positive,
        "FN": cm.false_negative,
        "ACCURACY": format_rate(cm.accuracy),
        "FALSE_POSITIVE_RATE": format_rate(cm.false_positive_rate),
        "SENSITIVITY": format_rate(cm.sensitivity),
        "SPECIFICITY": format_rate(cm.specificity),
        "ROC_AUC": format_rate(metrics.get("roc_auc")),
    }


def create_metrics_summary_table(
    results: Dict[str, Dict[str, Dict]],
    baseline_results: Optional[Dict[str, Dict]] = None,
) -> pd.DataFrame:
    """
    Create summary table with one row per model per split.

    Parameters
    ----------
    results : dict
        Dictionary of model_type: split: split result
    baseline_results : dict, optional
        Baseline split results

    Returns
    -------
    pd.DataFrame
        Summary table with counts and formatted rates
    """
    rows = []

    if baseline_results:
        for split_result in baseline_results.values():
            rows.append(_summary_row(get_model_name("baseline"), split_result))

    for model_type, split_results in results.items():
        for split_result in split_results.values():
            rows.append(_summary_row(get_model_name(model_type), split_result))

    return pd.DataFrame(rows)


def create_confusion_matrix_table(cm: ConfusionMatrix) -> pd.DataFrame:
    """
    Labelled 2x2 confusion matrix.

    Row and column labels name the positive class explicitly so the
    TP/TN quadrants cannot be confused.
    """
    table = cm.to_frame()
    table.index = [f"Actual {label}" for label in table.index]
    table.columns = [f"Predicted {label}" for label in table.columns]
    return table


def save_summary_table(
    df: pd.DataFrame,
    output_dir: Path,
    positive_label: Any,
    filename_stem: str = "summary",
    threshold: float = CLASSIFICATION_THRESHOLD,
):
    """
    Write the summary table as CSV and as a Markdown report.

    Parameters
    ----------
    df : pd.DataFrame
        Summary table
    output_dir : Path
        Output directory
    positive_label : any
        Positive class used for TP/FP counting
    filename_stem : str
        Filename stem (without extension)
    threshold : float
        Probability cut-off the networks were evaluated at
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    csv_path = output_dir / f"{filename_stem}.csv"
    df.to_csv(csv_path, index=False)
    logger.info(f"Summary table: {csv_path}")

    md_path = output_dir / f"{filename_stem}.md"
    with open(md_path, "w") as f:
        f.write("# Discharge Status Prediction Model Performance Summary\n\n")
        f.write(f"**Positive class**: {positive_label}\n\n")
        f.write(f"**Classification Threshold**: {threshold}\n\n")
        f.write(df.to_markdown(index=False))
        f.write("\n\n")
        f.write("## Definitions\n\n")
        f.write("Counts are per split; rates are computed from them.\n\n")
        f.write("- **ACCURACY**: (TP + TN) / N\n")
        f.write(
            f"- **FALSE_POSITIVE_RATE**: FP / (FP + TN), the share of actual "
            f"non-{positive_label} patients predicted {positive_label}\n"
        )
        f.write("- **SENSITIVITY**: TP / (TP + FN)\n")
        f.write("- **SPECIFICITY**: TN / (TN + FP)\n")
        f.write("- **ROC_AUC**: Area under the ROC curve\n\n")
        f.write(
            f"A rate shown as `{UNDEFINED}` has an empty denominator (for example "
            "no actual negatives in the split). It is not the same as 0.\n"
        )

    logger.info(f"Summary report: {md_path}")


def save_confusion_matrices(
    results: Dict[str, Dict[str, Dict]],
    output_dir: Path,
    baseline_results: Optional[Dict[str, Dict]] = None,
):
    """
    Save every confusion matrix as a labelled Markdown table plus JSON counts.

    Parameters
    ----------
    results : dict
        Dictionary of model_type: split: split result
    output_dir : Path
        Output directory
    baseline_results : dict, optional
        Baseline split results
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    all_results = dict(results)
    if baseline_results:
        all_results = {"baseline": baseline_results, **all_results}

    md_path = output_dir / "confusion_matrices.md"
    counts = {}

    with open(md_path, "w") as f:
        f.write("# Confusion Matrices\n\n")
        for model_type, split_results in all_results.items():
            for split, split_result in split_results.items():
                cm = split_result["confusion"]
                f.write(f"## {get_model_name(model_type)} ({split})\n\n")
                f.write(f"Positive class: **{cm.positive_label}**\n\n")
                f.write(create_confusion_matrix_table(cm).to_markdown())
                f.write("\n\n")
                f.write(
                    f"Accuracy: {format_rate(cm.accuracy)}, "
                    f"False positive rate: {format_rate(cm.false_positive_rate)}\n\n"
                )
                counts.setdefault(model_type, {})[split] = {
                    "tp": cm.true_positive,
                    "tn": cm.true_negative,
                    "fp": cm.false_positive,
                    "fn": cm.false_negative,
                    "positive_label": str(cm.positive_label),
                    "negative_label": str(cm.negative_label),
                }

    with open(output_dir / "confusion_matrices.json", "w") as f:
        json.dump(counts, f, indent=2)

    logger.info(f"Saved confusion matrices to {md_path}")


def save_outlier_summary(summary: pd.DataFrame, output_dir: Path):
    """Save per-feature outlier counts to CSV."""
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / "outliers.csv"
    summary.to_csv(output_path, index=False)
    logger.info(f"Saved outlier summary to {output_path}")


def save_screening_results(
    results: pd.DataFrame,
    output_dir: Path,
    descriptives: Optional[pd.DataFrame] = None,
):
    """Save chi-squared screening results and per-outcome descriptives to CSV."""
    output_dir.mkdir(parents=True, exist_ok=True)

    output_path = output_dir / "chi2_screening.csv"
    results.to_csv(output_path, index=False)
    logger.info(f"Saved chi-squared screening results to {output_path}")

    if descriptives is not None:
        desc_path = output_dir / "univariate_by_outcome.csv"
        descriptives.to_csv(desc_path, index=False)
        logger.info(f"Saved univariate descriptives to {desc_path}")


def print_console_summary(
    df: pd.DataFrame,
    positive_label: Any,
    threshold: float = CLASSIFICATION_THRESHOLD,
):
    """
    Print the summary table to stdout.

    Parameters
    ----------
    df : pd.DataFrame
        Summary table
    positive_label : any
        Positive class
    threshold : float
        Probability cut-off the networks were evaluated at
    """
    print("\n" + "=" * 100)
    print("DISCHARGE STATUS PREDICTION MODEL PERFORMANCE SUMMARY")
    print("=" * 100)
    print(f"\nPositive class: {positive_label}")
    print(f"Classification Threshold: {threshold}")
    print("\nResults per model and split:\n")
    print(df.to_string(index=False))
    print("\n" + "=" * 100)
    print("\nNotes:")
    print("  - Compare test accuracy with the majority-class baseline")
    print(f"  - '{UNDEFINED}' marks a rate with an empty denominator, not a zero rate")
    print("  - See tables/summary.md and tables/confusion_matrices.md for details")
    print("=" * 100 + "\n")


def predictions_frame(split_result: Dict[str, Any]) -> pd.DataFrame:
    """One row per patient of a split: row position, true and predicted label, probability."""
    return pd.DataFrame(
        {
            "index": split_result["indices"],
            "y_true": split_result["y_true"],
            "y_pred": split_result["y_pred"],
            "y_proba": split_result["y_proba"],
        }
    )


def save_split_predictions(
    results: Dict[str, Dict[str, Dict]],
    output_dir: Path,
):
    """
    Save per-split predictions for all models.

    Parameters
    ----------
    results : dict
        Dictionary of model_type: split: split result
    output_dir : Path
        Output directory
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    for model_type, split_results in results.items():
        model_dir = output_dir / model_type
        model_dir.mkdir(parents=True, exist_ok=True)

        for split, split_result in split_results.items():
            predictions_frame(split_result).to_csv(
                model_dir / f"predictions_{split}.csv", index=False
            )

    logger.info(f"Saved split-level predictions to {output_dir}")


def identify_and_save_misclassifications(
    results: Dict[str, Dict[str, Dict]],
    original_df: pd.DataFrame,
    output_dir: Path,
    split: str = "test",
):
    """
    Identify misclassified patients and save their original data.

    Parameters
    ----------
    results : dict
        Dictionary of model_type: split: split result
    original_df : pd.DataFrame
        Original dataframe (positional rows match the split indices)
    output_dir : Path
        Output directory for misclassification files
    split : str
        Which split to analyse (default: 'test')
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    for model_type, split_results in results.items():
        split_result = split_results.get(split)
        if split_result is None:
            continue

        cm = split_result["confusion"]
        y_true = np.asarray(split_result["y_true"], dtype=object)
        y_pred = np.asarray(split_result["y_pred"], dtype=object)
        indices = np.asarray(split_result["indices"])

        misclassified_mask = y_true != y_pred
        n_misclassified = int(misclassified_mask.sum())

        if n_misclassified == 0:
            logger.info(f"No misclassifications found for {get_model_name(model_type)}")
            continue

        misclassified_df = original_df.iloc[indices[misclassified_mask]].copy()
        misclassified_df.insert(0, "row_position", indices[misclassified_mask])
        misclassified_df.insert(1, "true_label", y_true[misclassified_mask])
        misclassified_df.insert(2, "predicted_label", y_pred[misclassified_mask])
        misclassified_df.insert(
            3,
            "error_type",
            np.where(
                y_pred[misclassified_mask] == cm.positive_label,
                "False Positive",
                "False Negative",
            ),
        )
        if split_result["y_proba"] is not None:
            misclassified_df.insert(
                4,
                "predicted_probability",
                np.asarray(split_result["y_proba"])[misclassified_mask],
            )

        output_file = output_dir / f"misclassified_patients_{model_type}.csv"
        misclassified_df.to_csv(output_file, index=False)

        logger.info(
            f"Saved {n_misclassified} misclassified patients for "
            f"{get_model_name(model_type)}: {cm.false_positive} FP, "
            f"{cm.false_negative} FN -> {output_file}"
        )

        summary = {
            "model": get_model_name(model_type),
            "split": split,
            "positive_label": str(cm.positive_label),
            "total_misclassified": n_misclassified,
            "false_positives": cm.false_positive,
            "false_negatives": cm.false_negative,
            "false_positive_rate": None if np.isnan(cm.false_positive_rate) else cm.false_positive_rate,
        }

        summary_file = output_dir / f"misclassification_summary_{model_type}.json"
        with open(summary_file, "w") as f:
            json.dump(summary, f, indent=2)


def generate_all_reports(
    results: Dict[str, Dict[str, Dict]],
    baseline_results: Optional[Dict[str, Dict]],
    output_dir: Path,
    positive_label: Any,
    original_df: Optional[pd.DataFrame] = None,
    outlier_summary: Optional[pd.DataFrame] = None,
    screening_results: Optional[pd.DataFrame] = None,
    descriptives: Optional[pd.DataFrame] = None,
    threshold: float = CLASSIFICATION_THRESHOLD,
):
    """
    Write every table, prediction file and misclassification export.

    Parameters
    ----------
    results : dict
        Dictionary of model_type: split: split result
    baseline_results : dict, optional
        Baseline split results
    output_dir : Path
        Output directory
    positive_label : any
        Positive class
    original_df : pd.DataFrame, optional
        Original dataframe for misclassification export
    outlier_summary : pd.DataFrame, optional
        Output of summarize_outliers
    screening_results : pd.DataFrame, optional
        Output of screen_features
    descriptives : pd.DataFrame, optional
        Output of describe_by_outcome
    threshold : float
        Probability cut-off used by the networks (``classification_threshold``)
    """
    logger.info(f"Writing reports to {output_dir}")

    df = create_metrics_summary_table(results, baseline_results)

    print_console_summary(df, positive_label, threshold=threshold)

    tables_dir = output_dir / "tables"
    save_summary_table(df, tables_dir, positive_label, threshold=threshold)
    save_confusion_matrices(results, tables_dir, baseline_results)

    if outlier_summary is not None:
        save_outlier_summary(outlier_summary, tables_dir)

    if screening_results is not None:
        save_screening_results(screening_results, tables_dir, descriptives)

    save_split_predictions(results, output_dir / "predictions")

    if original_df is not None:
        logger.info("Exporting misclassified test patients")
        identify_and_save_misclassifications(
            results=results,
            original_df=original_df,
            output_dir=output_dir / "misclassifications",
        )
    else:
        logger.warning(
            "Original dataframe not provided. Skipping misclassification analysis."
        )

    logger.info("Reports complete")
