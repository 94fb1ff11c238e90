"""
Evaluation metrics module.

Confusion-matrix based evaluation for binary discharge status:
- Confusion matrix with an explicit positive label
- Accuracy, false positive rate, sensitivity, specificity
- ROC-AUC and Brier score on predicted probabilities

Rates with an empty denominator are NaN, never 0, so that "the rate is 0"
and "the rate is undefined" stay distinguishable.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import numpy as np
import pandas as pd
from sklearn.metrics import brier_score_loss, confusion_matrix, roc_auc_score

from dstat_ml import NEGATIVE_LABEL, POSITIVE_LABEL
from dstat_ml.exceptions import InvalidInputError, ShapeMismatchError, UnknownLabelError

logger = logging.getLogger(__name__)


def _safe_ratio(numerator: int, denominator: int) -> float:
    """Return numerator / denominator, or NaN when the denominator is 0."""
    if denominator == 0:
        return np.nan
    return numerator / denominator


@dataclass(frozen=True)
class ConfusionMatrix:
    """2x2 tabulation of predicted vs actual binary labels."""

    true_positive: int
    true_negative: int
    false_positive: int
    false_negative: int
    positive_label: Any = POSITIVE_LABEL
    negative_label: Any = NEGATIVE_LABEL

    @property
    def total(self) -> int:
        return (
            self.true_positive
            + self.true_negative
            + self.false_positive
            + self.false_negative
        )

    @property
    def accuracy(self) -> float:
        """(TP + TN) / total; NaN for an empty matrix."""
        return _safe_ratio(self.true_positive + self.true_negative, self.total)

    @property
    def false_positive_rate(self) -> float:
        """FP / (FP + TN); NaN when there are no actual negatives."""
        return _safe_ratio(
            self.false_positive, self.false_positive + self.true_negative
        )

    @property
    def sensitivity(self) -> float:
        """TP / (TP + FN); NaN when there are no actual positives."""
        return _safe_ratio(
            self.true_positive, self.true_positive + self.false_negative
        )

    @property
    def specificity(self) -> float:
        """TN / (TN + FP); NaN when there are no actual negatives."""
        return _safe_ratio(
            self.true_negative, self.true_negative + self.false_positive
        )

    def to_dict(self) -> Dict[str, Any]:
        """Counts and derived rates as a flat dictionary."""
        return {
            "tp": self.true_positive,
            "tn": self.true_negative,
            "fp": self.false_positive,
            "fn": self.false_negative,
            "accuracy": self.accuracy,
            "false_positive_rate": self.false_positive_rate,
            "sensitivity": self.sensitivity,
            "specificity": self.specificity,
        }

    def to_frame(self) -> pd.DataFrame:
        """
        Render as a 2x2 table.

        Rows are actual labels, columns are predicted labels, positive
        label first.
        """
        labels = [self.positive_label, self.negative_label]
        return pd.DataFrame(
            [
                [self.true_positive, self.false_negative],
                [self.false_positive, self.true_negative],
            ],
            index=pd.Index(labels, name="Actual"),
            columns=pd.Index(labels, name="Predicted"),
        )


def evaluate(
    predicted: Sequence,
    actual: Sequence,
    positive_label: Any = POSITIVE_LABEL,
    negative_label: Any = NEGATIVE_LABEL,
) -> ConfusionMatrix:
    """
    Tabulate predicted vs actual labels into a confusion matrix.

    Parameters
    ----------
    predicted : sequence
        Predicted labels
    actual : sequence
        True labels, same length as ``predicted``
    positive_label : any
        Label counted as the positive class (default: "Dead")
    negative_label : any
        Label counted as the negative class (default: "Alive")

    Returns
    -------
    ConfusionMatrix
        TP, TN, FP and FN counts

    Raises
    ------
    InvalidInputError
        If the positive and negative labels are equal
    ShapeMismatchError
        If the sequences differ in length
    UnknownLabelError
        If any label is not one of the two declared labels
    """
    if positive_label == negative_label:
        raise InvalidInputError(
            f"Positive and negative labels must differ, both are {positive_label!r}"
        )

    predicted = list(predicted)
    actual = list(actual)

    if len(predicted) != len(actual):
        raise ShapeMismatchError(len(predicted), len(actual))

    allowed = (positive_label, negative_label)
    for name, labels in (("predicted", predicted), ("actual", actual)):
        for i, label in enumerate(labels):
            # Missing values (None, NaN, pd.NA) are never a declared label
            if pd.isna(label) or label not in allowed:
                raise UnknownLabelError(label, allowed, where=f"{name}[{i}]")

    if not actual:
        tn = fp = fn = tp = 0
    else:
        cm = confusion_matrix(
            np.asarray(actual),
            np.asarray(predicted),
            labels=[negative_label, positive_label],
        )
        tn, fp, fn, tp = (int(count) for count in cm.ravel())

    return ConfusionMatrix(
        true_positive=tp,
        true_negative=tn,
        false_positive=fp,
        false_negative=fn,
        positive_label=positive_label,
        negative_label=negative_label,
    )


def calculate_all_metrics(
    y_true: Sequence,
    y_pred: Sequence,
    y_proba: Optional[np.ndarray] = None,
    positive_label: Any = POSITIVE_LABEL,
    negative_label: Any = NEGATIVE_LABEL,
) -> Dict[str, float]:
    """
    Calculate all evaluation metrics.

    Parameters
    ----------
    y_true : sequence
        True labels
    y_pred : sequence
        Predicted labels
    y_proba : np.ndarray, optional
        Predicted probabilities for the positive class
    positive_label : any
        Positive class label
    negative_label : any
        Negative class label

    Returns
    -------
    dict
        Dictionary of metric names and values
    """
    cm = evaluate(
        predicted=y_pred,
        actual=y_true,
        positive_label=positive_label,
        negative_label=negative_label,
    )

    metrics = cm.to_dict()

    if y_proba is None:
        metrics["roc_auc"] = np.nan
        metrics["brier"] = np.nan
        return metrics

    y_binary = np.array([1 if label == positive_label else 0 for label in y_true])
    y_proba = np.asarray(y_proba, dtype=float)

    # Probabilistic metrics
    try:
        metrics["roc_auc"] = roc_auc_score(y_binary, y_proba)
    except ValueError as e:
        logger.warning(f"Could not calculate ROC-AUC: {e}")
        metrics["roc_auc"] = np.nan

    try:
        metrics["brier"] = brier_score_loss(y_binary, y_proba)
    except ValueError as e:
        logger.warning(f"Could not calculate Brier score: {e}")
        metrics["brier"] = np.nan

    return metrics


class MajorityClassBaseline:
    """
    Baseline classifier that always predicts the majority label.

    Used to contextualize model performance relative to a trivial strategy.
    """

    def __init__(self):
        self.majority_label_ = None

    def fit(self, y: Sequence):
        """Fit by finding the majority label."""
        labels, counts = np.unique(np.asarray(list(y), dtype=object), return_counts=True)
        if len(labels) == 0:
            raise ValueError("Cannot fit baseline on empty labels.")
        self.majority_label_ = labels[np.argmax(counts)]
        logger.debug(f"Majority class baseline: always predict {self.majority_label_!r}")
        return self

    def predict(self, n_samples: int) -> np.ndarray:
        """Predict the majority label for all samples."""
        if self.majority_label_ is None:
            raise ValueError("Baseline not fitted yet.")
        return np.full(n_samples, self.majority_label_, dtype=object)
