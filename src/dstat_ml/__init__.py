"""
DSTAT ML: Discharge status exploratory analysis and prediction report

A reproducible report for a small clinical dataset: univariate exploration
against discharge status, chi-squared screening, 3-sigma outlier detection
and three small feed-forward neural networks evaluated by confusion matrix.
"""

__version__ = "1.0.0"

# Explicit classification threshold used throughout the pipeline
CLASSIFICATION_THRESHOLD = 0.5

# Discharge status outcome and its two labels
OUTCOME_COLUMN = "DSTAT"
TARGET_COLUMN = "target"
POSITIVE_LABEL = "Dead"
NEGATIVE_LABEL = "Alive"

# Values further than this many sample standard deviations are outliers
OUTLIER_N_SIGMA = 3.0

__all__ = [
    "__version__",
    "CLASSIFICATION_THRESHOLD",
    "OUTCOME_COLUMN",
    "TARGET_COLUMN",
    "POSITIVE_LABEL",
    "NEGATIVE_LABEL",
    "OUTLIER_N_SIGMA",
]
