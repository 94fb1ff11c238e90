"""
Error types raised by the analysis utilities.

All of them are input validation failures: the caller has to fix the data,
retrying will not help. Degenerate rates (empty denominators) are not errors
and are reported as NaN instead.
"""


class DstatError(ValueError):
    """Base class for dstat_ml validation errors."""


class InvalidInputError(DstatError):
    """Input cannot be analysed (too few values, non-finite values, bad labels)."""


class ShapeMismatchError(DstatError):
    """Predicted and actual label sequences differ in length."""

    def __init__(self, n_predicted: int, n_actual: int):
        self.n_predicted = n_predicted
        self.n_actual = n_actual
        super().__init__(
            f"Predicted and actual labels differ in length: "
            f"{n_predicted} predicted vs {n_actual} actual"
        )


class UnknownLabelError(DstatError):
    """A label is outside the declared positive/negative pair."""

    def __init__(self, label, allowed, where: str = ""):
        self.label = label
        self.allowed = tuple(allowed)
        location = f" in {where}" if where else ""
        super().__init__(
            f"Unknown label {label!r}{location}. Expected one of {list(self.allowed)}"
        )
