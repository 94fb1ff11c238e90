"""
Train/test split and feature preprocessing for the discharge status networks.

Every transformer learns its parameters from the training split alone; the
test split only ever goes through ``transform``.

Steps:
- Stratified train/test split on the binary target
- Numeric columns: KNN imputation
- Categorical columns: most-frequent imputation, then integer codes
- Standardization of the combined matrix
- Optional SMOTE oversampling of the training rows
"""

import logging
from typing import List, Tuple

import numpy as np
import pandas as pd
from imblearn.over_sampling import SMOTE
from sklearn.impute import KNNImputer, SimpleImputer
from sklearn.model_selection import train_test_split
from sklearn.preprocessing import OrdinalEncoder, StandardScaler

logger = logging.getLogger(__name__)


def split_dataset(
    X: pd.DataFrame,
    y: np.ndarray,
    test_size: float = 0.25,
    random_state: int = 42,
) -> Tuple[pd.DataFrame, pd.DataFrame, np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """
    Hold out a stratified test split.

    Parameters
    ----------
    X : pd.DataFrame
        Feature matrix
    y : np.ndarray
        Binary target (0/1)
    test_size : float
        Share of patients held out (default: 0.25)
    random_state : int
        Seed for the shuffle

    Returns
    -------
    X_train, X_test : pd.DataFrame
        Feature rows of each split
    y_train, y_test : np.ndarray
        Targets of each split
    train_idx, test_idx : np.ndarray
        Positions of each split's rows in X
    """
    y = np.asarray(y)

    train_idx, test_idx = train_test_split(
        np.arange(len(y)),
        test_size=test_size,
        random_state=random_state,
        stratify=y,
    )

    logger.info(
        f"Split {len(y)} patients into {len(train_idx)} train / {len(test_idx)} test "
        f"(positive share {y[train_idx].mean():.1%} / {y[test_idx].mean():.1%})"
    )

    return (
        X.iloc[train_idx],
        X.iloc[test_idx],
        y[train_idx],
        y[test_idx],
        train_idx,
        test_idx,
    )


class PreprocessingPipeline:
    """
    Imputation, encoding and scaling fitted on the training split.

    Numeric columns come first in the output matrix, followed by the
    encoded categorical columns (see ``output_feature_names_``).

    Parameters
    ----------
    knn_neighbors : int
        Neighbours used by the numeric KNN imputer (default: 10)
    smote_random_state : int
        Seed for SMOTE
    smote_k_neighbors : int
        Upper bound on SMOTE neighbours (default: 5); lowered when the
        minority class is smaller
    """

    def __init__(
        self,
        knn_neighbors: int = 10,
        smote_random_state: int = 42,
        smote_k_neighbors: int = 5,
    ):
        self.knn_neighbors = knn_neighbors
        self.smote_random_state = smote_random_state
        self.smote_k_neighbors = smote_k_neighbors

        self.knn_imputer = KNNImputer(n_neighbors=knn_neighbors)
        self.mode_imputer = SimpleImputer(strategy="most_frequent")
        # Levels not seen during fit are coded as -1
        self.encoder = OrdinalEncoder(
            handle_unknown="use_encoded_value",
            unknown_value=-1,
        )
        self.scaler = StandardScaler()

        self.input_columns_ = None
        self.numeric_features_ = None
        self.categorical_features_ = None

    def _check_fitted(self):
        if self.input_columns_ is None:
            raise ValueError("Pipeline not fitted yet. Call fit_transform first.")

    @staticmethod
    def _split_columns(X: pd.DataFrame) -> Tuple[List[str], List[str]]:
        """Partition columns into numeric and categorical, keeping order."""
        numeric = [c for c in X.columns if pd.api.types.is_numeric_dtype(X[c])]
        categorical = [c for c in X.columns if c not in numeric]
        return numeric, categorical

    def fit_transform(
        self,
        X: pd.DataFrame,
        y: np.ndarray,
        apply_smote: bool = False,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Learn imputation, encoding and scaling from the training split.

        Parameters
        ----------
        X : pd.DataFrame
            Training features
        y : np.ndarray
            Training target (0/1)
        apply_smote : bool
            Oversample the minority outcome after scaling (default: False)

        Returns
        -------
        X_fit : np.ndarray
            Matrix the networks are fitted on
        y_fit : np.ndarray
            Matching target, longer than ``y`` when SMOTE added rows
        """
        self.input_columns_ = list(X.columns)
        self.numeric_features_, self.categorical_features_ = self._split_columns(X)

        logger.debug(
            f"Preprocessing {len(X)} training rows: "
            f"numeric={self.numeric_features_}, categorical={self.categorical_features_}"
        )

        X_fit = self.scaler.fit_transform(self._impute_and_encode(X, fit=True))
        y_fit = np.asarray(y)

        if apply_smote:
            X_fit, y_fit = self._apply_smote(X_fit, y_fit)

        return X_fit, y_fit

    def transform(self, X: pd.DataFrame) -> np.ndarray:
        """
        Apply the fitted steps to new rows (no resampling).

        Parameters
        ----------
        X : pd.DataFrame
            Features with the training columns (any extra columns are ignored)

        Returns
        -------
        np.ndarray
            Scaled matrix in ``output_feature_names_`` order
        """
        self._check_fitted()
        X = X[self.input_columns_]
        return self.scaler.transform(self._impute_and_encode(X, fit=False))

    def _impute_and_encode(self, X: pd.DataFrame, fit: bool) -> np.ndarray:
        blocks = []

        if self.numeric_features_:
            numeric = X[self.numeric_features_]
            blocks.append(
                self.knn_imputer.fit_transform(numeric)
                if fit
                else self.knn_imputer.transform(numeric)
            )

        if self.categorical_features_:
            categorical = X[self.categorical_features_].astype(object)
            if fit:
                filled = self.mode_imputer.fit_transform(categorical)
                blocks.append(self.encoder.fit_transform(filled))
            else:
                filled = self.mode_imputer.transform(categorical)
                blocks.append(self.encoder.transform(filled))

        return np.hstack(blocks).astype(float)

    @property
    def output_feature_names_(self) -> List[str]:
        """Column names of the matrices returned by fit_transform/transform."""
        self._check_fitted()
        return self.numeric_features_ + self.categorical_features_

    def _apply_smote(
        self, X: np.ndarray, y: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Oversample the minority outcome on the training matrix."""
        counts = np.bincount(y.astype(int), minlength=2)
        if (counts > 0).sum() < 2:
            raise ValueError(
                f"SMOTE needs both discharge statuses in the training split, "
                f"got class counts {counts.tolist()}."
            )

        k_neighbors = min(self.smote_k_neighbors, counts.min() - 1)
        if k_neighbors < 1:
            logger.warning(
                f"Not applying SMOTE: minority outcome has only {counts.min()} "
                "training row(s)."
            )
            return X, y

        X_res, y_res = SMOTE(
            random_state=self.smote_random_state,
            k_neighbors=k_neighbors,
        ).fit_resample(X, y)

        logger.info(
            f"SMOTE (k={k_neighbors}): class counts {counts.tolist()} -> "
            f"{np.bincount(y_res).tolist()}"
        )

        return X_res, y_res


def create_preprocessing_pipeline(
    knn_neighbors: int = 10,
    smote_random_state: int = 42,
    smote_k_neighbors: int = 5,
) -> PreprocessingPipeline:
    """Build a PreprocessingPipeline from config values."""
    return PreprocessingPipeline(
        knn_neighbors=knn_neighbors,
        smote_random_state=smote_random_state,
        smote_k_neighbors=smote_k_neighbors,
    )
