"""
Model training and evaluation orchestrator.

Implements a single stratified train/test split:
- Preprocessing fitted on the training split only
- Majority-class baseline for context
- Each neural network fitted on the training split
- Confusion-matrix evaluation on both the training and the test split

All preprocessing and model fitting are done ONLY on training data to
prevent leakage.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import joblib
import numpy as np
import pandas as pd
from tqdm import tqdm

from dstat_ml import CLASSIFICATION_THRESHOLD, NEGATIVE_LABEL, POSITIVE_LABEL
from dstat_ml.metrics import MajorityClassBaseline, calculate_all_metrics, evaluate
from dstat_ml.models import create_model, get_model_name
from dstat_ml.preprocessing import create_preprocessing_pipeline, split_dataset
from dstat_ml.reporting import predictions_frame

logger = logging.getLogger(__name__)

SPLITS = ("train", "test")


def _to_serializable(obj: Any) -> Any:
    """Recursively convert numpy/pandas objects into JSON-serializable types."""
    if isinstance(obj, dict):
        return {k: _to_serializable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_to_serializable(v) for v in obj]
    if isinstance(obj, (np.generic,)):
        return _to_serializable(obj.item())
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, float) and np.isnan(obj):
        return None
    return obj


class ModelRunner:
    """
    Fits and evaluates the feed-forward networks on one train/test split.

    Parameters
    ----------
    X : pd.DataFrame
        Feature matrix
    y : np.ndarray
        Binary target (1 = positive label)
    model_types : list
        List of model type codes to train ('nn_small', 'nn_medium', 'nn_deep')
    config : dict
        Configuration dictionary (test_size, random_state, apply_smote,
        knn_neighbors, model_params)
    positive_label : any
        Label decoded from target 1
    negative_label : any
        Label decoded from target 0
    artifacts_dir : Path, optional
        Directory to save fitted models and predictions
    """

    def __init__(
        self,
        X: pd.DataFrame,
        y: np.ndarray,
        model_types: List[str],
        config: Dict[str, Any],
        positive_label: Any = POSITIVE_LABEL,
        negative_label: Any = NEGATIVE_LABEL,
        artifacts_dir: Optional[Path] = None,
    ):
        self.X = X
        self.y = np.asarray(y).astype(int)
        self.model_types = model_types
        self.config = config
        self.positive_label = positive_label
        self.negative_label = negative_label
        self.artifacts_dir = artifacts_dir

        self.test_size = config.get("test_size", 0.25)
        self.random_state = config.get("random_state", 42)
        self.apply_smote = config.get("apply_smote", False)
        self.threshold = config.get("classification_threshold", CLASSIFICATION_THRESHOLD)

        # Results storage
        self.results_ = {}
        self.baseline_results_ = {}
        self.split_indices_ = {}

    def _decode(self, y_binary: np.ndarray) -> np.ndarray:
        """Map 0/1 predictions back to outcome labels."""
        return np.where(
            np.asarray(y_binary) == 1, self.positive_label, self.negative_label
        ).astype(object)

    def _evaluate_split(
        self,
        model_type: str,
        split: str,
        y_binary: np.ndarray,
        y_pred_binary: np.ndarray,
        y_proba: Optional[np.ndarray],
        indices: np.ndarray,
    ) -> Dict[str, Any]:
        """Evaluate predictions for one split."""
        y_true = self._decode(y_binary)
        y_pred = self._decode(y_pred_binary)

        confusion = evaluate(
            predicted=y_pred,
            actual=y_true,
            positive_label=self.positive_label,
            negative_label=self.negative_label,
        )
        metrics = calculate_all_metrics(
            y_true=y_true,
            y_pred=y_pred,
            y_proba=y_proba,
            positive_label=self.positive_label,
            negative_label=self.negative_label,
        )

        return {
            "model_type": model_type,
            "split": split,
            "y_true": y_true,
            "y_pred": y_pred,
            "y_proba": y_proba,
            "confusion": confusion,
            "metrics": metrics,
            "indices": indices,
        }

    def run(self) -> Dict[str, Dict[str, Dict[str, Any]]]:
        """
        Fit and evaluate all models.

        Returns
        -------
        dict
            model_type -> split ('train' / 'test') -> split result
        """
        logger.info(
            f"Training {len(self.model_types)} models: "
            f"{[get_model_name(m) for m in self.model_types]}"
        )

        X_train, X_test, y_train, y_test, train_idx, test_idx = split_dataset(
            self.X,
            self.y,
            test_size=self.test_size,
            random_state=self.random_state,
        )
        self.split_indices_ = {"train": train_idx, "test": test_idx}

        preprocessor = create_preprocessing_pipeline(
            knn_neighbors=self.config.get("knn_neighbors", 10),
            smote_random_state=self.random_state,
            smote_k_neighbors=self.config.get("smote_k_neighbors", 5),
        )
        X_fit, y_fit = preprocessor.fit_transform(
            X_train, y_train, apply_smote=self.apply_smote
        )

        # Evaluate on the original rows, not on SMOTE samples
        X_prepared = {
            "train": preprocessor.transform(X_train),
            "test": preprocessor.transform(X_test),
        }
        y_split = {"train": y_train, "test": y_test}

        self._train_baseline(y_train, y_split)

        model_params = self.config.get("model_params", {}) or {}

        for model_type in tqdm(self.model_types, desc="Models"):
            logger.info(f"\n--- Training {get_model_name(model_type)} ---")

            model = create_model(
                model_type=model_type,
                params=model_params.get(model_type, {}),
                random_state=self.random_state,
            )
            model.fit(X_fit, y_fit)
            logger.info(f"  Converged after {model.n_iter_} iterations (loss={model.loss_:.4f})")

            self.results_[model_type] = {}
            for split in SPLITS:
                y_proba = model.predict_proba(X_prepared[split])[:, 1]
                y_pred_binary = (y_proba >= self.threshold).astype(int)

                split_result = self._evaluate_split(
                    model_type=model_type,
                    split=split,
                    y_binary=y_split[split],
                    y_pred_binary=y_pred_binary,
                    y_proba=y_proba,
                    indices=self.split_indices_[split],
                )
                self.results_[model_type][split] = split_result

                metrics = split_result["metrics"]
                logger.info(
                    f"{get_model_name(model_type)} [{split}]: "
                    f"Acc={metrics['accuracy']:.3f}, "
                    f"FPR={metrics['false_positive_rate']:.3f}, "
                    f"Sens={metrics['sensitivity']:.3f}, "
                    f"ROC-AUC={metrics['roc_auc']:.3f}"
                )

            if self.artifacts_dir is not None:
                self._save_model_artifacts(model_type, model, preprocessor)

        logger.info("Model training complete!")

        return self.results_

    def _train_baseline(
        self,
        y_train: np.ndarray,
        y_split: Dict[str, np.ndarray],
    ):
        """Train and evaluate majority-class baseline."""
        baseline = MajorityClassBaseline()
        baseline.fit(y_train)

        for split in SPLITS:
            y_pred_binary = baseline.predict(len(y_split[split])).astype(int)
            self.baseline_results_[split] = self._evaluate_split(
                model_type="baseline",
                split=split,
                y_binary=y_split[split],
                y_pred_binary=y_pred_binary,
                y_proba=None,
                indices=self.split_indices_[split],
            )

        metrics = self.baseline_results_["test"]["metrics"]
        logger.info(
            f"Baseline (majority class): "
            f"Acc={metrics['accuracy']:.3f}, "
            f"FPR={metrics['false_positive_rate']:.3f}"
        )

    def _save_model_artifacts(
        self,
        model_type: str,
        model: Any,
        preprocessor: Any,
    ):
        """
        Save fitted model, preprocessor, predictions and metrics.

        Layout: artifacts_dir/<model_type>/{model.joblib, preprocessor.joblib,
        predictions_<split>.csv, metrics_<split>.json}
        """
        model_dir = self.artifacts_dir / model_type
        model_dir.mkdir(parents=True, exist_ok=True)

        joblib.dump(model, model_dir / "model.joblib")
        joblib.dump(preprocessor, model_dir / "preprocessor.joblib")

        for split, split_result in self.results_[model_type].items():
            predictions_frame(split_result).to_csv(
                model_dir / f"predictions_{split}.csv", index=False
            )

            with open(model_dir / f"metrics_{split}.json", "w") as f:
                json.dump(_to_serializable(split_result["metrics"]), f, indent=2)

        logger.debug(f"Saved artifacts for {get_model_name(model_type)} to {model_dir}")


def run_models(
    X: pd.DataFrame,
    y: np.ndarray,
    model_types: List[str],
    config: Dict[str, Any],
    positive_label: Any = POSITIVE_LABEL,
    negative_label: Any = NEGATIVE_LABEL,
    artifacts_dir: Optional[Path] = None,
) -> Dict[str, Any]:
    """
    Convenience function to fit and evaluate all models.

    Parameters
    ----------
    X : pd.DataFrame
        Feature matrix
    y : np.ndarray
        Binary target (1 = positive label)
    model_types : list
        List of model type codes
    config : dict
        Configuration dictionary
    positive_label : any
        Positive outcome label
    negative_label : any
        Negative outcome label
    artifacts_dir : Path, optional
        Directory to save artifacts

    Returns
    -------
    dict
        Dictionary with 'models', 'baseline', 'split_indices' and the
        'classification_threshold' the networks were evaluated at
    """
    runner = ModelRunner(
        X=X,
        y=y,
        model_types=model_types,
        config=config,
        positive_label=positive_label,
        negative_label=negative_label,
        artifacts_dir=artifacts_dir,
    )

    results = runner.run()

    if artifacts_dir is not None:
        artifacts_dir.mkdir(parents=True, exist_ok=True)
        with open(artifacts_dir / "config.json", "w") as f:
            json.dump(_to_serializable(config), f, indent=2, default=str)

    return {
        "models": results,
        "baseline": runner.baseline_results_,
        "split_indices": runner.split_indices_,
        "classification_threshold": runner.threshold,
    }
