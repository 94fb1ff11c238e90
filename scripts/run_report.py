#!/usr/bin/env python
"""
Discharge status report: exploration, screening, networks, confusion matrices.

Usage:
    python scripts/run_report.py --data data.csv --config configs/default.yaml --seed 42
"""

import argparse
import json
import logging
import random
import sys
from datetime import datetime
from pathlib import Path
from uuid import uuid4

import matplotlib
import numpy as np
import yaml

matplotlib.use("Agg")

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from dstat_ml import NEGATIVE_LABEL, OUTCOME_COLUMN, POSITIVE_LABEL, TARGET_COLUMN
from dstat_ml.io import prepare_dataset
from dstat_ml.models import MODEL_ARCHITECTURES
from dstat_ml.outliers import summarize_outliers
from dstat_ml.plotting import plot_all_figures, plot_missing_data
from dstat_ml.reporting import generate_all_reports
from dstat_ml.screening import describe_by_outcome, screen_features
from dstat_ml.training import run_models

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler("dstat_ml.log", encoding="utf-8"),
    ],
)

logger = logging.getLogger(__name__)

DEFAULTS = {
    "random_state": 42,
    "test_size": 0.25,
    "completion_threshold": 0.90,
    "outcome_column": OUTCOME_COLUMN,
    "positive_label": POSITIVE_LABEL,
    "negative_label": NEGATIVE_LABEL,
    "outlier_n_sigma": 3.0,
    "apply_screening": True,
    "screening_alpha": 0.05,
    "screening_bins": 4,
    "apply_smote": False,
}


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Exploratory analysis and neural network report for discharge status (DSTAT)"
    )
    parser.add_argument(
        "--data",
        default="data.csv",
        help="Input CSV with one row per patient and a DSTAT column (default: data.csv)",
    )
    parser.add_argument(
        "--config",
        default="configs/default.yaml",
        help="YAML configuration (default: configs/default.yaml)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed; takes precedence over random_state in the config",
    )
    parser.add_argument(
        "--models",
        default="all",
        help="Comma-separated networks to train (nn_small,nn_medium,nn_deep). "
        "'all' uses the config list, or every network if the config has none.",
    )
    parser.add_argument(
        "--no-plots",
        action="store_true",
        help="Do not write figures",
    )
    parser.add_argument(
        "--save-artifacts",
        dest="save_artifacts",
        action="store_true",
        help="Write fitted networks and preprocessors with joblib (default)",
    )
    parser.add_argument(
        "--no-artifacts",
        dest="save_artifacts",
        action="store_false",
        help="Do not write fitted networks",
    )
    parser.set_defaults(save_artifacts=True)
    parser.add_argument(
        "--output-dir",
        default="reports",
        help="Parent directory of the per-run output folder (default: reports)",
    )
    return parser.parse_args(argv)


def load_config(config_path: str) -> dict:
    """Read the YAML config; an absent file yields an empty dict."""
    path = Path(config_path)

    if not path.exists():
        logger.warning(f"No config at {config_path}; running with built-in defaults")
        return {}

    with open(path, "r") as f:
        config = yaml.safe_load(f) or {}

    logger.info(f"Config: {config_path}")
    return config


def select_models(requested: str, config: dict) -> list:
    """Resolve the networks to train: --models, then config, then all."""
    if requested.lower() != "all":
        return [m.strip() for m in requested.split(",") if m.strip()]
    if config.get("models"):
        return [m for m in config["models"] if m is not None]
    return list(MODEL_ARCHITECTURES)


def seed_everything(seed: int):
    random.seed(seed)
    np.random.seed(seed)
    logger.info(f"Seed: {seed}")


def choose_model_features(feature_names: list, screened: list, apply_screening: bool) -> list:
    """Features passed to the networks after optional chi-squared screening."""
    if not apply_screening:
        return feature_names
    if not screened:
        logger.warning(
            "No feature is associated with the outcome at the screening level; "
            "training on all features"
        )
        return feature_names
    return screened


def main(argv=None):
    args = parse_args(argv)

    config = {**DEFAULTS, **load_config(args.config)}
    if args.seed is not None:
        config["random_state"] = args.seed

    seed_everything(config["random_state"])
    model_types = select_models(args.models, config)

    outcome_col = config["outcome_column"]
    positive_label = config["positive_label"]

    run_id = f"{datetime.now():%Y%m%d_%H%M%S}_{uuid4().hex[:8]}"
    output_dir = Path(args.output_dir) / f"run_{run_id}"
    figures_dir = output_dir / "figures"
    artifacts_dir = output_dir / "artifacts" if args.save_artifacts else None
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 100)
    logger.info(f"DSTAT report {run_id}: models={model_types}, output={output_dir}")
    logger.info("=" * 100)

    with open(output_dir / "run_info.json", "w") as f:
        json.dump(
            {
                "run_id": run_id,
                "config_file": args.config,
                "data_file": args.data,
                "models": model_types,
                "config": config,
                "artifacts_dir": str(artifacts_dir) if artifacts_dir else None,
            },
            f,
            indent=2,
            default=str,
        )

    data_path = Path(args.data)
    if not data_path.exists():
        logger.error(f"Data file not found: {data_path}")
        sys.exit(1)

    # 1. Load, clean, completion filter
    logger.info(f"\n[1/6] Loading {data_path}")
    df_clean, feature_names, completion_rates = prepare_dataset(
        filepath=data_path,
        config=config,
    )

    if not args.no_plots:
        plot_missing_data(
            completion_rates=completion_rates,
            retained_features=feature_names,
            threshold=config["completion_threshold"],
            output_path=figures_dir / "missing_data_barplot.png",
        )

    # 2. Univariate description and 3-sigma outliers
    logger.info("\n[2/6] Describing features by discharge status")
    descriptives = describe_by_outcome(df_clean, feature_names, outcome_col=outcome_col)
    numeric_features = [
        f for f in feature_names if np.issubdtype(df_clean[f].dtype, np.number)
    ]
    outlier_summary = summarize_outliers(
        df_clean, numeric_features, n_sigma=config["outlier_n_sigma"]
    )

    # 3. Chi-squared screening
    logger.info("\n[3/6] Chi-squared screening against the outcome")
    screening_results, screened = screen_features(
        df_clean,
        feature_names,
        outcome_col=outcome_col,
        alpha=config["screening_alpha"],
        n_bins=config["screening_bins"],
    )
    model_features = choose_model_features(
        feature_names, screened, config["apply_screening"]
    )
    logger.info(f"Networks use {len(model_features)} features: {model_features}")

    # 4. Networks
    logger.info("\n[4/6] Training networks")
    model_output = run_models(
        X=df_clean[model_features],
        y=df_clean[TARGET_COLUMN].values,
        model_types=model_types,
        config=config,
        positive_label=positive_label,
        negative_label=config["negative_label"],
        artifacts_dir=artifacts_dir,
    )

    # 5. Tables
    logger.info("\n[5/6] Writing tables")
    generate_all_reports(
        results=model_output["models"],
        baseline_results=model_output["baseline"],
        output_dir=output_dir,
        positive_label=positive_label,
        original_df=df_clean,
        outlier_summary=outlier_summary,
        screening_results=screening_results,
        descriptives=descriptives,
        threshold=model_output["classification_threshold"],
    )

    # 6. Figures
    if args.no_plots:
        logger.info("\n[6/6] Figures skipped (--no-plots)")
    else:
        logger.info("\n[6/6] Writing figures")
        plot_all_figures(
            model_output["models"],
            figures_dir,
            screening_results=screening_results,
            alpha=config["screening_alpha"],
            df=df_clean,
            features=feature_names,
            outcome_col=outcome_col,
        )

    logger.info("=" * 100)
    logger.info(f"Finished run {run_id}; everything is under {output_dir}")
    logger.info("=" * 100)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("\nInterrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)
