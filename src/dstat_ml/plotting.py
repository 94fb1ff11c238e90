"""
Plotting module for report figures.

Includes:
- Univariate plots against discharge status (histogram, boxplot, bar chart)
- Missing data barplot
- Chi-squared screening p-values
- Confusion matrices
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.patches import Patch

from dstat_ml import NEGATIVE_LABEL, OUTCOME_COLUMN, POSITIVE_LABEL
from dstat_ml.models import get_model_name

logger = logging.getLogger(__name__)

# Plot styling
plt.rcParams.update(
    {
        "font.size": 12,
        "axes.labelsize": 13,
        "axes.titlesize": 14,
        "xtick.labelsize": 12,
        "ytick.labelsize": 12,
        "legend.fontsize": 12,
        "figure.titlesize": 15,
        "figure.dpi": 150,
    }
)

OUTCOME_COLORS = {POSITIVE_LABEL: "#b2182b", NEGATIVE_LABEL: "#2166ac"}


def _save_figure(fig: plt.Figure, output_path: Optional[Path], description: str):
    """Save PNG and SVG variants for a figure."""
    if not output_path:
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=300, bbox_inches="tight")
    svg_path = output_path.with_suffix(".svg")
    fig.savefig(svg_path, dpi=300, bbox_inches="tight")
    logger.info(f"Saved {description} to {output_path} and {svg_path}")


def _outcome_groups(df: pd.DataFrame, feature: str, outcome_col: str):
    """Yield (label, values, color) per outcome label with missing values dropped."""
    for i, (label, group) in enumerate(df.groupby(outcome_col)):
        color = OUTCOME_COLORS.get(label, plt.cm.tab10(i))
        yield label, group[feature].dropna(), color


def plot_numeric_by_outcome(
    df: pd.DataFrame,
    feature: str,
    outcome_col: str = OUTCOME_COLUMN,
    bins: int = 20,
    output_path: Optional[Path] = None,
):
    """
    Overlaid histograms of a numeric feature for each outcome label.

    Parameters
    ----------
    df : pd.DataFrame
        Input dataframe
    feature : str
        Numeric feature
    outcome_col : str
        Outcome column
    bins : int
        Number of histogram bins
    output_path : Path, optional
        Path to save figure
    """
    fig, ax = plt.subplots(figsize=(7, 5))

    for label, values, color in _outcome_groups(df, feature, outcome_col):
        ax.hist(values, bins=bins, alpha=0.5, color=color, label=f"{label} (n={len(values)})")

    ax.set_xlabel(feature)
    ax.set_ylabel("Count")
    ax.set_title(f"{feature} by {outcome_col}")
    ax.legend(loc="best")
    ax.grid(alpha=0.3)

    plt.tight_layout()
    _save_figure(fig, output_path, f"histogram of {feature}")
    plt.close(fig)


def plot_boxplot_by_outcome(
    df: pd.DataFrame,
    feature: str,
    outcome_col: str = OUTCOME_COLUMN,
    output_path: Optional[Path] = None,
):
    """
    Boxplot of a numeric feature for each outcome label.

    Points beyond the whiskers are drawn individually.
    """
    fig, ax = plt.subplots(figsize=(6, 5))

    groups = list(_outcome_groups(df, feature, outcome_col))
    bp = ax.boxplot(
        [values for _, values, _ in groups],
        patch_artist=True,
    )
    for patch, (_, _, color) in zip(bp["boxes"], groups):
        patch.set_facecolor(color)
        patch.set_alpha(0.5)

    ax.set_xticks(range(1, len(groups) + 1))
    ax.set_xticklabels([str(label) for label, _, _ in groups])
    ax.set_xlabel(outcome_col)
    ax.set_ylabel(feature)
    ax.set_title(f"{feature} by {outcome_col}")
    ax.grid(axis="y", alpha=0.3)

    plt.tight_layout()
    _save_figure(fig, output_path, f"boxplot of {feature}")
    plt.close(fig)


def plot_categorical_by_outcome(
    df: pd.DataFrame,
    feature: str,
    outcome_col: str = OUTCOME_COLUMN,
    output_path: Optional[Path] = None,
):
    """Grouped bar chart of category counts for each outcome label."""
    counts = pd.crosstab(df[feature], df[outcome_col])

    fig, ax = plt.subplots(figsize=(max(6, len(counts) * 0.8), 5))

    x = np.arange(len(counts.index))
    width = 0.8 / max(len(counts.columns), 1)
    for i, label in enumerate(counts.columns):
        color = OUTCOME_COLORS.get(label, plt.cm.tab10(i))
        ax.bar(x + i * width, counts[label].values, width, color=color, alpha=0.7, label=str(label))

    ax.set_xticks(x + width * (len(counts.columns) - 1) / 2)
    ax.set_xticklabels([str(level) for level in counts.index], rotation=45, ha="right")
    ax.set_xlabel(feature)
    ax.set_ylabel("Count")
    ax.set_title(f"{feature} by {outcome_col}")
    ax.legend(loc="best")
    ax.grid(axis="y", alpha=0.3)

    plt.tight_layout()
    _save_figure(fig, output_path, f"bar chart of {feature}")
    plt.close(fig)


def plot_missing_data(
    completion_rates: Dict[str, float],
    retained_features: List[str],
    threshold: float = 0.90,
    output_path: Optional[Path] = None,
    title: str = "Missing Values per Feature",
):
    """
    Horizontal bars of the missing share per feature, worst first.

    Gray bars are features kept by the completion filter, red bars were
    dropped. The dashed line marks the largest missing share allowed.

    Parameters
    ----------
    completion_rates : dict
        Feature name -> share of non-missing values (0-1)
    retained_features : list
        Features kept by the completion filter
    threshold : float
        Completion threshold of the filter (default: 0.90)
    output_path : Path, optional
        Path to save figure
    title : str
        Figure title
    """
    missing = (1 - pd.Series(completion_rates, dtype=float)) * 100
    missing = missing.sort_values(ascending=True)
    kept = missing.index.isin(retained_features)

    fig, ax = plt.subplots(figsize=(9, max(5, len(missing) * 0.3)))

    positions = np.arange(len(missing))
    bars = ax.barh(
        positions,
        missing.values,
        color=np.where(kept, "gray", "red"),
        alpha=0.7,
        edgecolor="#404040",
    )
    limit = (1 - threshold) * 100
    ax.axvline(limit, color="black", linestyle="--", linewidth=2.0)

    ax.set_yticks(positions)
    ax.set_yticklabels(missing.index.tolist())
    ax.set_xlabel("Missing values (%)")
    ax.set_title(title, fontweight="bold")
    ax.grid(axis="x", alpha=0.3, linestyle="--")
    for side in ("top", "right"):
        ax.spines[side].set_visible(False)

    ax.legend(
        handles=[
            Patch(facecolor="gray", alpha=0.7, label="Kept"),
            Patch(facecolor="red", alpha=0.7, label="Dropped"),
            plt.Line2D(
                [0], [0], color="black", linestyle="--",
                label=f"{threshold:.0%} completion required",
            ),
        ],
        loc="lower right",
    )

    for bar, pct in zip(bars, missing.values):
        if pct > 0.5:
            ax.text(
                bar.get_width() + 0.3,
                bar.get_y() + bar.get_height() / 2,
                f"{pct:.1f}%",
                ha="left",
                va="center",
                fontsize=10,
            )

    plt.tight_layout()
    _save_figure(fig, output_path, "missing values plot")
    plt.close(fig)


def plot_screening_pvalues(
    screening_results: pd.DataFrame,
    alpha: float = 0.05,
    output_path: Optional[Path] = None,
    title: str = "Chi-squared Independence Test vs Outcome",
):
    """
    Horizontal bars of -log10(p) per feature with the alpha cut-off.

    Parameters
    ----------
    screening_results : pd.DataFrame
        Output of screen_features (feature, p_value, retained)
    alpha : float
        Significance level drawn as a reference line
    output_path : Path, optional
        Path to save figure
    title : str
        Figure title
    """
    data = screening_results.dropna(subset=["p_value"]).sort_values("p_value", ascending=False)
    log_p = -np.log10(np.clip(data["p_value"].astype(float).values, 1e-300, 1.0))

    fig, ax = plt.subplots(figsize=(8, max(4, len(data) * 0.35)))

    colors = ["gray" if retained else "red" for retained in data["retained"]]
    ax.barh(np.arange(len(data)), log_p, color=colors, alpha=0.7)
    ax.axvline(-np.log10(alpha), color="black", linestyle="--", label=f"alpha = {alpha}")

    ax.set_yticks(np.arange(len(data)))
    ax.set_yticklabels(data["feature"].tolist())
    ax.set_xlabel("-log10(p-value)")
    ax.set_title(title)
    ax.legend(loc="lower right")
    ax.grid(axis="x", alpha=0.3)

    plt.tight_layout()
    _save_figure(fig, output_path, "screening p-values")
    plt.close(fig)


def plot_confusion_matrices(
    results: Dict[str, Dict[str, Dict]],
    split: str = "test",
    output_path: Optional[Path] = None,
):
    """
    Plot confusion matrices for all models on one split.

    Rows are actual labels, columns are predicted labels, positive label first.

    Parameters
    ----------
    results : dict
        Dictionary of model_type: split: split result
    split : str
        Split to plot (default: 'test')
    output_path : Path, optional
        Path to save figure
    """
    n_models = len(results)
    n_cols = min(3, n_models)
    n_rows = int(np.ceil(n_models / n_cols))

    fig, axes = plt.subplots(n_rows, n_cols, figsize=(5 * n_cols, 4 * n_rows))
    axes = np.atleast_1d(axes).flatten()

    for idx, (model_type, split_results) in enumerate(results.items()):
        cm = split_results[split]["confusion"]
        table = cm.to_frame()
        values = table.values

        ax = axes[idx]
        im = ax.imshow(values, cmap="Blues", interpolation="nearest", vmin=0)
        plt.colorbar(im, ax=ax).set_label("Count")

        labels = [str(label) for label in table.index]
        ax.set_xticks([0, 1])
        ax.set_yticks([0, 1])
        ax.set_xticklabels(labels)
        ax.set_yticklabels(labels)
        ax.set_xlabel("Predicted")
        ax.set_ylabel("Actual")
        ax.set_title(f"{get_model_name(model_type)} ({split})")

        text_threshold = values.max() / 2 if values.max() > 0 else 0
        for i in range(2):
            for j in range(2):
                ax.text(
                    j,
                    i,
                    f"{values[i, j]}",
                    ha="center",
                    va="center",
                    color="white" if values[i, j] > text_threshold else "black",
                    fontsize=16,
                )

    # Blank cells in the last grid row
    for idx in range(n_models, len(axes)):
        axes[idx].axis("off")

    plt.tight_layout()
    _save_figure(fig, output_path, "confusion matrices")
    plt.close(fig)


def plot_univariate_figures(
    df: pd.DataFrame,
    features: List[str],
    output_dir: Path,
    outcome_col: str = OUTCOME_COLUMN,
):
    """One figure set per feature: histogram and boxplot for numeric, bar chart otherwise."""
    output_dir.mkdir(parents=True, exist_ok=True)

    for feature in features:
        if pd.api.types.is_numeric_dtype(df[feature]):
            plot_numeric_by_outcome(
                df, feature, outcome_col, output_path=output_dir / f"hist_{feature}.png"
            )
            plot_boxplot_by_outcome(
                df, feature, outcome_col, output_path=output_dir / f"box_{feature}.png"
            )
        else:
            plot_categorical_by_outcome(
                df, feature, outcome_col, output_path=output_dir / f"bar_{feature}.png"
            )


def plot_all_figures(
    results: Dict[str, Dict[str, Dict]],
    output_dir: Path,
    screening_results: Optional[pd.DataFrame] = None,
    alpha: float = 0.05,
    df: Optional[pd.DataFrame] = None,
    features: Optional[List[str]] = None,
    outcome_col: Any = OUTCOME_COLUMN,
):
    """
    Write every report figure under output_dir.

    Parameters
    ----------
    results : dict
        Dictionary of model_type: split: split result
    output_dir : Path
        Directory to save figures
    screening_results : pd.DataFrame, optional
        Output of screen_features
    alpha : float
        Screening significance level
    df : pd.DataFrame, optional
        Dataset for univariate plots
    features : list, optional
        Features to plot against the outcome
    outcome_col : str
        Outcome column
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info(f"Writing figures to {output_dir}")

    if df is not None and features:
        plot_univariate_figures(df, features, output_dir / "univariate", outcome_col)

    if screening_results is not None and len(screening_results) > 0:
        plot_screening_pvalues(
            screening_results, alpha=alpha, output_path=output_dir / "chi2_pvalues.png"
        )

    if results:
        for split in ("train", "test"):
            plot_confusion_matrices(
                results, split=split, output_path=output_dir / f"confusion_matrices_{split}.png"
            )

    logger.info("Figures complete")
