"""
Model Evaluation Module
=======================

Computes regression metrics on prediction records and reports them.

Features:
    - RegressionEvaluator with rmse (default), mse, mae, r2, var
    - Actual vs Predicted plot
    - Evaluation report generation
"""

import logging
import json
from pathlib import Path
from typing import Dict, Any, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from sklearn.metrics import mean_squared_error, mean_absolute_error, r2_score

logger = logging.getLogger(__name__)

SUPPORTED_METRICS = ("rmse", "mse", "mae", "r2", "var")


def calculate_rmse(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """Root mean square error between labels and predictions."""
    y_true = np.asarray(y_true, dtype=np.float64)
    y_pred = np.asarray(y_pred, dtype=np.float64)

    if len(y_true) == 0:
        raise ValueError("Cannot compute RMSE of an empty set")

    return float(np.sqrt(mean_squared_error(y_true, y_pred)))


class RegressionEvaluator:
    """
    Evaluates a predictions DataFrame against its true labels.

    Rows whose label or prediction is NaN are excluded before scoring.
    """

    def __init__(
        self,
        label_col: str = "trueLabel",
        prediction_col: str = "prediction",
        metric_name: str = "rmse"
    ):
        if metric_name not in SUPPORTED_METRICS:
            raise ValueError(
                f"metric_name must be one of {SUPPORTED_METRICS}, got '{metric_name}'"
            )

        self.label_col = label_col
        self.prediction_col = prediction_col
        self.metric_name = metric_name

    def _valid_pairs(self, df: pd.DataFrame) -> Tuple[np.ndarray, np.ndarray]:
        y_true = df[self.label_col].to_numpy(dtype=np.float64)
        y_pred = df[self.prediction_col].to_numpy(dtype=np.float64)

        valid = ~(np.isnan(y_true) | np.isnan(y_pred))
        excluded = int((~valid).sum())
        if excluded > 0:
            logger.warning(f"Excluding {excluded} rows with null label or prediction from evaluation")

        if not valid.any():
            raise ValueError("No rows with both a label and a prediction to evaluate")

        return y_true[valid], y_pred[valid]

    def evaluate(self, df: pd.DataFrame) -> float:
        """
        Compute the configured metric.

        Args:
            df: DataFrame with label and prediction columns

        Returns:
            Metric value
        """
        y_true, y_pred = self._valid_pairs(df)

        if self.metric_name == "rmse":
            return calculate_rmse(y_true, y_pred)
        if self.metric_name == "mse":
            return float(mean_squared_error(y_true, y_pred))
        if self.metric_name == "mae":
            return float(mean_absolute_error(y_true, y_pred))
        if self.metric_name == "r2":
            return float(r2_score(y_true, y_pred))
        # explained variance of the predictions around the label mean
        return float(np.mean((y_pred - y_true.mean()) ** 2))

    def is_larger_better(self) -> bool:
        return self.metric_name in ("r2", "var")


def plot_actual_vs_predicted(
    predictions: pd.DataFrame,
    label_col: str = "trueLabel",
    prediction_col: str = "prediction",
    figsize: Tuple[int, int] = (8, 8),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Scatter true labels against predictions.

    Args:
        predictions: DataFrame with label and prediction columns
        label_col: True label column
        prediction_col: Prediction column
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    data = predictions[[label_col, prediction_col]].dropna()
    true_col = data[label_col].to_numpy()
    pred_col = data[prediction_col].to_numpy()

    fig, ax = plt.subplots(figsize=figsize)
    ax.scatter(true_col, pred_col, alpha=0.5, s=20)

    if len(data) > 0:
        min_val = min(true_col.min(), pred_col.min())
        max_val = max(true_col.max(), pred_col.max())
        ax.plot([min_val, max_val], [min_val, max_val], 'r--', linewidth=2, label='Perfect')
        rmse = calculate_rmse(true_col, pred_col)
        ax.set_title(f'Actual vs Predicted Power\nRMSE={rmse:.4f}', fontsize=12, fontweight='bold')
        ax.legend(loc='upper left', fontsize=8)

    ax.set_xlabel('trueLabel')
    ax.set_ylabel('prediction')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Actual vs Predicted plot saved to {save_path}")

    return fig


def evaluate_model(
    predictions: pd.DataFrame,
    output_dir: str = "reports/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Run model evaluation and write the metrics report.

    Args:
        predictions: DataFrame from predict_test_set
        output_dir: Directory for output files
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing metrics and file paths
    """
    output_dir = Path(output_dir)
    figures_dir = output_dir / "figures"
    metrics_dir = output_dir / "metrics"

    figures_dir.mkdir(parents=True, exist_ok=True)
    metrics_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 60)
    logger.info("STARTING MODEL EVALUATION")
    logger.info("=" * 60)

    evaluator = RegressionEvaluator(
        label_col="trueLabel",
        prediction_col="prediction",
        metric_name="rmse"
    )
    rmse = evaluator.evaluate(predictions)

    metrics = {
        'rmse': rmse,
        'n_samples': int(len(predictions)),
        'n_evaluated': int(predictions[['trueLabel', 'prediction']].dropna().shape[0])
    }

    metrics_file = metrics_dir / "evaluation_metrics.json"
    with open(metrics_file, 'w') as f:
        json.dump(metrics, f, indent=2)
    logger.info(f"Metrics saved to {metrics_file}")

    logger.info("Generating Actual vs Predicted plot...")
    plot_actual_vs_predicted(
        predictions,
        save_path=str(figures_dir / "eval_actual_vs_predicted.png")
    )
    figures = ["eval_actual_vs_predicted.png"]

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    result = {
        'metrics': metrics,
        'figures': figures,
        'metrics_file': str(metrics_file)
    }

    logger.info("=" * 60)
    logger.info("EVALUATION COMPLETE")
    logger.info(f"  RMSE: {rmse:.6f}")
    logger.info("=" * 60)

    return result


def print_evaluation_report(metrics: Dict[str, Any]) -> None:
    """
    Print a formatted evaluation report to console.

    Args:
        metrics: Metrics dictionary from evaluate_model
    """
    print("\n" + "=" * 70)
    print("MODEL EVALUATION REPORT")
    print("=" * 70)
    print(f"Root Mean Square Error (RMSE): {metrics['rmse']}")
    print(f"  • Samples evaluated: {metrics['n_evaluated']} of {metrics['n_samples']}")
    print("=" * 70 + "\n")
