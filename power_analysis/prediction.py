"""
Prediction Module
=================

Applies a trained model to the assembled test data.

Features:
    - Prediction records of (features, prediction, trueLabel)
    - Export predictions to CSV
"""

import logging
from pathlib import Path
from datetime import datetime

import numpy as np
import pandas as pd

from .model import PowerLinearRegression

logger = logging.getLogger(__name__)

PREDICTION_COLUMNS = ["features", "prediction", "trueLabel"]


def predict_test_set(
    model: PowerLinearRegression,
    test_data: pd.DataFrame,
    label_col: str = "trueLabel"
) -> pd.DataFrame:
    """
    Generate prediction records for the test data.

    Args:
        model: Trained model
        test_data: DataFrame with the vector and true label columns
        label_col: True label column

    Returns:
        DataFrame with columns features, prediction, trueLabel
    """
    transformed = model.transform(test_data)
    predictions = transformed[[model.features_col, model.prediction_col, label_col]].copy()
    predictions.columns = PREDICTION_COLUMNS

    n_missing = int(predictions['prediction'].isnull().sum())
    logger.info(f"Generated {len(predictions)} predictions")
    if n_missing > 0:
        logger.warning(f"{n_missing} rows have no prediction (null features)")

    return predictions


def _format_vector(vector: np.ndarray) -> str:
    return "[" + ",".join(repr(float(v)) for v in vector) + "]"


def export_predictions(
    predictions: pd.DataFrame,
    output_path: str,
    include_timestamp: bool = True
) -> str:
    """
    Export prediction records to a CSV file.

    Args:
        predictions: DataFrame from predict_test_set
        output_path: Directory to save the file
        include_timestamp: Whether to add timestamp to filename

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.mkdir(parents=True, exist_ok=True)

    df = predictions.copy()
    df['features'] = df['features'].map(_format_vector)

    if include_timestamp:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"predictions_{timestamp}.csv"
    else:
        filename = "predictions.csv"

    filepath = output_path / filename
    df.to_csv(filepath, index=False)

    logger.info(f"Predictions exported to {filepath}")
    return str(filepath)


def print_predictions(predictions: pd.DataFrame, n: int = 20) -> None:
    """
    Print the first prediction records.

    Args:
        predictions: DataFrame from predict_test_set
        n: Number of rows to show
    """
    print("\n" + "=" * 70)
    print("PREDICTIONS")
    print("=" * 70)

    print(f"{'features':<40} {'prediction':<15} {'trueLabel':<15}")
    print("-" * 70)
    for _, row in predictions.head(n).iterrows():
        print(f"{_format_vector(row['features']):<40} {row['prediction']:<15.6f} {row['trueLabel']:<15.6f}")

    if len(predictions) > n:
        print(f"only showing top {n} rows")
    print("=" * 70 + "\n")
