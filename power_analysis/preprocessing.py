"""
Data Preprocessing Module
=========================

Handles the train/test split and feature vector assembly.

Functions:
    - random_split: Seeded, weighted split into disjoint subsets
    - train_test_split: Two-way split (default 80/20, seed 12345)
    - FeatureAssembler: Concatenate numeric columns into one vector column
    - prepare_training_data / prepare_test_data: Select features and label
    - clean_training_data: Drop rows with null label or NaN features
"""

import logging
from typing import Dict, Any, Tuple, Optional, List, Sequence

import pandas as pd
import numpy as np

from . import FEATURE_COLUMNS, LABEL_COLUMN

logger = logging.getLogger(__name__)

HANDLE_INVALID_OPTIONS = ("keep", "skip", "error")


def random_split(
    df: pd.DataFrame,
    weights: Sequence[float],
    seed: int = 12345
) -> List[pd.DataFrame]:
    """
    Randomly split rows into disjoint subsets.

    Weights are normalized to sum to 1. Each row draws one uniform number
    from a generator seeded with ``seed`` and falls into the subset whose
    cumulative weight range contains it, so the result depends only on the
    seed and the row order of ``df``.

    Args:
        df: DataFrame to split
        weights: Relative sizes of the subsets
        seed: Random seed

    Returns:
        List of DataFrames, one per weight
    """
    weights = np.asarray(weights, dtype=np.float64)

    if weights.ndim != 1 or len(weights) == 0:
        raise ValueError("At least one split weight is required")
    if np.any(weights < 0):
        raise ValueError(f"Split weights must be non-negative, got {weights.tolist()}")
    total = weights.sum()
    if total <= 0:
        raise ValueError(f"Sum of split weights must be positive, got {total}")

    bounds = np.concatenate([[0.0], np.cumsum(weights / total)])
    bounds[-1] = 1.0

    rng = np.random.RandomState(seed)
    draws = rng.random_sample(len(df))

    splits = []
    for lower, upper in zip(bounds[:-1], bounds[1:]):
        mask = (draws >= lower) & (draws < upper)
        splits.append(df[mask])

    logger.info(
        f"Random split (seed={seed}): " +
        ", ".join(str(len(part)) for part in splits) +
        f" rows out of {len(df)}"
    )
    return splits


def train_test_split(
    df: pd.DataFrame,
    train_ratio: float = 0.8,
    seed: int = 12345
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split data into training and testing subsets.

    Args:
        df: DataFrame to split
        train_ratio: Fraction of rows for training (rest for testing)
        seed: Random seed

    Returns:
        Tuple of (train, test)
    """
    if not 0.0 <= train_ratio <= 1.0:
        raise ValueError(f"train_ratio must be within [0, 1], got {train_ratio}")

    train, test = random_split(df, [train_ratio, 1.0 - train_ratio], seed=seed)
    return train, test


class FeatureAssembler:
    """
    Combines a list of numeric columns into a single vector column.

    In each row the values of the input columns are concatenated into a
    float64 array in the given order.
    """

    def __init__(
        self,
        input_cols: Optional[List[str]] = None,
        output_col: str = "features",
        handle_invalid: str = "keep"
    ):
        """
        Initialize the assembler.

        Args:
            input_cols: Ordered columns to assemble
            output_col: Name of the vector column
            handle_invalid: 'keep' passes nulls through as NaN, 'skip'
                drops those rows, 'error' raises
        """
        if handle_invalid not in HANDLE_INVALID_OPTIONS:
            raise ValueError(
                f"handle_invalid must be one of {HANDLE_INVALID_OPTIONS}, got '{handle_invalid}'"
            )

        self.input_cols = list(input_cols or FEATURE_COLUMNS)
        self.output_col = output_col
        self.handle_invalid = handle_invalid

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Add the vector column to a copy of ``df``.

        Args:
            df: DataFrame containing the input columns

        Returns:
            New DataFrame with the vector column appended
        """
        missing = [col for col in self.input_cols if col not in df.columns]
        if missing:
            raise KeyError(f"Input columns not found: {missing}")

        values = df[self.input_cols].to_numpy(dtype=np.float64)
        invalid = np.isnan(values).any(axis=1)

        result = df.copy()

        if invalid.any():
            if self.handle_invalid == "error":
                raise ValueError(
                    f"Encountered null while assembling {int(invalid.sum())} rows; "
                    f"consider handle_invalid='keep' or 'skip'"
                )
            if self.handle_invalid == "skip":
                logger.info(f"Skipping {int(invalid.sum())} rows with null features")
                result = result[~invalid]
                values = values[~invalid]

        result[self.output_col] = pd.Series(list(values), index=result.index, dtype=object)
        return result

    @property
    def vector_size(self) -> int:
        return len(self.input_cols)


def features_matrix(df: pd.DataFrame, features_col: str = "features") -> np.ndarray:
    """Stack a vector column into a 2D array of shape (n_rows, vector_size)."""
    if len(df) == 0:
        return np.empty((0, 0), dtype=np.float64)
    return np.vstack(df[features_col].to_numpy()).astype(np.float64)


def prepare_training_data(
    df: pd.DataFrame,
    assembler: FeatureAssembler,
    label_col: str = LABEL_COLUMN
) -> pd.DataFrame:
    """Assemble features and rename the label column to ``label``."""
    assembled = assembler.transform(df)
    return assembled[[assembler.output_col, label_col]].rename(columns={label_col: "label"})


def prepare_test_data(
    df: pd.DataFrame,
    assembler: FeatureAssembler,
    label_col: str = LABEL_COLUMN
) -> pd.DataFrame:
    """Assemble features and rename the label column to ``trueLabel``."""
    assembled = assembler.transform(df)
    return assembled[[assembler.output_col, label_col]].rename(columns={label_col: "trueLabel"})


def clean_training_data(
    df: pd.DataFrame,
    features_col: str = "features",
    label_col: str = "label"
) -> pd.DataFrame:
    """
    Remove rows that cannot be used for fitting.

    Args:
        df: Assembled training data
        features_col: Vector column
        label_col: Label column

    Returns:
        DataFrame without null labels or NaN feature values
    """
    if len(df) == 0:
        return df.copy()

    nan_features = np.isnan(features_matrix(df, features_col)).any(axis=1)
    keep = ~nan_features & df[label_col].notnull().to_numpy()

    dropped = int((~keep).sum())
    if dropped > 0:
        logger.warning(f"Dropped {dropped} training rows with null values")

    return df[keep].copy()


def preprocess_pipeline(
    df: pd.DataFrame,
    feature_cols: Optional[List[str]] = None,
    label_col: str = LABEL_COLUMN,
    train_ratio: float = 0.8,
    seed: int = 12345,
    output_col: str = "features",
    handle_invalid: str = "keep"
) -> Dict[str, Any]:
    """
    Complete preprocessing: split, assemble, rename labels, clean.

    Args:
        df: DataFrame with numeric columns
        feature_cols: Ordered feature columns
        label_col: Label column
        train_ratio: Fraction of rows for training
        seed: Random seed for the split
        output_col: Name of the vector column
        handle_invalid: Null policy of the assembler

    Returns:
        Dictionary containing:
            - train, test: Raw split DataFrames
            - train_data: Cleaned (features, label) training data
            - test_data: (features, trueLabel) testing data
            - assembler: The FeatureAssembler used for both splits
    """
    logger.info("=" * 60)
    logger.info("STARTING DATA PREPROCESSING")
    logger.info("=" * 60)

    train, test = train_test_split(df, train_ratio=train_ratio, seed=seed)

    assembler = FeatureAssembler(
        input_cols=feature_cols,
        output_col=output_col,
        handle_invalid=handle_invalid
    )
    logger.info(f"Feature columns: {assembler.input_cols} -> '{output_col}'")

    train_with_features = prepare_training_data(train, assembler, label_col)
    train_data = clean_training_data(train_with_features, features_col=output_col)
    test_data = prepare_test_data(test, assembler, label_col)

    result = {
        'train': train,
        'test': test,
        'train_data': train_data,
        'test_data': test_data,
        'assembler': assembler
    }

    logger.info("=" * 60)
    logger.info("PREPROCESSING COMPLETE")
    logger.info(f"  Training rows: {len(train)} ({len(train_data)} after cleaning)")
    logger.info(f"  Testing rows: {len(test)}")
    logger.info("=" * 60)

    return result


def print_preprocessing_summary(result: Dict[str, Any]) -> None:
    """
    Print a summary of the preprocessing results.

    Args:
        result: Dictionary from preprocess_pipeline
    """
    print("\n" + "=" * 50)
    print("PREPROCESSING SUMMARY")
    print("=" * 50)
    print(f"Training Rows: {len(result['train'])} Testing Rows: {len(result['test'])}")
    print(f"Training rows after cleaning: {len(result['train_data'])}")
    print(f"Feature columns: {result['assembler'].input_cols}")
    print(f"Invalid handling: {result['assembler'].handle_invalid}")
    print("=" * 50 + "\n")
