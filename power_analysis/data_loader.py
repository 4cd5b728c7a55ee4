"""
Data Loader Module
==================

Handles CSV ingestion, numeric casting, validation and schema reporting.

Functions:
    - load_config: Load YAML configuration file
    - load_data: Load CSV data as text columns (no schema inference)
    - cast_columns: Cast columns to float64, unparsable cells become NaN
    - validate_data: Check data quality constraints
    - print_schema: Print the column tree with types and nullability
    - describe_columns: count/mean/stddev/min/max per column
"""

import os
import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import pandas as pd
import numpy as np
import yaml

from . import ALL_COLUMNS

logger = logging.getLogger(__name__)


class DataValidationError(ValueError):
    """Raised by strict validation when the dataset breaks a constraint."""


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Dictionary containing configuration parameters

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    logger.info(f"Loaded configuration from {config_path}")
    return config


def load_data(
    file_path: str,
    header: bool = True,
    infer_schema: bool = False,
    delimiter: str = ","
) -> pd.DataFrame:
    """
    Load a delimited file into a DataFrame.

    With ``infer_schema=False`` every column is kept as text; call
    :func:`cast_columns` afterwards to get numeric columns.

    Args:
        file_path: Path to the CSV file
        header: Whether the first line holds column names
        infer_schema: Let pandas infer column types
        delimiter: Field delimiter

    Returns:
        DataFrame containing the loaded data

    Raises:
        FileNotFoundError: If data file doesn't exist
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    df = pd.read_csv(
        file_path,
        sep=delimiter,
        header=0 if header else None,
        dtype=None if infer_schema else str,
        skipinitialspace=True
    )

    if not header:
        df.columns = [f"_c{i}" for i in range(df.shape[1])]

    logger.info(f"Loaded data from {file_path}: {df.shape[0]} rows × {df.shape[1]} columns")
    return df


def cast_columns(df: pd.DataFrame, columns: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Cast columns to float64.

    Cells that cannot be parsed become NaN instead of raising, so bad rows
    can be filtered later rather than aborting the load.

    Args:
        df: DataFrame with text columns
        columns: Columns to cast (default: the five dataset columns)

    Returns:
        New DataFrame with the columns cast

    Raises:
        KeyError: If a column is missing
    """
    columns = columns or ALL_COLUMNS

    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise KeyError(f"Columns not found in data: {missing}")

    result = df.copy()
    for col in columns:
        before = result[col].isnull().sum()
        result[col] = pd.to_numeric(result[col], errors='coerce').astype(np.float64)
        coerced = result[col].isnull().sum() - before
        if coerced > 0:
            logger.warning(f"Column '{col}': {coerced} values could not be cast to double")

    return result


def validate_data(
    df: pd.DataFrame,
    required_columns: Optional[List[str]] = None,
    strict: bool = True
) -> Tuple[bool, Dict[str, Any]]:
    """
    Validate data quality constraints for the regression pipeline.

    Checks:
        - Required columns are present
        - Required columns are numerical
        - Missing values
        - Duplicate rows

    Args:
        df: DataFrame to validate
        required_columns: Columns the pipeline needs
        strict: If True, raise DataValidationError on failure

    Returns:
        Tuple of (is_valid, validation_report)
    """
    required_columns = required_columns or ALL_COLUMNS

    report = {
        "total_rows": len(df),
        "total_columns": len(df.columns),
        "column_names": list(df.columns),
        "issues": []
    }

    # Check 1: Required columns
    missing_cols = [col for col in required_columns if col not in df.columns]
    if missing_cols:
        issue = f"Missing required columns: {missing_cols}"
        report["issues"].append(issue)
        logger.warning(issue)

    present = [col for col in required_columns if col in df.columns]

    # Check 2: Numerical types
    non_numeric_cols = df[present].select_dtypes(exclude=[np.number]).columns.tolist()
    if non_numeric_cols:
        issue = f"Non-numeric columns found: {non_numeric_cols}"
        report["issues"].append(issue)
        logger.warning(issue)

    # Check 3: Missing values
    missing_counts = df[present].isnull().sum()
    total_missing = int(missing_counts.sum())
    if total_missing > 0:
        issue = f"Missing values: {total_missing}"
        report["issues"].append(issue)
        report["missing_by_column"] = missing_counts[missing_counts > 0].astype(int).to_dict()
        logger.warning(issue)

    # Check 4: Duplicate rows
    duplicates = int(df.duplicated().sum())
    if duplicates > 0:
        issue = f"Duplicate rows found: {duplicates}"
        report["issues"].append(issue)
        logger.warning(issue)

    is_valid = len(report["issues"]) == 0
    report["is_valid"] = is_valid

    if strict and not is_valid:
        raise DataValidationError(f"Data validation failed: {report['issues']}")

    return is_valid, report


def _type_name(dtype) -> str:
    if pd.api.types.is_float_dtype(dtype):
        return "double"
    if pd.api.types.is_integer_dtype(dtype):
        return "integer"
    if pd.api.types.is_bool_dtype(dtype):
        return "boolean"
    return "string"


def get_schema(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Return name, type and nullability for every column."""
    return [
        {
            "name": col,
            "type": _type_name(df[col].dtype),
            "nullable": True
        }
        for col in df.columns
    ]


def print_schema(df: pd.DataFrame) -> None:
    """Print the schema as a tree."""
    print("root")
    for field in get_schema(df):
        nullable = str(field["nullable"]).lower()
        print(f" |-- {field['name']}: {field['type']} (nullable = {nullable})")


def describe_columns(df: pd.DataFrame, columns: Optional[List[str]] = None) -> pd.DataFrame:
    """
    Summary statistics per column: count, mean, stddev, min, max.

    Args:
        df: DataFrame with numeric columns
        columns: Columns to describe (default: the five dataset columns)

    Returns:
        DataFrame indexed by statistic name
    """
    columns = columns or ALL_COLUMNS
    numeric = df[columns].apply(pd.to_numeric, errors='coerce')

    summary = pd.DataFrame({
        "count": numeric.count(),
        "mean": numeric.mean(),
        "stddev": numeric.std(),
        "min": numeric.min(),
        "max": numeric.max()
    }).T
    summary.index.name = "summary"
    return summary


def print_data_summary(df: pd.DataFrame) -> None:
    """
    Print a formatted summary of the dataset to console.

    Args:
        df: DataFrame to summarize
    """
    print("\n" + "=" * 60)
    print("DATASET SUMMARY")
    print("=" * 60)
    print(f"Shape: {df.shape[0]} rows × {df.shape[1]} columns")
    print("\nColumn Information:")
    print("-" * 40)

    for col in df.columns:
        non_null = df[col].count()
        null_pct = (1 - non_null / len(df)) * 100 if len(df) else 0.0
        print(f"  {col}: {_type_name(df[col].dtype)} | {non_null} non-null ({null_pct:.1f}% missing)")

    present = [col for col in ALL_COLUMNS if col in df.columns]
    if present:
        print("\nBasic Statistics:")
        print("-" * 40)
        print(describe_columns(df, present).round(4).to_string())
    print("=" * 60 + "\n")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    data_path = "data/raw/Folds5x2_pp.csv"
    if os.path.exists(data_path):
        df = cast_columns(load_data(data_path))
        print_schema(df)
        print_data_summary(df)
        is_valid, report = validate_data(df, strict=False)
        print(f"Validation passed: {is_valid}")
    else:
        print(f"No data file found at {data_path}")
