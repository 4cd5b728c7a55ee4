#!/usr/bin/env python3
"""
Power Plant Output Regression - Main Pipeline
==============================================

Orchestrates the regression pipeline over the combined cycle power plant data.

Phases:
    1. Load - Read the CSV as text, cast columns to double, show schema
    2. Explore - SQL exploration queries and scatter plots
    3. Prepare - 80/20 random split and feature vector assembly
    4. Train - Regularized linear regression
    5. Evaluate - Predictions on the test split and RMSE

Usage:
    # Run complete pipeline
    python main.py --data data/raw/Folds5x2_pp.csv

    # Run specific phase
    python main.py --data data/raw/Folds5x2_pp.csv --phase explore

    # Run with custom config
    python main.py --data data/raw/Folds5x2_pp.csv --config config/config.yaml
"""

import argparse
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional

import pandas as pd

from power_analysis import FEATURE_COLUMNS, LABEL_COLUMN
from power_analysis.data_loader import (
    load_config, load_data, cast_columns, validate_data,
    print_schema, describe_columns, print_data_summary
)
from power_analysis.explorer import (
    SQLExplorer, generate_eda_report, print_correlation_insights, show
)
from power_analysis.preprocessing import preprocess_pipeline, print_preprocessing_summary
from power_analysis.model import train_model, print_model_summary, PowerLinearRegression
from power_analysis.prediction import predict_test_set, export_predictions, print_predictions
from power_analysis.evaluation import evaluate_model, print_evaluation_report

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", log_dir: Optional[str] = None) -> None:
    """Configure logging for the pipeline."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(
            Path(log_dir) / f'pipeline_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log'
        ))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True
    )


def run_load(data_path: str, config: Dict[str, Any]) -> pd.DataFrame:
    """
    Execute Phase 1: load the CSV and cast it to numeric columns.

    Args:
        data_path: Path to input CSV file
        config: Configuration dictionary

    Returns:
        DataFrame with double columns
    """
    print("\n" + "=" * 70)
    print("PHASE 1: LOAD DATA")
    print("=" * 70)

    data_config = config.get('data', {})
    columns = config.get('columns', {})
    all_columns = columns.get('features', FEATURE_COLUMNS) + [columns.get('label', LABEL_COLUMN)]

    raw = load_data(
        data_path,
        header=data_config.get('header', True),
        infer_schema=data_config.get('infer_schema', False),
        delimiter=data_config.get('delimiter', ',')
    )
    print_schema(raw)

    df = cast_columns(raw, all_columns)
    print_schema(df)
    print(describe_columns(df, all_columns).to_string())

    is_valid, _ = validate_data(df, required_columns=all_columns, strict=False)
    if not is_valid:
        print("⚠️  Data validation warnings detected. Proceeding anyway...")

    return df


def run_exploration(
    df: pd.DataFrame,
    config: Dict[str, Any],
    explorer: Optional[SQLExplorer] = None
) -> Dict[str, Any]:
    """
    Execute Phase 2: SQL exploration and visualization.

    Args:
        df: Numeric data
        config: Configuration dictionary
        explorer: SQL catalog shared with later phases

    Returns:
        EDA report dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 2: EXPLORATORY DATA ANALYSIS")
    print("=" * 70)

    output_dir = config.get('output', {}).get('figures_path', 'reports/figures/')
    label = config.get('columns', {}).get('label', LABEL_COLUMN)

    report = generate_eda_report(df, output_dir=output_dir, explorer=explorer)

    corr_df = pd.DataFrame(report["correlation_matrix"])
    print_correlation_insights(corr_df, target=label)

    print(f"\n✓ EDA complete. {len(report['figures'])} figures saved to {output_dir}")

    return report


def run_preparation(df: pd.DataFrame, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute Phase 3: split the data and assemble feature vectors.

    Args:
        df: Numeric data
        config: Configuration dictionary

    Returns:
        Preprocessing result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 3: DATA PREPARATION")
    print("=" * 70)

    split_config = config.get('split', {})
    assembler_config = config.get('assembler', {})
    columns = config.get('columns', {})

    result = preprocess_pipeline(
        df,
        feature_cols=columns.get('features', FEATURE_COLUMNS),
        label_col=columns.get('label', LABEL_COLUMN),
        train_ratio=split_config.get('train_ratio', 0.8),
        seed=split_config.get('seed', 12345),
        output_col=assembler_config.get('output_col', 'features'),
        handle_invalid=assembler_config.get('handle_invalid', 'keep')
    )

    print_preprocessing_summary(result)
    show(result['train_data'], title="Training data")

    return result


def run_training(prep_result: Dict[str, Any], config: Dict[str, Any]) -> PowerLinearRegression:
    """
    Execute Phase 4: Model Training.

    Args:
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary

    Returns:
        Trained model
    """
    print("\n" + "=" * 70)
    print("PHASE 4: MODEL TRAINING")
    print("=" * 70)

    model_path = config.get('output', {}).get('model_path')

    model = train_model(prep_result['train_data'], config, save_path=model_path)
    print("Model Trained!")

    print_model_summary(model, feature_names=prep_result['assembler'].input_cols)

    return model


def run_evaluation(
    model: PowerLinearRegression,
    prep_result: Dict[str, Any],
    config: Dict[str, Any],
    explorer: Optional[SQLExplorer] = None
) -> Dict[str, Any]:
    """
    Execute Phase 5: predict on the test split and compute RMSE.

    Args:
        model: Trained model
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary
        explorer: SQL catalog for the predictions view

    Returns:
        Evaluation result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 5: MODEL EVALUATION")
    print("=" * 70)

    output_config = config.get('output', {})

    predictions = predict_test_set(model, prep_result['test_data'])
    print_predictions(predictions)

    if explorer is not None:
        explorer.create_or_replace_temp_view(predictions, "regressionPredictions")
        compared = explorer.sql("SELECT trueLabel, prediction FROM regressionPredictions")
        logger.info(f"regressionPredictions view holds {len(compared)} rows")

    predictions_dir = output_config.get('predictions_path')
    csv_path = export_predictions(predictions, predictions_dir) if predictions_dir else None

    result = evaluate_model(
        predictions,
        output_dir=output_config.get('reports_path', 'reports/'),
        show_plots=False
    )
    result['predictions'] = predictions
    result['csv_path'] = csv_path

    print_evaluation_report(result['metrics'])

    return result


def run_full_pipeline(
    data_path: str,
    config_path: str = "config/config.yaml",
    config: Optional[Dict[str, Any]] = None,
    log_level: Optional[str] = None
) -> Dict[str, Any]:
    """
    Execute the complete pipeline.

    Args:
        data_path: Path to input CSV file
        config_path: Path to configuration file
        config: Already loaded configuration (skips reading config_path)
        log_level: Overrides the configured log level

    Returns:
        Dictionary containing all phase results
    """
    print("\n" + "=" * 70)
    print("POWER PLANT REGRESSION PIPELINE")
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70)

    if config is None:
        config = load_config(config_path)
        logging_config = config.get('logging', {})
        setup_logging(
            log_level or logging_config.get('level', 'INFO'), logging_config.get('log_dir')
        )

    df = run_load(data_path, config)
    print_data_summary(df)

    results = {
        'config': config,
        'data_shape': df.shape
    }

    with SQLExplorer() as explorer:
        results['eda'] = run_exploration(df, config, explorer)
        results['preparation'] = run_preparation(df, config)
        results['model'] = run_training(results['preparation'], config)
        results['evaluation'] = run_evaluation(
            results['model'], results['preparation'], config, explorer
        )

    print("\n" + "=" * 70)
    print("PIPELINE COMPLETE")
    print("=" * 70)
    print(f"  • Input data: {df.shape[0]} rows × {df.shape[1]} columns")
    print(f"  • Training Rows: {len(results['preparation']['train'])} "
          f"Testing Rows: {len(results['preparation']['test'])}")
    print(f"  • Root Mean Square Error (RMSE): {results['evaluation']['metrics']['rmse']}")
    print(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70 + "\n")

    return results


def run_single_phase(
    phase: str,
    data_path: str,
    config_path: str = "config/config.yaml",
    log_level: Optional[str] = None
) -> Dict[str, Any]:
    """
    Execute a single phase of the pipeline (with the phases it depends on).

    Args:
        phase: Phase to run ('explore', 'train', 'evaluate')
        data_path: Path to input CSV file
        config_path: Path to configuration file
        log_level: Overrides the configured log level

    Returns:
        Phase result dictionary
    """
    config = load_config(config_path)
    logging_config = config.get('logging', {})
    setup_logging(
        log_level or logging_config.get('level', 'INFO'), logging_config.get('log_dir')
    )

    if phase == 'evaluate':
        return run_full_pipeline(data_path, config=config)

    if phase not in ('explore', 'train'):
        raise ValueError(f"Unknown phase: {phase}. Choose from: explore, train, evaluate")

    df = run_load(data_path, config)

    if phase == 'explore':
        return run_exploration(df, config)

    prep_result = run_preparation(df, config)
    return {'model': run_training(prep_result, config), 'preparation': prep_result}


def main(argv=None):
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Linear regression of power plant output",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py --data data/raw/Folds5x2_pp.csv
  python main.py --data data/raw/Folds5x2_pp.csv --phase explore
  python main.py --data data/raw/Folds5x2_pp.csv --config config/custom.yaml
        """
    )

    parser.add_argument(
        '--data', '-d',
        type=str,
        required=True,
        help='Path to the input CSV file'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--phase', '-p',
        type=str,
        choices=['explore', 'train', 'evaluate', 'all'],
        default='all',
        help='Phase to run (default: all)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    if not Path(args.data).exists():
        print(f"Error: Data file not found: {args.data}")
        print("Expected format: CSV with header AT,V,AP,RH,PE")
        return 1

    if not Path(args.config).exists():
        print(f"Error: Config file not found: {args.config}")
        return 1

    log_level = "DEBUG" if args.verbose else None

    try:
        if args.phase == 'all':
            run_full_pipeline(args.data, args.config, log_level=log_level)
        else:
            run_single_phase(args.phase, args.data, args.config, log_level=log_level)

        return 0

    except Exception as e:
        logging.error(f"Pipeline failed: {e}", exc_info=True)
        print(f"\n❌ Pipeline failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
