"""
Model Training Module
=====================

Handles regularized linear regression of power output on the feature vector.

Features:
    - L2 (ridge) or elastic-net regularization on standardized features
    - Hyperparameter configuration via config file
    - Model persistence (save/load)
    - Training progress logging
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional
from datetime import datetime

import numpy as np
import pandas as pd
import joblib
from sklearn.linear_model import ElasticNet, Ridge
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from .preprocessing import features_matrix

logger = logging.getLogger(__name__)


class PowerLinearRegression:
    """
    Linear regression of the label on the assembled feature vector.

    Minimizes ``1/(2n) * ||y - Xw||^2 + reg_param * (a * ||w||_1 + (1 - a) / 2 * ||w||^2)``
    with ``a = elastic_net_param``. Features are standardized before fitting
    when ``standardization`` is on; coefficients are reported in the
    original feature units.
    """

    def __init__(
        self,
        max_iter: int = 10,
        reg_param: float = 0.3,
        elastic_net_param: float = 0.0,
        fit_intercept: bool = True,
        standardization: bool = True,
        features_col: str = "features",
        label_col: str = "label",
        prediction_col: str = "prediction"
    ):
        """
        Initialize the model with hyperparameters.

        Args:
            max_iter: Maximum number of solver iterations
            reg_param: Regularization strength
            elastic_net_param: L1 share of the penalty (0 = ridge, 1 = lasso)
            fit_intercept: Whether to fit an intercept term
            standardization: Whether to standardize features before fitting
            features_col: Vector column read by fit/transform
            label_col: Label column read by fit
            prediction_col: Column written by transform
        """
        if max_iter < 1:
            raise ValueError(f"max_iter must be >= 1, got {max_iter}")
        if reg_param < 0:
            raise ValueError(f"reg_param must be >= 0, got {reg_param}")
        if not 0.0 <= elastic_net_param <= 1.0:
            raise ValueError(f"elastic_net_param must be within [0, 1], got {elastic_net_param}")

        self.max_iter = max_iter
        self.reg_param = reg_param
        self.elastic_net_param = elastic_net_param
        self.fit_intercept = fit_intercept
        self.standardization = standardization
        self.features_col = features_col
        self.label_col = label_col
        self.prediction_col = prediction_col

        self.model: Optional[Pipeline] = None
        self.n_features_in_: Optional[int] = None
        self.training_info: Dict[str, Any] = {}
        self._is_fitted = False

    def _create_regressor(self, n_samples: int):
        """Create the scikit-learn estimator for the configured penalty."""
        if self.elastic_net_param > 0:
            return ElasticNet(
                alpha=self.reg_param,
                l1_ratio=self.elastic_net_param,
                fit_intercept=self.fit_intercept,
                max_iter=self.max_iter
            )
        # Ridge minimizes ||y - Xw||^2 + alpha * ||w||^2, so scale by n
        return Ridge(
            alpha=self.reg_param * n_samples,
            fit_intercept=self.fit_intercept,
            solver="lsqr",
            max_iter=self.max_iter
        )

    def fit_arrays(self, X: np.ndarray, y: np.ndarray) -> 'PowerLinearRegression':
        """
        Train the model on feature and label arrays.

        Args:
            X: Feature array of shape (n_samples, n_features)
            y: Label array of shape (n_samples,)

        Returns:
            Self for method chaining
        """
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)

        if X.ndim != 2 or len(X) == 0:
            raise ValueError(f"Expected a non-empty 2D feature array, got shape {X.shape}")
        if len(X) != len(y):
            raise ValueError(f"Feature rows ({len(X)}) and labels ({len(y)}) differ in length")

        start_time = datetime.now()

        logger.info("=" * 60)
        logger.info("STARTING MODEL TRAINING")
        logger.info("=" * 60)
        logger.info(f"Training data shape: X={X.shape}, y={y.shape}")
        logger.info(f"Hyperparameters:")
        logger.info(f"  - max_iter: {self.max_iter}")
        logger.info(f"  - reg_param: {self.reg_param}")
        logger.info(f"  - elastic_net_param: {self.elastic_net_param}")
        logger.info(f"  - standardization: {self.standardization}")

        self.n_features_in_ = X.shape[1]

        steps = []
        if self.standardization:
            steps.append(("scaler", StandardScaler()))
        steps.append(("regressor", self._create_regressor(len(X))))
        self.model = Pipeline(steps)
        self.model.fit(X, y)

        end_time = datetime.now()
        training_duration = (end_time - start_time).total_seconds()

        self.training_info = {
            'training_duration_seconds': training_duration,
            'n_samples': X.shape[0],
            'n_features': X.shape[1],
            'trained_at': end_time.isoformat(),
            'hyperparameters': self.get_params()
        }

        regressor = self.model.named_steps["regressor"]
        n_iter = getattr(regressor, "n_iter_", None)
        if n_iter is not None:
            self.training_info['actual_iterations'] = int(np.max(n_iter))
            logger.info(f"Solver iterations: {self.training_info['actual_iterations']}")

        self._is_fitted = True

        logger.info("=" * 60)
        logger.info(f"MODEL TRAINING COMPLETE in {training_duration:.2f} seconds")
        logger.info("=" * 60)

        return self

    def fit(self, df: pd.DataFrame) -> 'PowerLinearRegression':
        """
        Train the model on a DataFrame with vector and label columns.

        Args:
            df: Cleaned training data

        Returns:
            Self for method chaining
        """
        X = features_matrix(df, self.features_col)
        y = df[self.label_col].to_numpy(dtype=np.float64)
        return self.fit_arrays(X, y)

    def predict(self, X: np.ndarray) -> np.ndarray:
        """
        Make predictions using the trained model.

        Args:
            X: Feature array of shape (n_samples, n_features)

        Returns:
            Predictions array of shape (n_samples,)
        """
        if not self._is_fitted:
            raise ValueError("Model must be trained before prediction. Call fit() first.")

        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2 or X.shape[1] != self.n_features_in_:
            raise ValueError(
                f"Expected {self.n_features_in_} features, but got shape {X.shape}"
            )

        return self.model.predict(X)

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Append a prediction column to a copy of ``df``.

        Rows whose vector contains NaN get a NaN prediction.

        Args:
            df: DataFrame with the vector column

        Returns:
            New DataFrame with the prediction column
        """
        if not self._is_fitted:
            raise ValueError("Model must be trained before transform. Call fit() first.")

        result = df.copy()
        predictions = np.full(len(df), np.nan)

        if len(df) > 0:
            X = features_matrix(df, self.features_col)
            complete = ~np.isnan(X).any(axis=1)
            if complete.any():
                predictions[complete] = self.predict(X[complete])

        result[self.prediction_col] = predictions
        return result

    @property
    def coefficients(self) -> np.ndarray:
        """Coefficients in the original feature units."""
        if not self._is_fitted:
            raise ValueError("Model must be trained first.")

        coef = np.asarray(self.model.named_steps["regressor"].coef_, dtype=np.float64)
        if self.standardization:
            coef = coef / self.model.named_steps["scaler"].scale_
        return coef

    @property
    def intercept(self) -> float:
        """Intercept in the original feature units."""
        if not self._is_fitted:
            raise ValueError("Model must be trained first.")

        intercept = float(self.model.named_steps["regressor"].intercept_)
        if self.standardization:
            scaler = self.model.named_steps["scaler"]
            intercept -= float(np.dot(self.coefficients, scaler.mean_))
        return intercept

    def get_params(self) -> Dict[str, Any]:
        return {
            'max_iter': self.max_iter,
            'reg_param': self.reg_param,
            'elastic_net_param': self.elastic_net_param,
            'fit_intercept': self.fit_intercept,
            'standardization': self.standardization,
            'features_col': self.features_col,
            'label_col': self.label_col,
            'prediction_col': self.prediction_col
        }

    def save(self, filepath: str) -> None:
        """
        Save the trained model to disk.

        Args:
            filepath: Path to save the model
        """
        if not self._is_fitted:
            raise ValueError("Cannot save untrained model.")

        state = {
            'model': self.model,
            'hyperparameters': self.get_params(),
            'n_features_in_': self.n_features_in_,
            'training_info': self.training_info,
            '_is_fitted': self._is_fitted
        }

        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(state, filepath)
        logger.info(f"Model saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> 'PowerLinearRegression':
        """
        Load a trained model from disk.

        Args:
            filepath: Path to the saved model

        Returns:
            Loaded PowerLinearRegression instance
        """
        state = joblib.load(filepath)

        model = cls(**state['hyperparameters'])
        model.model = state['model']
        model.n_features_in_ = state['n_features_in_']
        model.training_info = state['training_info']
        model._is_fitted = state['_is_fitted']

        logger.info(f"Model loaded from {filepath}")
        return model


def train_model(
    train_data: pd.DataFrame,
    config: Dict[str, Any],
    save_path: Optional[str] = None
) -> PowerLinearRegression:
    """
    Train a model using configuration parameters.

    Args:
        train_data: Cleaned training data with features and label columns
        config: Configuration dictionary
        save_path: Path to save the trained model (optional)

    Returns:
        Trained PowerLinearRegression
    """
    model_config = config.get('model', {})
    features_col = config.get('assembler', {}).get('output_col', 'features')

    model = PowerLinearRegression(
        max_iter=model_config.get('max_iter', 10),
        reg_param=model_config.get('reg_param', 0.3),
        elastic_net_param=model_config.get('elastic_net_param', 0.0),
        fit_intercept=model_config.get('fit_intercept', True),
        standardization=model_config.get('standardization', True),
        features_col=features_col
    )

    model.fit(train_data)

    if save_path:
        model.save(save_path)

    return model


def print_model_summary(model: PowerLinearRegression, feature_names: Optional[list] = None) -> None:
    """
    Print a summary of the trained model.

    Args:
        model: Trained model instance
        feature_names: Names of the vector entries
    """
    print("\n" + "=" * 50)
    print("MODEL SUMMARY")
    print("=" * 50)
    print("Model Type: LinearRegression (StandardScaler + "
          f"{'ElasticNet' if model.elastic_net_param > 0 else 'Ridge'})")
    print(f"Number of input features: {model.n_features_in_}")
    print(f"\nHyperparameters:")
    print(f"  - max_iter: {model.max_iter}")
    print(f"  - reg_param: {model.reg_param}")
    print(f"  - elastic_net_param: {model.elastic_net_param}")

    feature_names = feature_names or [f"x{i}" for i in range(model.n_features_in_)]
    print(f"\nCoefficients:")
    for name, coef in zip(feature_names, model.coefficients):
        print(f"  - {name}: {coef:.6f}")
    print(f"  - intercept: {model.intercept:.6f}")

    if model.training_info:
        print(f"\nTraining Info:")
        print(f"  - Duration: {model.training_info.get('training_duration_seconds', 0.0):.2f}s")
        print(f"  - Samples: {model.training_info.get('n_samples', 'N/A')}")

    print("=" * 50 + "\n")
