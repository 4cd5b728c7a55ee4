"""
Test Suite for Model and Prediction Modules
=============================================

Tests for PowerLinearRegression, train_model and prediction records.
"""

import pytest
import numpy as np
import pandas as pd
import tempfile
import os

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from power_analysis.model import PowerLinearRegression, train_model
from power_analysis.preprocessing import FeatureAssembler, prepare_training_data, prepare_test_data
from power_analysis.prediction import predict_test_set, export_predictions, PREDICTION_COLUMNS
from power_analysis.evaluation import RegressionEvaluator

TRUE_COEF = np.array([-1.98, -0.23, 0.06, -0.16])
TRUE_INTERCEPT = 454.6


def make_power_data(n_samples=400, seed=0, noise=0.0):
    rng = np.random.RandomState(seed)
    X = np.column_stack([
        rng.uniform(2, 35, n_samples),
        rng.uniform(25, 80, n_samples),
        rng.uniform(990, 1035, n_samples),
        rng.uniform(25, 100, n_samples)
    ])
    pe = X @ TRUE_COEF + TRUE_INTERCEPT + noise * rng.randn(n_samples)
    df = pd.DataFrame(X, columns=['AT', 'V', 'AP', 'RH'])
    df['PE'] = pe
    return df


class TestPowerLinearRegression:
    """Tests for PowerLinearRegression class."""

    @pytest.fixture
    def train_data(self):
        return prepare_training_data(make_power_data(), FeatureAssembler())

    @pytest.fixture
    def model(self):
        return PowerLinearRegression(max_iter=10, reg_param=0.3)

    def test_init(self, model):
        assert model.max_iter == 10
        assert model.reg_param == 0.3
        assert model.elastic_net_param == 0.0
        assert model._is_fitted == False

    def test_invalid_params(self):
        with pytest.raises(ValueError):
            PowerLinearRegression(max_iter=0)
        with pytest.raises(ValueError):
            PowerLinearRegression(reg_param=-1.0)
        with pytest.raises(ValueError):
            PowerLinearRegression(elastic_net_param=1.5)

    def test_predict_before_fit(self, model):
        with pytest.raises(ValueError, match="must be trained"):
            model.predict(np.zeros((2, 4)))

    def test_fit(self, model, train_data):
        model.fit(train_data)

        assert model._is_fitted == True
        assert model.n_features_in_ == 4
        assert model.training_info['n_samples'] == len(train_data)

    def test_recovers_coefficients_without_regularization(self, train_data):
        model = PowerLinearRegression(max_iter=100, reg_param=0.0).fit(train_data)

        X = np.vstack(train_data['features'].to_numpy())
        np.testing.assert_allclose(model.predict(X), train_data['label'], atol=0.05)
        np.testing.assert_allclose(model.coefficients, TRUE_COEF, rtol=0.05)
        np.testing.assert_allclose(
            X @ model.coefficients + model.intercept, model.predict(X), rtol=1e-9
        )

    def test_regularization_shrinks(self, train_data):
        plain = PowerLinearRegression(max_iter=100, reg_param=0.0).fit(train_data)
        ridge = PowerLinearRegression(max_iter=100, reg_param=0.3).fit(train_data)

        assert np.linalg.norm(ridge.coefficients) < np.linalg.norm(plain.coefficients)

    def test_elastic_net(self, train_data):
        model = PowerLinearRegression(max_iter=1000, reg_param=0.01, elastic_net_param=0.5)
        model.fit(train_data)

        predictions = model.predict(np.vstack(train_data['features'].to_numpy()))
        assert predictions.shape == (len(train_data),)

    def test_predict_wrong_width(self, model, train_data):
        model.fit(train_data)

        with pytest.raises(ValueError, match="Expected 4 features"):
            model.predict(np.zeros((3, 5)))

    def test_transform_adds_prediction(self, model, train_data):
        model.fit(train_data)
        result = model.transform(train_data)

        assert 'prediction' in result.columns
        assert 'prediction' not in train_data.columns
        assert result['prediction'].notnull().all()

    def test_transform_keeps_nan_rows(self, model, train_data):
        model.fit(train_data)
        df = make_power_data(5, seed=3)
        df.loc[1, 'AP'] = np.nan
        test_data = prepare_test_data(df, FeatureAssembler(handle_invalid="keep"))

        result = model.transform(test_data)

        assert np.isnan(result.loc[1, 'prediction'])
        assert result['prediction'].notnull().sum() == 4

    def test_constant_label_gives_zero_rmse(self):
        df = make_power_data(200, seed=5)
        df['PE'] = 450.0
        model = PowerLinearRegression().fit(prepare_training_data(df, FeatureAssembler()))

        test = make_power_data(50, seed=6)
        test['PE'] = 450.0
        predictions = predict_test_set(model, prepare_test_data(test, FeatureAssembler()))

        np.testing.assert_allclose(predictions['prediction'], 450.0)
        assert RegressionEvaluator().evaluate(predictions) == pytest.approx(0.0, abs=1e-9)

    def test_deterministic_fit(self, train_data):
        a = PowerLinearRegression().fit(train_data)
        b = PowerLinearRegression().fit(train_data)

        np.testing.assert_array_equal(a.coefficients, b.coefficients)
        assert a.intercept == b.intercept

    def test_save_load(self, model, train_data):
        model.fit(train_data)

        with tempfile.NamedTemporaryFile(suffix='.joblib', delete=False) as f:
            temp_path = f.name

        try:
            model.save(temp_path)
            loaded = PowerLinearRegression.load(temp_path)

            assert loaded.reg_param == model.reg_param
            assert loaded._is_fitted == True
            np.testing.assert_array_equal(loaded.coefficients, model.coefficients)
        finally:
            os.unlink(temp_path)

    def test_save_untrained(self, model):
        with pytest.raises(ValueError, match="untrained"):
            model.save("unused.joblib")


class TestTrainModel:
    """Tests for the train_model function."""

    def test_uses_config(self):
        train_data = prepare_training_data(make_power_data(), FeatureAssembler())
        config = {'model': {'max_iter': 25, 'reg_param': 0.1}}

        model = train_model(train_data, config)

        assert model.max_iter == 25
        assert model.reg_param == 0.1
        assert model._is_fitted

    def test_defaults(self):
        train_data = prepare_training_data(make_power_data(), FeatureAssembler())

        model = train_model(train_data, {})

        assert model.max_iter == 10
        assert model.reg_param == 0.3


class TestPrediction:
    """Tests for prediction records and export."""

    @pytest.fixture
    def predictions(self):
        model = PowerLinearRegression().fit(
            prepare_training_data(make_power_data(), FeatureAssembler())
        )
        return predict_test_set(
            model, prepare_test_data(make_power_data(30, seed=9), FeatureAssembler())
        )

    def test_columns(self, predictions):
        assert list(predictions.columns) == PREDICTION_COLUMNS
        assert len(predictions) == 30

    def test_export(self, predictions, tmp_path):
        path = export_predictions(predictions, str(tmp_path), include_timestamp=False)

        exported = pd.read_csv(path)
        assert list(exported.columns) == PREDICTION_COLUMNS
        assert len(exported) == 30
        assert exported.loc[0, 'features'].startswith("[")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
