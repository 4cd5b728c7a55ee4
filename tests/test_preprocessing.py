"""
Test Suite for Preprocessing Module
=====================================

Tests for the random split, FeatureAssembler and preprocessing functions.
"""

import pytest
import numpy as np
import pandas as pd

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from power_analysis.preprocessing import (
    random_split, train_test_split, FeatureAssembler, features_matrix,
    prepare_training_data, prepare_test_data, clean_training_data,
    preprocess_pipeline
)


def make_power_data(n_samples=500, seed=42):
    rng = np.random.RandomState(seed)
    at = rng.uniform(2, 35, n_samples)
    v = rng.uniform(25, 80, n_samples)
    ap = rng.uniform(990, 1035, n_samples)
    rh = rng.uniform(25, 100, n_samples)
    pe = 454.6 - 1.98 * at - 0.23 * v + 0.06 * ap - 0.16 * rh + rng.randn(n_samples)
    return pd.DataFrame({'AT': at, 'V': v, 'AP': ap, 'RH': rh, 'PE': pe})


class TestRandomSplit:
    """Tests for random_split and train_test_split."""

    @pytest.fixture
    def sample_data(self):
        """Create sample data for testing."""
        return make_power_data()

    def test_same_seed_same_split(self, sample_data):
        """Splitting twice with the same seed yields identical partitions."""
        train_a, test_a = train_test_split(sample_data, 0.8, seed=12345)
        train_b, test_b = train_test_split(sample_data, 0.8, seed=12345)

        pd.testing.assert_frame_equal(train_a, train_b)
        pd.testing.assert_frame_equal(test_a, test_b)

    def test_different_seed_different_split(self, sample_data):
        """Different seeds give different partitions."""
        train_a, _ = train_test_split(sample_data, 0.8, seed=12345)
        train_b, _ = train_test_split(sample_data, 0.8, seed=54321)

        assert not train_a.index.equals(train_b.index)

    def test_counts_add_up(self, sample_data):
        """No row is lost or duplicated."""
        train, test = train_test_split(sample_data, 0.8, seed=12345)

        assert len(train) + len(test) == len(sample_data)

    def test_disjoint(self, sample_data):
        """Train and test share no rows."""
        train, test = train_test_split(sample_data, 0.8, seed=12345)

        assert len(train.index.intersection(test.index)) == 0
        assert sorted(train.index.union(test.index)) == list(sample_data.index)

    def test_ratio_is_approximate(self, sample_data):
        """Train share is close to the requested weight."""
        train, _ = train_test_split(sample_data, 0.8, seed=12345)

        assert 0.7 < len(train) / len(sample_data) < 0.9

    def test_weights_are_normalized(self, sample_data):
        """Weights [4, 1] behave like [0.8, 0.2]."""
        a = random_split(sample_data, [0.8, 0.2], seed=7)
        b = random_split(sample_data, [4, 1], seed=7)

        assert a[0].index.equals(b[0].index)
        assert a[1].index.equals(b[1].index)

    def test_three_way_split(self, sample_data):
        """More than two weights produce that many disjoint parts."""
        parts = random_split(sample_data, [0.5, 0.3, 0.2], seed=1)

        assert len(parts) == 3
        assert sum(len(p) for p in parts) == len(sample_data)

    def test_zero_weight_gives_empty_part(self, sample_data):
        """A zero weight produces an empty subset."""
        train, test = train_test_split(sample_data, 1.0, seed=12345)

        assert len(train) == len(sample_data)
        assert len(test) == 0

    def test_negative_weight_raises(self, sample_data):
        with pytest.raises(ValueError, match="non-negative"):
            random_split(sample_data, [0.8, -0.2])

    def test_zero_sum_raises(self, sample_data):
        with pytest.raises(ValueError, match="positive"):
            random_split(sample_data, [0.0, 0.0])

    def test_empty_frame(self):
        """Empty input yields empty splits."""
        empty = make_power_data().iloc[0:0]
        train, test = train_test_split(empty)

        assert len(train) == 0 and len(test) == 0


class TestFeatureAssembler:
    """Tests for FeatureAssembler."""

    @pytest.fixture
    def sample_data(self):
        return make_power_data(50)

    @pytest.fixture
    def data_with_nulls(self):
        df = make_power_data(10)
        df.loc[2, 'AT'] = np.nan
        df.loc[5, 'RH'] = np.nan
        return df

    def test_init_defaults(self):
        assembler = FeatureAssembler()

        assert assembler.input_cols == ['AT', 'V', 'AP', 'RH']
        assert assembler.output_col == 'features'
        assert assembler.handle_invalid == 'keep'
        assert assembler.vector_size == 4

    def test_invalid_policy(self):
        with pytest.raises(ValueError, match="handle_invalid"):
            FeatureAssembler(handle_invalid="drop")

    def test_vector_length_and_order(self, sample_data):
        """Every vector has four entries in AT, V, AP, RH order."""
        result = FeatureAssembler().transform(sample_data)

        assert all(len(vec) == 4 for vec in result['features'])
        np.testing.assert_array_equal(
            features_matrix(result),
            sample_data[['AT', 'V', 'AP', 'RH']].to_numpy()
        )

    def test_input_not_mutated(self, sample_data):
        FeatureAssembler().transform(sample_data)

        assert 'features' not in sample_data.columns

    def test_missing_column(self, sample_data):
        with pytest.raises(KeyError):
            FeatureAssembler().transform(sample_data.drop(columns=['AP']))

    def test_keep_passes_nulls_through(self, data_with_nulls):
        result = FeatureAssembler(handle_invalid="keep").transform(data_with_nulls)

        assert len(result) == 10
        assert np.isnan(result.loc[2, 'features'][0])
        assert np.isnan(result.loc[5, 'features'][3])

    def test_skip_drops_rows(self, data_with_nulls):
        result = FeatureAssembler(handle_invalid="skip").transform(data_with_nulls)

        assert len(result) == 8
        assert 2 not in result.index and 5 not in result.index

    def test_error_raises(self, data_with_nulls):
        with pytest.raises(ValueError, match="null"):
            FeatureAssembler(handle_invalid="error").transform(data_with_nulls)


class TestLabelPreparation:
    """Tests for training/test data preparation and cleaning."""

    @pytest.fixture
    def sample_data(self):
        df = make_power_data(20)
        df.loc[3, 'V'] = np.nan
        df.loc[7, 'PE'] = np.nan
        return df

    def test_training_columns(self, sample_data):
        result = prepare_training_data(sample_data, FeatureAssembler())

        assert list(result.columns) == ['features', 'label']
        np.testing.assert_array_equal(result['label'], sample_data['PE'])

    def test_test_columns(self, sample_data):
        result = prepare_test_data(sample_data, FeatureAssembler())

        assert list(result.columns) == ['features', 'trueLabel']

    def test_clean_removes_null_rows(self, sample_data):
        prepared = prepare_training_data(sample_data, FeatureAssembler())
        cleaned = clean_training_data(prepared)

        assert len(cleaned) == 18
        assert 3 not in cleaned.index and 7 not in cleaned.index
        assert not np.isnan(features_matrix(cleaned)).any()


class TestPreprocessPipeline:
    """Tests for the preprocess_pipeline function."""

    @pytest.fixture
    def sample_data(self):
        return make_power_data(300)

    def test_pipeline_returns_expected_keys(self, sample_data):
        result = preprocess_pipeline(sample_data)

        for key in ['train', 'test', 'train_data', 'test_data', 'assembler']:
            assert key in result, f"Missing key: {key}"

    def test_pipeline_counts(self, sample_data):
        result = preprocess_pipeline(sample_data, train_ratio=0.8, seed=12345)

        assert len(result['train']) + len(result['test']) == 300
        assert len(result['train_data']) == len(result['train'])
        assert len(result['test_data']) == len(result['test'])

    def test_pipeline_uses_one_assembler(self, sample_data):
        result = preprocess_pipeline(sample_data)

        assert features_matrix(result['train_data']).shape[1] == 4
        assert features_matrix(result['test_data']).shape[1] == 4


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
