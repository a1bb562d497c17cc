"""Tests for Predictor."""

import threading

import numpy as np
import pytest
from sklearn.datasets import make_regression

from treeserve import (
    BaggedTreeEnsemble,
    BoostedTreeEnsemble,
    DecisionTree,
    LinearModel,
    PredictionCancelledError,
    PredictionInputError,
    Predictor,
    PredictorConfig,
)


def random_stump(rng, n_features):
    return DecisionTree(
        split_feature=[int(rng.integers(n_features))],
        threshold=[float(rng.normal())],
        left_child=[~0],
        right_child=[~1],
        leaf_values=rng.normal(size=2).tolist(),
        default_left=[bool(rng.integers(2))],
    )


def make_boosted(n_rounds=10, n_groups=1, n_features=5, seed=0):
    rng = np.random.default_rng(seed)
    trees = [random_stump(rng, n_features) for _ in range(n_rounds * n_groups)]
    return BoostedTreeEnsemble(
        trees,
        n_features - 1,
        n_raw_output_groups=n_groups,
        base_score=0.5,
    )


@pytest.fixture
def X():
    X, _ = make_regression(n_samples=200, n_features=5, random_state=42)
    return X


class TestPredictorConfig:
    def test_defaults(self):
        """Defaults run single-threaded with feature checks on."""
        config = PredictorConfig()
        assert config.n_threads == 1
        assert config.check_n_features

    def test_invalid(self):
        """Non-positive threads or batch sizes are rejected."""
        with pytest.raises(ValueError):
            PredictorConfig(n_threads=0)
        with pytest.raises(ValueError):
            PredictorConfig(batch_size=0)


class TestPredictor:
    def test_introspection(self):
        """Predictor exposes the model's shape."""
        model = make_boosted(n_rounds=4, n_groups=3)
        predictor = Predictor(model, transformation="softmax")
        assert predictor.n_estimators() == 4
        assert predictor.n_raw_output_groups() == 3
        assert predictor.n_output_groups() == 3
        assert predictor.name() == "xgboost.gbtree"
        assert len(predictor.n_leaves()) == 12
        assert predictor.with_leaf_indices().n_output_groups() == 12

    def test_predict_matches_model(self, X):
        """predict returns what predict_inner writes."""
        model = make_boosted()
        predictor = Predictor(model)
        expected = np.zeros(1)
        model.predict_inner(X[0], model.n_estimators(), expected, 0)
        np.testing.assert_array_equal(predictor.predict(X[0]), expected)

    def test_prefix(self, X):
        """n_estimators limits the rounds used."""
        model = make_boosted()
        predictor = Predictor(model)
        expected = np.zeros(1)
        model.predict_inner(X[1], 3, expected, 0)
        assert predictor.predict_single(X[1], n_estimators=3) == expected[0]
        assert predictor.predict_single(X[1], n_estimators=100) == predictor.predict_single(X[1])

    def test_logistic(self, X):
        """Logistic outputs are probabilities of the raw margin."""
        model = make_boosted()
        proba = Predictor(model, transformation="logistic").predict_single(X[2])
        margin = Predictor(model).predict_single(X[2])
        assert proba == pytest.approx(1.0 / (1.0 + np.exp(-margin)), rel=1e-5)

    def test_softmax_rows_sum_to_one(self, X):
        """Softmax turns multiclass margins into distributions."""
        predictor = Predictor(make_boosted(n_groups=3), transformation="softmax")
        probs = predictor.predict_dense(X[:20])
        assert probs.shape == (20, 3)
        np.testing.assert_allclose(probs.sum(axis=1), 1.0, atol=1e-5)

    def test_transformation_checked(self):
        """Transformations that do not fit the model are rejected."""
        with pytest.raises(PredictionInputError):
            Predictor(make_boosted(n_groups=2), transformation="logistic")
        with pytest.raises(PredictionInputError):
            Predictor(make_boosted(n_groups=1), transformation="softmax")

    def test_predict_single_needs_one_output(self, X):
        """predict_single refuses multi-output predictors."""
        predictor = Predictor(make_boosted(n_groups=2))
        with pytest.raises(PredictionInputError):
            predictor.predict_single(X[0])

    def test_leaf_indices(self, X):
        """Leaf indices are grouped per output group."""
        model = make_boosted(n_rounds=3, n_groups=2)
        leaves = Predictor(model).predict_leaf_indices(X[0])
        assert leaves.shape == (6,)
        for i in range(3):
            for k in range(2):
                _, idx = model.trees[i * 2 + k].predict(X[0])
                assert leaves[k * 3 + i] == idx

    def test_linear_leaf_indices_are_zero(self):
        """Linear models leave the zero-initialized leaf buffer as is."""
        predictor = Predictor(LinearModel([1.0, 2.0, 3.0], num_feature=2))
        np.testing.assert_array_equal(predictor.predict_leaf_indices([1.0, 1.0]), [0.0])

    def test_empty_averaged_model(self):
        """An averaged ensemble without trees predicts zero."""
        predictor = Predictor(BaggedTreeEnsemble([], 0, average_output=True))
        np.testing.assert_array_equal(predictor.predict([]), [0.0])

    def test_new_fvals_sentinel(self):
        """new_fvals uses the model's missing-value sentinel."""
        boosted = Predictor(make_boosted()).new_fvals()
        assert boosted.shape == (5,)
        assert np.isnan(boosted).all()
        bagged = Predictor(BaggedTreeEnsemble(make_boosted().trees, 4)).new_fvals()
        np.testing.assert_array_equal(bagged, np.zeros(5))

    def test_narrow_input_rejected(self, X):
        """Rows narrower than n_features are rejected."""
        predictor = Predictor(make_boosted())
        with pytest.raises(PredictionInputError):
            predictor.predict(X[0, :2])
        with pytest.raises(PredictionInputError):
            predictor.predict_dense(X[:, :2])
        with pytest.raises(PredictionInputError):
            predictor.predict(X[:2])

    def test_cancelled(self, X):
        """A set signal aborts every variant."""
        signal = threading.Event()
        signal.set()
        for model in (
            make_boosted(),
            BaggedTreeEnsemble(make_boosted().trees, 4),
            LinearModel([1.0] * 6, num_feature=5),
        ):
            with pytest.raises(PredictionCancelledError):
                Predictor(model).predict(X[0], signal=signal)


class TestPredictDense:
    def test_matches_single(self, X):
        """Dense prediction equals row-by-row prediction."""
        predictor = Predictor(make_boosted(n_groups=2))
        dense = predictor.predict_dense(X)
        assert dense.shape == (200, 2)
        for row in (0, 63, 64, 199):
            np.testing.assert_array_equal(dense[row], predictor.predict(X[row]))

    def test_threads_are_bit_identical(self, X):
        """Thread count does not change the results."""
        predictor = Predictor(make_boosted(n_rounds=20), config=PredictorConfig(batch_size=16))
        single = predictor.predict_dense(X, n_threads=1)
        threaded = predictor.predict_dense(X, n_threads=4)
        assert single.tobytes() == threaded.tobytes()

    def test_leaf_indices(self, X):
        """Leaf index mode yields groups * rounds columns."""
        predictor = Predictor(make_boosted(n_rounds=4, n_groups=2)).with_leaf_indices()
        leaves = predictor.predict_dense(X, n_estimators=3, n_threads=2)
        assert leaves.shape == (200, 6)
        np.testing.assert_array_equal(leaves[5], predictor.predict(X[5], n_estimators=3))

    def test_cancelled(self, X):
        """A set signal aborts threaded prediction."""
        signal = threading.Event()
        signal.set()
        predictor = Predictor(make_boosted(), config=PredictorConfig(batch_size=10))
        with pytest.raises(PredictionCancelledError):
            predictor.predict_dense(X, n_threads=4, signal=signal)

    def test_tree_error_propagates(self, X):
        """The original tree error surfaces from worker threads."""

        class BrokenTree:
            def predict(self, fvals):
                raise RuntimeError("corrupt tree")

            def n_leaves(self):
                return 1

        model = BaggedTreeEnsemble([BrokenTree()], 4)
        predictor = Predictor(model, config=PredictorConfig(batch_size=10))
        with pytest.raises(RuntimeError, match="corrupt tree"):
            predictor.predict_dense(X, n_threads=4)
