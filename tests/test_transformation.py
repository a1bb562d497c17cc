"""Tests for output transformations."""

import numpy as np
import pytest

from treeserve import (
    LeafIndexTransform,
    LogisticTransform,
    PredictionInputError,
    RawTransform,
    SoftmaxTransform,
    get_transformation,
)


class TestTransformations:
    def test_lookup(self):
        """Transformations are found by name."""
        assert isinstance(get_transformation("raw"), RawTransform)
        assert isinstance(get_transformation("logistic"), LogisticTransform)
        assert isinstance(get_transformation("softmax"), SoftmaxTransform)
        assert isinstance(get_transformation("leaf_index"), LeafIndexTransform)

    def test_lookup_passthrough(self):
        """Instances are returned unchanged."""
        transform = SoftmaxTransform()
        assert get_transformation(transform) is transform

    def test_unknown(self):
        """Unknown names raise."""
        with pytest.raises(ValueError, match="Unknown transformation"):
            get_transformation("probit")

    def test_raw_is_identity(self):
        """Raw outputs are passed through untouched."""
        raw = np.array([1.5, -2.0])
        assert RawTransform()(raw) is raw

    def test_logistic(self):
        """Logistic applies the sigmoid element-wise."""
        out = LogisticTransform()(np.array([[0.0], [2.0]]))
        np.testing.assert_allclose(out, [[0.5], [1.0 / (1.0 + np.exp(-2.0))]], rtol=1e-6)
        assert out.dtype == np.float64

    def test_softmax_batch(self):
        """Softmax normalizes along the last axis."""
        out = SoftmaxTransform()(np.array([[0.0, 0.0], [1.0, 3.0]]))
        np.testing.assert_allclose(out[0], [0.5, 0.5], rtol=1e-6)
        np.testing.assert_allclose(out.sum(axis=-1), [1.0, 1.0], rtol=1e-6)
        assert out[1, 1] > out[1, 0]

    def test_output_groups(self):
        """Leaf index mode yields one value per evaluated tree."""
        assert RawTransform().n_output_groups(3, 10) == 3
        assert LeafIndexTransform().n_output_groups(3, 10) == 30

    def test_checks(self):
        """Group-count requirements are enforced."""
        LogisticTransform().check(1)
        SoftmaxTransform().check(2)
        with pytest.raises(PredictionInputError):
            LogisticTransform().check(3)
        with pytest.raises(PredictionInputError):
            SoftmaxTransform().check(1)
