"""Output transformations.

Turn raw ensemble outputs into the quantity the model was trained for:

    raw        -> identity (regression, ranking, margins)
    logistic   -> sigmoid of the single raw output (binary classification)
    softmax    -> softmax across output groups (multiclass)
    leaf_index -> switches the predictor to leaf index mode

Transforms operate on the last axis, so a single row of shape (groups,) and a
batch of shape (batch, groups) are both accepted.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import jax
import jax.numpy as jnp
import numpy as np

from treeserve.core.errors import PredictionInputError


class Transformation(ABC):
    """Base class for output transformations."""

    name: str = ""

    def n_output_groups(self, n_raw_output_groups: int, n_estimators: int) -> int:
        """Number of values produced per row."""
        return n_raw_output_groups

    def check(self, n_raw_output_groups: int) -> None:
        """Raise ``PredictionInputError`` if the model cannot be transformed."""

    @abstractmethod
    def __call__(self, raw: np.ndarray) -> np.ndarray:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class RawTransform(Transformation):
    name = "raw"

    def __call__(self, raw: np.ndarray) -> np.ndarray:
        return raw


class LogisticTransform(Transformation):
    """Sigmoid of the raw margin. Only defined for a single output group."""

    name = "logistic"

    def check(self, n_raw_output_groups: int) -> None:
        if n_raw_output_groups != 1:
            raise PredictionInputError(
                f"logistic transformation needs 1 output group, model has {n_raw_output_groups}"
            )

    def __call__(self, raw: np.ndarray) -> np.ndarray:
        return np.asarray(jax.nn.sigmoid(jnp.asarray(raw)), dtype=np.float64)


class SoftmaxTransform(Transformation):
    """Softmax across output groups (multiclass probabilities)."""

    name = "softmax"

    def check(self, n_raw_output_groups: int) -> None:
        if n_raw_output_groups < 2:
            raise PredictionInputError(
                f"softmax transformation needs at least 2 output groups, "
                f"model has {n_raw_output_groups}"
            )

    def __call__(self, raw: np.ndarray) -> np.ndarray:
        return np.asarray(jax.nn.softmax(jnp.asarray(raw), axis=-1), dtype=np.float64)


class LeafIndexTransform(Transformation):
    """Marker transformation: predict leaf indices instead of values.

    Leaf indices of output group ``k`` for round ``i`` are stored at
    ``k * n_estimators + i``.
    """

    name = "leaf_index"

    def n_output_groups(self, n_raw_output_groups: int, n_estimators: int) -> int:
        return n_raw_output_groups * n_estimators

    def __call__(self, raw: np.ndarray) -> np.ndarray:
        return raw


_TRANSFORMATIONS: dict[str, type[Transformation]] = {
    cls.name: cls
    for cls in (RawTransform, LogisticTransform, SoftmaxTransform, LeafIndexTransform)
}


def get_transformation(name: str | Transformation) -> Transformation:
    """Look up a transformation by name.

    Args:
        name: One of ``"raw"``, ``"logistic"``, ``"softmax"``,
            ``"leaf_index"``, or an existing ``Transformation``.

    Returns:
        The transformation instance.
    """
    if isinstance(name, Transformation):
        return name
    if name not in _TRANSFORMATIONS:
        raise ValueError(
            f"Unknown transformation: {name}. Available: {list(_TRANSFORMATIONS)}"
        )
    return _TRANSFORMATIONS[name]()
