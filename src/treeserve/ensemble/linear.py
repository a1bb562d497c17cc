"""Linear booster (XGBoost ``gblinear``).

There are no trees: a single weight row holds one coefficient per
(feature, group) followed by one bias per group.
"""

from __future__ import annotations

import logging
from typing import MutableSequence, Sequence

import numpy as np

from treeserve.core.cancellation import raise_if_cancelled
from treeserve.core.errors import InvalidModelError
from treeserve.core.protocols import CancelSignal
from treeserve.ensemble._common import fill

logger = logging.getLogger(__name__)


class LinearModel:
    """Linear model behind the ensemble contract.

    For output group ``k`` with ``F`` features and ``G`` groups:

        out[k] = base_score + w[G*F + k] + Σ_i fvals[i] * w[G*i + k]

    The model has exactly one round, so requested estimator counts are
    ignored.
    """

    def __init__(
        self,
        weights: Sequence[float],
        num_feature: int,
        n_raw_output_groups: int = 1,
        base_score: float = 0.0,
    ) -> None:
        """Initialize the model.

        Args:
            weights: Flat weight row of length ``G * (num_feature + 1)``.
                Stored as float64. Weights dumped as float32 should be passed
                widened to float64 (e.g. ``np.float32(w).astype(np.float64)``),
                not re-parsed from decimal text, so outputs stay bit-identical
                to float32-weight evaluation.
            num_feature: Number of input features ``F``.
            n_raw_output_groups: Number of output groups ``G``.
            base_score: Value added to every output group.

        Raises:
            InvalidModelError: If the weight row has the wrong length.
        """
        if n_raw_output_groups < 1:
            raise InvalidModelError(
                f"n_raw_output_groups must be >= 1, got {n_raw_output_groups}"
            )
        expected = n_raw_output_groups * (num_feature + 1)
        if len(weights) != expected:
            raise InvalidModelError(
                f"expected {expected} linear weights for {num_feature} features and "
                f"{n_raw_output_groups} groups, got {len(weights)}"
            )
        self.weights = np.asarray(weights, dtype=np.float64)
        self.weights.setflags(write=False)
        self.num_feature = num_feature
        self.base_score = float(base_score)
        self._n_raw_output_groups = n_raw_output_groups
        logger.debug(
            "built linear model: %d features, %d output groups",
            num_feature,
            n_raw_output_groups,
        )

    def n_estimators(self) -> int:
        return 1

    def n_raw_output_groups(self) -> int:
        return self._n_raw_output_groups

    def n_features(self) -> int:
        return self.num_feature

    def n_leaves(self) -> list[int]:
        return []

    def name(self) -> str:
        return "xgboost.gblinear"

    def adjust_n_estimators(self, n_estimators: int) -> int:
        # one weight row per class: there is nothing to truncate
        return 1

    def reset_fvals(self, fvals: MutableSequence[float]) -> None:
        fill(fvals, 0.0)

    def predict_inner(
        self,
        fvals: Sequence[float],
        n_estimators: int,
        predictions: MutableSequence[float],
        start_index: int,
        signal: CancelSignal | None = None,
    ) -> None:
        """Evaluate the linear model. ``n_estimators`` is ignored.

        The signal is checked once on entry only.

        Raises:
            PredictionCancelledError: If ``signal`` is set.
        """
        raise_if_cancelled(signal)
        n_groups = self._n_raw_output_groups
        num_feature = self.num_feature
        weights = self.weights
        for k in range(n_groups):
            pred = self.base_score + float(weights[n_groups * num_feature + k])
            for i in range(num_feature):
                pred += fvals[i] * float(weights[n_groups * i + k])
            predictions[start_index + k] = pred

    def predict_leaf_indices_inner(
        self,
        fvals: Sequence[float],
        n_estimators: int,
        predictions: MutableSequence[float],
        start_index: int,
        signal: CancelSignal | None = None,
    ) -> None:
        """No-op: a linear model has no leaves. ``predictions`` is untouched."""
        return None

    def __repr__(self) -> str:
        return (
            f"LinearModel(num_feature={self.num_feature}, "
            f"n_raw_output_groups={self._n_raw_output_groups})"
        )
