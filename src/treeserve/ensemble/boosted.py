"""Boosted tree ensemble with a base score and per-tree weights.

Covers XGBoost ``gbtree`` and ``dart`` models. Dart models drop trees during
training and compensate with a weight per tree; plain boosting uses weight 1.
"""

from __future__ import annotations

import math
from typing import MutableSequence, Sequence

from treeserve.core.cancellation import raise_if_cancelled
from treeserve.core.errors import InvalidModelError
from treeserve.core.protocols import CancelSignal, Tree
from treeserve.ensemble._common import fill
from treeserve.ensemble.base import TreeEnsembleBase


class BoostedTreeEnsemble(TreeEnsembleBase):
    """Weighted sum of trees on top of an additive base score.

    Missing features must be NaN (see ``reset_fvals``): the trees route NaN
    down their default branch, which differs from routing an explicit zero.
    """

    def __init__(
        self,
        trees: Sequence[Tree],
        max_feature_idx: int,
        n_raw_output_groups: int = 1,
        base_score: float = 0.0,
        weight_drop: Sequence[float] | None = None,
        name: str = "xgboost.gbtree",
    ) -> None:
        """Initialize the ensemble.

        Args:
            trees: Flat round-robin sequence of trees.
            max_feature_idx: Highest feature index referenced by any tree.
            n_raw_output_groups: Number of output groups.
            base_score: Initial value of every output group.
            weight_drop: One weight per tree (same flat layout as ``trees``).
                None means all ones.
            name: Provenance of the model (``"xgboost.gbtree"``,
                ``"xgboost.dart"``, ...).

        Raises:
            InvalidModelError: If ``weight_drop`` does not match ``trees``.
        """
        super().__init__(trees, max_feature_idx, n_raw_output_groups, name)
        if weight_drop is None:
            weight_drop = [1.0] * len(self._trees)
        if len(weight_drop) != len(self._trees):
            raise InvalidModelError(
                f"weight_drop has {len(weight_drop)} entries for {len(self._trees)} trees"
            )
        self.base_score = float(base_score)
        self.weight_drop = tuple(float(w) for w in weight_drop)

    def predict_inner(
        self,
        fvals: Sequence[float],
        n_estimators: int,
        predictions: MutableSequence[float],
        start_index: int,
        signal: CancelSignal | None = None,
    ) -> None:
        """Compute ``base_score + sum_i weight_drop[i*G+k] * tree[i*G+k]``.

        Raises:
            PredictionCancelledError: If ``signal`` is set.
        """
        n_groups = self._n_raw_output_groups
        trees = self._trees
        weight_drop = self.weight_drop
        for k in range(n_groups):
            predictions[start_index + k] = self.base_score

        for i in range(n_estimators):
            for k in range(n_groups):
                raise_if_cancelled(signal)
                tree_id = i * n_groups + k
                pred, _ = trees[tree_id].predict(fvals)
                predictions[start_index + k] += pred * weight_drop[tree_id]

    def reset_fvals(self, fvals: MutableSequence[float]) -> None:
        fill(fvals, math.nan)
