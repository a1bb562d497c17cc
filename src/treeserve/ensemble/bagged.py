"""Bagged tree ensemble.

Covers LightGBM models, including random forest mode where the tree outputs
are averaged instead of summed. No base score is added.
"""

from __future__ import annotations

from typing import MutableSequence, Sequence

from treeserve.core.cancellation import raise_if_cancelled
from treeserve.core.protocols import CancelSignal, Tree
from treeserve.ensemble._common import fill
from treeserve.ensemble.base import TreeEnsembleBase


class BaggedTreeEnsemble(TreeEnsembleBase):
    """Ensemble whose output is the sum (or average) of its trees.

    Example:
        >>> model = BaggedTreeEnsemble(trees, max_feature_idx=9, average_output=True)
        >>> out = np.zeros(model.n_raw_output_groups())
        >>> model.predict_inner(fvals, model.adjust_n_estimators(0), out, 0)
    """

    def __init__(
        self,
        trees: Sequence[Tree],
        max_feature_idx: int,
        n_raw_output_groups: int = 1,
        average_output: bool = False,
        name: str | None = None,
    ) -> None:
        """Initialize the ensemble.

        Args:
            trees: Flat round-robin sequence of trees.
            max_feature_idx: Highest feature index referenced by any tree.
            n_raw_output_groups: Number of output groups.
            average_output: Average tree outputs (random forest) instead of
                summing them.
            name: Provenance of the model. Defaults to ``"lightgbm.rf"`` when
                averaging and ``"lightgbm.gbdt"`` otherwise.
        """
        if name is None:
            name = "lightgbm.rf" if average_output else "lightgbm.gbdt"
        super().__init__(trees, max_feature_idx, n_raw_output_groups, name)
        self.average_output = average_output

    def predict_inner(
        self,
        fvals: Sequence[float],
        n_estimators: int,
        predictions: MutableSequence[float],
        start_index: int,
        signal: CancelSignal | None = None,
    ) -> None:
        """Sum the first ``n_estimators`` rounds per output group.

        When averaging, every term is scaled by ``1 / n_estimators``, the
        number of rounds actually evaluated rather than the full ensemble
        size.

        Raises:
            PredictionCancelledError: If ``signal`` is set.
        """
        n_groups = self._n_raw_output_groups
        trees = self._trees
        for k in range(n_groups):
            predictions[start_index + k] = 0.0

        coef = 1.0
        if self.average_output and n_estimators > 0:
            coef = 1.0 / float(n_estimators)

        for i in range(n_estimators):
            for k in range(n_groups):
                raise_if_cancelled(signal)
                pred, _ = trees[i * n_groups + k].predict(fvals)
                predictions[start_index + k] += pred * coef

    def reset_fvals(self, fvals: MutableSequence[float]) -> None:
        fill(fvals, 0.0)
