"""Shared machinery of the tree ensemble variants.

Trees are stored as one flat sequence in round-robin order: the tree for
boosting round ``i`` and output group ``k`` sits at ``i * G + k`` where ``G``
is the number of raw output groups.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import MutableSequence, Sequence

from treeserve.core.cancellation import raise_if_cancelled
from treeserve.core.errors import InvalidModelError
from treeserve.core.protocols import CancelSignal, Tree
from treeserve.ensemble._common import clamp_n_estimators, tree_n_leaves

logger = logging.getLogger(__name__)


class TreeEnsembleBase(ABC):
    """Base class for ensembles whose estimators are trees.

    Subclasses define how tree values are combined (``predict_inner``) and
    which sentinel marks a missing feature (``reset_fvals``).
    """

    def __init__(
        self,
        trees: Sequence[Tree],
        max_feature_idx: int,
        n_raw_output_groups: int,
        name: str,
    ) -> None:
        """Initialize the ensemble.

        Args:
            trees: Flat round-robin sequence of trees.
            max_feature_idx: Highest feature index referenced by any tree.
            n_raw_output_groups: Number of output groups (classes), >= 1.
            name: Provenance of the model.

        Raises:
            InvalidModelError: If the tree count is not a multiple of
                ``n_raw_output_groups``.
        """
        if n_raw_output_groups < 1:
            raise InvalidModelError(
                f"n_raw_output_groups must be >= 1, got {n_raw_output_groups}"
            )
        if len(trees) % n_raw_output_groups != 0:
            raise InvalidModelError(
                f"{len(trees)} trees cannot be split evenly into "
                f"{n_raw_output_groups} output groups"
            )
        self._trees = tuple(trees)
        self._max_feature_idx = max_feature_idx
        self._n_raw_output_groups = n_raw_output_groups
        self._name = name
        logger.debug(
            "built %s ensemble: %d trees, %d output groups",
            name,
            len(self._trees),
            n_raw_output_groups,
        )

    @property
    def trees(self) -> tuple[Tree, ...]:
        return self._trees

    def n_estimators(self) -> int:
        return len(self._trees) // self._n_raw_output_groups

    def n_raw_output_groups(self) -> int:
        return self._n_raw_output_groups

    def n_features(self) -> int:
        if self._max_feature_idx > 0:
            return self._max_feature_idx + 1
        return 0

    def n_leaves(self) -> list[int]:
        return tree_n_leaves(self._trees, self.n_estimators(), self._n_raw_output_groups)

    def name(self) -> str:
        return self._name

    def adjust_n_estimators(self, n_estimators: int) -> int:
        return clamp_n_estimators(n_estimators, self.n_estimators())

    @abstractmethod
    def reset_fvals(self, fvals: MutableSequence[float]) -> None:
        ...

    @abstractmethod
    def predict_inner(
        self,
        fvals: Sequence[float],
        n_estimators: int,
        predictions: MutableSequence[float],
        start_index: int,
        signal: CancelSignal | None = None,
    ) -> None:
        ...

    def predict_leaf_indices_inner(
        self,
        fvals: Sequence[float],
        n_estimators: int,
        predictions: MutableSequence[float],
        start_index: int,
        signal: CancelSignal | None = None,
    ) -> None:
        """Write the leaf index reached in every evaluated tree.

        The index of tree ``i * G + k`` is stored at
        ``start_index + k * n_estimators + i``. Indices are written as floats
        so that both prediction modes share one buffer type.

        Args:
            fvals: Dense feature vector.
            n_estimators: Number of rounds to evaluate (already adjusted).
            predictions: Output buffer.
            start_index: Offset of the first written value.
            signal: Optional cancellation signal, polled before every tree.

        Raises:
            PredictionCancelledError: If ``signal`` is set.
        """
        n_groups = self._n_raw_output_groups
        for k in range(n_groups * n_estimators):
            predictions[start_index + k] = 0.0

        for i in range(n_estimators):
            for k in range(n_groups):
                raise_if_cancelled(signal)
                _, idx = self._trees[i * n_groups + k].predict(fvals)
                predictions[start_index + k * n_estimators + i] = float(idx)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self._name!r}, "
            f"n_estimators={self.n_estimators()}, "
            f"n_raw_output_groups={self._n_raw_output_groups})"
        )
