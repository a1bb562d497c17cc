"""Oblivious tree structure.

An oblivious tree uses the same split at each depth level (CatBoost style).

Key property: For depth D, there are exactly 2^D leaves, and the leaf index
is built bit by bit: bit d = 1 means the sample went right at depth d.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from treeserve.core.errors import InvalidModelError


class ObliviousTree:
    """Oblivious (symmetric) tree implementing ``Tree``.

    All nodes at the same depth share the same split, so traversal is a
    fixed number of comparisons regardless of the path taken.
    """

    def __init__(
        self,
        split_feature: Sequence[int],
        threshold: Sequence[float],
        leaf_values: Sequence[float],
        default_left: Sequence[bool] | None = None,
    ) -> None:
        """Initialize the tree.

        Args:
            split_feature: Feature index per depth level.
            threshold: Threshold per depth level; ``fval > threshold`` goes right.
            leaf_values: Output values, shape (2^depth,).
            default_left: Branch taken by missing values per level.
                None sends every missing value left.

        Raises:
            InvalidModelError: If the arrays do not describe a depth-D tree.
        """
        depth = len(split_feature)
        if default_left is None:
            default_left = [True] * depth
        if len(threshold) != depth or len(default_left) != depth:
            raise InvalidModelError("split arrays must all have one entry per depth level")
        if len(leaf_values) != 2**depth:
            raise InvalidModelError(
                f"a depth {depth} oblivious tree needs {2**depth} leaves, got {len(leaf_values)}"
            )

        self.split_feature = np.asarray(split_feature, dtype=np.int64)
        self.threshold = np.asarray(threshold, dtype=np.float64)
        self.default_left = np.asarray(default_left, dtype=bool)
        self.leaf_values = np.asarray(leaf_values, dtype=np.float64)
        for array in (self.split_feature, self.threshold, self.default_left, self.leaf_values):
            array.setflags(write=False)

        self._levels = list(
            zip(
                self.split_feature.tolist(),
                self.threshold.tolist(),
                self.default_left.tolist(),
            )
        )
        self._leaf_values = self.leaf_values.tolist()

    @property
    def depth(self) -> int:
        return len(self._levels)

    def predict(self, fvals: Sequence[float]) -> tuple[float, int]:
        leaf = 0
        for d, (feature, threshold, default_left) in enumerate(self._levels):
            fval = fvals[feature]
            if math.isnan(fval):
                go_right = not default_left
            else:
                go_right = fval > threshold
            if go_right:
                leaf |= 1 << d
        return self._leaf_values[leaf], leaf

    def n_leaves(self) -> int:
        return len(self._leaf_values)

    def max_feature_idx(self) -> int:
        if not self._levels:
            return 0
        return int(self.split_feature.max())

    def __repr__(self) -> str:
        return f"ObliviousTree(depth={self.depth})"
