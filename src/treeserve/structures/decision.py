"""Binary decision tree stored as flat node arrays.

Node ``n`` splits on ``split_feature[n]``: a value ``<= threshold[n]`` goes to
``left_child[n]``, a larger value to ``right_child[n]`` and a missing (NaN)
value follows ``default_left[n]``. Child references ``>= 0`` are node
indices; a negative reference ``c`` points at leaf ``~c``. Nodes are stored
in topological order: a node child always has a larger index than its parent.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from treeserve.core.errors import InvalidModelError


class DecisionTree:
    """Hard (non-differentiable) decision tree implementing ``Tree``.

    Example:
        >>> # x0 <= 0.5 ? leaf 0 : leaf 1, missing goes right
        >>> tree = DecisionTree(
        ...     split_feature=[0], threshold=[0.5],
        ...     left_child=[~0], right_child=[~1],
        ...     leaf_values=[-1.0, 1.0], default_left=[False],
        ... )
        >>> tree.predict([0.7])
        (1.0, 1)
    """

    def __init__(
        self,
        split_feature: Sequence[int],
        threshold: Sequence[float],
        left_child: Sequence[int],
        right_child: Sequence[int],
        leaf_values: Sequence[float],
        default_left: Sequence[bool] | None = None,
    ) -> None:
        """Initialize the tree.

        Args:
            split_feature: Feature index per internal node.
            threshold: Split threshold per internal node.
            left_child: Left child reference per internal node.
            right_child: Right child reference per internal node.
            leaf_values: Output value per leaf. A tree without internal
                nodes must have exactly one leaf.
            default_left: Branch taken by missing values per node.
                None sends every missing value left.

        Raises:
            InvalidModelError: If the arrays are inconsistent.
        """
        n_nodes = len(split_feature)
        if default_left is None:
            default_left = [True] * n_nodes
        if not (len(threshold) == len(left_child) == len(right_child) == len(default_left) == n_nodes):
            raise InvalidModelError("node arrays must all have the same length")

        n_leaves = len(leaf_values)
        if n_nodes == 0 and n_leaves != 1:
            raise InvalidModelError("a tree without splits must have exactly one leaf")
        if n_nodes > 0 and n_leaves != n_nodes + 1:
            raise InvalidModelError(
                f"a binary tree with {n_nodes} splits needs {n_nodes + 1} leaves, got {n_leaves}"
            )
        for node, children in enumerate(zip(left_child, right_child)):
            for child in children:
                if child >= n_nodes or ~child >= n_leaves:
                    raise InvalidModelError(f"child reference {child} is out of range")
                if 0 <= child <= node:
                    raise InvalidModelError(
                        f"node {node} points back at node {child}; children must follow their parent"
                    )

        self.split_feature = np.asarray(split_feature, dtype=np.int64)
        self.threshold = np.asarray(threshold, dtype=np.float64)
        self.left_child = np.asarray(left_child, dtype=np.int64)
        self.right_child = np.asarray(right_child, dtype=np.int64)
        self.default_left = np.asarray(default_left, dtype=bool)
        self.leaf_values = np.asarray(leaf_values, dtype=np.float64)
        for array in (
            self.split_feature,
            self.threshold,
            self.left_child,
            self.right_child,
            self.default_left,
            self.leaf_values,
        ):
            array.setflags(write=False)

        # plain python copies for the traversal loop
        self._nodes = list(
            zip(
                self.split_feature.tolist(),
                self.threshold.tolist(),
                self.left_child.tolist(),
                self.right_child.tolist(),
                self.default_left.tolist(),
            )
        )
        self._leaf_values = self.leaf_values.tolist()

    def predict(self, fvals: Sequence[float]) -> tuple[float, int]:
        if not self._nodes:
            return self._leaf_values[0], 0

        node = 0
        while node >= 0:
            feature, threshold, left, right, default_left = self._nodes[node]
            fval = fvals[feature]
            if math.isnan(fval):
                node = left if default_left else right
            elif fval <= threshold:
                node = left
            else:
                node = right
        leaf = ~node
        return self._leaf_values[leaf], leaf

    def n_leaves(self) -> int:
        return len(self._leaf_values)

    def max_feature_idx(self) -> int:
        if not self._nodes:
            return 0
        return int(self.split_feature.max())

    def __repr__(self) -> str:
        return f"DecisionTree(n_nodes={len(self._nodes)}, n_leaves={self.n_leaves()})"
