"""Tree structures for treeserve."""

from __future__ import annotations

from typing import Iterable

from treeserve.structures.decision import DecisionTree
from treeserve.structures.oblivious import ObliviousTree


def max_feature_index(trees: Iterable[DecisionTree | ObliviousTree]) -> int:
    """Highest feature index referenced by ``trees`` (0 if none)."""
    return max((tree.max_feature_idx() for tree in trees), default=0)


__all__ = [
    "DecisionTree",
    "ObliviousTree",
    "max_feature_index",
]
