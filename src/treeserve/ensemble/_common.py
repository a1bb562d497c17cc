"""Helpers shared by the model variants."""

from __future__ import annotations

from typing import MutableSequence, Sequence

from treeserve.core.protocols import Tree


def clamp_n_estimators(n_estimators: int, total: int) -> int:
    """Clamp a requested number of rounds to ``[1, total]``.

    Non-positive requests mean "use every round".
    """
    if n_estimators > 0:
        return min(n_estimators, total)
    return total


def fill(fvals: MutableSequence[float], value: float) -> None:
    """Overwrite every entry of ``fvals`` with ``value`` in place."""
    for j in range(len(fvals)):
        fvals[j] = value


def tree_n_leaves(trees: Sequence[Tree], n_estimators: int, n_groups: int) -> list[int]:
    """Leaf counts of flat round-robin ``trees`` regrouped per output group.

    Tree ``i * n_groups + k`` lands at ``k * n_estimators + i`` so that the
    leaves of one output group form a contiguous run.
    """
    n_leaves = [0] * (n_estimators * n_groups)
    for i in range(n_estimators):
        for k in range(n_groups):
            n_leaves[k * n_estimators + i] = trees[i * n_groups + k].n_leaves()
    return n_leaves
