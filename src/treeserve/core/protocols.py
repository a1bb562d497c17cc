"""
Core protocols (interfaces) for treeserve.

All components are defined as Protocols, enabling:
- Duck typing (no inheritance required)
- Trees built by any parser can be plugged into the ensembles
- Type safety with mypy/pyright
"""

from __future__ import annotations

from typing import MutableSequence, Protocol, Sequence, runtime_checkable


@runtime_checkable
class Tree(Protocol):
    """Protocol for a single decision tree.

    Traversal (splits, categorical handling, missing-value routing) is up to
    the implementation. A tree must be safe for concurrent read-only use.
    """

    def predict(self, fvals: Sequence[float]) -> tuple[float, int]:
        """Return ``(leaf_value, leaf_index)`` for one feature vector."""
        ...

    def n_leaves(self) -> int:
        """Number of leaves in the tree."""
        ...


@runtime_checkable
class CancelSignal(Protocol):
    """Protocol for cooperative cancellation (``threading.Event`` fits)."""

    def is_set(self) -> bool:
        ...


@runtime_checkable
class EnsembleModel(Protocol):
    """Common prediction contract of every model variant.

    Trees (or, for linear models, weight rows) are kept in one flat sequence
    indexed by ``estimator * n_raw_output_groups() + group``.
    """

    def n_estimators(self) -> int:
        """Number of boosting rounds (trees per output group)."""
        ...

    def n_raw_output_groups(self) -> int:
        """Number of raw output values (classes or targets)."""
        ...

    def n_features(self) -> int:
        """Feature vector width expected by the model, 0 if undeclared."""
        ...

    def n_leaves(self) -> list[int]:
        """Leaf counts laid out as ``group * n_estimators() + estimator``."""
        ...

    def name(self) -> str:
        """Provenance of the model (e.g. ``"xgboost.dart"``)."""
        ...

    def adjust_n_estimators(self, n_estimators: int) -> int:
        """Clamp a requested number of rounds to what the model supports."""
        ...

    def reset_fvals(self, fvals: MutableSequence[float]) -> None:
        """Fill ``fvals`` with the model's "no value present" sentinel."""
        ...

    def predict_inner(
        self,
        fvals: Sequence[float],
        n_estimators: int,
        predictions: MutableSequence[float],
        start_index: int,
        signal: CancelSignal | None = None,
    ) -> None:
        """Write ``n_raw_output_groups()`` raw values at ``start_index``."""
        ...

    def predict_leaf_indices_inner(
        self,
        fvals: Sequence[float],
        n_estimators: int,
        predictions: MutableSequence[float],
        start_index: int,
        signal: CancelSignal | None = None,
    ) -> None:
        """Write ``n_raw_output_groups() * n_estimators`` leaf indices."""
        ...
