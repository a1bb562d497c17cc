"""Core abstractions, errors and cancellation for treeserve."""

from treeserve.core.cancellation import raise_if_cancelled
from treeserve.core.errors import (
    InvalidModelError,
    PredictionCancelledError,
    PredictionInputError,
    TreeserveError,
)
from treeserve.core.protocols import CancelSignal, EnsembleModel, Tree

__all__ = [
    "Tree",
    "CancelSignal",
    "EnsembleModel",
    "raise_if_cancelled",
    "TreeserveError",
    "InvalidModelError",
    "PredictionCancelledError",
    "PredictionInputError",
]
