"""Serving utilities for treeserve."""

from treeserve.serving.predictor import (
    Predictor,
    PredictorConfig,
)

__all__ = [
    "Predictor",
    "PredictorConfig",
]
