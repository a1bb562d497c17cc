"""
treeserve: Inference for gradient boosted decision tree ensembles.

One prediction contract over models coming from different frameworks:
1. Bagged tree ensembles - summed or averaged trees (LightGBM gbdt / rf)
2. Boosted tree ensembles - base score plus weighted trees (XGBoost gbtree / dart)
3. Linear models - linear boosters without trees (XGBoost gblinear)

Features:
- Prediction with only the first N boosting rounds
- Leaf index extraction for feature stacking
- Cooperative cancellation via threading.Event
- Logistic / softmax output transformations with JAX
- Multi-threaded prediction over dense matrices

Quick Start:
    >>> from treeserve import BoostedTreeEnsemble, DecisionTree, Predictor
    >>> tree = DecisionTree(
    ...     split_feature=[0], threshold=[0.5],
    ...     left_child=[~0], right_child=[~1], leaf_values=[-1.0, 1.0],
    ... )
    >>> model = BoostedTreeEnsemble([tree], max_feature_idx=0, base_score=0.5)
    >>> predictor = Predictor(model, transformation="logistic")
    >>> proba = predictor.predict_single([0.7])
"""

import logging

from treeserve._version import __version__

# Contract, errors and cancellation
from treeserve.core import (
    CancelSignal,
    EnsembleModel,
    InvalidModelError,
    PredictionCancelledError,
    PredictionInputError,
    Tree,
    TreeserveError,
    raise_if_cancelled,
)

# Model variants
from treeserve.ensemble import (
    BaggedTreeEnsemble,
    BoostedTreeEnsemble,
    LinearModel,
)

# Trees
from treeserve.structures import DecisionTree, ObliviousTree, max_feature_index

# Serving
from treeserve.serving import Predictor, PredictorConfig
from treeserve.transformation import (
    LeafIndexTransform,
    LogisticTransform,
    RawTransform,
    SoftmaxTransform,
    Transformation,
    get_transformation,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    # Contract
    "Tree",
    "CancelSignal",
    "EnsembleModel",
    "raise_if_cancelled",
    # Errors
    "TreeserveError",
    "InvalidModelError",
    "PredictionCancelledError",
    "PredictionInputError",
    # Model variants
    "BaggedTreeEnsemble",
    "BoostedTreeEnsemble",
    "LinearModel",
    # Trees
    "DecisionTree",
    "ObliviousTree",
    "max_feature_index",
    # Serving
    "Predictor",
    "PredictorConfig",
    # Transformations
    "Transformation",
    "RawTransform",
    "LogisticTransform",
    "SoftmaxTransform",
    "LeafIndexTransform",
    "get_transformation",
]
