"""Model variants behind the common ensemble contract.

- BaggedTreeEnsemble: summed or averaged trees (LightGBM gbdt / rf)
- BoostedTreeEnsemble: base score plus weighted trees (XGBoost gbtree / dart)
- LinearModel: linear booster without trees (XGBoost gblinear)
"""

from treeserve.ensemble.bagged import BaggedTreeEnsemble
from treeserve.ensemble.base import TreeEnsembleBase
from treeserve.ensemble.boosted import BoostedTreeEnsemble
from treeserve.ensemble.linear import LinearModel

__all__ = [
    "TreeEnsembleBase",
    "BaggedTreeEnsemble",
    "BoostedTreeEnsemble",
    "LinearModel",
]
