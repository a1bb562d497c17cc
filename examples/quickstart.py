"""
treeserve Quickstart
====================

Serve scikit-learn tree ensembles through treeserve and check that the
predictions agree with scikit-learn's own.
"""

import threading

import numpy as np
from sklearn.datasets import fetch_california_housing
from sklearn.ensemble import GradientBoostingRegressor, RandomForestRegressor
from sklearn.model_selection import train_test_split

from treeserve import (
    BaggedTreeEnsemble,
    BoostedTreeEnsemble,
    DecisionTree,
    PredictionCancelledError,
    Predictor,
    PredictorConfig,
    max_feature_index,
)


def from_sklearn_tree(tree_):
    """Convert a fitted sklearn ``Tree`` into a treeserve ``DecisionTree``."""
    left, right = tree_.children_left, tree_.children_right
    internal = [n for n in range(tree_.node_count) if left[n] != -1]
    leaves = [n for n in range(tree_.node_count) if left[n] == -1]
    node_id = {n: i for i, n in enumerate(internal)}
    leaf_id = {n: i for i, n in enumerate(leaves)}

    def ref(n):
        return node_id[n] if n in node_id else ~leaf_id[n]

    return DecisionTree(
        split_feature=[int(tree_.feature[n]) for n in internal],
        threshold=[float(tree_.threshold[n]) for n in internal],
        left_child=[ref(left[n]) for n in internal],
        right_child=[ref(right[n]) for n in internal],
        leaf_values=[float(tree_.value[n].ravel()[0]) for n in leaves],
    )


def load_data():
    data = fetch_california_housing()
    # sklearn compares features in float32
    X = data.data.astype(np.float32).astype(np.float64)
    return train_test_split(X, data.target, test_size=0.2, random_state=42)


def boosting_example(X_train, X_test, y_train):
    """Gradient boosting: base score plus learning-rate weighted trees."""
    print("=" * 60)
    print(" Gradient boosting")
    print("=" * 60)

    gbr = GradientBoostingRegressor(n_estimators=50, max_depth=3, random_state=42)
    gbr.fit(X_train, y_train)

    trees = [from_sklearn_tree(est.tree_) for est in gbr.estimators_[:, 0]]
    model = BoostedTreeEnsemble(
        trees,
        max_feature_index(trees),
        base_score=float(np.mean(y_train)),
        weight_drop=[gbr.learning_rate] * len(trees),
        name="sklearn.gbr",
    )
    predictor = Predictor(model, config=PredictorConfig(n_threads=4))

    ours = predictor.predict_dense(X_test)[:, 0]
    theirs = gbr.predict(X_test)
    print(f"max |treeserve - sklearn| = {np.max(np.abs(ours - theirs)):.2e}")

    # Staged prediction: only the first 10 rounds
    staged = predictor.predict_dense(X_test, n_estimators=10)[:, 0]
    reference = list(gbr.staged_predict(X_test))[9]
    print(f"first 10 rounds, max diff = {np.max(np.abs(staged - reference)):.2e}")

    # Leaf indices, e.g. for feature stacking
    leaves = predictor.with_leaf_indices().predict_dense(X_test[:5])
    print(f"leaf index features: {leaves.shape}")


def forest_example(X_train, X_test, y_train):
    """Random forest: averaged trees."""
    print("\n" + "=" * 60)
    print(" Random forest")
    print("=" * 60)

    rf = RandomForestRegressor(n_estimators=20, max_depth=6, random_state=42)
    rf.fit(X_train, y_train)

    trees = [from_sklearn_tree(est.tree_) for est in rf.estimators_]
    model = BaggedTreeEnsemble(trees, max_feature_index(trees), average_output=True)
    predictor = Predictor(model)

    ours = predictor.predict_dense(X_test, n_threads=4)[:, 0]
    print(f"max |treeserve - sklearn| = {np.max(np.abs(ours - rf.predict(X_test))):.2e}")

    # Cancellation
    signal = threading.Event()
    signal.set()
    try:
        predictor.predict_dense(X_test, signal=signal)
    except PredictionCancelledError as exc:
        print(f"cancelled: {exc}")


if __name__ == "__main__":
    X_train, X_test, y_train, _ = load_data()
    boosting_example(X_train, X_test, y_train)
    forest_example(X_train, X_test, y_train)
