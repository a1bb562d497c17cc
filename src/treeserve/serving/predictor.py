"""Predictor: the serving surface around a single ensemble model."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from treeserve.core.errors import PredictionInputError
from treeserve.core.protocols import CancelSignal, EnsembleModel
from treeserve.transformation import (
    LeafIndexTransform,
    RawTransform,
    Transformation,
    get_transformation,
)

logger = logging.getLogger(__name__)


@dataclass
class PredictorConfig:
    """Configuration for prediction.

    Attributes:
        n_threads: Worker threads used by ``predict_dense``.
        batch_size: Rows handed to a worker at a time.
        check_n_features: Reject rows narrower than the model's feature count.
    """
    n_threads: int = 1
    batch_size: int = 64
    check_n_features: bool = True

    def __post_init__(self) -> None:
        if self.n_threads < 1:
            raise ValueError(f"n_threads must be >= 1, got {self.n_threads}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")


class _AnySignal:
    """Set as soon as any of the wrapped signals is set."""

    def __init__(self, *signals: CancelSignal | None) -> None:
        self._signals = [s for s in signals if s is not None]

    def is_set(self) -> bool:
        return any(s.is_set() for s in self._signals)


class Predictor:
    """Prediction front end for any ``EnsembleModel``.

    The model is shared read-only, so one predictor (or several, see
    ``with_raw_results``) can serve many threads at once.

    Example:
        >>> predictor = Predictor(model, transformation="logistic")
        >>> proba = predictor.predict_single(fvals)
        >>> batch = predictor.predict_dense(X, n_threads=4)
        >>> leaves = predictor.with_leaf_indices().predict_dense(X)
    """

    def __init__(
        self,
        model: EnsembleModel,
        transformation: str | Transformation = "raw",
        config: PredictorConfig | None = None,
    ) -> None:
        """Initialize predictor.

        Args:
            model: Ensemble model to serve.
            transformation: Output transformation or its name.
            config: Prediction configuration. If None, uses defaults.

        Raises:
            PredictionInputError: If the transformation does not fit the model.
        """
        self.model = model
        self.transformation = get_transformation(transformation)
        self.transformation.check(model.n_raw_output_groups())
        self.config = config or PredictorConfig()

    def n_estimators(self) -> int:
        return self.model.n_estimators()

    def n_raw_output_groups(self) -> int:
        return self.model.n_raw_output_groups()

    def n_output_groups(self) -> int:
        """Values per row produced by ``predict`` with all rounds."""
        return self.transformation.n_output_groups(
            self.model.n_raw_output_groups(), self.model.n_estimators()
        )

    def n_features(self) -> int:
        return self.model.n_features()

    def n_leaves(self) -> list[int]:
        return self.model.n_leaves()

    def name(self) -> str:
        return self.model.name()

    def with_raw_results(self) -> Predictor:
        """Predictor over the same model returning untransformed outputs."""
        return Predictor(self.model, RawTransform(), self.config)

    def with_leaf_indices(self) -> Predictor:
        """Predictor over the same model returning leaf indices."""
        return Predictor(self.model, LeafIndexTransform(), self.config)

    def new_fvals(self) -> np.ndarray:
        """Feature buffer of width ``n_features()`` filled with the missing sentinel."""
        fvals = np.empty(self.model.n_features(), dtype=np.float64)
        self.model.reset_fvals(fvals)
        return fvals

    @property
    def _leaf_mode(self) -> bool:
        return isinstance(self.transformation, LeafIndexTransform)

    def _row_width(self, n_estimators: int) -> int:
        if self._leaf_mode:
            return self.model.n_raw_output_groups() * n_estimators
        return self.model.n_raw_output_groups()

    def _check_width(self, n_cols: int) -> None:
        n_features = self.model.n_features()
        if self.config.check_n_features and n_cols < n_features:
            raise PredictionInputError(
                f"model expects {n_features} features, got {n_cols}"
            )

    def _predict_row(
        self,
        fvals: np.ndarray,
        n_estimators: int,
        predictions: np.ndarray,
        start_index: int,
        signal: CancelSignal | None,
    ) -> None:
        if self._leaf_mode:
            self.model.predict_leaf_indices_inner(
                fvals, n_estimators, predictions, start_index, signal
            )
        else:
            self.model.predict_inner(fvals, n_estimators, predictions, start_index, signal)

    def predict(
        self,
        fvals: Sequence[float] | np.ndarray,
        n_estimators: int = 0,
        signal: CancelSignal | None = None,
    ) -> np.ndarray:
        """Predict one feature vector.

        Args:
            fvals: Dense feature vector, shape (n_features,).
            n_estimators: Number of rounds to use; <= 0 means all.
            signal: Optional cancellation signal.

        Returns:
            Transformed outputs, shape (n_output_groups,).

        Raises:
            PredictionInputError: If ``fvals`` is not a wide enough vector.
            PredictionCancelledError: If ``signal`` is set.
        """
        fvals = np.asarray(fvals, dtype=np.float64)
        if fvals.ndim != 1:
            raise PredictionInputError(f"expected a 1-d feature vector, got shape {fvals.shape}")
        self._check_width(fvals.shape[0])

        n_estimators = self.model.adjust_n_estimators(n_estimators)
        raw = np.zeros(self._row_width(n_estimators), dtype=np.float64)
        self._predict_row(fvals, n_estimators, raw, 0, signal)
        return self.transformation(raw)

    def predict_single(
        self,
        fvals: Sequence[float] | np.ndarray,
        n_estimators: int = 0,
        signal: CancelSignal | None = None,
    ) -> float:
        """Predict one feature vector for a model with a single output."""
        n_outputs = self.transformation.n_output_groups(
            self.model.n_raw_output_groups(),
            self.model.adjust_n_estimators(n_estimators),
        )
        if n_outputs != 1:
            raise PredictionInputError(
                f"predict_single needs exactly 1 output group, predictor yields {n_outputs}"
            )
        return float(self.predict(fvals, n_estimators, signal)[0])

    def predict_leaf_indices(
        self,
        fvals: Sequence[float] | np.ndarray,
        n_estimators: int = 0,
        signal: CancelSignal | None = None,
    ) -> np.ndarray:
        """Leaf index of every evaluated tree, grouped by output group."""
        return self.with_leaf_indices().predict(fvals, n_estimators, signal)

    def predict_dense(
        self,
        X: np.ndarray,
        n_estimators: int = 0,
        n_threads: int | None = None,
        signal: CancelSignal | None = None,
    ) -> np.ndarray:
        """Predict every row of a dense matrix.

        Rows are split into contiguous batches of ``config.batch_size`` which
        run on a thread pool. The first failing batch stops the others.

        Args:
            X: Features, shape (n_samples, n_features).
            n_estimators: Number of rounds to use; <= 0 means all.
            n_threads: Worker threads. If None, uses ``config.n_threads``.
            signal: Optional cancellation signal shared by all workers.

        Returns:
            Predictions, shape (n_samples, n_output_groups).

        Raises:
            PredictionInputError: If ``X`` is not a wide enough matrix.
            PredictionCancelledError: If ``signal`` is set.
        """
        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2:
            raise PredictionInputError(f"expected a 2-d feature matrix, got shape {X.shape}")
        n_rows, n_cols = X.shape
        self._check_width(n_cols)

        n_estimators = self.model.adjust_n_estimators(n_estimators)
        width = self._row_width(n_estimators)
        raw = np.zeros((n_rows, width), dtype=np.float64)
        flat = raw.reshape(-1)

        n_threads = n_threads or self.config.n_threads
        batch_size = self.config.batch_size
        batches = [(start, min(start + batch_size, n_rows)) for start in range(0, n_rows, batch_size)]

        if n_threads <= 1 or len(batches) <= 1:
            for start, stop in batches:
                for row in range(start, stop):
                    self._predict_row(X[row], n_estimators, flat, row * width, signal)
            return self.transformation(raw)

        logger.debug(
            "predicting %d rows in %d batches on %d threads", n_rows, len(batches), n_threads
        )
        abort = threading.Event()
        shared_signal = _AnySignal(signal, abort)
        errors: list[Exception] = []
        lock = threading.Lock()

        def run_batch(start: int, stop: int) -> None:
            try:
                for row in range(start, stop):
                    self._predict_row(X[row], n_estimators, flat, row * width, shared_signal)
            except Exception as exc:
                with lock:
                    if not abort.is_set():
                        errors.append(exc)
                        abort.set()
                raise

        with ThreadPoolExecutor(max_workers=n_threads) as executor:
            futures = [executor.submit(run_batch, start, stop) for start, stop in batches]
            wait(futures)

        if errors:
            raise errors[0]
        return self.transformation(raw)

    def __repr__(self) -> str:
        return f"Predictor(model={self.model!r}, transformation={self.transformation.name!r})"
