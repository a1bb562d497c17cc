"""Cooperative cancellation."""

from __future__ import annotations

from treeserve.core.errors import PredictionCancelledError
from treeserve.core.protocols import CancelSignal


def raise_if_cancelled(signal: CancelSignal | None) -> None:
    """Raise ``PredictionCancelledError`` if ``signal`` has been set.

    Args:
        signal: Any object with an ``is_set()`` method (for example a
            ``threading.Event``), or None for a call that cannot be cancelled.
    """
    if signal is not None and signal.is_set():
        raise PredictionCancelledError("prediction cancelled")
