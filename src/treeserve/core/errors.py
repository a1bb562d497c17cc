"""Exception hierarchy for treeserve."""

from __future__ import annotations


class TreeserveError(Exception):
    """Base class for all errors raised by treeserve."""


class PredictionCancelledError(TreeserveError):
    """The cancellation signal was set before or during a prediction.

    The output buffer segment of the cancelled call holds undefined values.
    """


class InvalidModelError(TreeserveError, ValueError):
    """A model or tree was constructed from structurally inconsistent parts."""


class PredictionInputError(TreeserveError, ValueError):
    """Caller-supplied features or output buffers do not fit the model."""
