"""
Error types raised by the training and prediction drivers.

Input and configuration problems raise plain ValueError (fail-loud gates).
The classes below cover failures that happen while iterating
(horizon, window) pairs.
"""

from typing import Any, Optional


class ForecastFlowError(Exception):
    """Base class for workflow errors"""


class CallbackFailure(ForecastFlowError):
    """A user-supplied training or prediction function raised.

    The original exception is chained as ``__cause__``. ``store`` holds the
    ResultStore as populated up to (not including) the failing pair.
    """

    def __init__(
        self,
        horizon: int,
        window_id: int,
        stage: str,
        store: Optional[Any] = None
    ):
        self.horizon = horizon
        self.window_id = window_id
        self.stage = stage
        self.store = store
        super().__init__(
            f"{stage} callback failed for horizon {horizon}, window {window_id}"
        )


class MissingArtifact(ForecastFlowError, KeyError):
    """No training artifact recorded for a (horizon, window) pair"""

    def __init__(self, horizon: int, window_id: Optional[int] = None):
        self.horizon = horizon
        self.window_id = window_id
        if window_id is None:
            message = f"No training artifacts recorded for horizon {horizon}"
        else:
            message = (
                f"No training artifact for horizon {horizon}, window {window_id}"
            )
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class ShapeMismatch(ForecastFlowError, ValueError):
    """Prediction table does not line up with the expected date index"""

    def __init__(
        self,
        horizon: int,
        window_id: int,
        expected: Optional[int],
        actual: int,
        detail: str = ""
    ):
        self.horizon = horizon
        self.window_id = window_id
        self.expected = expected
        self.actual = actual
        message = (
            f"Prediction shape mismatch for horizon {horizon}, window {window_id}: "
            f"expected {expected} rows, got {actual}"
        )
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
