"""
Result store for the training and prediction passes.

Two-level mapping horizon -> window_id -> ResultEntry, insertion ordered
(horizon-major, window-minor). Artifacts are written once and handed back
unmodified; the store never looks inside them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

import numpy as np
import pandas as pd

from .exceptions import MissingArtifact
from .windows import Window

logger = logging.getLogger(__name__)


@dataclass
class PredictionResult:
    """Output of the prediction callback for one (horizon, window) pair"""
    horizon: int
    window_id: int
    mode: str
    dates: pd.Index
    table: pd.DataFrame

    @property
    def n_rows(self) -> int:
        return len(self.table)

    @property
    def is_aligned(self) -> bool:
        """Prediction rows line up one-to-one with the feature slice dates"""
        return len(self.table) == len(self.dates)


@dataclass
class ResultEntry:
    """Everything recorded for one (horizon, window) pair"""
    window: Window
    artifact: Any = None
    prediction: Optional[PredictionResult] = None
    forecast: Optional[PredictionResult] = None
    train_time: Optional[float] = None
    predict_time: Optional[float] = None
    forecast_time: Optional[float] = None


class ResultStore:
    """Artifacts and predictions keyed by (horizon, window_id)"""

    def __init__(self, model_name: str = "model"):
        self.model_name = model_name
        self._entries: Dict[int, Dict[int, ResultEntry]] = {}

    def __len__(self) -> int:
        return self.n_pairs

    def __contains__(self, key: Tuple[int, int]) -> bool:
        horizon, window_id = key
        return window_id in self._entries.get(horizon, {})

    def __repr__(self) -> str:
        return (
            f"ResultStore(model_name={self.model_name!r}, "
            f"horizons={self.horizons}, n_pairs={self.n_pairs})"
        )

    @property
    def horizons(self) -> List[int]:
        return list(self._entries)

    @property
    def n_pairs(self) -> int:
        return sum(len(by_window) for by_window in self._entries.values())

    def windows(self, horizon: int) -> List[Window]:
        if horizon not in self._entries:
            raise MissingArtifact(horizon)
        return [entry.window for entry in self._entries[horizon].values()]

    def pairs(self) -> Iterator[Tuple[int, Window]]:
        """(horizon, window) in recording order"""
        for horizon, by_window in self._entries.items():
            for entry in by_window.values():
                yield horizon, entry.window

    def entry(self, horizon: int, window_id: int) -> ResultEntry:
        try:
            return self._entries[horizon][window_id]
        except KeyError:
            raise MissingArtifact(horizon, window_id) from None

    def artifact(self, horizon: int, window_id: int) -> Any:
        """Return the training artifact exactly as recorded"""
        return self.entry(horizon, window_id).artifact

    def record_artifact(
        self,
        horizon: int,
        window: Window,
        artifact: Any,
        train_time: Optional[float] = None
    ) -> None:
        by_window = self._entries.setdefault(horizon, {})
        if window.window_id in by_window:
            raise ValueError(
                f"Artifact already recorded for horizon {horizon}, window {window.window_id}"
            )
        by_window[window.window_id] = ResultEntry(
            window=window,
            artifact=artifact,
            train_time=train_time
        )

    def record_prediction(
        self,
        result: PredictionResult,
        elapsed: Optional[float] = None
    ) -> None:
        entry = self.entry(result.horizon, result.window_id)
        if result.mode == "forecast":
            entry.forecast = result
            entry.forecast_time = elapsed
        else:
            entry.prediction = result
            entry.predict_time = elapsed

    def predictions(self, mode: str = "train") -> Iterator[Tuple[Window, PredictionResult]]:
        """(window, prediction) for every pair with a recorded prediction"""
        for by_window in self._entries.values():
            for entry in by_window.values():
                result = entry.forecast if mode == "forecast" else entry.prediction
                if result is not None:
                    yield entry.window, result

    def summary(self) -> pd.DataFrame:
        """One row per (horizon, window) pair"""
        rows = []
        for horizon, by_window in self._entries.items():
            for window_id, entry in by_window.items():
                rows.append({
                    "model": self.model_name,
                    "horizon": horizon,
                    "window_number": window_id,
                    "window_start": entry.window.start,
                    "window_stop": entry.window.stop,
                    "has_prediction": entry.prediction is not None,
                    "has_forecast": entry.forecast is not None,
                    "prediction_rows": entry.prediction.n_rows if entry.prediction else 0,
                    "train_time": entry.train_time if entry.train_time is not None else np.nan,
                    "predict_time": entry.predict_time if entry.predict_time is not None else np.nan,
                })
        return pd.DataFrame(rows)
