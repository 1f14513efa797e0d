# file: src/forecastflow/config.py
"""
Workflow configuration: lag features, validation windows and policies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

TRAINING_POLICIES = ("exclude_window", "full")
OVERLAP_POLICIES = ("last", "mean")
MISMATCH_POLICIES = ("raise", "warn")


@dataclass(frozen=True)
class WorkflowConfig:
    # Data
    outcome_col: str = "y"
    date_col: Optional[str] = "ds"
    frequency: Optional[str] = None
    dynamic_features: Tuple[str, ...] = ()

    # Lagged features
    horizons: Tuple[int, ...] = (1, 3, 6, 12)
    lookback: Tuple[int, ...] = tuple(range(1, 16))

    # Validation windows
    window_length: int = 12
    window_start: Optional[str] = None
    window_stop: Optional[str] = None
    skip: int = 0

    # Policies
    training_policy: str = "exclude_window"
    overlap_policy: str = "last"
    on_mismatch: str = "raise"

    # Model callbacks
    model_name: str = "random_forest"
    model_args: Dict[str, Any] = field(default_factory=dict)
    forecast: bool = True

    # IO
    artifacts_dir: str = "artifacts/forecastflow"

    def __post_init__(self):
        if self.training_policy not in TRAINING_POLICIES:
            raise ValueError(
                f"Unknown training_policy: {self.training_policy} "
                f"(expected one of {TRAINING_POLICIES})"
            )
        if self.overlap_policy not in OVERLAP_POLICIES:
            raise ValueError(
                f"Unknown overlap_policy: {self.overlap_policy} "
                f"(expected one of {OVERLAP_POLICIES})"
            )
        if self.on_mismatch not in MISMATCH_POLICIES:
            raise ValueError(
                f"Unknown on_mismatch: {self.on_mismatch} "
                f"(expected one of {MISMATCH_POLICIES})"
            )
        if not self.horizons:
            raise ValueError("At least one horizon is required")
        if not self.lookback:
            raise ValueError("At least one lookback offset is required")
        if self.window_length < 0 or self.skip < 0:
            raise ValueError("window_length and skip must be >= 0")
        if self.forecast and self.dynamic_features:
            raise ValueError("dynamic_features have no future values; set forecast=False")

    def run_id(self) -> str:
        return datetime.utcnow().strftime("%Y%m%d_%H%M%S")

    def artifacts_path(self) -> Path:
        return Path(self.artifacts_dir)

    def predictions_path(self) -> Path:
        return self.artifacts_path() / "predictions.parquet"

    def forecasts_path(self) -> Path:
        return self.artifacts_path() / "forecasts.parquet"

    def error_path(self) -> Path:
        return self.artifacts_path() / "error.json"

    def windows_path(self) -> Path:
        return self.artifacts_path() / "windows.json"

    def plot_path(self) -> Path:
        return self.artifacts_path() / "predictions.png"
