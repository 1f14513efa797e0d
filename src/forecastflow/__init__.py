"""
forecastflow: Multi-horizon Forecasting Workflow

Plugs user-defined training and prediction functions into a
horizon x window validation loop:
- Lagged feature tables, one per forecast horizon
- Validation windows shared across horizons
- Training / prediction drivers around user callbacks
- Prediction collection, overlap handling and error metrics
- Plots and a Typer CLI
"""

from .config import WorkflowConfig
from .evaluation import (ForecastMetrics, collect_forecasts, collect_predictions,
                         combine_forecasts, combine_predictions, compute_errors,
                         return_error)
from .exceptions import (CallbackFailure, ForecastFlowError, MissingArtifact,
                         ShapeMismatch)
from .lagged import LaggedDataset, create_lagged_df
from .models import (CallbackRegistry, predict_random_forest, predict_ridge,
                     train_random_forest, train_ridge)
from .prediction import normalize_prediction, predict_model
from .results import PredictionResult, ResultEntry, ResultStore
from .training import train_model, training_slice
from .validate import ValidationResult, assert_valid_time_index, validate_time_index
from .windows import Window, create_windows, serialize_windows, validate_windows
from .workflow import WorkflowResult, run_workflow, save_workflow_outputs

__all__ = [
    # Config
    "WorkflowConfig",
    # Lagged data + windows
    "LaggedDataset",
    "create_lagged_df",
    "Window",
    "create_windows",
    "validate_windows",
    "serialize_windows",
    "ValidationResult",
    "validate_time_index",
    "assert_valid_time_index",
    # Drivers
    "ResultStore",
    "ResultEntry",
    "PredictionResult",
    "train_model",
    "training_slice",
    "predict_model",
    "normalize_prediction",
    # Evaluation
    "ForecastMetrics",
    "collect_predictions",
    "combine_predictions",
    "collect_forecasts",
    "combine_forecasts",
    "compute_errors",
    "return_error",
    # Callbacks
    "CallbackRegistry",
    "train_random_forest",
    "predict_random_forest",
    "train_ridge",
    "predict_ridge",
    # Workflow
    "WorkflowResult",
    "run_workflow",
    "save_workflow_outputs",
    # Errors
    "ForecastFlowError",
    "CallbackFailure",
    "MissingArtifact",
    "ShapeMismatch",
]
