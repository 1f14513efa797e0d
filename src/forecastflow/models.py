"""
Example training / prediction callbacks

Ready-made callback pairs for the training and prediction drivers:
1. Random forest (sklearn RandomForestRegressor)
2. Ridge regression with median imputation

Training callbacks take the training LaggedDataset plus keyword arguments
and return a plain dict artifact. Prediction callbacks take that artifact
and a feature table and return a one-column table of predictions.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import pandas as pd
from sklearn.ensemble import RandomForestRegressor
from sklearn.impute import SimpleImputer
from sklearn.linear_model import Ridge
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler

from .lagged import LaggedDataset

logger = logging.getLogger(__name__)

TrainFunction = Callable[..., Any]
PredictFunction = Callable[[Any, pd.DataFrame], Any]


def _complete_rows(data: LaggedDataset, outcome_col: str) -> Tuple[pd.DataFrame, pd.Series]:
    columns = list(data.feature_names)
    frame = data.frame[[outcome_col] + columns].dropna()
    if frame.empty:
        raise ValueError(
            f"Horizon {data.horizon}: no complete rows to train on "
            f"({data.n_rows} rows before dropping NaN lags)"
        )
    return frame[columns], frame[outcome_col]


def train_random_forest(
    data: LaggedDataset,
    outcome_col: Optional[str] = None,
    n_tree: int = 200,
    random_state: Optional[int] = None
) -> Dict[str, Any]:
    """Fit a random forest on rows without missing lags"""
    outcome_col = outcome_col or data.outcome_col
    X, y = _complete_rows(data, outcome_col)

    model = RandomForestRegressor(n_estimators=n_tree, random_state=random_state)
    model.fit(X, y)

    logger.debug(f"Random forest horizon {data.horizon}: {len(X)} rows, {n_tree} trees")

    return {
        "model": model,
        "n_tree": n_tree,
        "meta_data": data.horizon,
        "feature_names": list(X.columns),
        "fill_values": X.median(),
    }


def predict_random_forest(artifact: Dict[str, Any], features: pd.DataFrame) -> pd.DataFrame:
    """Predict with a random forest artifact; missing lags get the training median"""
    X = features[artifact["feature_names"]].fillna(artifact["fill_values"])
    return pd.DataFrame({"y_pred": artifact["model"].predict(X)}, index=features.index)


def train_ridge(
    data: LaggedDataset,
    outcome_col: Optional[str] = None,
    alpha: float = 1.0
) -> Dict[str, Any]:
    """Fit a scaled ridge regression; missing lags are median-imputed"""
    outcome_col = outcome_col or data.outcome_col
    frame = data.frame[data.frame[outcome_col].notna()]
    if frame.empty:
        raise ValueError(f"Horizon {data.horizon}: no rows with a known outcome")

    columns = list(data.feature_names)
    model = Pipeline([
        ("impute", SimpleImputer(strategy="median")),
        ("scale", StandardScaler()),
        ("ridge", Ridge(alpha=alpha)),
    ])
    model.fit(frame[columns], frame[outcome_col])

    return {
        "model": model,
        "alpha": alpha,
        "meta_data": data.horizon,
        "feature_names": columns,
    }


def predict_ridge(artifact: Dict[str, Any], features: pd.DataFrame) -> pd.DataFrame:
    X = features[artifact["feature_names"]]
    return pd.DataFrame({"y_pred": artifact["model"].predict(X)}, index=features.index)


class CallbackRegistry:
    """Named (train, predict) callback pairs"""

    _callbacks: Dict[str, Tuple[TrainFunction, PredictFunction]] = {
        "random_forest": (train_random_forest, predict_random_forest),
        "ridge": (train_ridge, predict_ridge),
    }

    @classmethod
    def get(cls, model_name: str) -> Tuple[TrainFunction, PredictFunction]:
        """Look up callbacks by name"""
        if model_name not in cls._callbacks:
            raise ValueError(f"Unknown model: {model_name} (available: {cls.list_models()})")

        return cls._callbacks[model_name]

    @classmethod
    def register(cls, model_name: str, train_fn: TrainFunction, predict_fn: PredictFunction) -> None:
        cls._callbacks[model_name] = (train_fn, predict_fn)

    @classmethod
    def list_models(cls) -> List[str]:
        """List available callback pairs"""
        return list(cls._callbacks.keys())
