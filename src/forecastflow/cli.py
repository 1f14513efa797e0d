# file: src/forecastflow/cli.py
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from src.forecastflow.config import WorkflowConfig
from src.forecastflow.io_utils import read_table
from src.forecastflow.models import CallbackRegistry
from src.forecastflow.workflow import run_workflow, save_workflow_outputs

logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")
app = typer.Typer(add_completion=False)
console = Console()


def _parse_model_args(pairs: List[str]) -> Dict[str, object]:
    """`--model-arg n_tree=100` -> {"n_tree": 100}; non-JSON values stay strings."""
    parsed = {}
    for pair in pairs:
        if "=" not in pair:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}")
        key, raw = pair.split("=", 1)
        try:
            parsed[key.strip()] = json.loads(raw)
        except json.JSONDecodeError:
            parsed[key.strip()] = raw
    return parsed


@app.command()
def run(
    input_path: Path = typer.Argument(..., help="CSV or parquet file, one row per period"),
    outcome_col: str = "y",
    date_col: str = "ds",
    frequency: Optional[str] = None,
    horizon: List[int] = typer.Option([1, 3, 6, 12], help="Forecast horizon (repeatable)"),
    lookback_max: int = typer.Option(15, help="Use lags 1..lookback_max"),
    window_length: int = 12,
    window_start: Optional[str] = None,
    window_stop: Optional[str] = None,
    skip: int = 0,
    training_policy: str = "exclude_window",
    overlap_policy: str = "last",
    model: str = "random_forest",
    model_arg: List[str] = typer.Option([], help="Callback keyword argument key=value (repeatable)"),
    forecast: bool = True,
    artifacts_dir: str = "artifacts/forecastflow",
):
    cfg = WorkflowConfig(
        outcome_col=outcome_col,
        date_col=date_col,
        frequency=frequency,
        horizons=tuple(horizon),
        lookback=tuple(range(1, lookback_max + 1)),
        window_length=window_length,
        window_start=window_start,
        window_stop=window_stop,
        skip=skip,
        training_policy=training_policy,
        overlap_policy=overlap_policy,
        model_name=model,
        model_args=_parse_model_args(model_arg),
        forecast=forecast,
        artifacts_dir=artifacts_dir,
    )

    data = read_table(input_path)
    result = run_workflow(data, cfg)
    save_workflow_outputs(result)

    table = Table(title="Workflow Results")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")

    for k, v in result.summary().items():
        table.add_row(str(k), str(v))

    console.print(table)

    by_horizon = result.error["error_by_horizon"]
    if not by_horizon.empty:
        error_table = Table(title="Validation Error by Horizon")
        for col in by_horizon.columns:
            error_table.add_column(str(col))
        for row in by_horizon.itertuples(index=False):
            error_table.add_row(*[f"{v:.3f}" if isinstance(v, float) else str(v) for v in row])
        console.print(error_table)


@app.command()
def models():
    """List registered training/prediction callback pairs."""
    table = Table(title="Registered Models")
    table.add_column("Name", style="cyan")
    table.add_column("Train", style="green")
    table.add_column("Predict", style="green")

    for name in CallbackRegistry.list_models():
        train_fn, predict_fn = CallbackRegistry.get(name)
        table.add_row(name, train_fn.__name__, predict_fn.__name__)

    console.print(table)


if __name__ == "__main__":
    app()
