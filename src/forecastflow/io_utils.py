# file: src/forecastflow/io_utils.py
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

import pandas as pd

TABLE_FORMATS = (".csv", ".parquet")


def ensure_dir(path: Path) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def _table_format(path: Path) -> str:
    if path.suffix not in TABLE_FORMATS:
        raise ValueError(f"Unsupported table format: {path.suffix} (use .csv or .parquet)")
    return path.suffix


def read_table(path: Path) -> pd.DataFrame:
    """Read a CSV or parquet input file."""
    path = Path(path)
    fmt = _table_format(path)
    if not path.exists():
        raise FileNotFoundError(f"Input not found: {path}")
    if fmt == ".parquet":
        return pd.read_parquet(path)
    return pd.read_csv(path)


def _replace_via_tmp(path: Path, write) -> Path:
    # Readers never see a half-written file: write beside it, then swap in
    ensure_dir(path.parent)
    tmp = path.with_name(path.name + ".tmp")
    write(tmp)
    os.replace(tmp, path)
    return path


def write_table(df: pd.DataFrame, path: Path) -> Path:
    """
    Write a result table as CSV or parquet, chosen by the file suffix.
    """
    path = Path(path)
    if _table_format(path) == ".parquet":
        return _replace_via_tmp(path, lambda tmp: df.to_parquet(tmp, index=False))
    return _replace_via_tmp(path, lambda tmp: df.to_csv(tmp, index=False))


def write_json(payload: Dict[str, Any], path: Path) -> Path:
    def dump(tmp: Path) -> None:
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, default=str)

    return _replace_via_tmp(Path(path), dump)
