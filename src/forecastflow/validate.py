"""
Time index integrity checks

Hard gates run before lagged features are built:
- Uniqueness: no duplicate dates
- Monotonic: increasing time
- Frequency: expected regular grid vs observed (missing periods)
- Nulls: no missing dates
"""

from dataclasses import dataclass, field
from typing import List, Optional

import pandas as pd


@dataclass
class ValidationResult:
    """Results of time index validation"""
    is_valid: bool
    n_rows: int
    n_duplicates: int
    n_missing: int
    n_nulls: int
    is_monotonic: bool
    frequency: Optional[str] = None
    missing: List = field(default_factory=list)


def infer_frequency(dates: pd.DatetimeIndex) -> str:
    """
    Infer a pandas offset alias from a datetime index.

    Raises:
        ValueError: if the index is too short or irregular
    """
    if len(dates) < 3:
        raise ValueError(
            f"Cannot infer frequency from {len(dates)} dates; pass frequency explicitly"
        )
    freq = pd.infer_freq(dates)
    if freq is None:
        raise ValueError("Cannot infer frequency from irregular dates; pass frequency explicitly")
    return freq


def validate_time_index(dates, frequency: Optional[str] = None) -> ValidationResult:
    """
    Validate a time index for lagged-feature construction.

    Checks:
    1. No duplicate dates
    2. Monotonic increasing order
    3. No nulls
    4. No missing periods against the expected grid (datetime + frequency only)

    Args:
        dates: Sequence of timestamps or integer positions
        frequency: Pandas offset alias ("D", "MS", "h", ...)

    Returns:
        ValidationResult with detailed findings
    """
    index = pd.Index(dates)

    n_nulls = int(index.isna().sum())
    n_duplicates = int(index.duplicated(keep=False).sum())
    is_monotonic = bool(index.is_monotonic_increasing)

    missing = []
    if frequency is not None and isinstance(index, pd.DatetimeIndex) and len(index) > 0:
        observed = index.dropna()
        expected = pd.date_range(start=observed.min(), end=observed.max(), freq=frequency)
        missing = sorted(set(expected) - set(observed))

    is_valid = (
        n_duplicates == 0
        and n_nulls == 0
        and is_monotonic
        and len(missing) == 0
    )

    return ValidationResult(
        is_valid=is_valid,
        n_rows=len(index),
        n_duplicates=n_duplicates,
        n_missing=len(missing),
        n_nulls=n_nulls,
        is_monotonic=is_monotonic,
        frequency=frequency,
        missing=missing[:10],  # First 10 only
    )


def assert_valid_time_index(dates, frequency: Optional[str] = None) -> ValidationResult:
    """Raise a ValueError if the time index contract is violated."""
    result = validate_time_index(dates, frequency=frequency)
    if not result.is_valid:
        raise ValueError(
            f"Invalid time index: duplicates={result.n_duplicates}, "
            f"missing={result.n_missing}, nulls={result.n_nulls}, "
            f"monotonic={result.is_monotonic}"
        )
    return result
