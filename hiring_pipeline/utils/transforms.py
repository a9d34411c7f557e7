"""Common data transformation utilities."""

import math

import numpy as np
import pandas as pd

type ColumnMapping = dict[str, str]

_ONE_DAY = pd.Timedelta(days=1)


def normalize_columns(df: pd.DataFrame, mapping: ColumnMapping | None = None) -> pd.DataFrame:
    """Normalize column names to snake_case and apply optional mapping."""
    df = df.copy()
    df.columns = [str(col).strip().lower().replace(" ", "_").replace("-", "_") for col in df.columns]

    if mapping:
        df = df.rename(columns=mapping)

    return df


def ensure_columns(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    """Add any missing columns as all-null so downstream code can rely on them."""
    missing = [col for col in columns if col not in df.columns]
    if not missing:
        return df
    return df.assign(**{col: pd.Series([None] * len(df), index=df.index, dtype=object) for col in missing})


def _id_to_str(value) -> str | None:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, float) and value.is_integer():
        # CSV readers turn integer ids into floats once a column has gaps
        return str(int(value))
    return str(value)


def as_nullable_str(series: pd.Series) -> pd.Series:
    """Cast an id or label column to str while keeping nulls as None."""
    return pd.Series([_id_to_str(v) for v in series], index=series.index, dtype=object)


def whole_days(delta: pd.Timedelta) -> int:
    """Whole days in a timedelta, truncated toward zero."""
    return int(delta / _ONE_DAY)


def days_between(later: pd.Timestamp, earlier: pd.Timestamp) -> int:
    return whole_days(later - earlier)


def elapsed_days(start: pd.Series, end: pd.Series | pd.Timestamp) -> pd.Series:
    """Vectorized whole days from start to end; a missing endpoint gives 0."""
    fractional = (end - start) / _ONE_DAY
    return np.trunc(fractional).fillna(0).astype("int64")


def days_since(timestamps: pd.Series, as_of: pd.Timestamp) -> pd.Series:
    return elapsed_days(timestamps, as_of)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up, not to even."""
    return math.floor(value + 0.5)
