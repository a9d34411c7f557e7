"""File I/O utilities for reading and writing pipeline data."""

import tomllib
from pathlib import Path

import pandas as pd
from rich.console import Console

type FilePath = str | Path

console = Console()


def read_export_file(path: FilePath) -> pd.DataFrame:
    """Read a single ATS export, handling encoding quirks."""
    path = Path(path)
    for encoding in ("utf-8", "latin-1", "cp1252"):
        try:
            return pd.read_csv(path, encoding=encoding)
        except UnicodeDecodeError:
            continue
    raise ValueError(f"Could not decode {path}")


def write_output(df: pd.DataFrame, path: FilePath, fmt: str = "csv") -> Path:
    """Write a DataFrame to the specified format and return the file written."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    match fmt:
        case "csv":
            target = path.with_suffix(".csv")
            df.to_csv(target, index=False)
        case "parquet":
            target = path.with_suffix(".parquet")
            df.to_parquet(target, index=False)
        case "json":
            target = path.with_suffix(".json")
            df.to_json(target, orient="records", indent=2, date_format="iso")
        case other:
            raise ValueError(f"Unsupported output format: {other}")

    console.print(f"  Wrote {len(df)} rows to {target}")
    return target


def load_toml_config(path: FilePath) -> dict:
    """Load a TOML configuration file using Python 3.11+ stdlib."""
    with open(path, "rb") as f:
        return tomllib.load(f)
