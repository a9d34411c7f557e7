"""Frame-level checks on ATS snapshots and pipeline outputs, built on pandera."""

import pandas as pd
import pandera as pa
from pandera import DataFrameSchema

type ValidationResult = dict[str, str | bool | list[str]]

ORPHAN_SAMPLE_SIZE = 5


def _result(errors: list[str]) -> ValidationResult:
    match errors:
        case []:
            return {"valid": True, "status": "ok", "errors": []}
        case _:
            return {"valid": False, "status": "error", "errors": errors}


def validate_dataframe(df: pd.DataFrame, schema: DataFrameSchema) -> ValidationResult:
    """Run ``schema`` lazily and collect every failure case as a message."""
    try:
        schema.validate(df, lazy=True)
    except pa.errors.SchemaErrors as e:
        errors = []
        for case in e.failure_cases.to_dict("records"):
            match case:
                case {"column": col, "check": check, "failure_case": val}:
                    errors.append(f"{col}: {check} failed for {val!r}")
                case other:
                    errors.append(f"Schema failure: {other}")
        return _result(errors)
    return _result([])


def validate_unique(df: pd.DataFrame, columns: list[str]) -> ValidationResult:
    """Rows sharing the same values on ``columns``, e.g. a candidate listed twice on one req."""
    repeated = int(df.duplicated(subset=columns, keep=False).sum())
    if not repeated:
        return _result([])
    return _result([f"{repeated} rows share a key on {columns}"])


def validate_referential_integrity(
    child: pd.DataFrame,
    parent: pd.DataFrame,
    child_key: str,
    parent_key: str,
) -> ValidationResult:
    """Non-null ``child_key`` values with no matching ``parent_key``."""
    known = set(parent[parent_key].dropna())
    orphans = sorted(set(child[child_key].dropna()) - known)
    if not orphans:
        return _result([])
    return _result([f"{len(orphans)} unknown {child_key} value(s), e.g. {orphans[:ORPHAN_SAMPLE_SIZE]}"])
