"""Normalize raw recruiting records into validated, typed DataFrames."""

import logging
from dataclasses import dataclass

import pandas as pd
import pandera as pa

from hiring_pipeline.domains.hiring_managers.models import (
    CANDIDATE_OPTIONAL_COLUMNS,
    EVENT_OPTIONAL_COLUMNS,
    REQUISITION_OPTIONAL_COLUMNS,
    USER_OPTIONAL_COLUMNS,
    candidate_schema,
    event_schema,
    requisition_schema,
    user_schema,
)
from hiring_pipeline.utils.transforms import as_nullable_str, ensure_columns, normalize_columns
from hiring_pipeline.utils.validators import validate_referential_integrity, validate_unique

logger = logging.getLogger(__name__)

type Records = pd.DataFrame | list[dict]

_REQ_DATE_COLUMNS = ["opened_at", "closed_at"]
_CANDIDATE_DATE_COLUMNS = [
    "applied_at", "current_stage_entered_at", "hired_at", "offer_extended_at", "offer_accepted_at",
]


@dataclass(frozen=True)
class RecruitingSnapshot:
    """The four record streams the engine runs over, already typed and validated."""

    requisitions: pd.DataFrame
    candidates: pd.DataFrame
    events: pd.DataFrame
    users: pd.DataFrame


def to_utc_naive(values: pd.Series) -> pd.Series:
    """Parse timestamps; tz-aware values are converted to naive UTC, junk becomes NaT."""
    if values.empty:
        return pd.Series(pd.NaT, index=values.index, dtype="datetime64[ns]")
    parsed = pd.to_datetime(values, errors="coerce", utc=True)
    return parsed.dt.tz_localize(None).astype("datetime64[ns]")


def as_timestamp(value) -> pd.Timestamp:
    """Normalize an as-of instant the same way record timestamps are normalized."""
    ts = pd.Timestamp(value)
    if pd.isna(ts):
        raise ValueError("as_of is required")
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def _as_frame(records: Records, schema: pa.DataFrameSchema, optional: list[str]) -> pd.DataFrame:
    df = records if isinstance(records, pd.DataFrame) else pd.DataFrame(list(records))
    if df.columns.empty:
        # an empty record list carries no column names at all
        required = [name for name, col in schema.columns.items() if col.required]
        df = pd.DataFrame(columns=required)
    return ensure_columns(normalize_columns(df), optional)


def _parse_dates(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    present = [col for col in columns if col in df.columns]
    return df.assign(**{col: to_utc_naive(df[col]) for col in present})


def _as_text(df: pd.DataFrame, columns: list[str]) -> pd.DataFrame:
    present = [col for col in columns if col in df.columns]
    return df.assign(**{col: as_nullable_str(df[col]) for col in present})


def prepare_requisitions(records: Records) -> pd.DataFrame:
    df = _as_frame(records, requisition_schema, REQUISITION_OPTIONAL_COLUMNS)
    df = _as_text(df, ["req_id", "hiring_manager_id", "recruiter_id", "status"])
    df = _parse_dates(df, _REQ_DATE_COLUMNS)
    df = requisition_schema.validate(df)

    missing_opened = int(df["opened_at"].isna().sum())
    if missing_opened:
        logger.warning("%d requisition(s) have no opened_at and are excluded from open-pipeline rollups",
                       missing_opened)
    return df.reset_index(drop=True)


def prepare_candidates(records: Records) -> pd.DataFrame:
    df = _as_frame(records, candidate_schema, CANDIDATE_OPTIONAL_COLUMNS)
    df = _as_text(df, ["candidate_id", "req_id", "current_stage", "disposition"])
    df = _parse_dates(df, _CANDIDATE_DATE_COLUMNS)
    return candidate_schema.validate(df).reset_index(drop=True)


def prepare_events(records: Records) -> pd.DataFrame:
    df = _as_frame(records, event_schema, EVENT_OPTIONAL_COLUMNS)
    df = _as_text(df, ["event_id", "candidate_id", "req_id", "actor_user_id", "from_stage", "to_stage"])
    df = df.assign(event_type=[t.strip().upper() if isinstance(t, str) else t for t in df["event_type"]])
    df = _parse_dates(df, ["event_at"])
    return event_schema.validate(df).reset_index(drop=True)


def prepare_users(records: Records) -> pd.DataFrame:
    df = _as_frame(records, user_schema, USER_OPTIONAL_COLUMNS)
    df = _as_text(df, ["user_id", "manager_user_id"])
    return user_schema.validate(df).reset_index(drop=True)


def prepare_inputs(
    requisitions: Records,
    candidates: Records,
    events: Records,
    users: Records,
) -> RecruitingSnapshot:
    """Apply all cleaning and validation steps to the raw record streams."""
    snapshot = RecruitingSnapshot(
        requisitions=prepare_requisitions(requisitions),
        candidates=prepare_candidates(candidates),
        events=prepare_events(events),
        users=prepare_users(users),
    )
    logger.info(
        "Prepared snapshot: %d reqs, %d candidates, %d events, %d users",
        len(snapshot.requisitions),
        len(snapshot.candidates),
        len(snapshot.events),
        len(snapshot.users),
    )
    for problem in check_integrity(snapshot):
        logger.warning(problem)
    return snapshot


def check_integrity(snapshot: RecruitingSnapshot) -> list[str]:
    """Soft cross-table checks. Orphans are kept; their names degrade to Unknown."""
    checks = {
        "candidates.req_id": validate_referential_integrity(
            snapshot.candidates, snapshot.requisitions, "req_id", "req_id",
        ),
        "events.candidate_id": validate_referential_integrity(
            snapshot.events, snapshot.candidates, "candidate_id", "candidate_id",
        ),
        "candidates (candidate_id, req_id)": validate_unique(snapshot.candidates, ["candidate_id", "req_id"]),
    }
    return [
        f"{name}: {error}"
        for name, result in checks.items()
        if not result["valid"]
        for error in result["errors"]
    ]
