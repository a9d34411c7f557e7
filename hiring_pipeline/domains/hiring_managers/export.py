"""Flatten rollups and pending actions into typed DataFrames for output.

Frames always carry the full column set with fixed dtypes, even when empty,
so the output schemas and downstream readers see a stable layout.
"""

import logging

import pandas as pd

from hiring_pipeline.domains.hiring_managers.actions import HMPendingAction
from hiring_pipeline.domains.hiring_managers.latency import LatencyStats
from hiring_pipeline.domains.hiring_managers.models import (
    hm_rollup_frame_schema,
    pending_action_frame_schema,
    req_rollup_frame_schema,
)
from hiring_pipeline.domains.hiring_managers.rollups import HMReqRollup, HMRollup
from hiring_pipeline.domains.hiring_managers.taxonomy import DecisionBucket
from hiring_pipeline.utils.validators import ValidationResult, validate_dataframe

logger = logging.getLogger(__name__)

FLAG_SEPARATOR = ";"

BUCKET_COLUMNS = [f"bucket_{bucket.value.lower()}" for bucket in DecisionBucket]

REQ_ROLLUP_DTYPES: dict[str, str] = {
    "req_id": "object",
    "req_title": "object",
    "hm_user_id": "object",
    "hm_name": "object",
    "function": "object",
    "level": "object",
    "location": "object",
    "recruiter_id": "object",
    "recruiter_name": "object",
    "req_age_days": "int64",
    "last_movement_date": "datetime64[ns]",
    "days_since_last_movement": "Int64",
    "pipeline_depth": "int64",
    **{col: "int64" for col in BUCKET_COLUMNS},
    "primary_stall_reason": "object",
    "stall_priority": "int64",
    "stall_explanation": "object",
    "stall_evidence": "object",
    "risk_flags": "object",
    "forecast_bucket": "object",
    "forecast_earliest_date": "datetime64[ns]",
    "forecast_likely_date": "datetime64[ns]",
    "forecast_late_date": "datetime64[ns]",
}

_LATENCY_PREFIXES = ("feedback", "review", "final_decision")

HM_ROLLUP_DTYPES: dict[str, str] = {
    "hm_user_id": "object",
    "hm_name": "object",
    "team": "object",
    "manager_user_id": "object",
    "total_open_reqs": "int64",
    "total_closed_reqs": "int64",
    "reqs_with_risk_flags": "int64",
    "total_active_candidates": "int64",
    **{col: "int64" for col in BUCKET_COLUMNS},
    "pending_actions_count": "int64",
    "feedback_due_count": "int64",
    "review_due_count": "int64",
    "decision_due_count": "int64",
    **{
        f"{prefix}_{stat}": dtype
        for prefix in _LATENCY_PREFIXES
        for stat, dtype in (
            ("median", "float64"), ("p75", "float64"), ("p90", "float64"),
            ("sample_size", "int64"), ("open_items", "int64"), ("peer_rank", "Int64"),
        )
    },
    "median_days_since_movement": "float64",
    "function_mix": "object",
    "level_mix": "object",
}

PENDING_ACTION_DTYPES: dict[str, str] = {
    "action_type": "object",
    "hm_user_id": "object",
    "hm_name": "object",
    "req_id": "object",
    "req_title": "object",
    "candidate_id": "object",
    "candidate_name": "object",
    "trigger_date": "datetime64[ns]",
    "days_waiting": "int64",
    "days_overdue": "int64",
    "suggested_action": "object",
}


def _frame(rows: list[dict], dtypes: dict[str, str]) -> pd.DataFrame:
    return pd.DataFrame(rows, columns=list(dtypes)).astype(dtypes)


def _bucket_columns(counts: dict[DecisionBucket, int]) -> dict[str, int]:
    return {f"bucket_{bucket.value.lower()}": counts.get(bucket, 0) for bucket in DecisionBucket}


def _mix(counts: dict[str, int]) -> str:
    return FLAG_SEPARATOR.join(f"{key}:{n}" for key, n in sorted(counts.items()))


def req_rollups_to_frame(rollups: list[HMReqRollup]) -> pd.DataFrame:
    rows = []
    for r in rollups:
        forecast = r.forecast
        rows.append({
            "req_id": r.req_id,
            "req_title": r.req_title,
            "hm_user_id": r.hm_user_id,
            "hm_name": r.hm_name,
            "function": r.function,
            "level": r.level,
            "location": r.location,
            "recruiter_id": r.recruiter_id,
            "recruiter_name": r.recruiter_name,
            "req_age_days": r.req_age_days,
            "last_movement_date": r.last_movement_date,
            "days_since_last_movement": r.days_since_last_movement,
            "pipeline_depth": r.pipeline_depth,
            **_bucket_columns(r.candidates_by_bucket),
            "primary_stall_reason": r.primary_stall_reason.code.value,
            "stall_priority": r.primary_stall_reason.priority,
            "stall_explanation": r.primary_stall_reason.explanation,
            "stall_evidence": r.primary_stall_reason.evidence,
            "risk_flags": FLAG_SEPARATOR.join(flag.code.value for flag in r.risk_flags),
            "forecast_bucket": forecast.current_bucket.value if forecast else None,
            "forecast_earliest_date": forecast.earliest_date if forecast else None,
            "forecast_likely_date": forecast.likely_date if forecast else None,
            "forecast_late_date": forecast.late_date if forecast else None,
        })
    return _frame(rows, REQ_ROLLUP_DTYPES)


def _latency_columns(prefix: str, stats: LatencyStats, rank: int | None) -> dict:
    return {
        f"{prefix}_median": stats.median,
        f"{prefix}_p75": stats.p75,
        f"{prefix}_p90": stats.p90,
        f"{prefix}_sample_size": stats.sample_size,
        f"{prefix}_open_items": stats.open_items,
        f"{prefix}_peer_rank": rank,
    }


def hm_rollups_to_frame(rollups: list[HMRollup]) -> pd.DataFrame:
    rows = []
    for r in rollups:
        latency = r.latency_metrics
        ranks = [m.percentile_rank for m in r.peer_comparison.metrics] if r.peer_comparison else [None] * 3
        rows.append({
            "hm_user_id": r.hm_user_id,
            "hm_name": r.hm_name,
            "team": r.team,
            "manager_user_id": r.manager_user_id,
            "total_open_reqs": r.total_open_reqs,
            "total_closed_reqs": r.total_closed_reqs,
            "reqs_with_risk_flags": r.reqs_with_risk_flags,
            "total_active_candidates": r.total_active_candidates,
            **_bucket_columns(r.candidates_by_bucket),
            "pending_actions_count": r.pending_actions_count,
            "feedback_due_count": r.feedback_due_count,
            "review_due_count": r.review_due_count,
            "decision_due_count": r.decision_due_count,
            **_latency_columns("feedback", latency.feedback_latency, ranks[0]),
            **_latency_columns("review", latency.review_latency, ranks[1]),
            **_latency_columns("final_decision", latency.final_decision_latency, ranks[2]),
            "median_days_since_movement": latency.median_days_since_movement,
            "function_mix": _mix(r.function_mix),
            "level_mix": _mix(r.level_mix),
        })
    return _frame(rows, HM_ROLLUP_DTYPES)


def pending_actions_to_frame(actions: list[HMPendingAction]) -> pd.DataFrame:
    rows = [
        {
            "action_type": a.action_type.value,
            "hm_user_id": a.hm_user_id,
            "hm_name": a.hm_name,
            "req_id": a.req_id,
            "req_title": a.req_title,
            "candidate_id": a.candidate_id,
            "candidate_name": a.candidate_name,
            "trigger_date": a.trigger_date,
            "days_waiting": a.days_waiting,
            "days_overdue": a.days_overdue,
            "suggested_action": a.suggested_action,
        }
        for a in actions
    ]
    return _frame(rows, PENDING_ACTION_DTYPES)


OUTPUT_SCHEMAS = {
    "req_rollups": req_rollup_frame_schema,
    "hm_rollups": hm_rollup_frame_schema,
    "pending_actions": pending_action_frame_schema,
}


def validate_outputs(frames: dict[str, pd.DataFrame]) -> dict[str, ValidationResult]:
    """Check each flattened output frame against its pandera schema."""
    results = {}
    for name, df in frames.items():
        result = validate_dataframe(df, OUTPUT_SCHEMAS[name])
        if not result["valid"]:
            logger.warning("Output %s failed schema checks: %s", name, result["errors"])
        results[name] = result
    return results
