"""HM latency statistics over paired start/end events.

An observation is *closed* when its end event was seen and *open* (right
censored) when it was not. Percentiles only ever use closed observations;
open ones are reported as a separate count.
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import pandas as pd

from hiring_pipeline.domains.hiring_managers.facts import FactTables, last_movement_dates
from hiring_pipeline.domains.hiring_managers.models import UNKNOWN, EventType
from hiring_pipeline.domains.hiring_managers.taxonomy import DecisionBucket
from hiring_pipeline.utils.transforms import days_between, elapsed_days

logger = logging.getLogger(__name__)

type Observations = pd.DataFrame

PAIR_KEYS = ["candidate_id", "req_id"]
_OBSERVATION_COLUMNS = [*PAIR_KEYS, "start_at", "end_at", "days", "counts_as_open"]


@dataclass(frozen=True)
class LatencyStats:
    median: float | None
    p75: float | None
    p90: float | None
    max: float | None
    sample_size: int
    open_items: int


@dataclass(frozen=True)
class HMLatencyMetrics:
    hm_user_id: str
    hm_name: str
    feedback_latency: LatencyStats
    review_latency: LatencyStats
    final_decision_latency: LatencyStats
    median_days_since_movement: float | None


def calculate_median(values: list[float]) -> float | None:
    if not values:
        return None
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def calculate_percentile(sorted_values: list[float], percentile: float) -> float | None:
    """Nearest-rank percentile: sorted[ceil(p/100 * n) - 1], clamped to the list."""
    if not sorted_values:
        return None
    n = len(sorted_values)
    index = math.ceil(percentile / 100 * n) - 1
    return sorted_values[max(0, min(index, n - 1))]


def compute_latency_stats(latencies: list[float], open_items: int = 0) -> LatencyStats:
    """Summarize closed interval lengths; ``open_items`` is carried through untouched."""
    if any(v < 0 for v in latencies):
        raise ValueError(f"Latency intervals must be non-negative, got {min(latencies)}")
    if not latencies:
        return LatencyStats(median=None, p75=None, p90=None, max=None, sample_size=0, open_items=open_items)

    ordered = sorted(latencies)
    return LatencyStats(
        median=calculate_median(ordered),
        p75=calculate_percentile(ordered, 75),
        p90=calculate_percentile(ordered, 90),
        max=ordered[-1],
        sample_size=len(ordered),
        open_items=open_items,
    )


def pair_intervals(starts: pd.DataFrame, ends: pd.DataFrame) -> pd.DataFrame:
    """Pair each start event with the earliest strictly later end for the same candidate and req.

    Returns one row per start (in input order) with ``start_at`` and ``end_at``;
    ``end_at`` is NaT when no end has been observed yet.
    """
    left = (
        starts.dropna(subset=PAIR_KEYS)[[*PAIR_KEYS, "event_at"]]
        .rename(columns={"event_at": "start_at"})
        .reset_index(drop=True)
    )
    left["_order"] = np.arange(len(left))
    right = (
        ends.dropna(subset=PAIR_KEYS)[[*PAIR_KEYS, "event_at"]]
        .rename(columns={"event_at": "end_at"})
    )

    if left.empty or right.empty:
        paired = left.assign(end_at=pd.Series(pd.NaT, index=left.index, dtype="datetime64[ns]"))
    else:
        paired = pd.merge_asof(
            left.sort_values("start_at", kind="stable"),
            right.sort_values("end_at", kind="stable"),
            left_on="start_at",
            right_on="end_at",
            by=PAIR_KEYS,
            direction="forward",
            allow_exact_matches=False,
        )

    return (
        paired.sort_values("_order", kind="stable")
        .drop(columns="_order")
        .reset_index(drop=True)[[*PAIR_KEYS, "start_at", "end_at"]]
    )


def _with_days(paired: pd.DataFrame) -> pd.DataFrame:
    closed = paired["end_at"].notna()
    days = elapsed_days(paired["start_at"], paired["end_at"]).where(closed)
    if (days.dropna() < 0).any():
        raise ValueError("Paired interval ends before it starts; event timestamps are inconsistent")
    return paired.assign(days=days)


def feedback_observations(event_facts: pd.DataFrame) -> Observations:
    """Interview completed -> feedback submitted. Every unmatched interview is open."""
    interviews = event_facts[event_facts["event_type"] == EventType.INTERVIEW_COMPLETED]
    feedback = event_facts[event_facts["event_type"] == EventType.FEEDBACK_SUBMITTED]
    paired = _with_days(pair_intervals(interviews, feedback))
    return paired.assign(counts_as_open=paired["end_at"].isna())[_OBSERVATION_COLUMNS]


def dwell_observations(
    candidate_facts: pd.DataFrame,
    event_facts: pd.DataFrame,
    bucket: DecisionBucket,
) -> Observations:
    """Entry into a bucket -> first later exit from it, for known candidates.

    An entry with no exit only counts as open while the candidate is still
    active in that bucket; otherwise the trail simply went cold.
    """
    enters = event_facts[event_facts["to_bucket"] == bucket]
    exits = event_facts[event_facts["from_bucket"] == bucket]
    paired = _with_days(pair_intervals(enters, exits))

    current = candidate_facts[[*PAIR_KEYS, "decision_bucket", "is_active"]].drop_duplicates(
        subset=PAIR_KEYS, keep="first",
    )
    paired = paired.merge(current, on=PAIR_KEYS, how="inner")
    still_waiting = (paired["decision_bucket"] == bucket) & paired["is_active"].astype(bool)
    return paired.assign(counts_as_open=paired["end_at"].isna() & still_waiting)[_OBSERVATION_COLUMNS]


def stats_for_reqs(observations: Observations, req_ids: set[str]) -> LatencyStats:
    scoped = observations[observations["req_id"].isin(sorted(req_ids))]
    closed_days = [int(d) for d in scoped["days"].dropna()]
    return compute_latency_stats(closed_days, open_items=int(scoped["counts_as_open"].sum()))


@dataclass(frozen=True)
class LatencyObservations:
    """Pre-paired observations for the whole snapshot, sliced per HM later."""

    feedback: Observations
    review: Observations
    final_decision: Observations


def collect_observations(fact_tables: FactTables) -> LatencyObservations:
    candidates, events = fact_tables.candidate_facts, fact_tables.event_facts
    observations = LatencyObservations(
        feedback=feedback_observations(events),
        review=dwell_observations(candidates, events, DecisionBucket.HM_REVIEW),
        final_decision=dwell_observations(candidates, events, DecisionBucket.HM_FINAL_DECISION),
    )
    logger.info(
        "Paired latency observations: %d feedback, %d review, %d final decision",
        len(observations.feedback),
        len(observations.review),
        len(observations.final_decision),
    )
    return observations


def hm_latency_metrics(
    hm_user_id: str,
    hm_name: str,
    fact_tables: FactTables,
    observations: LatencyObservations,
    movement_dates: dict[str, pd.Timestamp],
) -> HMLatencyMetrics:
    req_facts = fact_tables.req_facts
    req_ids = set(req_facts.loc[req_facts["hiring_manager_id"] == hm_user_id, "req_id"])

    movement_days = [
        days_between(fact_tables.as_of, movement_dates[req_id])
        for req_id in sorted(req_ids)
        if req_id in movement_dates
    ]

    return HMLatencyMetrics(
        hm_user_id=hm_user_id,
        hm_name=hm_name,
        feedback_latency=stats_for_reqs(observations.feedback, req_ids),
        review_latency=stats_for_reqs(observations.review, req_ids),
        final_decision_latency=stats_for_reqs(observations.final_decision, req_ids),
        median_days_since_movement=calculate_median(movement_days),
    )


def calculate_hm_latency_metrics(
    hm_user_id: str,
    fact_tables: FactTables,
    users: pd.DataFrame,
) -> HMLatencyMetrics:
    """Latency metrics for one HM across all of their reqs, open or closed."""
    named = users[users["user_id"] == hm_user_id]["name"].dropna()
    hm_name = named.iloc[0] if not named.empty else UNKNOWN
    return hm_latency_metrics(
        hm_user_id,
        hm_name,
        fact_tables,
        collect_observations(fact_tables),
        last_movement_dates(fact_tables.event_facts),
    )
