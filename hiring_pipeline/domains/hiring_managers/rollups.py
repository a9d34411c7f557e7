"""Per-requisition and per-hiring-manager rollups."""

import logging
from collections import Counter
from dataclasses import dataclass, field

import pandas as pd

from hiring_pipeline.config import DEFAULT_HM_RULES, HMRulesConfig
from hiring_pipeline.domains.hiring_managers.actions import HMPendingAction, count_by_type, find_pending_actions
from hiring_pipeline.domains.hiring_managers.benchmarks import PeerComparison
from hiring_pipeline.domains.hiring_managers.facts import (
    FactTables,
    get_unique_hms,
    last_movement_dates,
    rows_by_req,
    split_by_bucket,
    user_name_lookup,
)
from hiring_pipeline.domains.hiring_managers.forecast import FillDateForecast, forecast_fill_date
from hiring_pipeline.domains.hiring_managers.latency import (
    HMLatencyMetrics,
    collect_observations,
    hm_latency_metrics,
)
from hiring_pipeline.domains.hiring_managers.models import UNKNOWN, HMActionType
from hiring_pipeline.domains.hiring_managers.stalls import RiskFlag, StallReason, classify
from hiring_pipeline.domains.hiring_managers.taxonomy import DecisionBucket
from hiring_pipeline.utils.transforms import days_between

logger = logging.getLogger(__name__)

type BucketCounts = dict[DecisionBucket, int]


@dataclass(frozen=True)
class HMReqRollup:
    req_id: str
    req_title: str
    hm_user_id: str
    hm_name: str
    function: str
    level: str
    location: str | None
    recruiter_id: str
    recruiter_name: str
    req_age_days: int
    last_movement_date: pd.Timestamp | None
    days_since_last_movement: int | None
    pipeline_depth: int
    candidates_by_bucket: BucketCounts
    risk_flags: tuple[RiskFlag, ...]
    primary_stall_reason: StallReason
    forecast: FillDateForecast | None


@dataclass(frozen=True)
class HMRollup:
    hm_user_id: str
    hm_name: str
    team: str
    manager_user_id: str | None
    total_open_reqs: int
    total_closed_reqs: int
    reqs_with_risk_flags: int
    total_active_candidates: int
    candidates_by_bucket: BucketCounts
    pending_actions_count: int
    feedback_due_count: int
    review_due_count: int
    decision_due_count: int
    latency_metrics: HMLatencyMetrics
    function_mix: dict[str, int] = field(default_factory=dict)
    level_mix: dict[str, int] = field(default_factory=dict)
    peer_comparison: PeerComparison | None = None


def _text(value, default: str | None = UNKNOWN) -> str | None:
    return value if isinstance(value, str) and value else default


def _location(req: dict) -> str | None:
    for value in (req.get("location_city"), req.get("location_region")):
        if isinstance(value, str) and value:
            return value
    return None


def build_hm_req_rollups(
    fact_tables: FactTables,
    users: pd.DataFrame,
    rules: HMRulesConfig = DEFAULT_HM_RULES,
) -> list[HMReqRollup]:
    """One rollup per open requisition, in req-facts order."""
    req_facts, as_of = fact_tables.req_facts, fact_tables.as_of
    names = user_name_lookup(users)
    movement = last_movement_dates(fact_tables.event_facts)
    events_by_req = rows_by_req(fact_tables.event_facts)
    candidates_by_req = rows_by_req(fact_tables.candidate_facts)
    empty_events = fact_tables.event_facts.iloc[0:0]
    empty_candidates = fact_tables.candidate_facts.iloc[0:0]

    open_reqs = req_facts[req_facts["is_open"]]
    rollups = []
    for req in open_reqs.to_dict("records"):
        req_id = req["req_id"]
        hm_user_id = req["hiring_manager_id"] or ""
        by_bucket = split_by_bucket(candidates_by_req.get(req_id, empty_candidates))
        bucket_counts = {bucket: len(by_bucket[bucket]) for bucket in DecisionBucket}

        last_move = movement.get(req_id)
        days_idle = days_between(as_of, last_move) if last_move is not None else None
        classification = classify(
            req, by_bucket, events_by_req.get(req_id, empty_events), days_idle, as_of, rules,
        )
        req_title = _text(req["req_title"])

        rollups.append(HMReqRollup(
            req_id=req_id,
            req_title=req_title,
            hm_user_id=hm_user_id,
            hm_name=names.get(hm_user_id, UNKNOWN),
            function=_text(req["function"]),
            level=_text(req["level"]),
            location=_location(req),
            recruiter_id=req["recruiter_id"] or "",
            recruiter_name=names.get(req["recruiter_id"] or "", UNKNOWN),
            req_age_days=int(req["req_age_days"]),
            last_movement_date=last_move,
            days_since_last_movement=days_idle,
            pipeline_depth=sum(n for bucket, n in bucket_counts.items() if bucket != DecisionBucket.DONE),
            candidates_by_bucket=bucket_counts,
            risk_flags=classification.risk_flags,
            primary_stall_reason=classification.primary_stall_reason,
            forecast=forecast_fill_date(req_id, req_title, hm_user_id, by_bucket, as_of),
        ))

    logger.info("Built %d HM req rollup(s)", len(rollups))
    return rollups


def build_hm_rollups(
    fact_tables: FactTables,
    users: pd.DataFrame,
    req_rollups: list[HMReqRollup],
    pending_actions: list[HMPendingAction] | None = None,
    rules: HMRulesConfig = DEFAULT_HM_RULES,
) -> list[HMRollup]:
    """One rollup per HM referenced by any requisition, open or closed.

    ``pending_actions`` is computed here when the caller has not already done so.
    """
    if pending_actions is None:
        pending_actions = find_pending_actions(fact_tables, users, rules)

    req_facts = fact_tables.req_facts
    directory = users.drop_duplicates(subset=["user_id"], keep="first").set_index("user_id")
    names = user_name_lookup(users)
    observations = collect_observations(fact_tables)
    movement = last_movement_dates(fact_tables.event_facts)

    rollups = []
    for hm_user_id in get_unique_hms(req_facts):
        hm_reqs = [r for r in req_rollups if r.hm_user_id == hm_user_id]
        hm_actions = count_by_type([a for a in pending_actions if a.hm_user_id == hm_user_id])
        bucket_totals = {
            bucket: sum(r.candidates_by_bucket[bucket] for r in hm_reqs) for bucket in DecisionBucket
        }
        owned = req_facts["hiring_manager_id"] == hm_user_id
        hm_name = names.get(hm_user_id, UNKNOWN)
        profile = directory.loc[hm_user_id] if hm_user_id in directory.index else None

        rollups.append(HMRollup(
            hm_user_id=hm_user_id,
            hm_name=hm_name,
            team=_text(profile["team"]) if profile is not None else UNKNOWN,
            manager_user_id=_text(profile["manager_user_id"], None) if profile is not None else None,
            total_open_reqs=len(hm_reqs),
            total_closed_reqs=int((owned & ~req_facts["is_open"]).sum()),
            reqs_with_risk_flags=sum(1 for r in hm_reqs if r.risk_flags),
            total_active_candidates=sum(
                n for bucket, n in bucket_totals.items() if bucket != DecisionBucket.DONE
            ),
            candidates_by_bucket=bucket_totals,
            pending_actions_count=sum(hm_actions.values()),
            feedback_due_count=hm_actions[HMActionType.FEEDBACK_DUE],
            review_due_count=hm_actions[HMActionType.REVIEW_DUE],
            decision_due_count=hm_actions[HMActionType.DECISION_DUE],
            latency_metrics=hm_latency_metrics(hm_user_id, hm_name, fact_tables, observations, movement),
            function_mix=dict(Counter(r.function for r in hm_reqs)),
            level_mix=dict(Counter(r.level for r in hm_reqs)),
        ))

    logger.info("Built %d HM rollup(s)", len(rollups))
    return rollups
