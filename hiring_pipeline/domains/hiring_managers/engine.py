"""One-call facade over the HM fact and metrics engine."""

import logging
from dataclasses import dataclass

from hiring_pipeline.config import DEFAULT_HM_RULES, HMRulesConfig
from hiring_pipeline.domains.hiring_managers.actions import HMPendingAction, find_pending_actions
from hiring_pipeline.domains.hiring_managers.benchmarks import attach_peer_comparisons, build_peer_comparisons
from hiring_pipeline.domains.hiring_managers.facts import FactTables, facts_from_snapshot
from hiring_pipeline.domains.hiring_managers.rollups import (
    HMReqRollup,
    HMRollup,
    build_hm_req_rollups,
    build_hm_rollups,
)
from hiring_pipeline.domains.hiring_managers.stages import StageMappingConfig
from hiring_pipeline.domains.hiring_managers.transform import Records, prepare_inputs

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HMAnalyticsResult:
    fact_tables: FactTables
    req_rollups: list[HMReqRollup]
    hm_rollups: list[HMRollup]
    pending_actions: list[HMPendingAction]


def analyze(
    requisitions: Records,
    candidates: Records,
    events: Records,
    users: Records,
    stage_config: StageMappingConfig,
    as_of,
    rules: HMRulesConfig = DEFAULT_HM_RULES,
) -> HMAnalyticsResult:
    """Run the whole engine on one snapshot.

    Deterministic for identical inputs, including ``as_of``; nothing is cached
    between calls.
    """
    snapshot = prepare_inputs(requisitions, candidates, events, users)
    fact_tables = facts_from_snapshot(snapshot, stage_config, as_of)

    pending_actions = find_pending_actions(fact_tables, snapshot.users, rules)
    req_rollups = build_hm_req_rollups(fact_tables, snapshot.users, rules)
    hm_rollups = build_hm_rollups(fact_tables, snapshot.users, req_rollups, pending_actions, rules)
    comparisons = build_peer_comparisons([r.latency_metrics for r in hm_rollups])
    hm_rollups = attach_peer_comparisons(hm_rollups, comparisons)

    logger.info(
        "HM analytics complete: %d req rollup(s), %d HM rollup(s), %d pending action(s)",
        len(req_rollups), len(hm_rollups), len(pending_actions),
    )
    return HMAnalyticsResult(
        fact_tables=fact_tables,
        req_rollups=req_rollups,
        hm_rollups=hm_rollups,
        pending_actions=pending_actions,
    )
