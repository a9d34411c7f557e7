"""Overdue hiring-manager actions across open requisitions."""

import logging
from dataclasses import dataclass

import pandas as pd

from hiring_pipeline.config import DEFAULT_HM_RULES, HMRulesConfig
from hiring_pipeline.domains.hiring_managers.facts import FactTables, rows_by_req, user_name_lookup
from hiring_pipeline.domains.hiring_managers.models import UNKNOWN, HMActionType
from hiring_pipeline.domains.hiring_managers.stalls import find_pending_feedback
from hiring_pipeline.domains.hiring_managers.taxonomy import DecisionBucket

logger = logging.getLogger(__name__)

PENDING_ACTION_SUGGESTIONS: dict[HMActionType, str] = {
    HMActionType.FEEDBACK_DUE: "Submit interview feedback so the candidate can move forward",
    HMActionType.REVIEW_DUE: "Review the submitted profile and advance or decline the candidate",
    HMActionType.DECISION_DUE: "Make a hire / no-hire call on the final-round candidate",
}

# Candidate-level actions: bucket the candidate sits in and the rule threshold that makes it overdue.
_STAGE_ACTIONS: tuple[tuple[HMActionType, DecisionBucket, str], ...] = (
    (HMActionType.REVIEW_DUE, DecisionBucket.HM_REVIEW, "hm_review_due_days"),
    (HMActionType.DECISION_DUE, DecisionBucket.HM_FINAL_DECISION, "decision_due_days"),
)


@dataclass(frozen=True)
class HMPendingAction:
    action_type: HMActionType
    hm_user_id: str
    hm_name: str
    req_id: str
    req_title: str
    candidate_id: str
    candidate_name: str
    trigger_date: pd.Timestamp
    days_waiting: int
    days_overdue: int
    suggested_action: str


def find_pending_actions(
    fact_tables: FactTables,
    users: pd.DataFrame,
    rules: HMRulesConfig = DEFAULT_HM_RULES,
) -> list[HMPendingAction]:
    """One action per overdue feedback, review or decision item on an open req.

    Items are discovered req by req (feedback, then review, then decision) and
    returned most overdue first; equal ``days_overdue`` keep discovery order.
    """
    req_facts, as_of = fact_tables.req_facts, fact_tables.as_of
    hm_names = user_name_lookup(users)
    events_by_req = rows_by_req(fact_tables.event_facts)
    candidates_by_req = rows_by_req(fact_tables.candidate_facts)
    empty_events = fact_tables.event_facts.iloc[0:0]
    empty_candidates = fact_tables.candidate_facts.iloc[0:0]

    actions: list[HMPendingAction] = []
    for req in req_facts[req_facts["is_open"]].itertuples(index=False):
        hm_user_id = req.hiring_manager_id or ""
        candidates = candidates_by_req.get(req.req_id, empty_candidates)
        names = dict(zip(candidates["candidate_id"], candidates["candidate_name"]))

        def action(action_type, candidate_id, trigger_date, days_waiting, days_overdue):
            return HMPendingAction(
                action_type=action_type,
                hm_user_id=hm_user_id,
                hm_name=hm_names.get(hm_user_id, UNKNOWN),
                req_id=req.req_id,
                req_title=req.req_title if isinstance(req.req_title, str) else UNKNOWN,
                candidate_id=candidate_id,
                candidate_name=names.get(candidate_id, UNKNOWN),
                trigger_date=trigger_date,
                days_waiting=days_waiting,
                days_overdue=days_overdue,
                suggested_action=PENDING_ACTION_SUGGESTIONS[action_type],
            )

        for pending in find_pending_feedback(events_by_req.get(req.req_id, empty_events), as_of, rules):
            actions.append(action(
                HMActionType.FEEDBACK_DUE,
                pending.candidate_id,
                pending.interview_at,
                pending.days_waiting,
                pending.days_overdue,
            ))

        for action_type, bucket, threshold_name in _STAGE_ACTIONS:
            threshold = getattr(rules, threshold_name)
            overdue = candidates[
                candidates["is_active"]
                & (candidates["decision_bucket"] == bucket)
                & (candidates["stage_age_days"] > threshold)
            ]
            for cand in overdue.itertuples(index=False):
                trigger = cand.stage_entered_at if pd.notna(cand.stage_entered_at) else as_of
                actions.append(action(
                    action_type,
                    cand.candidate_id,
                    trigger,
                    int(cand.stage_age_days),
                    int(cand.stage_age_days) - threshold,
                ))

    actions.sort(key=lambda a: a.days_overdue, reverse=True)
    logger.info("Found %d pending HM action(s) across %d open req(s)",
                len(actions), int(req_facts["is_open"].sum()))
    return actions


def count_by_type(actions: list[HMPendingAction]) -> dict[HMActionType, int]:
    counts = {action_type: 0 for action_type in HMActionType}
    for a in actions:
        counts[a.action_type] += 1
    return counts
