"""Stall reasons and risk flags for open requisitions.

The primary stall reason comes from an ordered rule chain: each rule either
returns a ``StallReason`` or ``None`` and the first hit wins. Risk flags are
independent of that chain and a req may carry any number of them.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

import pandas as pd

from hiring_pipeline.config import HMRulesConfig
from hiring_pipeline.domains.hiring_managers.facts import BucketGroups
from hiring_pipeline.domains.hiring_managers.latency import pair_intervals
from hiring_pipeline.domains.hiring_managers.models import EventType, RiskFlagCode, StallReasonCode
from hiring_pipeline.domains.hiring_managers.taxonomy import LATE_STAGE_BUCKETS, DecisionBucket
from hiring_pipeline.utils.transforms import days_since

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StallReason:
    code: StallReasonCode
    explanation: str
    evidence: str
    priority: int


@dataclass(frozen=True)
class RiskFlag:
    code: RiskFlagCode
    label: str
    severity: str


@dataclass(frozen=True)
class StallClassification:
    primary_stall_reason: StallReason
    risk_flags: tuple[RiskFlag, ...]


@dataclass(frozen=True)
class PendingFeedback:
    candidate_id: str
    interview_at: pd.Timestamp
    days_waiting: int
    days_overdue: int


STALL_REASON_EXPLANATIONS: dict[StallReasonCode, tuple[str, int]] = {
    StallReasonCode.AWAITING_HM_FEEDBACK: ("Interviews are complete but HM feedback has not been submitted", 1),
    StallReasonCode.AWAITING_HM_REVIEW: ("Candidates are waiting on the hiring manager to review them", 2),
    StallReasonCode.PIPELINE_THIN: ("Too few active candidates to sustain the search", 3),
    StallReasonCode.NO_ACTIVITY: ("No candidate has moved on this req recently", 4),
    StallReasonCode.OFFER_STALL: ("An extended offer has not been resolved", 5),
    StallReasonCode.LATE_STAGE_EMPTY: ("The req has aged with nobody in final rounds or offer", 6),
    StallReasonCode.NONE: ("No stall detected", 99),
}

RISK_FLAG_DEFINITIONS: dict[RiskFlagCode, RiskFlag] = {
    RiskFlagCode.NO_MOVEMENT: RiskFlag(RiskFlagCode.NO_MOVEMENT, "No recent movement", "danger"),
    RiskFlagCode.LOW_PIPELINE: RiskFlag(RiskFlagCode.LOW_PIPELINE, "Thin pipeline", "warning"),
    RiskFlagCode.FEEDBACK_BACKLOG: RiskFlag(RiskFlagCode.FEEDBACK_BACKLOG, "Feedback overdue", "warning"),
    RiskFlagCode.HM_REVIEW_BACKLOG: RiskFlag(RiskFlagCode.HM_REVIEW_BACKLOG, "Review backlog", "info"),
}


def stall_reason(code: StallReasonCode, evidence: str) -> StallReason:
    explanation, priority = STALL_REASON_EXPLANATIONS[code]
    return StallReason(code=code, explanation=explanation, evidence=evidence, priority=priority)


def find_pending_feedback(
    req_events: pd.DataFrame,
    as_of: pd.Timestamp,
    rules: HMRulesConfig,
) -> list[PendingFeedback]:
    """Completed interviews for one req with no later feedback from the same candidate.

    Every unmatched interview is returned, oldest first; ``days_overdue`` can be
    negative when the interview is still inside the feedback window.
    """
    interviews = req_events[req_events["event_type"] == EventType.INTERVIEW_COMPLETED]
    feedback = req_events[req_events["event_type"] == EventType.FEEDBACK_SUBMITTED]
    paired = pair_intervals(interviews.sort_values("event_at", kind="stable"), feedback)
    unmatched = paired[paired["end_at"].isna()]
    waiting = days_since(unmatched["start_at"], as_of)

    return [
        PendingFeedback(
            candidate_id=candidate_id,
            interview_at=interview_at,
            days_waiting=int(days),
            days_overdue=int(days) - rules.feedback_due_days,
        )
        for candidate_id, interview_at, days in zip(unmatched["candidate_id"], unmatched["start_at"], waiting)
    ]


@dataclass(frozen=True)
class _ReqState:
    req_age_days: int
    by_bucket: BucketGroups
    pending_feedback: list[PendingFeedback]
    days_since_last_movement: int | None
    rules: HMRulesConfig

    @property
    def active_count(self) -> int:
        return sum(len(group) for bucket, group in self.by_bucket.items() if bucket != DecisionBucket.DONE)

    def aged(self, bucket: DecisionBucket, threshold: int) -> pd.DataFrame:
        group = self.by_bucket[bucket]
        return group[group["stage_age_days"] > threshold]


def _awaiting_feedback(state: _ReqState) -> StallReason | None:
    if not state.pending_feedback:
        return None
    oldest = max(f.days_overdue for f in state.pending_feedback)
    return stall_reason(
        StallReasonCode.AWAITING_HM_FEEDBACK,
        f"{len(state.pending_feedback)} interview(s) awaiting feedback, oldest {oldest} days overdue",
    )


def _awaiting_review(state: _ReqState) -> StallReason | None:
    backlog = state.aged(DecisionBucket.HM_REVIEW, state.rules.hm_review_due_days)
    if backlog.empty:
        return None
    return stall_reason(
        StallReasonCode.AWAITING_HM_REVIEW,
        f"{len(backlog)} candidate(s) waiting {int(backlog['stage_age_days'].max())}+ days for review",
    )


def _pipeline_thin(state: _ReqState) -> StallReason | None:
    active = state.active_count
    if active >= state.rules.low_pipeline_threshold:
        return None
    return stall_reason(
        StallReasonCode.PIPELINE_THIN,
        f"Only {active} active candidate(s) (threshold: {state.rules.low_pipeline_threshold})",
    )


def _no_activity(state: _ReqState) -> StallReason | None:
    days = state.days_since_last_movement
    if days is None or days <= state.rules.no_movement_days:
        return None
    return stall_reason(StallReasonCode.NO_ACTIVITY, f"No pipeline movement in {days} days")


def _offer_stall(state: _ReqState) -> StallReason | None:
    stalled = state.aged(DecisionBucket.OFFER_DECISION, state.rules.offer_stall_days)
    if stalled.empty:
        return None
    return stall_reason(
        StallReasonCode.OFFER_STALL,
        f"{len(stalled)} offer(s) pending response for {int(stalled['stage_age_days'].max())} days",
    )


def _late_stage_empty(state: _ReqState) -> StallReason | None:
    if state.req_age_days <= state.rules.late_stage_empty_days:
        return None
    if any(not state.by_bucket[bucket].empty for bucket in LATE_STAGE_BUCKETS):
        return None
    return stall_reason(
        StallReasonCode.LATE_STAGE_EMPTY,
        f"Open {state.req_age_days} days with no candidates in final decision or offer",
    )


STALL_RULES: tuple[Callable[[_ReqState], StallReason | None], ...] = (
    _awaiting_feedback,
    _awaiting_review,
    _pipeline_thin,
    _no_activity,
    _offer_stall,
    _late_stage_empty,
)


def primary_stall_reason(state: _ReqState) -> StallReason:
    for rule in STALL_RULES:
        reason = rule(state)
        if reason is not None:
            return reason
    return stall_reason(StallReasonCode.NONE, "Req is progressing normally")


def risk_flags(state: _ReqState) -> tuple[RiskFlag, ...]:
    checks = (
        (RiskFlagCode.NO_MOVEMENT, _no_activity(state) is not None),
        (RiskFlagCode.LOW_PIPELINE, _pipeline_thin(state) is not None),
        (RiskFlagCode.FEEDBACK_BACKLOG, bool(state.pending_feedback)),
        (RiskFlagCode.HM_REVIEW_BACKLOG, _awaiting_review(state) is not None),
    )
    return tuple(RISK_FLAG_DEFINITIONS[code] for code, hit in checks if hit)


def _req_state(req, candidates_by_bucket, event_facts, days_since_last_movement, as_of, rules) -> _ReqState:
    req_events = event_facts[event_facts["req_id"] == req["req_id"]]
    return _ReqState(
        req_age_days=int(req["req_age_days"]),
        by_bucket=candidates_by_bucket,
        pending_feedback=find_pending_feedback(req_events, as_of, rules),
        days_since_last_movement=days_since_last_movement,
        rules=rules,
    )


def classify(
    req,
    candidates_by_bucket: BucketGroups,
    event_facts: pd.DataFrame,
    days_since_last_movement: int | None,
    as_of: pd.Timestamp,
    rules: HMRulesConfig,
) -> StallClassification:
    """Primary stall reason and risk flags for one open requisition.

    ``req`` is a req-facts row (anything indexable by column name);
    ``candidates_by_bucket`` holds that req's active candidates only.
    """
    state = _req_state(req, candidates_by_bucket, event_facts, days_since_last_movement, as_of, rules)
    classification = StallClassification(
        primary_stall_reason=primary_stall_reason(state),
        risk_flags=risk_flags(state),
    )
    logger.debug(
        "Req %s classified as %s with %d risk flag(s)",
        req["req_id"],
        classification.primary_stall_reason.code,
        len(classification.risk_flags),
    )
    return classification
