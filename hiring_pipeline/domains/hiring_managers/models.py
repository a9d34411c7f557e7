"""Pandera schemas and enumerations for hiring-manager analytics data."""

from enum import StrEnum

import pandera as pa
from pandera import Column, Check

from hiring_pipeline.domains.hiring_managers.taxonomy import DecisionBucket

type ReqID = str
type CandidateID = str
type UserID = str

UNKNOWN = "Unknown"


class EventType(StrEnum):
    STAGE_CHANGE = "STAGE_CHANGE"
    SCREEN_COMPLETED = "SCREEN_COMPLETED"
    INTERVIEW_SCHEDULED = "INTERVIEW_SCHEDULED"
    INTERVIEW_COMPLETED = "INTERVIEW_COMPLETED"
    FEEDBACK_SUBMITTED = "FEEDBACK_SUBMITTED"
    OFFER_REQUESTED = "OFFER_REQUESTED"
    OFFER_APPROVED = "OFFER_APPROVED"
    OFFER_EXTENDED = "OFFER_EXTENDED"
    OFFER_ACCEPTED = "OFFER_ACCEPTED"
    OFFER_DECLINED = "OFFER_DECLINED"
    CANDIDATE_WITHDREW = "CANDIDATE_WITHDREW"
    REJECTION_SENT = "REJECTION_SENT"
    NOTE_ADDED = "NOTE_ADDED"
    EMAIL_SENT = "EMAIL_SENT"
    OUTREACH_SENT = "OUTREACH_SENT"


MOVEMENT_EVENT_TYPES: frozenset[str] = frozenset(t.value for t in (
    EventType.STAGE_CHANGE,
    EventType.INTERVIEW_COMPLETED,
    EventType.OFFER_EXTENDED,
    EventType.OFFER_ACCEPTED,
))

INACTIVE_DISPOSITIONS: frozenset[str] = frozenset({"rejected", "withdrawn", "hired"})


class StallReasonCode(StrEnum):
    AWAITING_HM_FEEDBACK = "AWAITING_HM_FEEDBACK"
    AWAITING_HM_REVIEW = "AWAITING_HM_REVIEW"
    PIPELINE_THIN = "PIPELINE_THIN"
    NO_ACTIVITY = "NO_ACTIVITY"
    OFFER_STALL = "OFFER_STALL"
    LATE_STAGE_EMPTY = "LATE_STAGE_EMPTY"
    NONE = "NONE"


class RiskFlagCode(StrEnum):
    NO_MOVEMENT = "NO_MOVEMENT"
    LOW_PIPELINE = "LOW_PIPELINE"
    FEEDBACK_BACKLOG = "FEEDBACK_BACKLOG"
    HM_REVIEW_BACKLOG = "HM_REVIEW_BACKLOG"


class HMActionType(StrEnum):
    FEEDBACK_DUE = "FEEDBACK_DUE"
    REVIEW_DUE = "REVIEW_DUE"
    DECISION_DUE = "DECISION_DUE"


REQUISITION_OPTIONAL_COLUMNS = [
    "job_family", "location_type", "location_region", "location_city",
]
CANDIDATE_OPTIONAL_COLUMNS = [
    "name", "source", "applied_at", "current_stage_entered_at",
    "hired_at", "offer_extended_at", "offer_accepted_at",
]
EVENT_OPTIONAL_COLUMNS = ["event_id", "actor_user_id", "from_stage", "to_stage", "metadata_json"]
USER_OPTIONAL_COLUMNS = ["role", "team", "manager_user_id", "email"]


requisition_schema = pa.DataFrameSchema(
    {
        "req_id": Column(nullable=False, unique=True),
        "req_title": Column(nullable=True),
        "function": Column(nullable=True),
        "level": Column(nullable=True),
        "status": Column(nullable=True),
        "opened_at": Column(pa.DateTime, nullable=True, coerce=True),
        "closed_at": Column(pa.DateTime, nullable=True, coerce=True),
        "hiring_manager_id": Column(nullable=True),
        "recruiter_id": Column(nullable=True),
        "job_family": Column(nullable=True, required=False),
        "location_type": Column(nullable=True, required=False),
        "location_region": Column(nullable=True, required=False),
        "location_city": Column(nullable=True, required=False),
    },
    strict=False,
)


candidate_schema = pa.DataFrameSchema(
    {
        "candidate_id": Column(nullable=False),
        "req_id": Column(nullable=True),
        "current_stage": Column(nullable=True),
        "disposition": Column(nullable=True),
        "source": Column(nullable=True, required=False),
        "applied_at": Column(pa.DateTime, nullable=True, coerce=True, required=False),
        "current_stage_entered_at": Column(pa.DateTime, nullable=True, coerce=True, required=False),
        "hired_at": Column(pa.DateTime, nullable=True, coerce=True, required=False),
        "offer_extended_at": Column(pa.DateTime, nullable=True, coerce=True, required=False),
        "offer_accepted_at": Column(pa.DateTime, nullable=True, coerce=True, required=False),
    },
    strict=False,
)


event_schema = pa.DataFrameSchema(
    {
        "candidate_id": Column(nullable=True),
        "req_id": Column(nullable=True),
        "event_type": Column(nullable=False),
        "event_at": Column(pa.DateTime, nullable=False, coerce=True),
        "from_stage": Column(nullable=True, required=False),
        "to_stage": Column(nullable=True, required=False),
        "actor_user_id": Column(nullable=True, required=False),
    },
    strict=False,
)


user_schema = pa.DataFrameSchema(
    {
        "user_id": Column(nullable=False),
        "name": Column(nullable=True),
        "team": Column(nullable=True, required=False),
        "manager_user_id": Column(nullable=True, required=False),
    },
    strict=False,
)


_STALL_CODES = [code.value for code in StallReasonCode]
_BUCKET_COLUMNS = {
    f"bucket_{bucket.value.lower()}": Column(int, Check.greater_than_or_equal_to(0))
    for bucket in DecisionBucket
}


req_rollup_frame_schema = pa.DataFrameSchema(
    {
        "req_id": Column(nullable=False, unique=True),
        "hm_user_id": Column(nullable=False),
        "hm_name": Column(nullable=False),
        "req_age_days": Column(int),
        "pipeline_depth": Column(int, Check.greater_than_or_equal_to(0)),
        "primary_stall_reason": Column(checks=Check.isin(_STALL_CODES)),
        "risk_flags": Column(nullable=False),
        **_BUCKET_COLUMNS,
    },
    strict=False,
)


hm_rollup_frame_schema = pa.DataFrameSchema(
    {
        "hm_user_id": Column(nullable=False, unique=True),
        "hm_name": Column(nullable=False),
        "total_open_reqs": Column(int, Check.greater_than_or_equal_to(0)),
        "total_closed_reqs": Column(int, Check.greater_than_or_equal_to(0)),
        "total_active_candidates": Column(int, Check.greater_than_or_equal_to(0)),
        "pending_actions_count": Column(int, Check.greater_than_or_equal_to(0)),
    },
    strict=False,
)


pending_action_frame_schema = pa.DataFrameSchema(
    {
        "action_type": Column(checks=Check.isin([t.value for t in HMActionType])),
        "hm_user_id": Column(nullable=False),
        "req_id": Column(nullable=False),
        "candidate_id": Column(nullable=False),
        "days_waiting": Column(int),
        "days_overdue": Column(int),
    },
    strict=False,
)
