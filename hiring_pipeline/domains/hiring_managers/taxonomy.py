"""Canonical stage and HM decision-bucket taxonomy.

Canonical stages are the normalized pipeline positions every ATS label is
mapped onto. Decision buckets group them by who has to act next from the
hiring manager's point of view.
"""

from dataclasses import dataclass
from enum import StrEnum


class CanonicalStage(StrEnum):
    LEAD = "LEAD"
    APPLIED = "APPLIED"
    SCREEN = "SCREEN"
    HM_SCREEN = "HM_SCREEN"
    ONSITE = "ONSITE"
    FINAL = "FINAL"
    OFFER = "OFFER"
    HIRED = "HIRED"
    REJECTED = "REJECTED"
    WITHDREW = "WITHDREW"


class DecisionBucket(StrEnum):
    HM_REVIEW = "HM_REVIEW"
    HM_INTERVIEW_DECISION = "HM_INTERVIEW_DECISION"
    HM_FEEDBACK = "HM_FEEDBACK"
    HM_FINAL_DECISION = "HM_FINAL_DECISION"
    OFFER_DECISION = "OFFER_DECISION"
    DONE = "DONE"
    OTHER = "OTHER"


@dataclass(frozen=True)
class BucketInfo:
    label: str
    short_label: str
    description: str
    order: int


_STAGE_BUCKETS: dict[CanonicalStage, tuple[DecisionBucket, bool]] = {
    CanonicalStage.LEAD: (DecisionBucket.OTHER, False),
    CanonicalStage.APPLIED: (DecisionBucket.OTHER, False),
    CanonicalStage.SCREEN: (DecisionBucket.OTHER, False),
    CanonicalStage.HM_SCREEN: (DecisionBucket.HM_REVIEW, False),
    CanonicalStage.ONSITE: (DecisionBucket.HM_INTERVIEW_DECISION, False),
    CanonicalStage.FINAL: (DecisionBucket.HM_FINAL_DECISION, False),
    CanonicalStage.OFFER: (DecisionBucket.OFFER_DECISION, False),
    CanonicalStage.HIRED: (DecisionBucket.DONE, True),
    CanonicalStage.REJECTED: (DecisionBucket.DONE, True),
    CanonicalStage.WITHDREW: (DecisionBucket.DONE, True),
}

BUCKET_METADATA: dict[DecisionBucket, BucketInfo] = {
    DecisionBucket.OTHER: BucketInfo(
        "Pre-HM Stages", "Early", "Candidates not yet submitted to hiring manager", 0,
    ),
    DecisionBucket.HM_REVIEW: BucketInfo(
        "HM Review", "Review", "Candidates awaiting hiring manager review", 1,
    ),
    DecisionBucket.HM_INTERVIEW_DECISION: BucketInfo(
        "Interview Decision", "Interview", "Candidates in interview process", 2,
    ),
    DecisionBucket.HM_FEEDBACK: BucketInfo(
        "Feedback Due", "Feedback", "Interviews completed, awaiting feedback", 3,
    ),
    DecisionBucket.HM_FINAL_DECISION: BucketInfo(
        "Final Decision", "Decision", "Final round complete, decision pending", 4,
    ),
    DecisionBucket.OFFER_DECISION: BucketInfo(
        "Offer Stage", "Offer", "Offer extended or pending acceptance", 5,
    ),
    DecisionBucket.DONE: BucketInfo(
        "Complete", "Done", "Hired, rejected, or withdrew", 6,
    ),
}

# Least to most advanced; DONE is never part of an open pipeline.
PIPELINE_SEQUENCE: tuple[DecisionBucket, ...] = (
    DecisionBucket.OTHER,
    DecisionBucket.HM_REVIEW,
    DecisionBucket.HM_INTERVIEW_DECISION,
    DecisionBucket.HM_FEEDBACK,
    DecisionBucket.HM_FINAL_DECISION,
    DecisionBucket.OFFER_DECISION,
)

LATE_STAGE_BUCKETS: tuple[DecisionBucket, ...] = (
    DecisionBucket.HM_FINAL_DECISION,
    DecisionBucket.OFFER_DECISION,
)

_STAGE_ORDER: dict[CanonicalStage, int] = {
    CanonicalStage.LEAD: 0,
    CanonicalStage.APPLIED: 1,
    CanonicalStage.SCREEN: 2,
    CanonicalStage.HM_SCREEN: 3,
    CanonicalStage.ONSITE: 4,
    CanonicalStage.FINAL: 5,
    CanonicalStage.OFFER: 6,
    CanonicalStage.HIRED: 7,
    CanonicalStage.REJECTED: -1,
    CanonicalStage.WITHDREW: -1,
}


def _as_stage(stage: str | None) -> CanonicalStage | None:
    if not stage:
        return None
    try:
        return CanonicalStage(stage)
    except ValueError:
        return None


def get_bucket_for_stage(stage: str | None) -> DecisionBucket:
    """Map a canonical stage to its decision bucket; anything unknown is OTHER."""
    match _as_stage(stage):
        case None:
            return DecisionBucket.OTHER
        case canonical:
            return _STAGE_BUCKETS[canonical][0]


def is_terminal_stage(stage: str | None) -> bool:
    canonical = _as_stage(stage)
    return canonical is not None and _STAGE_BUCKETS[canonical][1]


def get_stages_for_bucket(bucket: DecisionBucket) -> list[CanonicalStage]:
    return [stage for stage, (b, _) in _STAGE_BUCKETS.items() if b == bucket]


def get_bucket_order(bucket: DecisionBucket) -> int:
    info = BUCKET_METADATA.get(bucket)
    return info.order if info else 99


def get_ordered_buckets() -> list[DecisionBucket]:
    """Funnel buckets in display order, without the OTHER and DONE bookends."""
    ordered = sorted(BUCKET_METADATA, key=get_bucket_order)
    return [b for b in ordered if b not in (DecisionBucket.OTHER, DecisionBucket.DONE)]


def get_stage_order(stage: str | None) -> int:
    """Progress rank of a stage; terminal non-hire and unknown stages are -1."""
    canonical = _as_stage(stage)
    return _STAGE_ORDER[canonical] if canonical is not None else -1
