"""Fill-date forecast from current pipeline position.

Uses fixed per-bucket median durations rather than anything learned from
the snapshot, so every forecast is marked as a fallback with no sample.
"""

import logging
from dataclasses import dataclass

import pandas as pd

from hiring_pipeline.domains.hiring_managers.facts import BucketGroups, furthest_bucket
from hiring_pipeline.domains.hiring_managers.taxonomy import PIPELINE_SEQUENCE, DecisionBucket
from hiring_pipeline.utils.transforms import round_half_up

logger = logging.getLogger(__name__)

STAGE_DURATION_MEDIANS: dict[DecisionBucket, int] = {
    DecisionBucket.OTHER: 5,
    DecisionBucket.HM_REVIEW: 3,
    DecisionBucket.HM_INTERVIEW_DECISION: 2,
    DecisionBucket.HM_FEEDBACK: 4,
    DecisionBucket.HM_FINAL_DECISION: 5,
    DecisionBucket.OFFER_DECISION: 7,
}

DEEP_PIPELINE = 5
SHALLOW_PIPELINE = 2
FALLBACK_COHORT = "Historical stage medians"


@dataclass(frozen=True)
class FillDateForecast:
    req_id: str
    req_title: str
    hm_user_id: str
    current_bucket: DecisionBucket
    active_candidates: int
    likely_days: int
    earliest_date: pd.Timestamp
    likely_date: pd.Timestamp
    late_date: pd.Timestamp
    sample_size: int = 0
    cohort_description: str = FALLBACK_COHORT
    is_fallback: bool = True


def density_multiplier(active_candidates: int) -> float:
    if active_candidates > DEEP_PIPELINE:
        return 0.8
    if active_candidates < SHALLOW_PIPELINE:
        return 1.5
    return 1.0


def remaining_days(current_bucket: DecisionBucket) -> int:
    """Sum of median durations from ``current_bucket`` to the end of the pipeline."""
    start = PIPELINE_SEQUENCE.index(current_bucket)
    return sum(STAGE_DURATION_MEDIANS[bucket] for bucket in PIPELINE_SEQUENCE[start:])


def forecast_fill_date(
    req_id: str,
    req_title: str,
    hm_user_id: str,
    candidates_by_bucket: BucketGroups,
    as_of: pd.Timestamp,
) -> FillDateForecast | None:
    active = sum(len(group) for bucket, group in candidates_by_bucket.items() if bucket != DecisionBucket.DONE)
    if active == 0:
        return None

    current = furthest_bucket(candidates_by_bucket)
    likely_days = round_half_up(remaining_days(current) * density_multiplier(active))
    earliest_days = max(1, round_half_up(likely_days * 0.7))
    late_days = round_half_up(likely_days * 1.5)

    return FillDateForecast(
        req_id=req_id,
        req_title=req_title,
        hm_user_id=hm_user_id,
        current_bucket=current,
        active_candidates=active,
        likely_days=likely_days,
        earliest_date=as_of + pd.Timedelta(days=earliest_days),
        likely_date=as_of + pd.Timedelta(days=likely_days),
        late_date=as_of + pd.Timedelta(days=late_days),
    )
