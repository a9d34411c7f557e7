"""Peer benchmarks: each HM's latency medians against the cohort of all HMs.

The percentile rank is a three-band heuristic, not a true percentile. Lower
latency is better, so a *higher* rank means a faster HM:

- at or below the cohort median: 75
- above the cohort p90: 10
- anything in between: 40
"""

import logging
from dataclasses import dataclass, replace

from hiring_pipeline.domains.hiring_managers.latency import (
    HMLatencyMetrics,
    LatencyStats,
    compute_latency_stats,
)

logger = logging.getLogger(__name__)

MIN_SAMPLE_SIZE = 3
COHORT_DESCRIPTION = "All hiring managers"

RANK_FASTER = 75
RANK_TYPICAL = 40
RANK_SLOWER = 10

LATENCY_METRICS: tuple[tuple[str, str], ...] = (
    ("Feedback latency", "feedback_latency"),
    ("Review latency", "review_latency"),
    ("Final decision latency", "final_decision_latency"),
)


@dataclass(frozen=True)
class PeerComparisonMetric:
    metric_name: str
    hm_value: float | None
    cohort_median: float | None
    cohort_p75: float | None
    percentile_rank: int | None
    is_higher_better: bool
    insufficient_data: bool


@dataclass(frozen=True)
class PeerComparison:
    hm_user_id: str
    hm_name: str
    cohort_description: str
    cohort_size: int
    metrics: tuple[PeerComparisonMetric, ...]


def cohort_latency_stats(latency_metrics: list[HMLatencyMetrics]) -> dict[str, LatencyStats]:
    """Stats over per-HM medians: one sample per HM, HMs without a median skipped."""
    cohort = {}
    for _, attr in LATENCY_METRICS:
        medians = [getattr(m, attr).median for m in latency_metrics if getattr(m, attr).median is not None]
        cohort[attr] = compute_latency_stats(medians)
    return cohort


def percentile_rank(value: float | None, cohort: LatencyStats) -> int | None:
    if value is None or cohort.median is None:
        return None
    if value <= cohort.median:
        return RANK_FASTER
    if cohort.p90 is not None and value > cohort.p90:
        return RANK_SLOWER
    return RANK_TYPICAL


def compare_to_peers(
    metrics: HMLatencyMetrics,
    cohort: dict[str, LatencyStats],
    cohort_size: int,
) -> PeerComparison:
    compared = []
    for name, attr in LATENCY_METRICS:
        own: LatencyStats = getattr(metrics, attr)
        compared.append(PeerComparisonMetric(
            metric_name=name,
            hm_value=own.median,
            cohort_median=cohort[attr].median,
            cohort_p75=cohort[attr].p75,
            percentile_rank=percentile_rank(own.median, cohort[attr]),
            is_higher_better=False,
            insufficient_data=own.sample_size < MIN_SAMPLE_SIZE,
        ))

    return PeerComparison(
        hm_user_id=metrics.hm_user_id,
        hm_name=metrics.hm_name,
        cohort_description=COHORT_DESCRIPTION,
        cohort_size=cohort_size,
        metrics=tuple(compared),
    )


def build_peer_comparisons(latency_metrics: list[HMLatencyMetrics]) -> dict[str, PeerComparison]:
    cohort = cohort_latency_stats(latency_metrics)
    comparisons = {
        m.hm_user_id: compare_to_peers(m, cohort, len(latency_metrics))
        for m in latency_metrics
    }
    logger.info("Built peer comparisons for %d hiring manager(s)", len(comparisons))
    return comparisons


def attach_peer_comparisons(hm_rollups: list, comparisons: dict[str, PeerComparison]) -> list:
    """Return copies of the HM rollups with ``peer_comparison`` filled in."""
    return [
        replace(rollup, peer_comparison=comparisons.get(rollup.hm_user_id))
        for rollup in hm_rollups
    ]
