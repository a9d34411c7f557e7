import pandas as pd
import pytest

from hiring_pipeline.domains.hiring_managers.benchmarks import (
    COHORT_DESCRIPTION,
    RANK_FASTER,
    RANK_SLOWER,
    RANK_TYPICAL,
    percentile_rank,
)
from hiring_pipeline.domains.hiring_managers.engine import analyze
from hiring_pipeline.domains.hiring_managers.latency import compute_latency_stats
from hiring_pipeline.domains.hiring_managers.models import RiskFlagCode, StallReasonCode
from hiring_pipeline.domains.hiring_managers.taxonomy import DecisionBucket


@pytest.fixture
def result(snapshot, stage_config, as_of):
    return analyze(
        snapshot["requisitions"], snapshot["candidates"], snapshot["events"], snapshot["users"],
        stage_config, as_of,
    )


def test_one_req_rollup_per_open_req(result):
    assert [r.req_id for r in result.req_rollups] == ["R1", "R3"]


def test_req_rollup_contents(result):
    r1 = result.req_rollups[0]
    assert r1.hm_name == "Alice Chen"
    assert r1.recruiter_name == "Rita Gomez"
    assert r1.location == "Austin"
    assert r1.req_age_days == 60
    assert r1.last_movement_date == pd.Timestamp("2024-02-27")
    assert r1.days_since_last_movement == 2
    assert r1.pipeline_depth == 3
    assert r1.candidates_by_bucket[DecisionBucket.HM_REVIEW] == 1
    assert r1.candidates_by_bucket[DecisionBucket.HM_FEEDBACK] == 0
    assert r1.candidates_by_bucket[DecisionBucket.DONE] == 0
    assert r1.primary_stall_reason.code == StallReasonCode.AWAITING_HM_FEEDBACK
    assert r1.forecast.likely_days == 7

    r3 = result.req_rollups[1]
    assert r3.location == "US-East"
    assert r3.primary_stall_reason.code == StallReasonCode.PIPELINE_THIN
    assert [f.code for f in r3.risk_flags] == [RiskFlagCode.LOW_PIPELINE]


def test_bucket_counts_cover_every_bucket_and_sum_to_depth(result):
    for rollup in result.req_rollups:
        assert set(rollup.candidates_by_bucket) == set(DecisionBucket)
        active = sum(n for b, n in rollup.candidates_by_bucket.items() if b != DecisionBucket.DONE)
        assert active == rollup.pipeline_depth


def test_hm_rollups(result):
    hm1, hm2 = result.hm_rollups
    assert (hm1.hm_user_id, hm2.hm_user_id) == ("hm1", "hm2")

    assert hm1.team == "Platform"
    assert hm1.manager_user_id == "vp1"
    assert hm1.total_open_reqs == 1
    assert hm1.total_closed_reqs == 1
    assert hm1.reqs_with_risk_flags == 1
    assert hm1.total_active_candidates == 3
    assert hm1.pending_actions_count == 2
    assert (hm1.feedback_due_count, hm1.review_due_count, hm1.decision_due_count) == (1, 1, 0)
    assert hm1.function_mix == {"Engineering": 1}
    assert hm1.level_mix == {"L5": 1}

    assert hm2.manager_user_id is None
    assert hm2.decision_due_count == 1
    assert hm2.function_mix == {"Data": 1}


def test_hm_bucket_totals_match_req_rollups(result):
    for hm in result.hm_rollups:
        reqs = [r for r in result.req_rollups if r.hm_user_id == hm.hm_user_id]
        for bucket in DecisionBucket:
            assert hm.candidates_by_bucket[bucket] == sum(r.candidates_by_bucket[bucket] for r in reqs)


def test_peer_comparison_attached(result):
    hm1, hm2 = result.hm_rollups
    feedback = hm1.peer_comparison.metrics[0]
    assert hm1.peer_comparison.cohort_description == COHORT_DESCRIPTION
    assert hm1.peer_comparison.cohort_size == 2
    assert feedback.metric_name == "Feedback latency"
    assert feedback.hm_value == 2
    assert feedback.percentile_rank == RANK_FASTER
    assert feedback.insufficient_data
    assert not feedback.is_higher_better

    # hm2 has no completed feedback, so no rank
    assert hm2.peer_comparison.metrics[0].percentile_rank is None


def test_pending_actions_exposed_on_result(result):
    assert len(result.pending_actions) == 3


def test_analyze_is_deterministic(snapshot, stage_config, as_of):
    args = (snapshot["requisitions"], snapshot["candidates"], snapshot["events"], snapshot["users"])
    first = analyze(*args, stage_config, as_of)
    second = analyze(*args, stage_config, as_of)
    assert first.req_rollups == second.req_rollups
    assert first.pending_actions == second.pending_actions
    assert [h.latency_metrics for h in first.hm_rollups] == [h.latency_metrics for h in second.hm_rollups]


@pytest.mark.parametrize(
    "value, expected",
    [(1, RANK_FASTER), (3, RANK_FASTER), (4, RANK_TYPICAL), (9, RANK_TYPICAL), (10, RANK_SLOWER), (None, None)],
)
def test_percentile_rank_bands(value, expected):
    cohort = compute_latency_stats([1, 2, 3, 3, 3, 8, 9, 9, 9])
    assert (cohort.median, cohort.p90) == (3, 9)
    assert percentile_rank(value, cohort) == expected


def test_percentile_rank_without_cohort():
    assert percentile_rank(5, compute_latency_stats([])) is None


def test_enough_feedback_samples_are_ranked(make_req, make_candidate, make_event, stage_config, users):
    candidates, events = [], []
    for n, (done, submitted) in enumerate(
        [("2024-02-01", "2024-02-02"), ("2024-02-05", "2024-02-08"), ("2024-02-10", "2024-02-14")], start=1,
    ):
        candidates.append(make_candidate(f"C{n}", "R1", "Onsite"))
        events.append(make_event(f"C{n}", "R1", "INTERVIEW_COMPLETED", done))
        events.append(make_event(f"C{n}", "R1", "FEEDBACK_SUBMITTED", submitted))

    result = analyze([make_req("R1")], candidates, events, users, stage_config, pd.Timestamp("2024-03-01"))

    [hm1] = result.hm_rollups
    feedback = hm1.peer_comparison.metrics[0]
    assert hm1.latency_metrics.feedback_latency.sample_size == 3
    assert feedback.hm_value == 3
    assert feedback.insufficient_data is False
