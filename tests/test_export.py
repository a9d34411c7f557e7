import pandas as pd
import pytest

from hiring_pipeline.domains.hiring_managers import output_frames
from hiring_pipeline.domains.hiring_managers.engine import analyze
from hiring_pipeline.domains.hiring_managers.export import (
    HM_ROLLUP_DTYPES,
    PENDING_ACTION_DTYPES,
    REQ_ROLLUP_DTYPES,
    hm_rollups_to_frame,
    pending_actions_to_frame,
    req_rollups_to_frame,
    validate_outputs,
)


@pytest.fixture
def frames(snapshot, stage_config, as_of):
    result = analyze(
        snapshot["requisitions"], snapshot["candidates"], snapshot["events"], snapshot["users"],
        stage_config, as_of,
    )
    return output_frames(result)


def test_outputs_pass_schema_checks(frames):
    results = validate_outputs(frames)
    assert all(r["valid"] for r in results.values()), results


def test_req_rollup_frame(frames):
    reqs = frames["req_rollups"].set_index("req_id")
    assert list(frames["req_rollups"].columns) == list(REQ_ROLLUP_DTYPES)
    assert reqs.loc["R1", "risk_flags"] == "FEEDBACK_BACKLOG;HM_REVIEW_BACKLOG"
    assert reqs.loc["R1", "primary_stall_reason"] == "AWAITING_HM_FEEDBACK"
    assert reqs.loc["R1", "stall_priority"] == 1
    assert reqs.loc["R1", "bucket_hm_review"] == 1
    assert reqs.loc["R1", "forecast_likely_date"] == pd.Timestamp("2024-03-08")
    assert reqs.loc["R3", "risk_flags"] == "LOW_PIPELINE"
    assert reqs.loc["R3", "days_since_last_movement"] == 6


def test_hm_rollup_frame(frames):
    hms = frames["hm_rollups"].set_index("hm_user_id")
    assert hms.loc["hm1", "feedback_median"] == 2
    assert hms.loc["hm1", "feedback_peer_rank"] == 75
    assert pd.isna(hms.loc["hm2", "feedback_peer_rank"])
    assert hms.loc["hm1", "function_mix"] == "Engineering:1"
    assert hms.loc["hm2", "level_mix"] == "L4:1"
    assert hms.loc["hm1", "total_closed_reqs"] == 1


def test_pending_action_frame(frames):
    actions = frames["pending_actions"]
    assert list(actions["action_type"]) == ["REVIEW_DUE", "DECISION_DUE", "FEEDBACK_DUE"]
    assert list(actions["days_overdue"]) == [7, 3, 2]


@pytest.mark.parametrize(
    "to_frame, dtypes",
    [
        (req_rollups_to_frame, REQ_ROLLUP_DTYPES),
        (hm_rollups_to_frame, HM_ROLLUP_DTYPES),
        (pending_actions_to_frame, PENDING_ACTION_DTYPES),
    ],
)
def test_empty_outputs_keep_their_layout(to_frame, dtypes):
    df = to_frame([])
    assert df.empty
    assert list(df.columns) == list(dtypes)
    assert {col: str(dtype) for col, dtype in df.dtypes.items()} == dtypes


def test_empty_outputs_pass_schema_checks():
    frames = {
        "req_rollups": req_rollups_to_frame([]),
        "hm_rollups": hm_rollups_to_frame([]),
        "pending_actions": pending_actions_to_frame([]),
    }
    assert all(r["valid"] for r in validate_outputs(frames).values())


def test_outputs_are_deterministic(snapshot, stage_config, as_of, frames):
    again = output_frames(analyze(
        snapshot["requisitions"], snapshot["candidates"], snapshot["events"], snapshot["users"],
        stage_config, as_of,
    ))
    for name, df in frames.items():
        pd.testing.assert_frame_equal(df, again[name])
