import pandas as pd
import pytest

gx = pytest.importorskip("great_expectations")

from hiring_pipeline.validation import build_suite_for_output, run_output_expectations  # noqa: E402


def _actions(**overrides):
    row = {
        "action_type": "FEEDBACK_DUE",
        "hm_user_id": "hm1",
        "req_id": "R1",
        "candidate_id": "C1",
        "days_waiting": 4,
        "days_overdue": 2,
        **overrides,
    }
    return pd.DataFrame([row])


def test_clean_output_passes():
    result = run_output_expectations("pending_actions", _actions())
    assert result["status"] == "passed"
    assert result["passed"] == result["total"] == len(build_suite_for_output("pending_actions"))


def test_single_failure_is_a_warning_unless_strict():
    df = _actions(action_type="CALL_BACK")
    assert run_output_expectations("pending_actions", df)["status"] == "warning"

    strict = run_output_expectations("pending_actions", df, strict=True)
    assert strict["status"] == "failed"
    assert strict["failed_expectations"][0].startswith("expect_column_values_to_be_in_set")


def test_unknown_output_gets_default_suite():
    suite = build_suite_for_output("something_else")
    assert [e["expectation_type"] for e in suite] == ["expect_table_column_count_to_be_between"]
