"""Expectation suite definitions per output frame.

Each HM output has a set of expectations that define its quality contract.
These are used by the validation runner to check outputs before they are
published to the dashboard.
"""

from hiring_pipeline.domains.hiring_managers.models import HMActionType, StallReasonCode

type ExpectationConfig = dict[str, str | dict]
type SuiteConfig = list[ExpectationConfig]
type OutputName = str


def _not_null(column: str) -> ExpectationConfig:
    return {"expectation_type": "expect_column_values_to_not_be_null", "kwargs": {"column": column}}


def _non_negative(column: str) -> ExpectationConfig:
    return {
        "expectation_type": "expect_column_values_to_be_between",
        "kwargs": {"column": column, "min_value": 0},
    }


_OUTPUT_SUITES: dict[OutputName, SuiteConfig] = {
    "req_rollups": [
        {"expectation_type": "expect_column_to_exist", "kwargs": {"column": "req_id"}},
        _not_null("req_id"),
        {"expectation_type": "expect_column_values_to_be_unique", "kwargs": {"column": "req_id"}},
        _not_null("hm_user_id"),
        _non_negative("pipeline_depth"),
        {
            "expectation_type": "expect_column_values_to_be_in_set",
            "kwargs": {
                "column": "primary_stall_reason",
                "value_set": [code.value for code in StallReasonCode],
            },
        },
    ],
    "hm_rollups": [
        {"expectation_type": "expect_column_to_exist", "kwargs": {"column": "hm_user_id"}},
        _not_null("hm_user_id"),
        {"expectation_type": "expect_column_values_to_be_unique", "kwargs": {"column": "hm_user_id"}},
        _non_negative("total_open_reqs"),
        _non_negative("pending_actions_count"),
        {
            "expectation_type": "expect_column_values_to_be_in_set",
            "kwargs": {"column": "feedback_peer_rank", "value_set": [10, 40, 75]},
        },
    ],
    "pending_actions": [
        {"expectation_type": "expect_column_to_exist", "kwargs": {"column": "action_type"}},
        {
            "expectation_type": "expect_column_values_to_be_in_set",
            "kwargs": {"column": "action_type", "value_set": [t.value for t in HMActionType]},
        },
        _not_null("req_id"),
        _not_null("candidate_id"),
        _non_negative("days_waiting"),
    ],
}


def build_suite_for_output(name: OutputName) -> SuiteConfig:
    """Return the expectation suite for an output frame, or a sensible default."""
    if name in _OUTPUT_SUITES:
        return _OUTPUT_SUITES[name]

    # Default suite: the frame must at least have columns
    return [
        {
            "expectation_type": "expect_table_column_count_to_be_between",
            "kwargs": {"min_value": 1},
        },
    ]
