from pathlib import Path

import pytest

from hiring_pipeline.config import DEFAULT_HM_RULES, HMRulesConfig, load_pipeline_config, rules_from_mapping

FULL = {
    "no_movement_days": 10,
    "feedback_due_days": 1,
    "hm_review_due_days": 2,
    "decision_due_days": 4,
    "low_pipeline_threshold": 5,
    "offer_stall_days": 6,
    "late_stage_empty_days": 21,
}


def test_defaults():
    assert DEFAULT_HM_RULES == HMRulesConfig(14, 2, 3, 3, 3, 7, 30)


def test_rules_from_mapping_accepts_camel_case():
    rules = rules_from_mapping({
        "noMovementDays": 10,
        "feedbackDueDays": 1,
        "hmReviewDueDays": 2,
        "decisionDueDays": 4,
        "lowPipelineThreshold": 5,
        "offerStallDays": 6,
        "lateStageEmptyDays": 21,
    })
    assert rules == rules_from_mapping(FULL)
    assert rules.low_pipeline_threshold == 5


@pytest.mark.parametrize(
    "override",
    [
        {"feedback_due_days": -1},
        {"feedback_due_days": "2"},
        {"feedback_due_days": True},
        {"feedback_due_days": 2.5},
    ],
)
def test_rules_from_mapping_rejects_bad_values(override):
    with pytest.raises(ValueError, match="feedback_due_days"):
        rules_from_mapping({**FULL, **override})


def test_rules_from_mapping_requires_every_threshold():
    partial = {k: v for k, v in FULL.items() if k != "offer_stall_days"}
    with pytest.raises(ValueError, match="offer_stall_days"):
        rules_from_mapping(partial)


def test_zero_thresholds_are_allowed():
    assert rules_from_mapping({k: 0 for k in FULL}).no_movement_days == 0


def test_development_config():
    config = load_pipeline_config("development")
    assert config.input_dir == Path("data/raw/recruiting")
    assert config.output_format == "csv"
    assert isinstance(config.rules, HMRulesConfig)


def test_unknown_env_fails():
    with pytest.raises(ValueError, match="Unknown environment"):
        load_pipeline_config("qa")
