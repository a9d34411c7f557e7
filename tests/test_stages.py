import pandas as pd
import pytest

from hiring_pipeline.domains.hiring_managers.stages import (
    REQUIRED_STAGES,
    StageMapping,
    StageMappingConfig,
    auto_suggest_mappings,
    create_stage_mapping_config,
    extract_all_stages,
    load_stage_mapping,
    normalize_stage,
    validate_stage_mapping_completeness,
)
from hiring_pipeline.domains.hiring_managers.taxonomy import (
    CanonicalStage,
    DecisionBucket,
    get_bucket_for_stage,
    get_ordered_buckets,
    get_stage_order,
    get_stages_for_bucket,
    is_terminal_stage,
)


@pytest.mark.parametrize(
    "label, expected",
    [
        ("Phone Screen", CanonicalStage.SCREEN),
        ("Hiring Manager Screen", CanonicalStage.HM_SCREEN),
        ("Onsite Interview", CanonicalStage.ONSITE),
        ("Final Round", CanonicalStage.FINAL),
        ("Offer Extended", CanonicalStage.OFFER),
        ("Offer Accepted", CanonicalStage.HIRED),
        ("Rejected - Not a fit", CanonicalStage.REJECTED),
        ("Candidate Withdrew", CanonicalStage.WITHDREW),
    ],
)
def test_auto_suggest(label, expected):
    [mapping] = auto_suggest_mappings([label])
    assert mapping.canonical_stage == expected


def test_auto_suggest_skips_unknown_and_duplicate_labels():
    suggestions = auto_suggest_mappings(["Onsite", "Onsite", "Take-home project"])
    assert [m.ats_stage for m in suggestions] == ["Onsite"]


def test_normalize_stage_is_case_insensitive(stage_config):
    assert normalize_stage("hm screen", stage_config) == CanonicalStage.HM_SCREEN
    assert normalize_stage("ONSITE", stage_config) == CanonicalStage.ONSITE
    assert normalize_stage("Sourcing Call", stage_config) is None
    assert normalize_stage(None, stage_config) is None
    assert normalize_stage("", stage_config) is None


def test_first_mapping_wins():
    config = StageMappingConfig(mappings=(
        StageMapping("Panel", CanonicalStage.ONSITE),
        StageMapping("panel", CanonicalStage.FINAL),
    ))
    assert normalize_stage("PANEL", config) == CanonicalStage.ONSITE


def test_completeness_lists_missing_required_stages():
    result = validate_stage_mapping_completeness([
        StageMapping("Onsite", CanonicalStage.ONSITE),
        StageMapping("Offer", CanonicalStage.OFFER),
    ])
    assert not result.is_complete
    assert CanonicalStage.SCREEN in result.missing_stages
    assert CanonicalStage.ONSITE not in result.missing_stages
    assert result.mapped_stages == [CanonicalStage.ONSITE, CanonicalStage.OFFER]


def test_full_mapping_is_complete(stage_config):
    assert validate_stage_mapping_completeness(stage_config.mappings).is_complete
    assert set(REQUIRED_STAGES) <= {m.canonical_stage for m in stage_config.mappings}


def test_create_config_records_unmapped_labels():
    config = create_stage_mapping_config(
        [StageMapping("Onsite", CanonicalStage.ONSITE)], ["Onsite", "Take-home"],
    )
    assert config.unmapped_stages == ("Take-home",)
    assert not config.is_complete


def test_extract_all_stages():
    candidates = pd.DataFrame({"current_stage": ["Onsite", None, "Applied"]})
    events = pd.DataFrame({"from_stage": ["Applied", None], "to_stage": ["HM Screen", "Onsite"]})
    assert extract_all_stages(candidates, events) == ["Applied", "HM Screen", "Onsite"]


def test_load_stage_mapping(tmp_path):
    path = tmp_path / "stages.toml"
    path.write_text(
        '[[mappings]]\nats_stage = "Panel"\ncanonical_stage = "onsite"\n\n'
        '[[mappings]]\nats_stage = "Offer Out"\ncanonical_stage = "OFFER"\n'
    )
    config = load_stage_mapping(path, ["Panel", "Offer Out", "Sourced"])
    assert [m.canonical_stage for m in config.mappings] == [CanonicalStage.ONSITE, CanonicalStage.OFFER]
    assert config.unmapped_stages == ("Sourced",)


def test_load_stage_mapping_rejects_bad_entries(tmp_path):
    path = tmp_path / "stages.toml"
    path.write_text('[[mappings]]\nats_stage = "Panel"\n')
    with pytest.raises(ValueError, match="Invalid stage mapping"):
        load_stage_mapping(path)


@pytest.mark.parametrize(
    "stage, bucket",
    [
        (CanonicalStage.APPLIED, DecisionBucket.OTHER),
        (CanonicalStage.HM_SCREEN, DecisionBucket.HM_REVIEW),
        (CanonicalStage.ONSITE, DecisionBucket.HM_INTERVIEW_DECISION),
        (CanonicalStage.FINAL, DecisionBucket.HM_FINAL_DECISION),
        (CanonicalStage.OFFER, DecisionBucket.OFFER_DECISION),
        (CanonicalStage.WITHDREW, DecisionBucket.DONE),
        (None, DecisionBucket.OTHER),
    ],
)
def test_bucket_for_stage(stage, bucket):
    assert get_bucket_for_stage(stage) == bucket


def test_taxonomy_helpers():
    assert get_ordered_buckets() == [
        DecisionBucket.HM_REVIEW,
        DecisionBucket.HM_INTERVIEW_DECISION,
        DecisionBucket.HM_FEEDBACK,
        DecisionBucket.HM_FINAL_DECISION,
        DecisionBucket.OFFER_DECISION,
    ]
    assert get_stages_for_bucket(DecisionBucket.DONE) == [
        CanonicalStage.HIRED, CanonicalStage.REJECTED, CanonicalStage.WITHDREW,
    ]
    assert is_terminal_stage("HIRED") and not is_terminal_stage("OFFER") and not is_terminal_stage("bogus")
    assert get_stage_order("OFFER") > get_stage_order("ONSITE")
    assert get_stage_order("REJECTED") == get_stage_order(None) == -1
