"""Pipeline configuration and environment setup."""

import tomllib
from dataclasses import dataclass, fields
from pathlib import Path

type ConfigDict = dict[str, str | int | bool | list[str] | dict]

_CAMEL_KEYS = {
    "noMovementDays": "no_movement_days",
    "feedbackDueDays": "feedback_due_days",
    "hmReviewDueDays": "hm_review_due_days",
    "decisionDueDays": "decision_due_days",
    "lowPipelineThreshold": "low_pipeline_threshold",
    "offerStallDays": "offer_stall_days",
    "lateStageEmptyDays": "late_stage_empty_days",
}


@dataclass(frozen=True)
class HMRulesConfig:
    """Thresholds (in days, or candidates for the pipeline floor) for HM rules."""

    no_movement_days: int = 14
    feedback_due_days: int = 2
    hm_review_due_days: int = 3
    decision_due_days: int = 3
    low_pipeline_threshold: int = 3
    offer_stall_days: int = 7
    late_stage_empty_days: int = 30


DEFAULT_HM_RULES = HMRulesConfig()


@dataclass(frozen=True)
class PipelineConfig:
    input_dir: Path
    output_dir: Path
    output_format: str
    rules: HMRulesConfig


def rules_from_mapping(mapping: dict) -> HMRulesConfig:
    """Build rules from a caller-supplied mapping; every threshold must be present."""
    normalized = {_CAMEL_KEYS.get(key, key): value for key, value in mapping.items()}

    values = {}
    for f in fields(HMRulesConfig):
        if f.name not in normalized:
            raise ValueError(f"HM rules config is missing required threshold: {f.name}")
        value = normalized[f.name]
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"HM rules threshold {f.name} must be an integer, got {value!r}")
        if value < 0:
            raise ValueError(f"HM rules threshold {f.name} must be non-negative, got {value}")
        values[f.name] = value

    return HMRulesConfig(**values)


def load_pipeline_config(env: str = "production") -> PipelineConfig:
    match env:
        case "production":
            input_dir = Path("/data/recruiting/ats_exports")
            output_dir = Path("/data/recruiting/hm_output")
            output_format = "parquet"
        case "staging":
            input_dir = Path("/data/staging/recruiting/ats_exports")
            output_dir = Path("/data/staging/recruiting/hm_output")
            output_format = "parquet"
        case "development":
            input_dir = Path("data/raw/recruiting")
            output_dir = Path("output/hiring_managers")
            output_format = "csv"
        case other:
            raise ValueError(f"Unknown environment: {other}")

    overrides = get_env_config().get("rules", {})
    rules = rules_from_mapping({**_rules_as_dict(DEFAULT_HM_RULES), **overrides})

    return PipelineConfig(
        input_dir=input_dir,
        output_dir=output_dir,
        output_format=output_format,
        rules=rules,
    )


def _rules_as_dict(rules: HMRulesConfig) -> dict[str, int]:
    return {f.name: getattr(rules, f.name) for f in fields(rules)}


def get_env_config() -> ConfigDict:
    """Read pipeline config from pyproject.toml."""
    pyproject = Path(__file__).parent.parent / "pyproject.toml"
    if not pyproject.exists():
        return {}
    with open(pyproject, "rb") as f:
        data = tomllib.load(f)
    return data.get("tool", {}).get("hiring_pipeline", {})
