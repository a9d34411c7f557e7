"""Stage normalization: map free-text ATS stage labels to canonical stages."""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from hiring_pipeline.domains.hiring_managers.taxonomy import CanonicalStage
from hiring_pipeline.utils.io import load_toml_config

logger = logging.getLogger(__name__)

type StageLookup = dict[str, CanonicalStage]

REQUIRED_STAGES: tuple[CanonicalStage, ...] = (
    CanonicalStage.SCREEN,
    CanonicalStage.HM_SCREEN,
    CanonicalStage.ONSITE,
    CanonicalStage.OFFER,
    CanonicalStage.HIRED,
    CanonicalStage.REJECTED,
)


@dataclass(frozen=True)
class StageMapping:
    ats_stage: str
    canonical_stage: CanonicalStage


@dataclass(frozen=True)
class StageMappingConfig:
    mappings: tuple[StageMapping, ...]
    unmapped_stages: tuple[str, ...] = ()
    is_complete: bool = False


@dataclass(frozen=True)
class MappingCompleteness:
    is_complete: bool
    missing_stages: list[CanonicalStage] = field(default_factory=list)
    mapped_stages: list[CanonicalStage] = field(default_factory=list)


# Ordered heuristics; the first pattern that matches a label wins.
_SUGGESTION_PATTERNS: list[tuple[re.Pattern, CanonicalStage]] = [
    (re.compile(p, re.IGNORECASE), stage)
    for p, stage in [
        (r"^lead$", CanonicalStage.LEAD),
        (r"prospect", CanonicalStage.LEAD),
        (r"sourced$", CanonicalStage.LEAD),
        (r"^applied$", CanonicalStage.APPLIED),
        (r"^application", CanonicalStage.APPLIED),
        (r"^new$", CanonicalStage.APPLIED),
        (r"^submitted$", CanonicalStage.APPLIED),
        (r"recruiter.*screen", CanonicalStage.SCREEN),
        (r"phone.*screen", CanonicalStage.SCREEN),
        (r"^screen$", CanonicalStage.SCREEN),
        (r"initial.*screen", CanonicalStage.SCREEN),
        (r"ta.*screen", CanonicalStage.SCREEN),
        (r"hiring.*manager.*screen", CanonicalStage.HM_SCREEN),
        (r"hm.*screen", CanonicalStage.HM_SCREEN),
        (r"manager.*review", CanonicalStage.HM_SCREEN),
        (r"submitted.*to.*hm", CanonicalStage.HM_SCREEN),
        (r"tech.*screen", CanonicalStage.HM_SCREEN),
        (r"onsite", CanonicalStage.ONSITE),
        (r"panel.*interview", CanonicalStage.ONSITE),
        (r"interview.*loop", CanonicalStage.ONSITE),
        (r"full.*loop", CanonicalStage.ONSITE),
        (r"team.*interview", CanonicalStage.ONSITE),
        (r"^final$", CanonicalStage.FINAL),
        (r"final.*round", CanonicalStage.FINAL),
        (r"exec.*interview", CanonicalStage.FINAL),
        (r"leadership.*interview", CanonicalStage.FINAL),
        (r"debrief", CanonicalStage.FINAL),
        (r"^offer$", CanonicalStage.OFFER),
        (r"offer.*extended", CanonicalStage.OFFER),
        (r"offer.*pending", CanonicalStage.OFFER),
        (r"pending.*offer", CanonicalStage.OFFER),
        (r"^hired$", CanonicalStage.HIRED),
        (r"offer.*accepted", CanonicalStage.HIRED),
        (r"accepted", CanonicalStage.HIRED),
        (r"start.*date", CanonicalStage.HIRED),
        (r"reject", CanonicalStage.REJECTED),
        (r"declined.*by.*company", CanonicalStage.REJECTED),
        (r"not.*selected", CanonicalStage.REJECTED),
        (r"closed.*not.*hired", CanonicalStage.REJECTED),
        (r"withdrew", CanonicalStage.WITHDREW),
        (r"withdrawn", CanonicalStage.WITHDREW),
        (r"candidate.*declined", CanonicalStage.WITHDREW),
        (r"offer.*declined", CanonicalStage.WITHDREW),
        (r"no.*longer.*interested", CanonicalStage.WITHDREW),
    ]
]


def build_stage_lookup(config: StageMappingConfig) -> StageLookup:
    """Case-folded label -> canonical stage, keeping the first rule for each label."""
    lookup: StageLookup = {}
    for mapping in config.mappings:
        lookup.setdefault(mapping.ats_stage.lower(), CanonicalStage(mapping.canonical_stage))
    return lookup


def normalize_stage(raw_label: str | None, config: StageMappingConfig) -> CanonicalStage | None:
    """Return the canonical stage for a raw ATS label, or None when unmapped."""
    if not raw_label or not isinstance(raw_label, str):
        return None
    wanted = raw_label.lower()
    for mapping in config.mappings:
        if mapping.ats_stage.lower() == wanted:
            return CanonicalStage(mapping.canonical_stage)
    return None


def normalize_stage_series(labels: pd.Series, lookup: StageLookup) -> pd.Series:
    """Vectorized normalize_stage over a column of raw labels."""
    canonical = [
        lookup.get(label.lower()) if isinstance(label, str) and label else None
        for label in labels
    ]
    return pd.Series(canonical, index=labels.index, dtype=object)


def extract_all_stages(candidates: pd.DataFrame, events: pd.DataFrame) -> list[str]:
    """Collect every raw stage label seen on candidates and stage events."""
    stages: set[str] = set()
    for series in (candidates.get("current_stage"), events.get("from_stage"), events.get("to_stage")):
        if series is None:
            continue
        stages.update(s for s in series.dropna() if isinstance(s, str) and s)
    return sorted(stages)


def auto_suggest_mappings(ats_stages: list[str]) -> list[StageMapping]:
    """Suggest canonical stages for labels that follow common ATS naming."""
    suggestions: list[StageMapping] = []
    seen: set[str] = set()

    for stage in ats_stages:
        if stage in seen:
            continue
        for pattern, canonical in _SUGGESTION_PATTERNS:
            if pattern.search(stage):
                suggestions.append(StageMapping(ats_stage=stage, canonical_stage=canonical))
                seen.add(stage)
                break
        else:
            logger.debug("No suggestion for stage label %r", stage)

    return suggestions


def validate_stage_mapping_completeness(mappings: list[StageMapping] | tuple[StageMapping, ...]) -> MappingCompleteness:
    mapped = list(dict.fromkeys(CanonicalStage(m.canonical_stage) for m in mappings))
    missing = [s for s in REQUIRED_STAGES if s not in mapped]
    return MappingCompleteness(
        is_complete=not missing,
        missing_stages=missing,
        mapped_stages=mapped,
    )


def create_stage_mapping_config(
    mappings: list[StageMapping],
    all_stages: list[str],
) -> StageMappingConfig:
    mapped_labels = {m.ats_stage for m in mappings}
    unmapped = tuple(s for s in all_stages if s not in mapped_labels)
    completeness = validate_stage_mapping_completeness(mappings)

    if unmapped:
        logger.warning("%d stage label(s) have no canonical mapping: %s", len(unmapped), list(unmapped))
    if not completeness.is_complete:
        logger.warning("Stage mapping is missing canonical stages: %s",
                       [str(s) for s in completeness.missing_stages])

    return StageMappingConfig(
        mappings=tuple(mappings),
        unmapped_stages=unmapped,
        is_complete=completeness.is_complete,
    )


def load_stage_mapping(path: Path, all_stages: list[str] | None = None) -> StageMappingConfig:
    """Load ordered ``[[mappings]]`` tables (ats_stage, canonical_stage) from TOML."""
    data = load_toml_config(path)
    mappings = []
    for entry in data.get("mappings", []):
        match entry:
            case {"ats_stage": str(label), "canonical_stage": str(stage)}:
                mappings.append(StageMapping(ats_stage=label, canonical_stage=CanonicalStage(stage.upper())))
            case other:
                raise ValueError(f"Invalid stage mapping entry in {path}: {other}")

    logger.info("Loaded %d stage mappings from %s", len(mappings), path)
    return create_stage_mapping_config(mappings, all_stages or [])
