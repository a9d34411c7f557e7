"""Hiring-manager analytics domain pipeline.

Turns ATS exports (requisitions, candidates, stage events, users) into HM
fact tables, per-req and per-HM rollups, overdue pending actions, stall
reasons, peer latency benchmarks and fill-date forecasts.
"""

import logging
from pathlib import Path

import pandas as pd

from hiring_pipeline.config import PipelineConfig
from hiring_pipeline.domains.hiring_managers.engine import HMAnalyticsResult, analyze
from hiring_pipeline.domains.hiring_managers.export import (
    hm_rollups_to_frame,
    pending_actions_to_frame,
    req_rollups_to_frame,
    validate_outputs,
)
from hiring_pipeline.domains.hiring_managers.facts import FactTables, build_fact_tables
from hiring_pipeline.domains.hiring_managers.ingest import ATS_EXPORT_DIR, EXPORT_FILES, ingest_ats_exports
from hiring_pipeline.domains.hiring_managers.stages import (
    StageMappingConfig,
    auto_suggest_mappings,
    create_stage_mapping_config,
    extract_all_stages,
    load_stage_mapping,
)
from hiring_pipeline.utils.io import write_output

logger = logging.getLogger(__name__)


def validate(export_dir: Path = ATS_EXPORT_DIR) -> dict[str, str | int]:
    """Validate that all ATS exports are present."""
    try:
        ingest_ats_exports(export_dir, dry_run=True)
        return {"status": "ok", "files": len(EXPORT_FILES)}
    except FileNotFoundError as exc:
        return {"status": "error", "message": str(exc)}


def resolve_stage_config(raw: dict[str, pd.DataFrame], stage_map: Path | None = None) -> StageMappingConfig:
    """Stage mapping from a TOML file when given, otherwise auto-suggested from the labels seen."""
    all_stages = extract_all_stages(raw["candidates"], raw["events"])
    if stage_map is not None:
        return load_stage_mapping(stage_map, all_stages)
    return create_stage_mapping_config(auto_suggest_mappings(all_stages), all_stages)


def output_frames(result: HMAnalyticsResult) -> dict[str, pd.DataFrame]:
    return {
        "req_rollups": req_rollups_to_frame(result.req_rollups),
        "hm_rollups": hm_rollups_to_frame(result.hm_rollups),
        "pending_actions": pending_actions_to_frame(result.pending_actions),
    }


def run(config: PipelineConfig, as_of=None, stage_map: Path | None = None) -> dict[str, pd.DataFrame]:
    """Execute the full HM pipeline and write its output frames."""
    raw = ingest_ats_exports(config.input_dir)
    stage_config = resolve_stage_config(raw, stage_map)
    result = analyze(
        raw["requisitions"],
        raw["candidates"],
        raw["events"],
        raw["users"],
        stage_config,
        as_of if as_of is not None else pd.Timestamp.now(tz="UTC"),
        config.rules,
    )

    frames = output_frames(result)
    validate_outputs(frames)
    for name, df in frames.items():
        write_output(df, config.output_dir / name, config.output_format)
    return frames

