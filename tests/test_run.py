import sys

import pandas as pd
import pytest

from hiring_pipeline import run as runner
from hiring_pipeline.config import DEFAULT_HM_RULES, PipelineConfig
from hiring_pipeline.domains import hiring_managers
from hiring_pipeline.domains.hiring_managers.ingest import EXPORT_FILES, ingest_ats_exports


@pytest.fixture
def export_dir(tmp_path, snapshot):
    target = tmp_path / "exports"
    target.mkdir()
    for key, filename in EXPORT_FILES.items():
        pd.DataFrame(snapshot[key]).to_csv(target / filename, index=False)
    return target


def test_validate_reports_missing_exports(tmp_path):
    result = hiring_managers.validate(tmp_path)
    assert result["status"] == "error"
    assert "requisitions.csv" in result["message"]


def test_validate_ok(export_dir):
    assert hiring_managers.validate(export_dir) == {"status": "ok", "files": 4}
    assert runner.validate_all(export_dir) == [{"domain": "hiring_managers", "valid": True, "files": 4}]


def test_ingest_requires_every_file(export_dir):
    (export_dir / "events.csv").unlink()
    with pytest.raises(FileNotFoundError, match="events.csv"):
        ingest_ats_exports(export_dir)


def test_run_writes_outputs(export_dir, tmp_path, as_of):
    config = PipelineConfig(
        input_dir=export_dir,
        output_dir=tmp_path / "out",
        output_format="csv",
        rules=DEFAULT_HM_RULES,
    )

    frames = hiring_managers.run(config, as_of=as_of)

    for name in ("req_rollups", "hm_rollups", "pending_actions"):
        assert (tmp_path / "out" / f"{name}.csv").exists()
    assert list(frames["req_rollups"]["req_id"]) == ["R1", "R3"]
    written = pd.read_csv(tmp_path / "out" / "pending_actions.csv")
    assert list(written["candidate_id"]) == ["C1", "C6", "C2"]


def test_run_with_stage_map(export_dir, tmp_path, as_of):
    stage_map = tmp_path / "stages.toml"
    # only the offer label is mapped; C4 is closed out by its Hired disposition
    stage_map.write_text('[[mappings]]\nats_stage = "Offer"\ncanonical_stage = "OFFER"\n')
    config = PipelineConfig(export_dir, tmp_path / "out", "json", DEFAULT_HM_RULES)

    frames = hiring_managers.run(config, as_of=as_of, stage_map=stage_map)

    r1 = frames["req_rollups"].set_index("req_id").loc["R1"]
    assert r1["bucket_offer_decision"] == 1
    assert r1["bucket_other"] == 2
    assert (tmp_path / "out" / "hm_rollups.json").exists()


def test_cli_validate_exits_nonzero_on_missing_exports(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, "argv", ["hiring-pipeline", "--validate", "--input", str(tmp_path)])
    with pytest.raises(SystemExit) as exc:
        runner.main()
    assert exc.value.code == 1
