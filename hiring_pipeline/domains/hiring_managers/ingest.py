"""Ingest raw ATS exports (requisitions, candidates, events, users)."""

import logging
from pathlib import Path

import pandas as pd

from hiring_pipeline.utils.io import read_export_file

logger = logging.getLogger(__name__)

ATS_EXPORT_DIR = Path("data/raw/recruiting")

EXPORT_FILES = {
    "requisitions": "requisitions.csv",
    "candidates": "candidates.csv",
    "events": "events.csv",
    "users": "users.csv",
}


def ingest_ats_exports(export_dir: Path = ATS_EXPORT_DIR, dry_run: bool = False) -> dict[str, pd.DataFrame]:
    """Load the four ATS export files from ``export_dir``.

    Every file is required; a dry run only checks that they exist.
    """
    export_dir = Path(export_dir)
    missing = [name for name in EXPORT_FILES.values() if not (export_dir / name).exists()]
    if missing:
        raise FileNotFoundError(f"ATS exports missing from {export_dir}: {', '.join(missing)}")
    if dry_run:
        return {}

    frames = {}
    for key, filename in EXPORT_FILES.items():
        frames[key] = read_export_file(export_dir / filename)
        logger.info("Read %s: %d rows", filename, len(frames[key]))
    return frames
