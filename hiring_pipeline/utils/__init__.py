"""Shared utilities for the hiring-manager analytics pipeline."""

from hiring_pipeline.utils.io import read_export_file, write_output
from hiring_pipeline.utils.transforms import normalize_columns, days_since, round_half_up
from hiring_pipeline.utils.validators import validate_dataframe
