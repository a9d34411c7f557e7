"""Output quality checks using Great Expectations."""

from hiring_pipeline.validation.expectations import run_output_expectations
from hiring_pipeline.validation.context import get_data_source
from hiring_pipeline.validation.suites import build_suite_for_output
