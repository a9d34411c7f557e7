"""Great Expectations context management.

Uses an ephemeral (in-memory) context so output checks run without a GE
project directory on disk.
"""

import great_expectations as gx
import pandas as pd

DATASOURCE_NAME = "hm_outputs"


def get_data_source():
    """Fresh ephemeral context with a pandas data source; returns the data source."""
    context = gx.get_context(mode="ephemeral")
    return context.data_sources.add_pandas(name=DATASOURCE_NAME)


def get_batch(data_source, name: str, df: pd.DataFrame):
    """Register ``df`` as a whole-frame batch under ``name`` and return it."""
    asset = data_source.add_dataframe_asset(name=name)
    batch_definition = asset.add_batch_definition_whole_dataframe(f"{name}_batch")
    return batch_definition.get_batch(batch_parameters={"dataframe": df})
