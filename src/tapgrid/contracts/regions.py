"""Region stage contract.

Enforces the guarantee that the region table has the required columns,
every region has at least one cell, and regions are ordered largest first.
"""

import numpy as np
import pandas as pd
from tapgrid.contracts.base import require


REQUIRED_COLUMNS = (
    "region_id",
    "label",
    "cell_count",
    "centroid_lat",
    "centroid_lon",
    "min_row",
    "max_row",
    "min_col",
    "max_col",
    "avg_margin",
    "total_votes",
    "runner_up_label",
)


def assert_regions_output(df: pd.DataFrame) -> None:
    """Enforce region stage contract.

    We do NOT validate the statistics themselves; only structure and order.

    Parameters
    ----------
    df : pd.DataFrame
        Output from RegionExtractor.extract()

    Raises
    ------
    ContractViolation
        If structural requirements are violated
    """
    require(
        isinstance(df, pd.DataFrame),
        f"Region contract violated: output is {type(df)}, expected DataFrame"
    )

    for col in REQUIRED_COLUMNS:
        require(
            col in df.columns,
            f"Region contract violated: missing required column '{col}'"
        )

    if len(df) > 0:
        counts = df["cell_count"].to_numpy()
        require(
            bool((counts > 0).all()),
            "Region contract violated: cell_count must be > 0 for all regions"
        )
        require(
            bool(np.all(np.diff(counts) <= 0)),
            "Region contract violated: regions must be sorted by cell_count descending"
        )
