"""Dominance stage contract.

Enforces that the aggregator produced a complete, well-typed per-cell
result: integer winner indices inside the label range, and zero-weight
cells without a winner.
"""

import numpy as np
import xarray as xr
from tapgrid.contracts.base import require


REQUIRED_VARIABLES = (
    "label_weight",
    "total_weight",
    "winner",
    "raw_winner",
    "winner_weight",
    "runner_up",
    "runner_up_weight",
    "margin",
)


def assert_dominance_output(ds: xr.Dataset) -> None:
    """Enforce dominance stage contract.

    Parameters
    ----------
    ds : xr.Dataset
        Dataset from DominanceAggregator.compute()

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    for name in REQUIRED_VARIABLES:
        require(
            name in ds.data_vars,
            f"Dominance contract violated: '{name}' not found"
        )

    winner = ds["winner"]
    require(
        winner.dtype.kind == "i",
        f"Dominance contract violated: 'winner' dtype is {winner.dtype}, expected signed integer"
    )
    require(
        winner.dims == ("row", "col"),
        f"Dominance contract violated: 'winner' has dims {winner.dims}, expected ('row', 'col')"
    )

    if winner.size == 0:
        return

    n_labels = ds.sizes.get("label", 0)
    values = winner.values
    require(
        values.min() >= -1 and values.max() < n_labels,
        f"Dominance contract violated: winner index outside [-1, {n_labels - 1}]"
    )

    empty = ds["total_weight"].values == 0
    require(
        bool(np.all(values[empty] == -1)),
        "Dominance contract violated: zero-weight cell has a winner"
    )
    require(
        bool(np.all(ds["margin"].values[empty] == 0)),
        "Dominance contract violated: zero-weight cell has non-zero margin"
    )
