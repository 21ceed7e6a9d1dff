"""Point-to-cell lookup and per-cell result records."""

import logging
from typing import Optional, Tuple

import numpy as np
import pandas as pd
import xarray as xr

from tapgrid.dominance.geo import meters_to_deg_lat, meters_to_deg_lon
from tapgrid.dominance.grid_utils import grid_shape, label_name, label_names
from tapgrid.schemas.domain import CellResult

__all__ = ['locate_cell', 'find_cell_at', 'cell_result', 'cells_to_frame']

logger = logging.getLogger(__name__)


def locate_cell(lat: float, lon: float, ds: xr.Dataset) -> Optional[Tuple[int, int]]:
    """Map a point to its (row, col), or None if it falls outside the grid.

    The row comes from the latitude; the column uses the longitude spacing
    at that row's center latitude, mirroring how cells were enumerated.
    """
    attrs = ds.attrs
    rows, cols = grid_shape(ds)
    dlat = meters_to_deg_lat(attrs["cell_size_meters"])

    row = int(np.floor((lat - attrs["min_lat"]) / dlat))
    if row < 0 or row >= rows:
        return None

    row_lat = attrs["min_lat"] + (row + 0.5) * dlat
    dlon = meters_to_deg_lon(attrs["cell_size_meters"], row_lat)
    col = int(np.floor((lon - attrs["min_lon"]) / dlon))
    if col < 0 or col >= cols:
        return None
    return row, col


def cell_result(ds: xr.Dataset, row: int, col: int) -> CellResult:
    """Build the CellResult record of one cell.

    ``winner_label`` is the post-processed winner; every other field is
    read from the aggregated variables.
    """
    names = label_names(ds)
    votes = ds["label_votes"].values[:, row, col]
    weights = ds["label_weight"].values[:, row, col]
    per_label = {names[k]: float(weights[k]) for k in np.flatnonzero(votes)}

    return CellResult(
        row=int(row),
        col=int(col),
        winner_label=label_name(ds, int(ds["winner"].values[row, col])),
        winner_weight=float(ds["winner_weight"].values[row, col]),
        total_weight=float(ds["total_weight"].values[row, col]),
        per_label_weight=per_label,
        runner_up_label=label_name(ds, int(ds["runner_up"].values[row, col])),
        runner_up_weight=float(ds["runner_up_weight"].values[row, col]),
        margin=float(ds["margin"].values[row, col]),
    )


def find_cell_at(lat: float, lon: float, ds: xr.Dataset) -> Optional[CellResult]:
    """CellResult of the cell containing a point, or None outside the grid."""
    located = locate_cell(lat, lon, ds)
    if located is None:
        return None
    return cell_result(ds, *located)


def cells_to_frame(ds: xr.Dataset) -> pd.DataFrame:
    """Render every cell as one DataFrame row, in row-major order.

    Columns: row, col, center_lat, center_lon, winner_label, raw_winner_label,
    winner_weight, total_weight, runner_up_label, runner_up_weight, margin.
    Label columns hold None for null labels.
    """
    rows, cols = grid_shape(ds)
    names = np.array(label_names(ds) + [None], dtype=object)

    def _names(var):
        # NULL_LABEL (-1) picks the trailing None
        return names[ds[var].values.ravel()]

    rr, cc = np.indices((rows, cols)).reshape(2, -1)
    return pd.DataFrame({
        "row": rr,
        "col": cc,
        "center_lat": ds["center_lat"].values.ravel(),
        "center_lon": ds["center_lon"].values.ravel(),
        "winner_label": _names("winner"),
        "raw_winner_label": _names("raw_winner"),
        "winner_weight": ds["winner_weight"].values.ravel(),
        "total_weight": ds["total_weight"].values.ravel(),
        "runner_up_label": _names("runner_up"),
        "runner_up_weight": ds["runner_up_weight"].values.ravel(),
        "margin": ds["margin"].values.ravel(),
    })
