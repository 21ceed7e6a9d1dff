"""Utility functions for dominance grids.

Centralized helper functions for:
- The null label sentinel used in every integer winner grid
- Row/column to geographic coordinate conversion from dataset attrs
- Label index <-> label name lookup
- 4-neighborhood enumeration over flattened row-major indices

These utilities support the post-processor, region extractor and cell
lookup, providing one definition of "cell center" across the package.
"""

from typing import Iterator, Optional, Tuple

import numpy as np
import xarray as xr

from tapgrid.dominance.geo import meters_to_deg_lat, meters_to_deg_lon

__all__ = [
    'NULL_LABEL',
    'row_center_lat',
    'row_to_lat_lon',
    'label_name',
    'label_names',
    'label_index',
    'grid_shape',
    'iter_4_neighbors',
]

NULL_LABEL = -1


def grid_shape(ds: xr.Dataset) -> Tuple[int, int]:
    """Return (rows, cols) of a gridded dataset."""
    return int(ds.sizes["row"]), int(ds.sizes["col"])


def row_center_lat(attrs: dict, row):
    """Latitude of a (possibly fractional) row index.

    Row 0 is the southernmost band; its center sits half a cell above
    ``min_lat``.
    """
    dlat = meters_to_deg_lat(attrs["cell_size_meters"])
    return attrs["min_lat"] + (np.asarray(row) + 0.5) * dlat


def row_to_lat_lon(attrs: dict, row, col):
    """Map (possibly fractional) row/col indices to lat/lon.

    The longitude spacing is taken at the latitude of ``row``, matching
    how ``enumerate_grid`` places cell centers.

    Parameters
    ----------
    attrs : dict
        Dataset attrs carrying the grid spec fields.
    row, col : float or np.ndarray
        Grid indices. Fractional values are allowed (region centroids).

    Returns
    -------
    tuple
        (lat, lon) in degrees.
    """
    lat = row_center_lat(attrs, row)
    dlon = meters_to_deg_lon(attrs["cell_size_meters"], lat)
    lon = attrs["min_lon"] + (np.asarray(col) + 0.5) * dlon
    return lat, lon


def label_names(ds: xr.Dataset) -> list:
    """Label names in index order."""
    return [str(v) for v in ds["label"].values]


def label_name(ds: xr.Dataset, index: int) -> Optional[str]:
    """Name of a label index, or None for the null label."""
    if index == NULL_LABEL:
        return None
    return str(ds["label"].values[index])


def label_index(ds: xr.Dataset, name: str) -> int:
    """Index of a label name; NULL_LABEL if the label is not present."""
    matches = np.flatnonzero(ds["label"].values == name)
    if matches.size == 0:
        return NULL_LABEL
    return int(matches[0])


def iter_4_neighbors(idx: int, rows: int, cols: int) -> Iterator[int]:
    """Yield the flat indices of the up/down/left/right neighbors of ``idx``."""
    r, c = divmod(idx, cols)
    if r > 0:
        yield idx - cols
    if r < rows - 1:
        yield idx + cols
    if c > 0:
        yield idx - 1
    if c < cols - 1:
        yield idx + 1
