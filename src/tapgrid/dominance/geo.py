"""Geodesy helpers and grid enumeration.

Centralized helper functions for:
- Great-circle distance (haversine, mean Earth radius)
- Meter to degree conversion on the local tangent plane
- Enumerating the (row, col) cell-center grid of a GridSpec

All functions accept numpy arrays as well as scalars so the aggregator
can evaluate one vote against every candidate cell in a single call.
"""

import logging
from typing import Iterator

import numpy as np
import xarray as xr

from tapgrid.contracts import assert_valid_grid_spec
from tapgrid.schemas.domain import GridSpec, GridCell

__all__ = [
    'EARTH_RADIUS_KM',
    'METERS_PER_DEG_LAT',
    'haversine_distance_km',
    'meters_to_deg_lat',
    'meters_to_deg_lon',
    'enumerate_grid',
    'iter_grid_cells',
]

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
METERS_PER_DEG_LAT = 111_320.0

# cos(lat) floor so meters_to_deg_lon stays finite at the poles
_MIN_COS_LAT = 1e-12


def haversine_distance_km(lat1, lon1, lat2, lon2):
    """Great-circle distance in km between two lat/lon points.

    Parameters
    ----------
    lat1, lon1, lat2, lon2 : float or np.ndarray
        Coordinates in degrees. Arrays broadcast against each other.

    Returns
    -------
    float or np.ndarray
        Distance in kilometers on a sphere of radius 6371 km.

    Examples
    --------
    >>> round(float(haversine_distance_km(48.1370, 11.5753, 48.1370, 11.5753)), 6)
    0.0
    """
    phi1 = np.radians(lat1)
    phi2 = np.radians(lat2)
    dphi = np.radians(np.subtract(lat2, lat1))
    dlmb = np.radians(np.subtract(lon2, lon1))

    a = np.sin(dphi / 2.0) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlmb / 2.0) ** 2
    a = np.clip(a, 0.0, 1.0)
    return EARTH_RADIUS_KM * 2.0 * np.arctan2(np.sqrt(a), np.sqrt(1.0 - a))


def meters_to_deg_lat(meters):
    """Convert a north-south distance in meters to degrees of latitude."""
    return meters / METERS_PER_DEG_LAT


def meters_to_deg_lon(meters, lat):
    """Convert an east-west distance in meters to degrees of longitude at ``lat``."""
    cos_lat = np.maximum(np.cos(np.radians(lat)), _MIN_COS_LAT)
    return meters / (METERS_PER_DEG_LAT * cos_lat)


def enumerate_grid(spec: GridSpec) -> xr.Dataset:
    """Enumerate the cell centers of a grid specification.

    Row count comes from the latitude span. Column count is fixed once at
    the box's center latitude, while each row places its cell centers with
    the longitude spacing of its own center latitude, so rows far from the
    center may under- or overshoot ``max_lon``.

    Parameters
    ----------
    spec : GridSpec
        Bounding box and cell size. Validated by the grid contract.

    Returns
    -------
    xr.Dataset
        Empty-variable dataset with dims (row, col), 2D coordinates
        ``center_lat`` / ``center_lon`` and the spec echoed into attrs.

    Raises
    ------
    ContractViolation
        If the spec does not describe a non-empty box with positive cell size.
    """
    assert_valid_grid_spec(spec)

    dlat = meters_to_deg_lat(spec.cell_size_meters)
    rows = int(np.floor((spec.max_lat - spec.min_lat) / dlat))

    box_center_lat = (spec.min_lat + spec.max_lat) / 2.0
    dlon_center = meters_to_deg_lon(spec.cell_size_meters, box_center_lat)
    cols = int(np.floor((spec.max_lon - spec.min_lon) / dlon_center))

    row_lat = spec.min_lat + (np.arange(rows) + 0.5) * dlat
    row_dlon = meters_to_deg_lon(spec.cell_size_meters, row_lat)

    center_lat = np.repeat(row_lat[:, np.newaxis], cols, axis=1)
    center_lon = spec.min_lon + (np.arange(cols)[np.newaxis, :] + 0.5) * row_dlon[:, np.newaxis]

    ds = xr.Dataset(
        coords={
            "row": np.arange(rows),
            "col": np.arange(cols),
            "center_lat": (("row", "col"), center_lat),
            "center_lon": (("row", "col"), center_lon),
        },
        attrs=spec.model_dump(),
    )
    logger.debug("Grid enumerated: %d x %d cells (%.0f m)", rows, cols, spec.cell_size_meters)
    return ds


def iter_grid_cells(grid: xr.Dataset) -> Iterator[GridCell]:
    """Yield GridCell records in row-major order."""
    lat = grid["center_lat"].values
    lon = grid["center_lon"].values
    rows, cols = lat.shape
    for r in range(rows):
        for c in range(cols):
            yield GridCell(row=r, col=c, center_lat=float(lat[r, c]), center_lon=float(lon[r, c]))
