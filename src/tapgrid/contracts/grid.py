"""Grid stage contract.

Enforces that a grid specification describes a non-empty box with a
positive cell size, and that the enumerated grid carries the coordinates
the aggregator reads.
"""

import math

import xarray as xr
from tapgrid.contracts.base import require


def assert_valid_grid_spec(spec) -> None:
    """Enforce the grid specification precondition.

    Called before any grid is enumerated. A malformed spec is a caller bug,
    so no default is substituted.

    Parameters
    ----------
    spec : GridSpec
        Bounding box and cell size.

    Raises
    ------
    ContractViolation
        If the box is empty/inverted, the cell size is not positive,
        or any value is not finite.
    """
    values = (spec.min_lat, spec.max_lat, spec.min_lon, spec.max_lon, spec.cell_size_meters)
    require(
        all(math.isfinite(v) for v in values),
        f"Grid contract violated: non-finite value in grid spec {values}"
    )
    require(
        spec.min_lat < spec.max_lat,
        f"Grid contract violated: min_lat ({spec.min_lat}) must be < max_lat ({spec.max_lat})"
    )
    require(
        spec.min_lon < spec.max_lon,
        f"Grid contract violated: min_lon ({spec.min_lon}) must be < max_lon ({spec.max_lon})"
    )
    require(
        spec.cell_size_meters > 0,
        f"Grid contract violated: cell_size_meters must be > 0 (got {spec.cell_size_meters})"
    )


def assert_gridded(ds: xr.Dataset) -> None:
    """Enforce grid stage contract.

    Verifies that the grid dataset has the (row, col) index space and
    2D cell-center coordinates.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    for dim in ("row", "col"):
        require(
            dim in ds.dims,
            f"Grid contract violated: missing '{dim}' dimension"
        )
    for coord in ("center_lat", "center_lon"):
        require(
            coord in ds.coords,
            f"Grid contract violated: missing '{coord}' coordinate"
        )
        require(
            ds[coord].dims == ("row", "col"),
            f"Grid contract violated: '{coord}' has dims {ds[coord].dims}, expected ('row', 'col')"
        )
