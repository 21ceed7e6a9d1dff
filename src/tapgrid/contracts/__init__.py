"""Stage contracts for the dominance pipeline.

Pydantic settles whether configuration is well formed. The checks here
settle whether a grid spec describes a grid and whether each stage
handed the next one what it promised. Degenerate but legal inputs such
as an empty vote list are not contract failures.
"""

from tapgrid.contracts.failure import ContractViolation
from tapgrid.contracts.base import require
from tapgrid.contracts.grid import assert_valid_grid_spec, assert_gridded
from tapgrid.contracts.dominance import assert_dominance_output
from tapgrid.contracts.regions import assert_regions_output

__all__ = [
    "ContractViolation",
    "require",
    "assert_valid_grid_spec",
    "assert_gridded",
    "assert_dominance_output",
    "assert_regions_output",
]
