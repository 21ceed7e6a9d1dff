"""Tests for pipeline contracts.

These tests verify that contracts are enforced at stage boundaries.
They call each contract directly with hand-built bad inputs.
"""

import pytest
import xarray as xr
import pandas as pd
import numpy as np

pytestmark = pytest.mark.unit

from tapgrid.contracts import (
    ContractViolation,
    require,
    assert_valid_grid_spec,
    assert_gridded,
    assert_dominance_output,
    assert_regions_output,
)
from tapgrid.contracts.regions import REQUIRED_COLUMNS
from tapgrid.schemas import GridSpec


def _spec(**overrides):
    values = dict(min_lat=48.0, max_lat=48.1, min_lon=11.0, max_lon=11.2, cell_size_meters=1000)
    values.update(overrides)
    return GridSpec(**values)


class TestRequire:

    def test_require_passes_silently(self):
        require(True, "never raised")

    def test_require_raises_contract_violation(self):
        with pytest.raises(ContractViolation, match="boom"):
            require(False, "boom")

    def test_contract_violation_is_runtime_error(self):
        assert issubclass(ContractViolation, RuntimeError)


class TestGridSpecContract:
    """Test grid specification precondition."""

    def test_valid_spec_passes(self):
        assert_valid_grid_spec(_spec())

    def test_inverted_latitude_fails(self):
        with pytest.raises(ContractViolation, match="min_lat"):
            assert_valid_grid_spec(_spec(min_lat=48.2))

    def test_empty_longitude_span_fails(self):
        with pytest.raises(ContractViolation, match="min_lon"):
            assert_valid_grid_spec(_spec(max_lon=11.0))

    def test_zero_cell_size_fails(self):
        with pytest.raises(ContractViolation, match="cell_size_meters"):
            assert_valid_grid_spec(_spec(cell_size_meters=0))

    def test_non_finite_value_fails(self):
        with pytest.raises(ContractViolation, match="non-finite"):
            assert_valid_grid_spec(_spec(max_lat=float("nan")))


class TestGridContract:
    """Test grid stage contract."""

    def test_grid_contract_passes_with_valid_dataset(self, make_grid):
        """Grid contract passes when row/col dims and 2D centers exist."""
        assert_gridded(make_grid(np.zeros((2, 3)), np.zeros((2, 3))))

    def test_grid_contract_fails_without_centers(self):
        ds = xr.Dataset(coords={"row": range(2), "col": range(2)})
        with pytest.raises(ContractViolation, match="center_lat"):
            assert_gridded(ds)

    def test_grid_contract_fails_with_1d_centers(self):
        ds = xr.Dataset(coords={
            "row": range(2), "col": range(2),
            "center_lat": ("row", [0.0, 1.0]),
            "center_lon": ("col", [0.0, 1.0]),
        })
        with pytest.raises(ContractViolation, match="expected"):
            assert_gridded(ds)


class TestDominanceContract:
    """Test dominance stage contract."""

    def test_dominance_contract_passes(self, make_dominance_ds):
        ds = make_dominance_ds([[0, -1], [1, 1]], ["a", "b"])
        assert_dominance_output(ds)

    def test_missing_variable_fails(self, make_dominance_ds):
        ds = make_dominance_ds([[0]], ["a"]).drop_vars("margin")
        with pytest.raises(ContractViolation, match="margin"):
            assert_dominance_output(ds)

    def test_float_winner_fails(self, make_dominance_ds):
        ds = make_dominance_ds([[0]], ["a"])
        ds["winner"] = ds["winner"].astype(float)
        with pytest.raises(ContractViolation, match="dtype"):
            assert_dominance_output(ds)

    def test_winner_out_of_label_range_fails(self, make_dominance_ds):
        ds = make_dominance_ds([[0, 1]], ["a", "b"])
        ds = ds.isel(label=[0])
        with pytest.raises(ContractViolation, match="outside"):
            assert_dominance_output(ds)

    def test_zero_weight_cell_with_winner_fails(self, make_dominance_ds):
        ds = make_dominance_ds([[0, 0]], ["a"], total_weight=[[1.0, 0.0]])
        with pytest.raises(ContractViolation, match="zero-weight"):
            assert_dominance_output(ds)

    def test_empty_grid_passes(self, make_dominance_ds):
        ds = make_dominance_ds(np.zeros((0, 3), dtype=np.int32), [])
        assert_dominance_output(ds)


class TestRegionsContract:
    """Test region stage contract."""

    def _frame(self, counts):
        rows = []
        for i, count in enumerate(counts):
            row = {col: 0 for col in REQUIRED_COLUMNS}
            row.update(region_id=f"a@{i},0", label="a", cell_count=count, runner_up_label=None)
            rows.append(row)
        return pd.DataFrame(rows, columns=list(REQUIRED_COLUMNS))

    def test_regions_contract_passes(self):
        assert_regions_output(self._frame([5, 3, 3, 1]))

    def test_empty_table_with_columns_passes(self):
        assert_regions_output(pd.DataFrame(columns=list(REQUIRED_COLUMNS)))

    def test_non_dataframe_fails(self):
        with pytest.raises(ContractViolation, match="DataFrame"):
            assert_regions_output([])

    def test_missing_column_fails(self):
        df = self._frame([2]).drop(columns="avg_margin")
        with pytest.raises(ContractViolation, match="avg_margin"):
            assert_regions_output(df)

    def test_unsorted_regions_fail(self):
        with pytest.raises(ContractViolation, match="sorted"):
            assert_regions_output(self._frame([1, 4]))

    def test_empty_region_fails(self):
        with pytest.raises(ContractViolation, match="> 0"):
            assert_regions_output(self._frame([2, 0]))
