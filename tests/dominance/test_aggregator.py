"""Test weighted dominance aggregation."""

import numpy as np
import pytest
import xarray as xr

from tapgrid.dominance.aggregator import (
    DominanceAggregator,
    KM_PER_DEG,
    compute_dominance,
    prefilter_half_widths,
)
from tapgrid.dominance.geo import enumerate_grid, haversine_distance_km

pytestmark = pytest.mark.unit

MUNICH = (48.1370, 11.5753)


def _lon_offset_for_km(km, lat):
    """Longitude offset of a point ``km`` due east along the parallel ``lat``."""
    ratio = np.sin(km / (2 * 6371.0)) / np.cos(np.radians(lat))
    return np.degrees(2 * np.arcsin(ratio))


class TestRadiusGating:

    def test_literal_radius_per_vote(self, make_grid, make_vote):
        lat0, lon0 = MUNICH
        grid = make_grid(
            [[lat0 + 15 / KM_PER_DEG, lat0 + 25 / KM_PER_DEG]],
            [[lon0, lon0]],
        )
        ds = compute_dominance(grid, [make_vote("a", lat0, lon0, radius_km=20)], radius_km=20)

        assert ds["total_weight"].values.tolist() == [[1.0, 0.0]]
        assert ds["winner"].values.tolist() == [[0, -1]]

    def test_each_vote_uses_its_own_radius(self, make_grid, make_vote):
        lat0, lon0 = MUNICH
        grid = make_grid([[lat0 + 30 / KM_PER_DEG]], [[lon0]])
        votes = [
            make_vote("near", lat0, lon0, radius_km=5),
            make_vote("far", lat0, lon0, radius_km=50),
        ]
        ds = compute_dominance(grid, votes, radius_km=20)

        assert list(ds["label"].values) == ["far", "near"]
        assert ds["label_votes"].values[:, 0, 0].tolist() == [1, 0]
        assert ds["winner"].values[0, 0] == 0
        assert ds.attrs["max_radius_km"] == 50.0

    def test_cell_on_the_radius_is_included(self, make_grid, make_vote):
        lat0, lon0 = MUNICH
        cell_lat = lat0 + 10 / KM_PER_DEG
        d = float(haversine_distance_km(cell_lat, lon0, lat0, lon0))
        grid = make_grid([[cell_lat]], [[lon0]])

        ds = compute_dominance(grid, [make_vote("a", lat0, lon0, radius_km=d)], radius_km=d)

        assert ds["total_weight"].values[0, 0] == 1.0


class TestPrefilter:

    def test_east_cell_inside_radius_is_kept(self, make_grid, make_vote):
        """A cell 19.5 km due east at 48N lies ~0.262 deg away in longitude."""
        dlon = _lon_offset_for_km(19.5, 48.0)
        assert dlon == pytest.approx(0.26208, abs=1e-4)

        grid = make_grid([[48.0, 48.0]], [[11.0 + dlon, 11.0 + _lon_offset_for_km(20.5, 48.0)]])
        ds = compute_dominance(grid, [make_vote("a", 48.0, 11.0, radius_km=20)], radius_km=20)

        assert ds["total_weight"].values.tolist() == [[1.0, 0.0]]

    def test_half_widths_cover_radius(self):
        half_lat, half_lon = prefilter_half_widths(20.0, 48.0)

        assert half_lat == pytest.approx(20.0 / KM_PER_DEG)
        # Wider than the spacing at 48N itself: bounded at the poleward edge
        assert half_lon > _lon_offset_for_km(20.0, 48.0)
        assert half_lon == pytest.approx(_lon_offset_for_km(20.0, 48.0 + half_lat), rel=1e-6)

    def test_half_lon_unbounded_near_pole(self):
        _, half_lon = prefilter_half_widths(50.0, 89.9)
        assert np.isinf(half_lon)

    def test_wraps_across_antimeridian(self, make_grid, make_vote):
        grid = make_grid([[0.0]], [[179.95]])
        ds = compute_dominance(grid, [make_vote("a", 0.0, -179.95, radius_km=20)], radius_km=20)

        assert ds["total_weight"].values[0, 0] == 1.0


class TestWinnerAndMargin:

    def test_tie_goes_to_first_label(self, make_grid, make_vote):
        grid = make_grid([[48.0]], [[11.0]])
        votes = [make_vote("beta", 48.0, 11.0), make_vote("alpha", 48.0, 11.0)]
        ds = compute_dominance(grid, votes, radius_km=20)

        names = list(ds["label"].values)
        assert names[ds["winner"].values[0, 0]] == "alpha"
        assert names[ds["runner_up"].values[0, 0]] == "beta"
        assert ds["margin"].values[0, 0] == 0.0

    def test_margin_is_normalized_lead(self, make_grid, make_vote):
        grid = make_grid([[48.0]], [[11.0]])
        votes = [
            make_vote("a", 48.0, 11.0, weight=3.0),
            make_vote("b", 48.0, 11.0, weight=1.0),
            make_vote("c", 48.0, 11.0, weight=1.0),
        ]
        ds = compute_dominance(grid, votes, radius_km=20)

        assert ds["winner_weight"].values[0, 0] == 3.0
        assert ds["runner_up_weight"].values[0, 0] == 1.0
        assert ds["margin"].values[0, 0] == pytest.approx(2.0 / 5.0)

    def test_single_label_margin_is_one(self, make_grid, make_vote):
        grid = make_grid([[48.0]], [[11.0]])
        ds = compute_dominance(grid, [make_vote("a", 48.0, 11.0, weight=2.5)], radius_km=20)

        assert ds["runner_up"].values[0, 0] == -1
        assert ds["margin"].values[0, 0] == 1.0

    def test_tiny_total_reports_full_margin(self, make_grid, make_vote):
        grid = make_grid([[48.0]], [[11.0]])
        votes = [
            make_vote("a", 48.0, 11.0, weight=0.0003),
            make_vote("b", 48.0, 11.0, weight=0.0002),
        ]
        ds = compute_dominance(grid, votes, radius_km=20)

        assert ds["total_weight"].values[0, 0] == pytest.approx(0.0005)
        assert ds["margin"].values[0, 0] == 1.0

    def test_zero_weight_cell_is_empty(self, make_grid, make_vote):
        grid = make_grid([[48.0]], [[11.0]])
        ds = compute_dominance(grid, [make_vote("a", 48.0, 11.0, weight=0.0)], radius_km=20)

        assert ds["winner"].values[0, 0] == -1
        assert ds["margin"].values[0, 0] == 0.0
        assert ds["label_votes"].values.sum() == 0

    def test_margin_bounds_on_random_votes(self, small_spec, make_vote):
        rng = np.random.default_rng(7)
        votes = [
            make_vote(
                str(rng.choice(["a", "b", "c"])),
                48.0 + rng.random() * 0.1,
                11.0 + rng.random() * 0.2,
                weight=float(rng.uniform(0.1, 3.0)),
                radius_km=float(rng.uniform(1.0, 6.0)),
            )
            for _ in range(40)
        ]
        ds = compute_dominance(enumerate_grid(small_spec), votes, radius_km=5)

        margin = ds["margin"].values
        has_winner = ds["winner"].values >= 0
        assert np.all((margin >= 0) & (margin <= 1))
        assert np.all(ds["winner_weight"].values >= ds["runner_up_weight"].values)
        assert np.allclose(ds["label_weight"].values.sum(axis=0), ds["total_weight"].values)
        assert np.array_equal(has_winner, ds["total_weight"].values > 0)


def test_counts_and_weights_accumulate(make_grid, make_vote):
    grid = make_grid([[48.0]], [[11.0]])
    votes = [make_vote("a", 48.0, 11.0, weight=w) for w in (0.5, 1.0, 2.0)]
    ds = compute_dominance(grid, votes, radius_km=20)

    assert ds["label_votes"].values[0, 0, 0] == 3
    assert ds["label_weight"].values[0, 0, 0] == pytest.approx(3.5)


def test_no_votes_gives_empty_grid(small_spec):
    ds = compute_dominance(enumerate_grid(small_spec), [], radius_km=20)

    assert ds.sizes["label"] == 0
    assert np.all(ds["winner"].values == -1)
    assert np.all(ds["total_weight"].values == 0)
    assert ds.attrs["vote_count"] == 0


def test_deterministic(small_spec, make_vote):
    votes = [
        make_vote("x", 48.03, 11.05, radius_km=4),
        make_vote("y", 48.06, 11.12, weight=1.5, radius_km=3),
        make_vote("x", 48.07, 11.15, radius_km=2),
    ]
    grid = enumerate_grid(small_spec)

    xr.testing.assert_identical(
        compute_dominance(grid, votes, radius_km=5),
        compute_dominance(grid, votes, radius_km=5),
    )


def test_raw_winner_mirrors_winner(small_spec, make_vote):
    ds = compute_dominance(enumerate_grid(small_spec), [make_vote("a", 48.05, 11.1, radius_km=3)], radius_km=3)
    assert np.array_equal(ds["raw_winner"].values, ds["winner"].values)


class TestDominanceAggregator:

    def test_uses_configured_radius(self, make_config, small_spec, make_vote):
        aggregator = DominanceAggregator(make_config(radius_km=15))
        ds = aggregator.compute(enumerate_grid(small_spec), [make_vote("a", 48.05, 11.1, radius_km=2)])

        assert aggregator.radius_km == 15.0
        assert ds.attrs["radius_km"] == 15.0
        assert ds.attrs["max_radius_km"] == 15.0

    def test_radius_override(self, internal_config, small_spec):
        ds = DominanceAggregator(internal_config).compute(enumerate_grid(small_spec), [], radius_km=7.5)
        assert ds.attrs["radius_km"] == 7.5
