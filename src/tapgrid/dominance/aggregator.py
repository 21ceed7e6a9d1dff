"""Weighted per-cell dominance aggregation.

For every grid cell this module sums the weight of each vote whose own
radius reaches the cell center, then derives the winner, the runner-up
and the normalized margin between them. Output is an xarray.Dataset with
dense per-label planes indexed by the lexicographically sorted label list.
"""

import logging
from typing import Optional, Sequence, TYPE_CHECKING

import numpy as np
import xarray as xr

from tapgrid.contracts import assert_gridded
from tapgrid.dominance.geo import EARTH_RADIUS_KM, haversine_distance_km
from tapgrid.dominance.grid_utils import NULL_LABEL
from tapgrid.schemas.domain import WeightedVote

if TYPE_CHECKING:
    from tapgrid.schemas import InternalConfig

__all__ = ['DominanceAggregator', 'compute_dominance', 'prefilter_half_widths']

logger = logging.getLogger(__name__)

KM_PER_DEG = np.pi * EARTH_RADIUS_KM / 180.0

# Below this total weight the margin is reported as fully decided
MIN_MARGIN_WEIGHT = 0.001

# Relative slack on the prefilter box so boundary cells survive rounding
_BOX_SLACK = 1.0 + 1e-9


def prefilter_half_widths(max_radius_km: float, max_abs_lat: float):
    """Bounding-box half-widths in degrees for a given maximum radius.

    The latitude half-width is exact on the haversine sphere. The
    longitude half-width is taken at the most poleward latitude a cell or
    an in-range vote can sit at, where a degree of longitude is shortest,
    so no pair the exact test accepts is rejected by the box.

    Parameters
    ----------
    max_radius_km : float
        Largest radius of any vote (and the nominal radius).
    max_abs_lat : float
        Largest absolute cell-center latitude in the grid.

    Returns
    -------
    tuple of (float, float)
        (half_lat_deg, half_lon_deg). ``half_lon_deg`` is ``inf`` when the
        radius reaches a pole.
    """
    half_lat = max_radius_km / KM_PER_DEG * _BOX_SLACK
    poleward = max_abs_lat + half_lat
    if poleward >= 90.0:
        return half_lat, np.inf

    # sin(d / 2R) >= cos(poleward) * sin(dlon / 2) for any pair within reach
    ratio = np.sin(max_radius_km / (2.0 * EARTH_RADIUS_KM)) / np.cos(np.radians(poleward))
    if ratio >= 1.0:
        return half_lat, np.inf
    half_lon = np.degrees(2.0 * np.arcsin(ratio)) * _BOX_SLACK
    return half_lat, float(half_lon)


def _wrapped_lon_delta(lon, vote_lon):
    """Absolute longitude difference folded into [0, 180]."""
    return np.abs((lon - vote_lon + 180.0) % 360.0 - 180.0)


def compute_dominance(grid: xr.Dataset, votes: Sequence[WeightedVote], radius_km: float) -> xr.Dataset:
    """Aggregate weighted votes over an enumerated grid.

    Parameters
    ----------
    grid : xr.Dataset
        Output of ``enumerate_grid`` (dims row/col, 2D center coords).
    votes : sequence of WeightedVote
        Read-only snapshot. Each vote is gated by its own ``radius_km``.
    radius_km : float
        Nominal radius. Only widens the prefilter; never gates a vote.

    Returns
    -------
    xr.Dataset
        Per-cell dominance:

        - ``label_weight`` / ``label_votes`` (label, row, col)
        - ``total_weight``, ``winner_weight``, ``runner_up_weight``, ``margin``
        - ``winner``, ``raw_winner``, ``runner_up`` int32 indices, -1 = null

    Notes
    -----
    - Labels are indexed in sorted order. The winner scan walks labels in
      that order with strict ``>``, so exact ties go to the first label.
    - A label only becomes winner or runner-up with positive weight.
    - Cells with total weight exactly 0 are zero results (no winner,
      margin 0, empty label planes).
    - Margin is ``(winner - runner_up) / total`` when ``total >= 0.001``,
      otherwise 1.0.
    """
    assert_gridded(grid)

    lat = grid["center_lat"].values
    lon = grid["center_lon"].values
    shape = lat.shape

    labels = sorted({v.label for v in votes})
    index = {name: k for k, name in enumerate(labels)}
    n_labels = len(labels)

    weights = np.zeros((n_labels,) + shape, dtype=np.float64)
    counts = np.zeros((n_labels,) + shape, dtype=np.int32)
    total = np.zeros(shape, dtype=np.float64)

    max_radius = max([radius_km] + [v.radius_km for v in votes])

    if votes and lat.size:
        half_lat, half_lon = prefilter_half_widths(max_radius, float(np.abs(lat).max()))
        for vote in votes:
            box = np.abs(lat - vote.lat) <= half_lat
            if np.isfinite(half_lon):
                box &= _wrapped_lon_delta(lon, vote.lon) <= half_lon
            rr, cc = np.nonzero(box)
            if rr.size == 0:
                continue

            dist = haversine_distance_km(lat[rr, cc], lon[rr, cc], vote.lat, vote.lon)
            hit = dist <= vote.radius_km
            rr, cc = rr[hit], cc[hit]
            if rr.size == 0:
                continue

            k = index[vote.label]
            weights[k, rr, cc] += vote.weight
            counts[k, rr, cc] += 1
            total[rr, cc] += vote.weight

    winner = np.full(shape, NULL_LABEL, dtype=np.int32)
    runner_up = np.full(shape, NULL_LABEL, dtype=np.int32)
    winner_weight = np.zeros(shape, dtype=np.float64)
    runner_up_weight = np.zeros(shape, dtype=np.float64)

    for k in range(n_labels):
        w = weights[k]
        beats_winner = w > winner_weight
        beats_runner = ~beats_winner & (w > runner_up_weight)

        runner_up = np.where(beats_winner, winner, np.where(beats_runner, k, runner_up)).astype(np.int32)
        runner_up_weight = np.where(beats_winner, winner_weight, np.where(beats_runner, w, runner_up_weight))
        winner = np.where(beats_winner, k, winner).astype(np.int32)
        winner_weight = np.where(beats_winner, w, winner_weight)

    empty = total == 0
    winner[empty] = NULL_LABEL
    runner_up[empty] = NULL_LABEL
    winner_weight[empty] = 0.0
    runner_up_weight[empty] = 0.0
    weights[:, empty] = 0.0
    counts[:, empty] = 0

    margin = np.ones(shape, dtype=np.float64)
    np.divide(winner_weight - runner_up_weight, total, out=margin, where=total >= MIN_MARGIN_WEIGHT)
    margin[empty] = 0.0

    ds = grid.copy()
    ds = ds.assign_coords(label=np.array(labels, dtype=str))
    ds["label_weight"] = (("label", "row", "col"), weights)
    ds["label_votes"] = (("label", "row", "col"), counts)
    ds["total_weight"] = (("row", "col"), total)
    ds["winner_weight"] = (("row", "col"), winner_weight)
    ds["runner_up_weight"] = (("row", "col"), runner_up_weight)
    ds["margin"] = (("row", "col"), margin)
    ds["winner"] = (("row", "col"), winner)
    ds["raw_winner"] = (("row", "col"), winner.copy())
    ds["runner_up"] = (("row", "col"), runner_up)

    ds["winner"].attrs = {"long_name": "Post-processed winner label index", "null_value": NULL_LABEL}
    ds["raw_winner"].attrs = {"long_name": "Aggregated winner label index", "null_value": NULL_LABEL}
    ds["margin"].attrs = {"long_name": "Normalized winner lead over runner-up", "units": "1"}

    ds.attrs.update(
        radius_km=float(radius_km),
        max_radius_km=float(max_radius),
        vote_count=len(votes),
    )
    return ds


class DominanceAggregator:
    """Config-driven dominance aggregation.

    Wraps ``compute_dominance`` with the configured nominal radius and
    stage logging.

    Examples
    --------
    >>> from tapgrid.schemas import resolve_config, ParamConfig
    >>> config = resolve_config(ParamConfig())
    >>> aggregator = DominanceAggregator(config)
    >>> ds = aggregator.compute(grid, votes)
    """

    def __init__(self, config: "InternalConfig"):
        self.config = config
        self.radius_km = config.dominance.radius_km

    def compute(self, grid: xr.Dataset, votes: Sequence[WeightedVote],
                radius_km: Optional[float] = None) -> xr.Dataset:
        """Aggregate votes; ``radius_km`` overrides the configured nominal radius."""
        radius = self.radius_km if radius_km is None else radius_km
        ds = compute_dominance(grid, votes, radius)

        n_cells = int(ds["winner"].size)
        n_won = int((ds["winner"].values != NULL_LABEL).sum())
        logger.info("Aggregated %d votes over %d cells: %d labels, %d cells with a winner",
                    len(votes), n_cells, ds.sizes["label"], n_won)
        return ds
