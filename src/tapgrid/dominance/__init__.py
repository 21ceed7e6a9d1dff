"""Dominance engine: grid enumeration, aggregation, post-processing, regions.

Stages (leaf first):

- ``geo``: haversine, degree/meter conversion, ``enumerate_grid``
- ``aggregator``: weighted per-cell per-label sums, winner/runner-up/margin
- ``postprocess``: majority smoothing and small-island merging
- ``regions``: connected-component regions and contested-area queries
- ``lookup``: point to cell mapping and per-cell records
"""

from tapgrid.dominance.geo import (
    haversine_distance_km,
    meters_to_deg_lat,
    meters_to_deg_lon,
    enumerate_grid,
    iter_grid_cells,
)
from tapgrid.dominance.grid_utils import NULL_LABEL
from tapgrid.dominance.aggregator import DominanceAggregator, compute_dominance
from tapgrid.dominance.postprocess import GridPostProcessor, smooth_winner_grid, merge_small_islands
from tapgrid.dominance.regions import (
    RegionExtractor,
    extract_regions,
    find_region_for_cell,
    find_contested_cells,
    find_battlefront_regions,
    closest_contested_region,
)
from tapgrid.dominance.lookup import locate_cell, find_cell_at, cell_result, cells_to_frame

__all__ = [
    'haversine_distance_km',
    'meters_to_deg_lat',
    'meters_to_deg_lon',
    'enumerate_grid',
    'iter_grid_cells',
    'NULL_LABEL',
    'DominanceAggregator',
    'compute_dominance',
    'GridPostProcessor',
    'smooth_winner_grid',
    'merge_small_islands',
    'RegionExtractor',
    'extract_regions',
    'find_region_for_cell',
    'find_contested_cells',
    'find_battlefront_regions',
    'closest_contested_region',
    'locate_cell',
    'find_cell_at',
    'cell_result',
    'cells_to_frame',
]
