"""Region extraction and contested-area queries.

This module groups same-winner cells of a post-processed dominance
dataset into 4-connected regions and computes per-region statistics.
Output is a Pandas DataFrame with one row per region, largest first.

Per region:
- Identity: ``region_id`` (``"{label}@{min_row},{min_col}"``, not a stable key), ``label``
- Size and extent: ``cell_count``, bounding box ``min_row`` .. ``max_col``
- Centroid: mean (row, col) mapped to lat/lon with the grid's row convention
- Raw statistics: ``avg_margin`` (mean margin), ``total_votes`` (summed total weight)
- ``runner_up_label``: most frequent non-null runner-up among member cells

Region statistics read the aggregated fields, while membership follows
the post-processed winner.

The contested-area helpers (cells and regions with a close margin and a
runner-up, battlefront ranking, nearest contested region) answer queries
against a finished dataset / region table.
"""

import logging
from typing import Optional, Tuple, TYPE_CHECKING

import numpy as np
import pandas as pd
import xarray as xr
from skimage.measure import label as label_components, regionprops

from tapgrid.contracts.regions import REQUIRED_COLUMNS
from tapgrid.dominance.geo import haversine_distance_km
from tapgrid.dominance.grid_utils import (
    NULL_LABEL,
    grid_shape,
    label_name,
    label_names,
    row_to_lat_lon,
)

if TYPE_CHECKING:
    from tapgrid.schemas import InternalConfig

__all__ = [
    'RegionExtractor',
    'extract_regions',
    'find_region_for_cell',
    'find_contested_cells',
    'find_battlefront_regions',
    'closest_contested_region',
]

logger = logging.getLogger(__name__)

CONTESTED_CELL_COLUMNS = (
    "row",
    "col",
    "center_lat",
    "center_lon",
    "winner_label",
    "runner_up_label",
    "margin",
    "total_weight",
)


def extract_regions(ds: xr.Dataset) -> pd.DataFrame:
    """Extract 4-connected same-winner regions from a dominance dataset.

    Parameters
    ----------
    ds : xr.Dataset
        Post-processed dominance dataset.

    Returns
    -------
    pd.DataFrame
        One row per region, sorted by ``cell_count`` descending with ties
        in row-major order of each region's first cell. Empty (with all
        columns) when no cell has a winner.
    """
    winner = ds["winner"].values
    if winner.size == 0 or not (winner != NULL_LABEL).any():
        return pd.DataFrame(columns=list(REQUIRED_COLUMNS))

    _, cols = grid_shape(ds)
    names = label_names(ds)
    margin = ds["margin"].values
    total_weight = ds["total_weight"].values
    runner_up = ds["runner_up"].values

    components = label_components(winner, background=NULL_LABEL, connectivity=1)

    results = []
    for region in regionprops(components):
        coords = region.coords
        rr, cc = coords[:, 0], coords[:, 1]
        winner_idx = int(winner[rr[0], cc[0]])

        avg_row = rr.mean()
        avg_col = cc.mean()
        lat, lon = row_to_lat_lon(ds.attrs, avg_row, avg_col)

        min_row, max_row = int(rr.min()), int(rr.max())
        min_col, max_col = int(cc.min()), int(cc.max())

        runners = runner_up[rr, cc]
        runners = runners[runners != NULL_LABEL]
        top_runner = names[int(np.bincount(runners).argmax())] if runners.size else None

        results.append({
            "region_id": f"{names[winner_idx]}@{min_row},{min_col}",
            "label": names[winner_idx],
            "cell_count": int(len(coords)),
            "centroid_lat": float(lat),
            "centroid_lon": float(lon),
            "min_row": min_row,
            "max_row": max_row,
            "min_col": min_col,
            "max_col": max_col,
            "avg_margin": float(margin[rr, cc].mean()),
            "total_votes": float(total_weight[rr, cc].sum()),
            "runner_up_label": top_runner,
            "_first_cell": int((rr * cols + cc).min()),
        })

    df = pd.DataFrame(results)
    df = df.sort_values(["cell_count", "_first_cell"], ascending=[False, True], kind="mergesort")
    return df.drop(columns="_first_cell").reset_index(drop=True)


def find_region_for_cell(row: int, col: int, regions: pd.DataFrame, ds: xr.Dataset) -> Optional[pd.Series]:
    """First region (in table order) whose label and bounding box match a cell.

    Bounding-box containment, not component membership: for non-convex
    layouts a cell can be attributed to a different region of the same
    label whose box happens to contain it.

    Returns None for out-of-range or null-winner cells.
    """
    rows, cols = grid_shape(ds)
    if not (0 <= row < rows and 0 <= col < cols):
        return None

    cell_label = label_name(ds, int(ds["winner"].values[row, col]))
    if cell_label is None or regions.empty:
        return None

    match = regions[
        (regions["label"] == cell_label)
        & (regions["min_row"] <= row) & (regions["max_row"] >= row)
        & (regions["min_col"] <= col) & (regions["max_col"] >= col)
    ]
    if match.empty:
        return None
    return match.iloc[0]


def find_contested_cells(ds: xr.Dataset, threshold: float) -> pd.DataFrame:
    """Cells with a winner, a runner-up and ``margin <= threshold``.

    Returns a DataFrame with CONTESTED_CELL_COLUMNS in row-major order.
    """
    winner = ds["winner"].values
    runner_up = ds["runner_up"].values
    margin = ds["margin"].values

    mask = (winner != NULL_LABEL) & (runner_up != NULL_LABEL) & (margin <= threshold)
    rr, cc = np.nonzero(mask)
    names = np.array(label_names(ds) or [""], dtype=object)

    return pd.DataFrame({
        "row": rr.astype(int),
        "col": cc.astype(int),
        "center_lat": ds["center_lat"].values[rr, cc],
        "center_lon": ds["center_lon"].values[rr, cc],
        "winner_label": names[winner[rr, cc]],
        "runner_up_label": names[runner_up[rr, cc]],
        "margin": margin[rr, cc],
        "total_weight": ds["total_weight"].values[rr, cc],
    }, columns=list(CONTESTED_CELL_COLUMNS))


def _contested_regions(regions: pd.DataFrame, max_margin: float) -> pd.DataFrame:
    if regions.empty:
        return regions
    return regions[regions["runner_up_label"].notna() & (regions["avg_margin"] < max_margin)]


def find_battlefront_regions(regions: pd.DataFrame, max_margin: float, limit: int,
                             bounds: Optional[Tuple[float, float, float, float]] = None) -> pd.DataFrame:
    """Closest-fought regions, lowest average margin first.

    Parameters
    ----------
    regions : pd.DataFrame
        Output of ``extract_regions``.
    max_margin : float
        Regions need ``avg_margin < max_margin`` and a runner-up.
    limit : int
        Maximum number of rows returned.
    bounds : tuple, optional
        ``(south, north, west, east)``; regions whose centroid falls
        outside are skipped.
    """
    candidates = regions
    if bounds is not None and not candidates.empty:
        south, north, west, east = bounds
        candidates = candidates[
            candidates["centroid_lat"].between(south, north)
            & candidates["centroid_lon"].between(west, east)
        ]

    contested = _contested_regions(candidates, max_margin)
    return contested.sort_values("avg_margin", kind="mergesort").head(limit).reset_index(drop=True)


def closest_contested_region(lat: float, lon: float, regions: pd.DataFrame,
                             max_margin: float) -> Optional[pd.Series]:
    """Contested region whose centroid is nearest to a point.

    The returned row carries an extra ``distance_km`` field. None when no
    region qualifies.
    """
    contested = _contested_regions(regions, max_margin)
    if contested.empty:
        return None

    distances = haversine_distance_km(
        lat, lon,
        contested["centroid_lat"].to_numpy(dtype=float),
        contested["centroid_lon"].to_numpy(dtype=float),
    )
    nearest = int(np.argmin(distances))
    result = contested.iloc[nearest].copy()
    result["distance_km"] = float(distances[nearest])
    return result


class RegionExtractor:
    """Config-driven region extraction and contested-area queries.

    Examples
    --------
    >>> extractor = RegionExtractor(config)
    >>> regions = extractor.extract(ds)
    >>> extractor.battlefront(regions)
    """

    def __init__(self, config: "InternalConfig"):
        """Initialize extractor with validated configuration.

        All thresholds come straight from ``config.regions``.
        """
        self.config = config
        self.close_margin_threshold = config.regions.close_margin_threshold
        self.battlefront_max_margin = config.regions.battlefront_max_margin
        self.battlefront_limit = config.regions.battlefront_limit

    def extract(self, ds: xr.Dataset) -> pd.DataFrame:
        """Extract the region table from a post-processed dataset."""
        df = extract_regions(ds)
        if df.empty:
            logger.debug("No regions: grid has no winners")
        else:
            logger.info("Extracted %d regions (largest: %s, %d cells)",
                        len(df), df["region_id"].iloc[0], int(df["cell_count"].iloc[0]))
        return df

    def contested_cells(self, ds: xr.Dataset, threshold: Optional[float] = None) -> pd.DataFrame:
        """Close-margin cells; defaults to ``regions.close_margin_threshold``."""
        if threshold is None:
            threshold = self.close_margin_threshold
        return find_contested_cells(ds, threshold)

    def battlefront(self, regions: pd.DataFrame,
                    bounds: Optional[Tuple[float, float, float, float]] = None) -> pd.DataFrame:
        """Battlefront regions using the configured margin cap and limit."""
        return find_battlefront_regions(regions, self.battlefront_max_margin,
                                        self.battlefront_limit, bounds=bounds)

    def closest_contested(self, lat: float, lon: float, regions: pd.DataFrame) -> Optional[pd.Series]:
        """Nearest contested region using the configured margin cap."""
        return closest_contested_region(lat, lon, regions, self.battlefront_max_margin)
