"""Request-side and per-cell value models.

These are the values that cross the engine boundary: the grid
specification and weighted votes a caller hands in, the request that
bundles them, and the per-cell record returned by point queries.

Field types are validated by Pydantic. Geometric invariants of GridSpec
(non-empty box, positive cell size) are NOT checked here - they are a
pipeline contract, enforced by ``tapgrid.contracts.assert_valid_grid_spec``
when the grid is enumerated.
"""

from typing import Literal, Optional
from pydantic import AliasChoices, Field
from tapgrid.schemas.base import TapgridBaseModel, TapgridValueModel


class GridSpec(TapgridValueModel):
    """Rectangular lat/lon box with a uniform cell size in meters."""
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float
    cell_size_meters: float

    @classmethod
    def from_config(cls, grid_cfg) -> "GridSpec":
        """Build the default spec from ``InternalConfig.grid``."""
        return cls(
            min_lat=grid_cfg.min_lat,
            max_lat=grid_cfg.max_lat,
            min_lon=grid_cfg.min_lon,
            max_lon=grid_cfg.max_lon,
            cell_size_meters=grid_cfg.cell_size_meters,
        )

    @classmethod
    def from_attrs(cls, attrs: dict) -> "GridSpec":
        """Rebuild the spec echoed into a dominance dataset's attrs."""
        return cls(**{name: attrs[name] for name in cls.model_fields})


class GridCell(TapgridValueModel):
    """One enumerated grid cell. Row 0 is the southernmost band."""
    row: int
    col: int
    center_lat: float
    center_lon: float


class WeightedVote(TapgridValueModel):
    """A single influence source.

    ``label`` also accepts ``beer_id`` / ``beerId`` and ``radius_km``
    accepts ``radiusKm`` so payloads from the weight-assembly service
    validate unchanged.
    """
    id: str
    lat: float
    lon: float
    label: str = Field(validation_alias=AliasChoices("label", "beer_id", "beerId"))
    weight: float = 1.0
    radius_km: float = Field(validation_alias=AliasChoices("radius_km", "radiusKm"))
    source: Optional[Literal["home", "otr", "drink"]] = None


class DominanceRequest(TapgridBaseModel):
    """One computation request.

    Unset parameters fall back to the runtime configuration
    (``dominance.radius_km``, ``postprocess.*``).
    """
    votes: list[WeightedVote] = Field(default_factory=list)
    grid_spec: GridSpec
    radius_km: Optional[float] = Field(None, gt=0)
    smoothing_iterations: Optional[int] = Field(None, ge=0)
    merge_island_size: Optional[int] = Field(None, ge=0)
    request_id: Optional[str] = None


class CellResult(TapgridValueModel):
    """Per-cell dominance record.

    ``winner_label`` is the post-processed winner; every other field is
    the raw aggregation result, so the two may disagree after smoothing
    or island merging.
    """
    row: int
    col: int
    winner_label: Optional[str]
    winner_weight: float
    total_weight: float
    per_label_weight: dict[str, float]
    runner_up_label: Optional[str]
    runner_up_weight: float
    margin: float

