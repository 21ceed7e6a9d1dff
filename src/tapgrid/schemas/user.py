"""UserConfig: the settings a config file may override.

Config files use flat upper-case keys (``RADIUS_KM``, ``BOUNDING_BOX``,
...) and may also give whole nested sections. Anything left out keeps
its ParamConfig default; unknown keys are ignored so old config files
keep loading.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from tapgrid.schemas.base import TapgridBaseModel


class UserGridConfig(TapgridBaseModel):
    """User-facing grid config."""
    min_lat: Optional[float] = None
    max_lat: Optional[float] = None
    min_lon: Optional[float] = None
    max_lon: Optional[float] = None
    cell_size_meters: Optional[float] = None


class UserDominanceConfig(TapgridBaseModel):
    """User-facing aggregation config."""
    radius_km: Optional[float] = None


class UserPostprocessConfig(TapgridBaseModel):
    """User-facing post-processing config."""
    smoothing_iterations: Optional[int] = None
    merge_island_size: Optional[int] = None


class UserRegionsConfig(TapgridBaseModel):
    """User-facing region query config."""
    close_margin_threshold: Optional[float] = None
    battlefront_max_margin: Optional[float] = None
    battlefront_limit: Optional[int] = None


class UserWorkerConfig(TapgridBaseModel):
    """User-facing worker config."""
    max_queue_size: Optional[int] = None
    poll_interval_sec: Optional[float] = None
    latest_only: Optional[bool] = None
    result_timeout_sec: Optional[float] = None


class UserConfig(TapgridBaseModel):
    """Overrides read from a user config file.

    When a flat key and a nested section set the same field, the nested
    section wins.
    
    Usage
    -----
        user_cfg = UserConfig(
            RADIUS_KM=15,
            BOUNDING_BOX=(47.0, 49.0, 10.0, 13.0),
            SMOOTHING_ITERATIONS=1,
        )
        
        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """
    
    # Grid settings (flat aliases)
    bounding_box: Optional[tuple[float, float, float, float]] = Field(None, alias="BOUNDING_BOX")
    cell_size_meters: Optional[float] = Field(None, alias="CELL_SIZE_METERS")
    
    # Aggregation settings (flat aliases)
    radius_km: Optional[float] = Field(None, alias="RADIUS_KM")
    
    # Post-processing settings (flat aliases)
    smoothing_iterations: Optional[int] = Field(None, alias="SMOOTHING_ITERATIONS")
    merge_island_size: Optional[int] = Field(None, alias="MERGE_ISLAND_SIZE")
    
    # Region settings (flat aliases)
    close_margin_threshold: Optional[float] = Field(None, alias="CLOSE_MARGIN_THRESHOLD")
    
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = Field(None, alias="LOG_LEVEL")
    
    # Nested overrides (advanced users)
    grid: Optional[UserGridConfig] = None
    dominance: Optional[UserDominanceConfig] = None
    postprocess: Optional[UserPostprocessConfig] = None
    regions: Optional[UserRegionsConfig] = None
    worker: Optional[UserWorkerConfig] = None
    
    model_config = TapgridBaseModel.model_config.copy()
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("cell_size_meters", "radius_km", "close_margin_threshold", mode="before")
    @classmethod
    def coerce_numeric_fields(cls, v):
        """Store integer inputs as floats."""
        if v is not None:
            return float(v)
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Normalize log level names to uppercase."""
        if isinstance(v, str):
            return v.upper().strip()
        return v
    
    def to_internal_overrides(self) -> dict:
        """Nested override dict, shaped like InternalConfig, holding only the set fields."""
        overrides = {}
        
        # Grid section
        grid = {}
        if self.bounding_box is not None:
            min_lat, max_lat, min_lon, max_lon = self.bounding_box
            grid.update(min_lat=min_lat, max_lat=max_lat, min_lon=min_lon, max_lon=max_lon)
        if self.cell_size_meters is not None:
            grid["cell_size_meters"] = self.cell_size_meters
        
        # Merge with explicit grid config
        if self.grid is not None:
            grid.update(self.grid.model_dump(exclude_none=True))
        
        if grid:
            overrides["grid"] = grid
        
        # Dominance section
        dominance = {}
        if self.radius_km is not None:
            dominance["radius_km"] = self.radius_km
        if self.dominance is not None:
            dominance.update(self.dominance.model_dump(exclude_none=True))
        if dominance:
            overrides["dominance"] = dominance
        
        # Postprocess section
        postprocess = {}
        if self.smoothing_iterations is not None:
            postprocess["smoothing_iterations"] = self.smoothing_iterations
        if self.merge_island_size is not None:
            postprocess["merge_island_size"] = self.merge_island_size
        if self.postprocess is not None:
            postprocess.update(self.postprocess.model_dump(exclude_none=True))
        if postprocess:
            overrides["postprocess"] = postprocess
        
        # Regions section
        regions = {}
        if self.close_margin_threshold is not None:
            regions["close_margin_threshold"] = self.close_margin_threshold
        if self.regions is not None:
            regions.update(self.regions.model_dump(exclude_none=True))
        if regions:
            overrides["regions"] = regions
        
        if self.worker is not None:
            worker = self.worker.model_dump(exclude_none=True)
            if worker:
                overrides["worker"] = worker
        
        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}
        
        return overrides
