"""ParamConfig: Expert defaults for the dominance engine.

This module defines the complete default configuration. ALL engine
parameters must have defaults here. No runtime code should define
fallback values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from tapgrid.schemas.base import TapgridBaseModel


# =============================================================================
# Nested Configuration Models
# =============================================================================

class GridConfig(TapgridBaseModel):
    """Default grid bounding box and cell size.

    The default box covers the DACH region (Germany, Austria, Switzerland):
    lat 45.8 (southern Swiss Alps) to 55.1 (northern Germany),
    lon 5.8 (western Germany) to 17.2 (eastern Austria).
    """
    min_lat: float = 45.8
    max_lat: float = 55.1
    min_lon: float = 5.8
    max_lon: float = 17.2
    cell_size_meters: float = Field(2000.0, gt=0, description="Cell edge length in meters")

    @field_validator("cell_size_meters", mode="before")
    @classmethod
    def coerce_cell_size_to_float(cls, v):
        """Allow int or float for cell size."""
        return float(v)


class DominanceConfig(TapgridBaseModel):
    """Aggregation configuration."""
    radius_km: float = Field(20.0, gt=0, description="Nominal influence radius in km")

    @field_validator("radius_km", mode="before")
    @classmethod
    def coerce_radius_to_float(cls, v):
        """Allow int or float for radius."""
        return float(v)


class PostprocessConfig(TapgridBaseModel):
    """Winner-grid post-processing configuration."""
    smoothing_iterations: int = Field(2, ge=0, description="Majority smoothing rounds")
    merge_island_size: int = Field(8, ge=0, description="Regions smaller than this are merged")


class RegionsConfig(TapgridBaseModel):
    """Region and contested-area query configuration."""
    close_margin_threshold: float = Field(0.10, ge=0, le=1.0)
    battlefront_max_margin: float = Field(0.5, ge=0, le=1.0)
    battlefront_limit: int = Field(3, ge=1)


class WorkerConfig(TapgridBaseModel):
    """Background worker configuration."""
    max_queue_size: int = Field(16, ge=1)
    poll_interval_sec: float = Field(1.0, gt=0)
    latest_only: bool = True
    result_timeout_sec: float = Field(120.0, gt=0)


class LoggingConfig(TapgridBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_file: Optional[str] = None


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(TapgridBaseModel):
    """Complete expert configuration with all defaults.
    
    This is the single source of truth for all engine parameters.
    Every tunable parameter MUST have a default here.
    
    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:
    
        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)
    
    Runtime code only sees InternalConfig.
    """
    
    grid: GridConfig = Field(default_factory=GridConfig)
    dominance: DominanceConfig = Field(default_factory=DominanceConfig)
    postprocess: PostprocessConfig = Field(default_factory=PostprocessConfig)
    regions: RegionsConfig = Field(default_factory=RegionsConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
