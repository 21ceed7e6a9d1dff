"""InternalConfig: the resolved configuration the engine runs with.

Every field is required and already validated, so the aggregator,
post-processor, extractor and worker read values directly without
defaults of their own. Instances come from ``resolve_config``.
"""

from typing import Literal, Optional
from pydantic import ConfigDict, Field
from tapgrid.schemas.base import TapgridBaseModel


class InternalGridConfig(TapgridBaseModel):
    """Bounding box and cell size used when a request has no grid of its own."""
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float
    cell_size_meters: float = Field(gt=0)


class InternalDominanceConfig(TapgridBaseModel):
    radius_km: float = Field(gt=0)


class InternalPostprocessConfig(TapgridBaseModel):
    smoothing_iterations: int = Field(ge=0)
    merge_island_size: int = Field(ge=0)


class InternalRegionsConfig(TapgridBaseModel):
    """Thresholds of the contested-area queries."""
    close_margin_threshold: float = Field(ge=0, le=1.0)
    battlefront_max_margin: float = Field(ge=0, le=1.0)
    battlefront_limit: int = Field(ge=1)


class InternalWorkerConfig(TapgridBaseModel):
    """Queue bounds and polling of the background worker."""
    max_queue_size: int = Field(ge=1)
    poll_interval_sec: float = Field(gt=0)
    latest_only: bool
    result_timeout_sec: float = Field(gt=0)


class InternalLoggingConfig(TapgridBaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    log_file: Optional[str]


class InternalConfig(TapgridBaseModel):
    """Frozen, fully resolved configuration.

    Runtime classes take it in their constructor and copy out what they
    need::

        def __init__(self, config: InternalConfig):
            self.radius_km = config.dominance.radius_km
            self.min_size = config.postprocess.merge_island_size

    Being frozen, one instance can be shared by the orchestrator and its
    worker thread.
    """

    grid: InternalGridConfig
    dominance: InternalDominanceConfig
    postprocess: InternalPostprocessConfig
    regions: InternalRegionsConfig
    worker: InternalWorkerConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(frozen=True)
