"""CLIConfig: Command-line operational overrides.

Minimal configuration for parameters that commonly change between runs:
influence radius, cell size, post-processing strength, verbosity.

This schema handles command-line arguments parsed by argparse.
"""

from typing import Literal, Optional
from pydantic import Field
from tapgrid.schemas.base import TapgridBaseModel


class CLIConfig(TapgridBaseModel):
    """Command-line configuration overrides.
    
    Operational-only settings that override user and param configs.
    Highest priority in config resolution.
    
    Usage
    -----
        cli_cfg = CLIConfig(radius_km=15, log_level="DEBUG")
        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """
    
    radius_km: Optional[float] = Field(None, gt=0)
    cell_size_meters: Optional[float] = Field(None, gt=0)
    smoothing_iterations: Optional[int] = Field(None, ge=0)
    merge_island_size: Optional[int] = Field(None, ge=0)
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = None
    log_file: Optional[str] = None
    
    def to_internal_overrides(self) -> dict:
        """Convert CLI config to internal config structure.
        
        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}
        
        if self.radius_km is not None:
            overrides["dominance"] = {"radius_km": self.radius_km}
        
        if self.cell_size_meters is not None:
            overrides["grid"] = {"cell_size_meters": self.cell_size_meters}
        
        postprocess = {}
        if self.smoothing_iterations is not None:
            postprocess["smoothing_iterations"] = self.smoothing_iterations
        if self.merge_island_size is not None:
            postprocess["merge_island_size"] = self.merge_island_size
        if postprocess:
            overrides["postprocess"] = postprocess
        
        logging_overrides = {}
        if self.log_level is not None:
            logging_overrides["level"] = self.log_level
        if self.log_file is not None:
            logging_overrides["log_file"] = str(self.log_file)
        if logging_overrides:
            overrides["logging"] = logging_overrides
        
        return overrides
