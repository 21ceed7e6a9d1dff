"""Pydantic schemas for tapgrid.

This module provides strictly typed configuration models for the
dominance engine plus the request-side value models. All configuration
validation, coercion, and normalization happens at schema validation
time via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
GridSpec, GridCell, WeightedVote, DominanceRequest, CellResult : class
    Engine input/output values
"""

from tapgrid.schemas.resolve import resolve_config
from tapgrid.schemas.internal import InternalConfig
from tapgrid.schemas.param import ParamConfig
from tapgrid.schemas.user import UserConfig
from tapgrid.schemas.cli import CLIConfig
from tapgrid.schemas.domain import (
    GridSpec,
    GridCell,
    WeightedVote,
    DominanceRequest,
    CellResult,
)

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
    'GridSpec',
    'GridCell',
    'WeightedVote',
    'DominanceRequest',
    'CellResult',
]
