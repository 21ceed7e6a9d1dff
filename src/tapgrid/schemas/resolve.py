"""Merging of the configuration layers into one InternalConfig.

Layers, lowest priority first: ParamConfig (expert defaults), UserConfig
(config file), CLIConfig (command line). Each layer may be passed as a
model or as a plain dict.
"""

from typing import Optional, Type, TypeVar, Union

from pydantic import BaseModel

from tapgrid.schemas.param import ParamConfig
from tapgrid.schemas.user import UserConfig
from tapgrid.schemas.cli import CLIConfig
from tapgrid.schemas.internal import InternalConfig

_M = TypeVar("_M", bound=BaseModel)


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Recursively merge ``overrides`` into a copy of ``base``.

    Nested dicts are merged key by key; any other value replaces the one
    below it. Later overrides win.

    Examples
    --------
    >>> deep_merge({"grid": {"min_lat": 45.8, "cell_size_meters": 2000}},
    ...            {"grid": {"cell_size_meters": 500}})
    {'grid': {'min_lat': 45.8, 'cell_size_meters': 500}}
    """
    merged = dict(base)
    for override in overrides:
        for key, value in override.items():
            below = merged.get(key)
            if isinstance(below, dict) and isinstance(value, dict):
                merged[key] = deep_merge(below, value)
            else:
                merged[key] = value
    return merged


def _as_model(value, model_cls: Type[_M]) -> _M:
    """Validate a layer given as a dict; None or {} gives the empty layer."""
    if isinstance(value, model_cls):
        return value
    return model_cls.model_validate(value or {})


def resolve_config(
    param_cfg: Union[dict, ParamConfig],
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Resolve the runtime configuration (param < user < CLI).

    The only way runtime classes should obtain their configuration.

    Raises
    ------
    ValidationError
        If any layer, or the merged result, fails validation.

    Examples
    --------
    >>> from tapgrid.schemas import resolve_config, ParamConfig, UserConfig
    >>> user = UserConfig(RADIUS_KM=15, SMOOTHING_ITERATIONS=0)
    >>> config = resolve_config(ParamConfig(), user)
    >>> config.dominance.radius_km
    15.0
    >>> config.postprocess.smoothing_iterations
    0
    """
    param = _as_model(param_cfg, ParamConfig)
    user = _as_model(user_cfg, UserConfig)
    cli = _as_model(cli_cfg, CLIConfig)

    merged = deep_merge(
        param.model_dump(),
        user.to_internal_overrides(),
        cli.to_internal_overrides(),
    )
    return InternalConfig.model_validate(merged)
