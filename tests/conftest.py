"""Root-level pytest fixtures for the tapgrid test suite.

Provides shared configuration fixtures following the Pydantic-based
architecture, plus builders for votes, grids and dominance datasets.
All tests must use these fixtures instead of creating raw dict configs.
"""

import logging

import numpy as np
import pytest
import xarray as xr

from tapgrid.schemas import ParamConfig, UserConfig, GridSpec, WeightedVote, resolve_config


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults.
    
    Use this as the base for all test configs. Override specific values
    using user_config or by creating custom UserConfig instances.
    """
    return ParamConfig()


@pytest.fixture
def internal_config(param_config):
    """Fully validated runtime configuration (no overrides).
    
    Use this when tests don't care about specific config values and just
    need a valid InternalConfig to pass to constructors.
    
    Examples
    --------
    >>> def test_postprocessor_init(internal_config):
    ...     post = GridPostProcessor(internal_config)
    ...     assert post.smoothing_iterations == 2
    """
    return resolve_config(param_config, None, None)


@pytest.fixture
def make_config(param_config):
    """Factory fixture for creating custom test configs.
    
    Use this when you need to override specific values for a test.
    Returns a callable that accepts UserConfig-compatible kwargs.
    
    Examples
    --------
    >>> def test_custom_radius(make_config):
    ...     config = make_config(radius_km=15)
    ...     agg = DominanceAggregator(config)
    ...     assert agg.radius_km == 15.0
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        if user_overrides:
            user = UserConfig(**user_overrides)
            return resolve_config(param_config, user, None)
        else:
            return resolve_config(param_config, None, None)
    
    return _make


@pytest.fixture
def restore_logging():
    """Restore root logger handlers/level after tests that reconfigure logging."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


# =============================================================================
# Domain Builders
# =============================================================================

@pytest.fixture
def make_vote():
    """Factory for WeightedVote objects with sensible defaults."""
    counter = {"n": 0}

    def _make(label, lat, lon, weight=1.0, radius_km=20.0, **extra):
        counter["n"] += 1
        vote_id = extra.pop("id", f"v{counter['n']}")
        return WeightedVote(
            id=vote_id,
            lat=lat,
            lon=lon,
            label=label,
            weight=weight,
            radius_km=radius_km,
            **extra,
        )

    return _make


@pytest.fixture
def small_spec():
    """Small Munich box: 11 x 14 cells of 1 km."""
    return GridSpec(min_lat=48.0, max_lat=48.1, min_lon=11.0, max_lon=11.2, cell_size_meters=1000)


@pytest.fixture
def make_grid():
    """Build a grid dataset with explicit cell centers.

    Lets tests place cells at exact distances from a vote instead of
    relying on the regular enumeration.
    """
    def _make(center_lat, center_lon, **attrs):
        center_lat = np.atleast_2d(np.asarray(center_lat, dtype=float))
        center_lon = np.atleast_2d(np.asarray(center_lon, dtype=float))
        rows, cols = center_lat.shape
        spec = dict(min_lat=0.0, max_lat=1.0, min_lon=0.0, max_lon=1.0, cell_size_meters=1000.0)
        spec.update(attrs)
        return xr.Dataset(
            coords={
                "row": np.arange(rows),
                "col": np.arange(cols),
                "center_lat": (("row", "col"), center_lat),
                "center_lon": (("row", "col"), center_lon),
            },
            attrs=spec,
        )

    return _make


@pytest.fixture
def make_dominance_ds():
    """Build a dominance dataset around a given winner grid.

    Parameters of the returned callable
    -----------------------------------
    winner : array-like of int
        Label indices, -1 for null cells.
    labels : list of str
        Label names in index order.
    margin, runner_up, total_weight : array-like, optional
        Defaults: margin 1.0 / runner-up -1 / weight 1.0 on labelled cells.
    """
    def _make(winner, labels, margin=None, runner_up=None, total_weight=None,
              min_lat=48.0, min_lon=11.0, cell_size_meters=1000.0):
        winner = np.asarray(winner, dtype=np.int32)
        rows, cols = winner.shape
        has_winner = winner >= 0

        if total_weight is None:
            total_weight = np.where(has_winner, 1.0, 0.0)
        total_weight = np.asarray(total_weight, dtype=float)
        if margin is None:
            margin = np.where(has_winner, 1.0, 0.0)
        margin = np.asarray(margin, dtype=float)
        if runner_up is None:
            runner_up = np.full(winner.shape, -1)
        runner_up = np.asarray(runner_up, dtype=np.int32)

        label_weight = np.zeros((len(labels), rows, cols))
        for k in range(len(labels)):
            label_weight[k] = np.where(winner == k, total_weight, 0.0)

        dlat = cell_size_meters / 111320.0
        row_lat = min_lat + (np.arange(rows) + 0.5) * dlat
        dlon = cell_size_meters / (111320.0 * np.cos(np.radians(row_lat)))
        center_lat = np.repeat(row_lat[:, None], cols, axis=1)
        center_lon = min_lon + (np.arange(cols)[None, :] + 0.5) * dlon[:, None]

        return xr.Dataset(
            {
                "label_weight": (("label", "row", "col"), label_weight),
                "label_votes": (("label", "row", "col"), (label_weight > 0).astype(np.int32)),
                "total_weight": (("row", "col"), total_weight),
                "winner_weight": (("row", "col"), total_weight),
                "runner_up_weight": (("row", "col"), np.zeros(winner.shape)),
                "margin": (("row", "col"), margin),
                "winner": (("row", "col"), winner.copy()),
                "raw_winner": (("row", "col"), winner.copy()),
                "runner_up": (("row", "col"), runner_up),
            },
            coords={
                "row": np.arange(rows),
                "col": np.arange(cols),
                "label": np.array(labels, dtype=str),
                "center_lat": (("row", "col"), center_lat),
                "center_lon": (("row", "col"), center_lon),
            },
            attrs=dict(
                min_lat=min_lat,
                max_lat=min_lat + rows * dlat,
                min_lon=min_lon,
                max_lon=float(min_lon + cols * (dlon.min() if dlon.size else 0.0)),
                cell_size_meters=cell_size_meters,
            ),
        )

    return _make
