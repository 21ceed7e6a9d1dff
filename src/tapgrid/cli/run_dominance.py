"""Command-line runner for the dominance pipeline.

Reads a user config file and a votes file, resolves the configuration,
computes one request over the configured bounding box through the
background worker and prints a short report. ``scripts/run_dominance.py``
only forwards ``sys.argv`` to ``main``.
"""

import argparse
import json
import logging
import importlib.util
from pathlib import Path
from typing import Optional, Dict, Any, List, Tuple

import pandas as pd
import xarray as xr

from tapgrid.dominance.lookup import cells_to_frame
from tapgrid.pipeline.orchestrator import DominanceOrchestrator
from tapgrid.schemas import (
    resolve_config,
    ParamConfig,
    UserConfig,
    CLIConfig,
    GridSpec,
    WeightedVote,
    DominanceRequest,
)


logger = logging.getLogger(__name__)

# Input column spellings accepted for vote files
_COLUMN_ALIASES = {
    "beer_id": "label",
    "beerId": "label",
    "radiusKm": "radius_km",
}
_REQUIRED_VOTE_COLUMNS = ("lat", "lon", "label")


def load_user_config_dict(config_path: str) -> dict:
    """Execute a Python config file and return its ``CONFIG*`` dict.

    The dict is returned unvalidated; ``UserConfig`` validates it.

    Raises
    ------
    FileNotFoundError
        If ``config_path`` does not exist.
    ValueError
        If the module defines no dict whose name starts with ``CONFIG``.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    module_spec = importlib.util.spec_from_file_location("tapgrid_user_config", path)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)

    candidates = [
        value for name, value in sorted(vars(module).items())
        if name.startswith("CONFIG") and isinstance(value, dict)
    ]
    if not candidates:
        raise ValueError(f"No CONFIG dict found in {path}")
    return candidates[0]


def load_votes(votes_path: str, default_radius_km: float) -> List[WeightedVote]:
    """Load weighted votes from a CSV or JSON file.

    Columns ``lat``, ``lon`` and ``label`` (or ``beer_id`` / ``beerId``)
    are required. Missing ``weight`` values default to 1.0 (a flat vote),
    missing ``radius_km`` (or ``radiusKm``) values to ``default_radius_km``
    and missing ``id`` values to ``vote-<row>``.

    Parameters
    ----------
    votes_path : str
        ``.csv`` file, or ``.json`` file holding a list of vote objects.
    default_radius_km : float
        Radius for votes that do not carry their own.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the format is unknown or a required column is missing.
    ValidationError
        If a row does not validate as a WeightedVote.
    """
    path = Path(votes_path)
    if not path.exists():
        raise FileNotFoundError(f"Votes file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(path)
    elif suffix == ".json":
        df = pd.read_json(path, orient="records")
    else:
        raise ValueError(f"Unsupported votes format '{suffix}' (expected .csv or .json)")

    df = df.rename(columns=_COLUMN_ALIASES)
    missing = [col for col in _REQUIRED_VOTE_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Votes file {path} is missing columns: {missing}")

    if "weight" not in df.columns:
        df["weight"] = 1.0
    if "radius_km" not in df.columns:
        df["radius_km"] = default_radius_km
    df["weight"] = df["weight"].fillna(1.0).astype(float)
    df["radius_km"] = df["radius_km"].fillna(default_radius_km).astype(float)

    ids = df["id"] if "id" in df.columns else pd.Series([None] * len(df), index=df.index)
    df["id"] = [str(v) if pd.notna(v) else f"vote-{i}" for i, v in enumerate(ids)]
    df["label"] = df["label"].astype(str)

    if "source" in df.columns:
        df["source"] = df["source"].astype(object).where(df["source"].notna(), None)

    fields = [f for f in WeightedVote.model_fields if f in df.columns]
    votes = [WeightedVote.model_validate(record) for record in df[fields].to_dict(orient="records")]
    logger.info("Loaded %d votes (%d labels) from %s", len(votes), df["label"].nunique(), path)
    return votes


def write_outputs(ds: xr.Dataset, regions: pd.DataFrame, output_dir: str) -> Dict[str, Path]:
    """Write the per-cell table and the region table as CSV files."""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    paths = {"cells": out / "cells.csv", "regions": out / "regions.csv"}
    cells_to_frame(ds).to_csv(paths["cells"], index=False)
    regions.to_csv(paths["regions"], index=False)
    logger.info("Outputs written: %s", ", ".join(str(p) for p in paths.values()))
    return paths


def run_dominance_pipeline(
    user_config_path: str,
    votes_path: str,
    cli_args: Optional[Dict[str, Any]] = None,
    output_dir: Optional[str] = None,
    verbose: bool = False
) -> Tuple[xr.Dataset, pd.DataFrame]:
    """Compute dominance for a votes file over the configured bounding box.

    Parameters
    ----------
    user_config_path : str
        Python file defining a ``CONFIG`` dict (see ``scripts/user_config.py``).
    votes_path : str
        ``.csv`` or ``.json`` votes file, read by ``load_votes``.
    cli_args : dict, optional
        Command-line overrides (``radius_km``, ``cell_size_meters``,
        ``smoothing_iterations``, ``merge_island_size``, ``log_level``,
        ``log_file``). None values are ignored.
    output_dir : str, optional
        Directory for ``cells.csv`` and ``regions.csv``; nothing is written
        when omitted.
    verbose : bool, optional
        DEBUG logging (unless ``log_level`` is given) and a dump of the
        resolved configuration.

    Returns
    -------
    tuple
        (dominance dataset, region DataFrame)

    Raises
    ------
    FileNotFoundError
        If the config or votes file does not exist.
    ValidationError
        If a configuration layer or a vote does not validate.
    ContractViolation
        If the configured bounding box does not describe a grid.

    Examples
    --------
    ::

        run_dominance_pipeline("scripts/user_config.py", "votes.csv")
        run_dominance_pipeline(
            "scripts/user_config.py",
            "votes.csv",
            cli_args={"radius_km": 10, "smoothing_iterations": 0},
            output_dir="out",
        )
    """
    overrides = {k: v for k, v in (cli_args or {}).items() if v is not None}
    if verbose:
        overrides.setdefault("log_level", "DEBUG")

    config = resolve_config(
        ParamConfig(),
        UserConfig.model_validate(load_user_config_dict(user_config_path)),
        CLIConfig.model_validate(overrides),
    )

    votes = load_votes(votes_path, config.dominance.radius_km)
    request = DominanceRequest(votes=votes, grid_spec=GridSpec.from_config(config.grid))

    grid = config.grid
    print(f"\n{'='*60}")
    print("tapgrid Dominance Pipeline")
    print('='*60)
    print(f"Config: {user_config_path}")
    print(f"Votes:  {votes_path} ({len(votes)} votes)")
    print(f"Box:    lat {grid.min_lat}..{grid.max_lat}, lon {grid.min_lon}..{grid.max_lon}")
    print(f"Cell:   {grid.cell_size_meters:.0f} m, radius {config.dominance.radius_km} km")
    print('='*60)

    if verbose:
        print("\nResolved configuration:")
        print(json.dumps(config.model_dump(), indent=2))
        print('='*60)

    orchestrator = DominanceOrchestrator(config)
    orchestrator.start()
    try:
        ds, regions = orchestrator.compute(request)
    finally:
        orchestrator.stop()

    n_won = int((ds["winner"].values >= 0).sum())
    print(f"Grid:    {ds.sizes['row']} x {ds.sizes['col']} cells, {n_won} with a winner")
    print(f"Regions: {len(regions)}")
    for _, region in regions.head(5).iterrows():
        print(f"  {region['region_id']}: {region['cell_count']} cells, "
              f"avg margin {region['avg_margin']:.2f}")

    if output_dir:
        write_outputs(ds, regions, output_dir)

    return ds, regions


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the tapgrid dominance pipeline")
    parser.add_argument("config", help="Path to user config file")
    parser.add_argument("votes", help="Path to votes file (.csv or .json)")
    parser.add_argument("--radius-km", type=float, help="Override nominal influence radius")
    parser.add_argument("--cell-size-meters", type=float, help="Override grid cell size")
    parser.add_argument("--smoothing-iterations", type=int, help="Override smoothing rounds")
    parser.add_argument("--merge-island-size", type=int, help="Override island merge size")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Logging level")
    parser.add_argument("--log-file", help="Also log to this file")
    parser.add_argument("--output-dir", help="Write cells.csv and regions.csv here")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    cli_args = {
        "radius_km": args.radius_km,
        "cell_size_meters": args.cell_size_meters,
        "smoothing_iterations": args.smoothing_iterations,
        "merge_island_size": args.merge_island_size,
        "log_level": args.log_level,
        "log_file": args.log_file,
    }
    run_dominance_pipeline(
        args.config,
        args.votes,
        cli_args=cli_args,
        output_dir=args.output_dir,
        verbose=args.verbose,
    )
    return 0
