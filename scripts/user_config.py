"""tapgrid User Configuration.

This is the user-facing configuration file. Modify settings here to customize
the pipeline behavior. Expert defaults live in tapgrid.schemas.param.

Usage:
    python scripts/run_dominance.py scripts/user_config.py votes.csv
    python scripts/run_dominance.py scripts/user_config.py votes.csv --radius-km 10
    python scripts/run_dominance.py scripts/user_config.py votes.json --output-dir out/
"""

CONFIG = {
    # ========================================================================
    # GRID SETTINGS
    # ========================================================================
    # (min_lat, max_lat, min_lon, max_lon); Munich and surroundings
    "BOUNDING_BOX": (47.8, 48.5, 11.0, 12.2),
    "CELL_SIZE_METERS": 1000,

    # ========================================================================
    # AGGREGATION SETTINGS
    # ========================================================================
    "RADIUS_KM": 20,          # Nominal radius for votes without their own

    # ========================================================================
    # POST-PROCESSING SETTINGS
    # ========================================================================
    "SMOOTHING_ITERATIONS": 2,
    "MERGE_ISLAND_SIZE": 8,   # Regions with fewer cells are absorbed

    # ========================================================================
    # REGION QUERIES
    # ========================================================================
    "CLOSE_MARGIN_THRESHOLD": 0.10,

    # ========================================================================
    # LOGGING
    # ========================================================================
    "LOG_LEVEL": "INFO",
}
