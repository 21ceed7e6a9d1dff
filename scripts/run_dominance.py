#!/usr/bin/env python3
"""tapgrid Dominance Pipeline Runner.

Usage:
    python scripts/run_dominance.py scripts/user_config.py votes.csv
    python scripts/run_dominance.py scripts/user_config.py votes.csv --radius-km 10
    python scripts/run_dominance.py scripts/user_config.py votes.json --output-dir out/ -v

Note: User config in scripts/user_config.py, expert defaults in tapgrid.schemas.param
"""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

from tapgrid.cli.run_dominance import main


if __name__ == "__main__":
    sys.exit(main())
