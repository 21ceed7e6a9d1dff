"""`tapgrid` - weighted territorial dominance over a geographic grid.

Subpackages:
- dominance: Grid enumeration, aggregation, post-processing, regions, lookup
- pipeline: Synchronous processor, worker thread, orchestrator
- schemas: Pydantic configuration and request models
- contracts: Fail-fast stage invariants
- cli: Command-line runner
"""

__version__ = "0.1.0"
