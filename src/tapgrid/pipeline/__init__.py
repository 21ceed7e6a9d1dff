"""Pipeline modules.

- processor: Synchronous stage runner and background worker thread
- orchestrator: Queue, logging and worker lifecycle controller
"""

from tapgrid.pipeline.orchestrator import DominanceOrchestrator
from tapgrid.pipeline.processor import DominanceProcessor, DominanceWorker

__all__ = [
    "DominanceOrchestrator",
    "DominanceProcessor",
    "DominanceWorker",
]
