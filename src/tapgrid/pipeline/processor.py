"""Dominance processing pipeline.

Runs requests through grid enumeration, aggregation, post-processing and
region extraction, enforcing a contract at every stage boundary. The
synchronous DominanceProcessor can be used directly or fed through the
DominanceWorker thread.
"""

import logging
import queue
import threading
import time
from typing import Optional, Tuple, TYPE_CHECKING

import pandas as pd
import xarray as xr
from pydantic import ValidationError

from tapgrid.dominance.geo import enumerate_grid
from tapgrid.dominance.aggregator import DominanceAggregator
from tapgrid.dominance.postprocess import GridPostProcessor
from tapgrid.dominance.regions import RegionExtractor
from tapgrid.contracts import (
    ContractViolation,
    assert_valid_grid_spec,
    assert_gridded,
    assert_dominance_output,
    assert_regions_output,
)
from tapgrid.schemas.domain import DominanceRequest

if TYPE_CHECKING:
    from tapgrid.schemas import InternalConfig

__all__ = ['DominanceProcessor', 'DominanceWorker']

logger = logging.getLogger(__name__)


class DominanceProcessor:
    """Runs one request through the full dominance pipeline.

    For each request, in order:

    1. **Enumerate**: cell centers of the requested GridSpec.
    2. **Aggregate**: weighted per-label sums, winner, runner-up, margin.
    3. **Post-process**: majority smoothing, then small-island merging.
    4. **Extract**: connected regions with statistics.

    Request parameters left unset fall back to the configuration.
    """

    def __init__(self, config: "InternalConfig"):
        self.config = config
        self.aggregator = DominanceAggregator(config)
        self.postprocessor = GridPostProcessor(config)
        self.extractor = RegionExtractor(config)

    def compute(self, request: DominanceRequest) -> Tuple[xr.Dataset, pd.DataFrame]:
        """Compute the dominance dataset and region table of one request.

        Raises
        ------
        ContractViolation
            If the grid spec is malformed or a stage breaks its guarantees.
        """
        grid = enumerate_grid(request.grid_spec)
        assert_gridded(grid)

        ds = self.aggregator.compute(grid, request.votes, radius_km=request.radius_km)
        assert_dominance_output(ds)

        ds = self.postprocessor.process(
            ds,
            smoothing_iterations=request.smoothing_iterations,
            merge_island_size=request.merge_island_size,
        )
        assert_dominance_output(ds)

        regions = self.extractor.extract(ds)
        assert_regions_output(regions)

        if request.request_id is not None:
            ds.attrs["request_id"] = request.request_id
        return ds, regions


def _request_id(item) -> Optional[str]:
    if isinstance(item, dict):
        return item.get("request_id")
    return getattr(item, "request_id", None)


class DominanceWorker(threading.Thread):
    """Background thread computing dominance requests from a queue.

    Reads DominanceRequest objects (or dicts that validate as one) from
    ``input_queue`` and pushes one result dict per computed request to
    ``output_queue``:

    - success: ``{"request_id", "dominance", "regions", "elapsed_sec"}``
    - failure: ``{"request_id", "error"}``

    With ``worker.latest_only`` the worker drains the queue before each
    computation and keeps only the newest request; stale requests are
    discarded without a result. ``None`` (sentinel) or ``stop()`` ends the
    thread.

    **Failure policy:**

    - Malformed request (payload fails validation, or its grid spec
      describes no grid): logged ERROR, error item emitted, worker continues.
    - ContractViolation inside the pipeline: logged CRITICAL, error item
      emitted, worker stops.
    - Any other exception: logged with traceback, error item emitted,
      worker continues with the next request.

    Example usage (typically called by orchestrator)::

        worker = DominanceWorker(input_queue=requests, config=config,
                                 output_queue=results)
        worker.start()
        requests.put(request)
        item = results.get(timeout=60)
        worker.stop()
    """

    def __init__(self, input_queue: queue.Queue, config: "InternalConfig",
                 output_queue: queue.Queue, name: str = "DominanceWorker"):
        """Initialize worker with validated configuration.

        Parameters
        ----------
        input_queue : queue.Queue
            Queue of requests. None signals shutdown.
        config : InternalConfig
            Fully validated runtime configuration.
        output_queue : queue.Queue
            Queue receiving one result dict per computed request.
        name : str, optional
            Thread name for logging (default: "DominanceWorker").
        """
        super().__init__(daemon=True, name=name)

        self.input_queue = input_queue
        self.output_queue = output_queue
        self.config = config
        self.poll_interval = config.worker.poll_interval_sec
        self.latest_only = config.worker.latest_only
        self._stop_event = threading.Event()

        self.processor = DominanceProcessor(config)
        self.processed_count = 0
        self.discarded_count = 0

    def stop(self):
        """Signal the worker to stop after the current request."""
        self._stop_event.set()

    def stopped(self):
        """Check if worker should stop."""
        return self._stop_event.is_set()

    def _emit(self, item: dict):
        try:
            self.output_queue.put_nowait(item)
        except queue.Full:
            logger.warning("Result queue full, dropping result for request %s", item["request_id"])

    def _take_latest(self, item):
        """Drain queued requests and return the newest one.

        Returns
        -------
        tuple
            (request, stop_after). ``stop_after`` is True when a shutdown
            sentinel was found behind the returned request.
        """
        while True:
            try:
                newer = self.input_queue.get_nowait()
            except queue.Empty:
                return item, False

            if newer is None:
                self.input_queue.task_done()
                return item, True

            logger.debug("Discarding stale request %s", _request_id(item))
            self.discarded_count += 1
            self.input_queue.task_done()
            item = newer

    def process_request(self, request) -> bool:
        """Compute one request and emit its result item.

        Returns
        -------
        bool
            True if a dominance result was emitted.
        """
        request_id = _request_id(request)
        start = time.time()

        try:
            if not isinstance(request, DominanceRequest):
                request = DominanceRequest.model_validate(request)
            assert_valid_grid_spec(request.grid_spec)
        except (ValidationError, ContractViolation) as e:
            logger.error("Rejected request %s: %s", request_id, e)
            self._emit({"request_id": request_id, "error": e})
            return False

        try:
            logger.info("Processing request %s: %d votes", request_id, len(request.votes))
            ds, regions = self.processor.compute(request)

        except ContractViolation as e:
            logger.critical("CRITICAL: Pipeline contract violated: %s", e)
            logger.critical("This indicates a bug in pipeline logic. Stopping worker.")
            self._emit({"request_id": request_id, "error": e})
            self.stop()
            return False

        except Exception as e:
            logger.exception("Error processing request %s", request_id)
            self._emit({"request_id": request_id, "error": e})
            return False

        elapsed = time.time() - start
        self.processed_count += 1
        self._emit({
            "request_id": request_id,
            "dominance": ds,
            "regions": regions,
            "elapsed_sec": elapsed,
        })
        logger.info("Request %s done in %.2f s: %dx%d cells, %d regions",
                    request_id, elapsed, ds.sizes["row"], ds.sizes["col"], len(regions))
        return True

    def run(self):
        """Main worker loop (runs in thread).

        Notes
        -----
        Called automatically by thread.start(). Do not call directly.
        """
        logger.info("Worker started, waiting for requests...")

        while not self.stopped():
            try:
                item = self.input_queue.get(timeout=self.poll_interval)
            except queue.Empty:
                continue

            stop_after = False
            try:
                if item is None:
                    logger.info("Shutdown sentinel received")
                    stop_after = True
                else:
                    if self.latest_only:
                        item, stop_after = self._take_latest(item)
                    self.process_request(item)
            finally:
                # Always mark task as done to prevent queue from blocking
                self.input_queue.task_done()

            if stop_after:
                self.stop()

        logger.info("Worker stopped (processed=%d, discarded=%d)",
                    self.processed_count, self.discarded_count)
