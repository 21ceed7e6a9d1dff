"""Worker-thread orchestration.

Owns the request/result queues, configures logging, and manages the
lifecycle of the DominanceWorker thread.
"""

import logging
import queue
import time
import uuid
from typing import Optional, Tuple, TYPE_CHECKING

import pandas as pd
import xarray as xr

from tapgrid.pipeline.processor import DominanceWorker
from tapgrid.schemas.domain import DominanceRequest

if TYPE_CHECKING:
    from tapgrid.schemas import InternalConfig

__all__ = ['DominanceOrchestrator']

logger = logging.getLogger(__name__)


class DominanceOrchestrator:
    """Manages the background dominance worker.

    This is the entry point for hosts that offload computation. Requests
    go in through ``submit()``; result dicts come back through
    ``get_result()`` (see DominanceWorker for their layout). ``compute()``
    does both for a single request and blocks.

    **Queue Management:**

    Both queues are bounded by ``worker.max_queue_size``. With
    ``worker.latest_only`` a burst of submissions collapses to the newest
    one, so only the latest request receives a result.

    **Logging:**

    Output goes to the console and, if ``logging.log_file`` is set, to that
    file. Level comes from ``logging.level``.

    Example usage::

        from tapgrid.pipeline import DominanceOrchestrator

        orch = DominanceOrchestrator(config)
        orch.start()
        ds, regions = orch.compute(request)
        orch.stop()
    """

    def __init__(self, config: "InternalConfig"):
        """Initialize orchestrator with validated configuration.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration.
        """
        self.config = config
        self.max_queue_size = config.worker.max_queue_size
        self.result_timeout = config.worker.result_timeout_sec

        self.request_queue = queue.Queue(maxsize=self.max_queue_size)
        self.result_queue = queue.Queue(maxsize=self.max_queue_size)

        # Created in start()
        self.worker = None

        self._stopped = False
        self._start_time = None

    def _setup_logging(self):
        """Configure the root logger from ``config.logging``."""
        log_level = getattr(logging, self.config.logging.level, logging.INFO)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Clear existing handlers and add new ones
        root = logging.getLogger()
        root.setLevel(log_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        log_file = self.config.logging.log_file
        if log_file:
            fh = logging.FileHandler(log_file)
            fh.setLevel(log_level)
            fh.setFormatter(formatter)
            root.addHandler(fh)

        # Console handler
        ch = logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(formatter)
        root.addHandler(ch)

        logger.info("Logging: level=%s, file=%s", self.config.logging.level, log_file)

    def start(self, setup_logging: bool = True):
        """Start the worker thread.

        Parameters
        ----------
        setup_logging : bool, optional
            Configure the root logger first (default True). Embedding hosts
            with their own logging setup pass False.
        """
        if setup_logging:
            self._setup_logging()

        self._start_time = time.time()
        self._stopped = False

        logger.info("Starting DominanceWorker...")
        self.worker = DominanceWorker(
            input_queue=self.request_queue,
            config=self.config,
            output_queue=self.result_queue,
        )
        self.worker.start()
        logger.info("DominanceWorker started (latest_only=%s)", self.config.worker.latest_only)
        return self

    def submit(self, request: DominanceRequest) -> str:
        """Queue a request; returns its request_id (generated if unset).

        Blocks while the request queue is full.
        """
        if request.request_id is None:
            request = request.model_copy(update={"request_id": uuid.uuid4().hex})
        self.request_queue.put(request)
        logger.debug("Submitted request %s (%d votes)", request.request_id, len(request.votes))
        return request.request_id

    def get_result(self, timeout: Optional[float] = None) -> dict:
        """Next result dict from the worker.

        Raises
        ------
        queue.Empty
            If nothing arrives within ``timeout`` (default
            ``worker.result_timeout_sec``).
        """
        if timeout is None:
            timeout = self.result_timeout
        return self.result_queue.get(timeout=timeout)

    def compute(self, request: DominanceRequest,
                timeout: Optional[float] = None) -> Tuple[xr.Dataset, pd.DataFrame]:
        """Submit one request and wait for its result.

        Results for other request ids are skipped. A failed request
        re-raises the worker's exception.

        Raises
        ------
        queue.Empty
            If the result does not arrive in time (for example because a
            newer submission superseded it).
        """
        if timeout is None:
            timeout = self.result_timeout
        request_id = self.submit(request)
        deadline = time.time() + timeout

        while True:
            remaining = deadline - time.time()
            if remaining <= 0:
                raise queue.Empty(f"No result for request {request_id} within {timeout} s")
            item = self.get_result(timeout=remaining)
            if item["request_id"] != request_id:
                logger.debug("Skipping result for request %s", item["request_id"])
                continue
            if "error" in item:
                raise item["error"]
            return item["dominance"], item["regions"]

    def stop(self):
        """Stop the worker thread. Safe to call multiple times."""
        if self._stopped:
            return
        self._stopped = True

        if self.worker and self.worker.is_alive():
            logger.info("Stopping DominanceWorker...")
            self.worker.stop()
            self.worker.join(timeout=max(5.0, 2 * self.config.worker.poll_interval_sec))
            if self.worker.is_alive():
                logger.warning("DominanceWorker did not stop cleanly")

        self._log_status()
        elapsed = time.time() - self._start_time if self._start_time else 0
        logger.info("Orchestrator stopped. Runtime: %.1f seconds", elapsed)

    def _log_status(self):
        """Log current worker and queue status."""
        logger.info(
            "Status: W=%s Q=%d RQ=%d processed=%d discarded=%d",
            "alive" if self.worker and self.worker.is_alive() else "stopped",
            self.request_queue.qsize(),
            self.result_queue.qsize(),
            self.worker.processed_count if self.worker else 0,
            self.worker.discarded_count if self.worker else 0,
        )
