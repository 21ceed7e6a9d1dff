import queue

import pytest

from tapgrid.schemas import DominanceRequest, GridSpec
from tapgrid.schemas.user import UserWorkerConfig


@pytest.fixture
def pipeline_config(make_config):
    """InternalConfig with a fast-polling worker and no post-processing."""
    return make_config(
        smoothing_iterations=0,
        merge_island_size=0,
        worker=UserWorkerConfig(poll_interval_sec=0.05, result_timeout_sec=30),
    )


@pytest.fixture
def make_request(small_spec, make_vote):
    """Factory for small DominanceRequest objects over the Munich test box."""
    def _make(request_id=None, votes=None, grid_spec=None, **params):
        if votes is None:
            votes = [
                make_vote("helles", 48.03, 11.05, radius_km=3),
                make_vote("dunkel", 48.07, 11.15, radius_km=3),
            ]
        return DominanceRequest(
            votes=votes,
            grid_spec=grid_spec or small_spec,
            request_id=request_id,
            **params,
        )

    return _make


@pytest.fixture
def bad_spec():
    """Inverted latitude range; fails the grid contract."""
    return GridSpec(min_lat=48.1, max_lat=48.0, min_lon=11.0, max_lon=11.2, cell_size_meters=1000)


# made for worker tests
@pytest.fixture
def worker_queues():
    return queue.Queue(), queue.Queue()


@pytest.fixture
def drain():
    """Return a helper that empties a queue into a list."""
    def _drain(q):
        items = []
        while True:
            try:
                items.append(q.get_nowait())
            except queue.Empty:
                return items

    return _drain
