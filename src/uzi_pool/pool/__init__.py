"""Pool core module."""

from uzi_pool.pool.context import MiningContext
from uzi_pool.pool.node import NodeClient, NodeError
from uzi_pool.pool.poller import PuzzlePoller
from uzi_pool.pool.server import PoolServer, run_pool
from uzi_pool.pool.stats import PoolStats

__all__ = [
    "MiningContext",
    "NodeClient",
    "NodeError",
    "PuzzlePoller",
    "PoolServer",
    "run_pool",
    "PoolStats",
]
