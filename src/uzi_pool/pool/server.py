"""Miner-facing HTTP server."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Optional

from aiohttp import web
from loguru import logger

from uzi_pool.mining.hasher import HashContextCache
from uzi_pool.pool.constants import (
    MAX_BACKGROUND_ERROR_LENGTH,
    MAX_REQUEST_BODY_SIZE,
    SHUTDOWN_TIMEOUT,
)
from uzi_pool.pool.context import MiningContext
from uzi_pool.pool.node import NodeClient, NodeError
from uzi_pool.pool.poller import PuzzlePoller
from uzi_pool.pool.stats import PoolStats, run_stats_logger
from uzi_pool.protocol.messages import PUZZLE_PATH, SOLUTION_PATH, ProtocolError, Solution

if TYPE_CHECKING:
    from uzi_pool.config.models import Config


def _log_task_exception(task: asyncio.Task, task_name: str) -> None:
    """Add exception logging callback to a task."""
    def _callback(t: asyncio.Task) -> None:
        if t.cancelled():
            return
        exc = t.exception()
        if exc:
            exc_str = str(exc)
            if len(exc_str) > MAX_BACKGROUND_ERROR_LENGTH:
                exc_str = exc_str[:MAX_BACKGROUND_ERROR_LENGTH] + "... (truncated)"
            logger.error(f"{task_name} failed with exception: {exc_str}")
    task.add_done_callback(_callback)


class PoolServer:
    """
    Serves the current puzzle to miners and relays their solutions.

    Handles:
    - ``GET /miner/puzzle``: the advertised puzzle, read under the context lock
    - ``POST /miner/solution``: forwarded to the node, acknowledged with ``OK``
    - Running the puzzle poller and stats logger alongside the HTTP site

    Requests are served concurrently. The solution relay never touches the
    mining context, so a slow node cannot delay puzzle requests.
    """

    def __init__(
        self,
        config: Config,
        context: Optional[MiningContext] = None,
        client: Optional[NodeClient] = None,
        stats: Optional[PoolStats] = None,
    ):
        """
        Initialize the pool server.

        Args:
            config: Application configuration.
            context: Shared mining context (default: a new empty one).
            client: Node client (default: one built from ``config.node``).
            stats: Stats tracker (default: the process-wide instance).
        """
        self.config = config
        self.context = context or MiningContext(HashContextCache())
        self.client = client or NodeClient(config.node)
        self.stats = stats or PoolStats.get_instance()
        self.poller = PuzzlePoller(
            self.context,
            self.client,
            interval=config.mining.poll_interval,
            difficulty_scale=config.mining.difficulty_scale,
            stats=self.stats,
        )

        self._runner: Optional[web.AppRunner] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._poller_task: Optional[asyncio.Task] = None
        self._stats_task: Optional[asyncio.Task] = None

    def create_app(self) -> web.Application:
        """Build the aiohttp application with the miner routes."""
        app = web.Application(client_max_size=MAX_REQUEST_BODY_SIZE)
        app.router.add_get(PUZZLE_PATH, self.handle_puzzle)
        app.router.add_post(SOLUTION_PATH, self.handle_solution)
        app.router.add_route("*", "/{tail:.*}", self.handle_unknown)
        return app

    async def handle_puzzle(self, request: web.Request) -> web.Response:
        """Respond with the currently advertised puzzle envelope."""
        try:
            envelope = await self.context.current_puzzle()
        except Exception as e:
            logger.error(f"Error: {e}")
            return web.Response(status=500)

        self.stats.record_puzzle_served()
        return web.json_response(envelope.to_dict())

    async def handle_solution(self, request: web.Request) -> web.Response:
        """Relay a miner's solution to the node, then acknowledge it."""
        peer = request.remote or "unknown"
        try:
            solution = Solution.parse(await request.read())
        except ProtocolError as e:
            logger.warning(f"Invalid solution from {peer}: {e}")
            return web.Response(status=400)

        logger.info(f"Solution from {peer}: nonce={solution.nonce}")
        try:
            await self.client.submit_solution(solution)
        except NodeError as e:
            logger.error(f"Error: {e}")
            self.stats.record_solution(relayed=False)
            return web.Response(status=502)

        self.stats.record_solution(relayed=True)
        return web.Response(text="OK")

    async def handle_unknown(self, request: web.Request) -> web.Response:
        """Paths other than the miner API get an empty 404."""
        logger.debug(f"Unknown request {request.method} {request.path}")
        return web.Response(status=404)

    async def start(self) -> None:
        """Start the HTTP site, the puzzle poller and the stats logger."""
        logger.info("Starting pool server...")

        self._stop_event = asyncio.Event()

        self._runner = web.AppRunner(self.create_app(), access_log=None)
        await self._runner.setup()
        site = web.TCPSite(
            self._runner,
            self.config.server.bind_host,
            self.config.server.bind_port,
        )
        await site.start()
        logger.info(f"Pool server listening on {self.config.server.listen}")

        self._poller_task = asyncio.create_task(self.poller.run(self._stop_event))
        _log_task_exception(self._poller_task, "Puzzle poller task")

        if self.config.mining.stats_interval > 0:
            self._stats_task = asyncio.create_task(
                run_stats_logger(self._stop_event, self.config.mining.stats_interval, self.stats)
            )
            _log_task_exception(self._stats_task, "Stats logger task")

    async def stop(self) -> None:
        """Stop background tasks and the HTTP site, then close the node client."""
        logger.info("Stopping pool server...")

        if self._stop_event:
            self._stop_event.set()

        # Failures are already logged by the task callbacks
        tasks = [t for t in (self._poller_task, self._stats_task) if t is not None]
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=SHUTDOWN_TIMEOUT)
            for task in pending:
                logger.warning("Timeout waiting for background task to stop, cancelling")
                task.cancel()
            if pending:
                await asyncio.wait(pending)
        self._poller_task = None
        self._stats_task = None

        if self._runner:
            await self._runner.cleanup()
            self._runner = None

        await self.client.close()

        self.stats.log_stats()
        logger.info("Pool server stopped")


async def run_pool(config: Config, stop_event: asyncio.Event) -> None:
    """
    Run the pool until ``stop_event`` is set.

    Args:
        config: Application configuration.
        stop_event: Event to signal shutdown.
    """
    server = PoolServer(config)
    try:
        await server.start()
        await stop_event.wait()
    finally:
        await server.stop()
