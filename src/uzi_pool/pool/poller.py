"""Background loop keeping the advertised puzzle in sync with the node."""

from __future__ import annotations

import asyncio
from typing import Optional

from loguru import logger

from uzi_pool.mining.difficulty import Difficulty
from uzi_pool.pool.constants import DEFAULT_DIFFICULTY_SCALE, DEFAULT_POLL_INTERVAL
from uzi_pool.pool.context import MiningContext
from uzi_pool.pool.node import NodeClient
from uzi_pool.pool.stats import PoolStats
from uzi_pool.protocol.messages import PuzzleEnvelope


class PuzzlePoller:
    """
    Fetches the node's puzzle on a fixed interval and installs changes.

    A cycle never holds the context lock while talking to the node or while
    building a hash context: it fetches, compares under the lock, prepares
    the scaled puzzle (building a context in a worker thread if the seed
    changed), then takes the lock once more to install.

    Any failure ends the cycle with the previous puzzle still advertised.
    There is no backoff; the next cycle runs after the same interval.
    """

    def __init__(
        self,
        context: MiningContext,
        client: NodeClient,
        interval: float = DEFAULT_POLL_INTERVAL,
        difficulty_scale: float = DEFAULT_DIFFICULTY_SCALE,
        stats: Optional[PoolStats] = None,
    ):
        """
        Initialize the poller.

        Args:
            context: Shared mining context to install puzzles into.
            client: Node client used to fetch puzzles.
            interval: Seconds between fetches.
            difficulty_scale: Work factor applied to upstream targets.
            stats: Stats tracker (default: the process-wide instance).
        """
        self.context = context
        self.client = client
        self.interval = interval
        self.difficulty_scale = difficulty_scale
        self.stats = stats or PoolStats.get_instance()

    async def run(self, stop_event: asyncio.Event) -> None:
        """
        Poll until ``stop_event`` is set.

        Args:
            stop_event: Event to signal shutdown.
        """
        logger.info(
            f"Polling {self.client.base_url} every {self.interval:g}s "
            f"(difficulty scale {self.difficulty_scale:g})"
        )
        while not stop_event.is_set():
            await self.run_cycle()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        logger.debug("Puzzle poller stopped")

    async def run_cycle(self) -> bool:
        """
        Run one fetch-and-install cycle, logging instead of raising.

        Returns:
            True if a new puzzle was installed.
        """
        try:
            installed = await self.poll_once()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error: {e}")
            self.stats.record_poll(e)
            return False

        self.stats.record_poll()
        return installed

    async def poll_once(self) -> bool:
        """
        Fetch the node's puzzle and install it if it changed.

        Raises:
            NodeError: If the node cannot be reached.
            ProtocolError: If the response or the puzzle key is malformed.
            HashContextError: If the hash context cannot be built.
        """
        envelope = await self.client.fetch_puzzle()
        return await self.update(envelope)

    async def update(self, envelope: PuzzleEnvelope) -> bool:
        """
        Install an upstream envelope unless it equals the current one.

        Args:
            envelope: Envelope as received from the node.

        Returns:
            True if the envelope was installed.
        """
        if await self.context.is_current(envelope):
            return False

        puzzle = envelope.puzzle
        if puzzle is None:
            logger.info("Node has no puzzle available")
            await self.context.install(envelope, envelope)
            self.stats.record_install(rebuilt_context=False)
            return True

        seed = puzzle.seed()
        difficulty = Difficulty(puzzle.target)

        hash_context = await self.context.cached_context_for(seed)
        rebuilt = hash_context is None
        if rebuilt:
            logger.info(f"New puzzle seed {puzzle.key}, building hash context...")
            hash_context = await asyncio.to_thread(self.context.hash_cache.build, seed)

        logger.info(
            f"Got new puzzle! Approximately {difficulty.power()} hashes need to be calculated..."
        )
        scaled = difficulty.scale(self.difficulty_scale)
        logger.debug(
            f"Advertising target {scaled.to_u32():#010x} "
            f"(~{scaled.power()} hashes) for upstream target {puzzle.target:#010x}"
        )

        advertised = PuzzleEnvelope(puzzle.with_target(scaled.to_u32()))
        await self.context.install(envelope, advertised, hash_context)
        self.stats.record_install(rebuilt_context=rebuilt)
        return True
