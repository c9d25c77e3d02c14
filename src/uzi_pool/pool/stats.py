"""Statistics tracking for puzzle polling and solution relay."""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from loguru import logger


@dataclass
class PoolStats:
    """
    Counters for the relay, kept in memory for the life of the process.

    All updates happen on the event loop thread, so plain attribute
    increments are sufficient.
    """

    polls: int = 0
    poll_failures: int = 0
    puzzles_installed: int = 0
    hash_context_builds: int = 0
    puzzles_served: int = 0
    solutions_relayed: int = 0
    solutions_failed: int = 0
    last_poll_error: Optional[str] = None
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc).astimezone())

    _instance = None
    _instance_lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> PoolStats:
        """Get or create the process-wide stats instance (thread-safe)."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Drop the process-wide instance (used by tests)."""
        with cls._instance_lock:
            cls._instance = None

    def record_poll(self, error: Optional[BaseException] = None) -> None:
        self.polls += 1
        if error is not None:
            self.poll_failures += 1
            self.last_poll_error = str(error)

    def record_install(self, rebuilt_context: bool) -> None:
        self.puzzles_installed += 1
        if rebuilt_context:
            self.hash_context_builds += 1

    def record_puzzle_served(self) -> None:
        self.puzzles_served += 1

    def record_solution(self, relayed: bool) -> None:
        if relayed:
            self.solutions_relayed += 1
        else:
            self.solutions_failed += 1

    def get_uptime(self) -> str:
        """Get uptime as a human-readable string."""
        delta = datetime.now(timezone.utc).astimezone() - self.start_time
        days = delta.days
        hours, remainder = divmod(delta.seconds, 3600)
        minutes, seconds = divmod(remainder, 60)

        parts = []
        if days > 0:
            parts.append(f"{days}d")
        if hours > 0:
            parts.append(f"{hours}h")
        if minutes > 0:
            parts.append(f"{minutes}m")
        parts.append(f"{seconds}s")
        return " ".join(parts)

    def log_stats(self) -> None:
        """Log current statistics."""
        logger.info("=" * 60)
        logger.info(f"POOL STATS (uptime: {self.get_uptime()})")
        logger.info(
            f"Polls: {self.polls} ({self.poll_failures} failed) | "
            f"Puzzles installed: {self.puzzles_installed} | "
            f"Hash context builds: {self.hash_context_builds}"
        )
        logger.info(
            f"Puzzles served: {self.puzzles_served} | "
            f"Solutions relayed: {self.solutions_relayed} ({self.solutions_failed} failed)"
        )
        if self.last_poll_error:
            logger.info(f"Last poll error: {self.last_poll_error}")
        logger.info("=" * 60)


async def run_stats_logger(
    stop_event: asyncio.Event,
    interval: float,
    stats: Optional[PoolStats] = None,
) -> None:
    """
    Log statistics every ``interval`` seconds until stopped.

    Args:
        stop_event: Event to signal shutdown.
        interval: Seconds between log lines.
        stats: Stats to log (default: the process-wide instance).
    """
    stats = stats or PoolStats.get_instance()
    logger.debug(f"Stats logger started (every {interval:.0f}s)")

    while not stop_event.is_set():
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
            break
        except asyncio.TimeoutError:
            stats.log_stats()
