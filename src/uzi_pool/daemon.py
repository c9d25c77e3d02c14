"""Foreground process lifecycle and signal handling."""

from __future__ import annotations

import asyncio
import signal
import sys
from typing import TYPE_CHECKING, Any, Optional

from loguru import logger

if TYPE_CHECKING:
    from uzi_pool.config.models import Config


class PoolRunner:
    """
    Runs the pool in the foreground until SIGINT or SIGTERM.

    Nothing is written to disk; the process holds no state worth keeping
    across restarts.
    """

    def __init__(self, config: Config):
        """
        Args:
            config: Application configuration.
        """
        self.config = config
        self._stop_event: Optional[asyncio.Event] = None
        self._signal_received = False
        self._signal_watcher: Optional[asyncio.Task] = None

    def run(self) -> None:
        """Run the pool (blocking)."""
        asyncio.run(self._run_main_loop())

    def _setup_signals(self) -> None:
        """Setup signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()
        stop_event = self._stop_event

        if sys.platform != "win32":
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, stop_event.set)
        else:
            # Windows has no add_signal_handler; set the event from a sync handler
            def sync_signal_handler(signum: int, frame: Any) -> None:
                self._signal_received = True
                try:
                    loop.call_soon_threadsafe(stop_event.set)
                except RuntimeError:
                    # Loop may be closed
                    stop_event.set()

            signal.signal(signal.SIGINT, sync_signal_handler)
            signal.signal(signal.SIGTERM, sync_signal_handler)

            self._signal_watcher = asyncio.create_task(self._windows_signal_watcher())

    async def _windows_signal_watcher(self) -> None:
        """
        Periodically check for signals on Windows.

        Signal handlers only run when Python executes bytecode, so yield
        regularly while the loop is otherwise waiting on I/O.
        """
        while not self._stop_event.is_set():
            if self._signal_received:
                logger.info("Received shutdown signal (Ctrl+C)")
                self._stop_event.set()
                break
            await asyncio.sleep(0.1)

    async def _run_main_loop(self) -> None:
        """Main application loop."""
        from uzi_pool.logging.setup import setup_logging
        from uzi_pool.pool.server import run_pool

        self._stop_event = asyncio.Event()
        self._setup_signals()

        setup_logging(self.config.logging)

        logger.info(f"Starting Uzi Pool for node {self.config.node.address}")

        await run_pool(self.config, self._stop_event)

        logger.info("Pool shutdown complete")
