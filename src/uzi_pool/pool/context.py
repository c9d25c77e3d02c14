"""Shared mining context guarded by a single lock."""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Tuple

from loguru import logger

from uzi_pool.mining.hasher import HashContext, HashContextCache
from uzi_pool.protocol.messages import PuzzleEnvelope


class MiningContext:
    """
    The single mutable cell shared by the puzzle poller and the HTTP handlers.

    Holds the cached hash context and the puzzle currently advertised to
    miners, plus the unscaled envelope it was derived from (used to detect
    unchanged polls).

    Locking:
        Every read or write of these fields happens under ``_lock``, and the
        hash context and puzzle are replaced together in one critical
        section so readers never see a torn pair. Critical sections only
        read or assign fields: no network call and no hash-context build
        may run while the lock is held. The lock is never acquired twice on
        one path.
    """

    def __init__(self, hash_cache: Optional[HashContextCache] = None):
        """
        Args:
            hash_cache: Cache slot for the seed-keyed hash context
                (default: a new HashContextCache).
        """
        self._lock = asyncio.Lock()
        self._hash_cache = hash_cache or HashContextCache()
        self._current = PuzzleEnvelope()
        self._upstream = PuzzleEnvelope()

        # Lock hold accounting
        self.last_hold_seconds: float = 0.0
        self.max_hold_seconds: float = 0.0
        self.installs: int = 0

    @asynccontextmanager
    async def _locked(self) -> AsyncIterator[None]:
        async with self._lock:
            started = time.perf_counter()
            try:
                yield
            finally:
                held = time.perf_counter() - started
                self.last_hold_seconds = held
                if held > self.max_hold_seconds:
                    self.max_hold_seconds = held

    @property
    def hash_cache(self) -> HashContextCache:
        """
        The hash context cache.

        Only ``build`` may be called on it without the lock; lookups and
        stores go through this class.
        """
        return self._hash_cache

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    async def current_puzzle(self) -> PuzzleEnvelope:
        """Get the envelope currently advertised to miners."""
        async with self._locked():
            return self._current

    async def is_current(self, upstream: PuzzleEnvelope) -> bool:
        """Check whether ``upstream`` is the envelope last installed."""
        async with self._locked():
            return self._upstream == upstream

    async def cached_context_for(self, seed: bytes) -> Optional[HashContext]:
        """Get the cached hash context if it was built for ``seed``."""
        async with self._locked():
            return self._hash_cache.lookup(seed)

    async def install(
        self,
        upstream: PuzzleEnvelope,
        advertised: PuzzleEnvelope,
        hash_context: Optional[HashContext] = None,
    ) -> None:
        """
        Atomically replace the advertised puzzle and the cached hash context.

        Args:
            upstream: Envelope as received from the node.
            advertised: Envelope to serve to miners (scaled target).
            hash_context: Context valid for the puzzle's seed, or None to keep
                the cached one (no-work envelopes).
        """
        async with self._locked():
            if hash_context is not None:
                self._hash_cache.store(hash_context)
            self._upstream = upstream
            self._current = advertised
            self.installs += 1

        logger.debug(f"Installed puzzle (installs={self.installs})")

    async def snapshot(self) -> Tuple[Optional[HashContext], PuzzleEnvelope]:
        """Read the hash context and advertised envelope as one consistent pair."""
        async with self._locked():
            return self._hash_cache.context, self._current
