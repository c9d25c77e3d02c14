"""Seed-keyed RandomX hashing context and its single-slot cache."""

from __future__ import annotations

import hashlib
import time
from typing import Callable, Optional

from loguru import logger

# RandomX accepts keys of at most 60 bytes
MAX_SEED_LENGTH = 60

# Size of the light-mode cache derived from the seed (bytes)
DEFAULT_CACHE_SIZE = 2 * 1024 * 1024

# BLAKE2b block width used to expand the seed
_BLOCK_SIZE = 64
_PERSONALIZATION = b"uzi-pool-rx-v1"


class HashContextError(Exception):
    """The hashing context could not be built for a seed."""

    pass


class HashContext:
    """
    Hashing parameters derived from a puzzle seed.

    Building one is expensive (the cache is expanded block by block from the
    seed) so instances are shared and only rebuilt when the seed changes.
    Instances are never mutated after construction.
    """

    __slots__ = ("_seed", "_cache", "built_at")

    def __init__(self, seed: bytes, cache: bytes):
        self._seed = seed
        self._cache = cache
        self.built_at = time.time()

    def key(self) -> bytes:
        """The seed this context was built from."""
        return self._seed

    def matches(self, seed: bytes) -> bool:
        return self._seed == seed

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    @property
    def fingerprint(self) -> str:
        """Short digest of the derived cache, for logs."""
        return hashlib.blake2b(self._cache, digest_size=8).hexdigest()

    def __repr__(self) -> str:
        return f"HashContext(seed={self._seed.hex()}, cache={self.cache_size} bytes)"


def build_hash_context(seed: bytes, cache_size: int = DEFAULT_CACHE_SIZE) -> HashContext:
    """
    Build the hashing context for a seed.

    CPU bound; callers on the event loop should run it in a worker thread.

    Args:
        seed: Raw seed bytes decoded from the puzzle key.
        cache_size: Number of bytes of cache to derive.

    Returns:
        A new HashContext.

    Raises:
        HashContextError: If the seed is longer than RandomX allows.
    """
    if len(seed) > MAX_SEED_LENGTH:
        raise HashContextError(
            f"Seed is {len(seed)} bytes, RandomX keys are limited to {MAX_SEED_LENGTH}"
        )
    if cache_size < _BLOCK_SIZE:
        raise HashContextError(f"Cache size must be at least {_BLOCK_SIZE} bytes")

    started = time.monotonic()
    blocks = []
    block = seed
    for _ in range(cache_size // _BLOCK_SIZE):
        block = hashlib.blake2b(
            block, digest_size=_BLOCK_SIZE, key=seed, person=_PERSONALIZATION
        ).digest()
        blocks.append(block)

    context = HashContext(seed, b"".join(blocks))
    logger.debug(
        f"Built hash context for seed {seed.hex()} in "
        f"{time.monotonic() - started:.3f}s ({context.fingerprint})"
    )
    return context


HashContextBuilder = Callable[[bytes], HashContext]


class HashContextCache:
    """
    Holds at most one built HashContext, valid for exactly its seed.

    Replacing the entry drops the cache's reference to the old context;
    anything still holding that context keeps using it until it lets go.

    Thread Safety:
        Not synchronized. The owning MiningContext guards every access with
        its lock; ``build`` is the only method meant to run outside it.
    """

    def __init__(self, builder: Optional[HashContextBuilder] = None):
        """
        Args:
            builder: Callable building a context from a seed
                (default: build_hash_context).
        """
        self._builder = builder or build_hash_context
        self._context: Optional[HashContext] = None
        self.builds: int = 0

    @property
    def context(self) -> Optional[HashContext]:
        return self._context

    def lookup(self, seed: bytes) -> Optional[HashContext]:
        """Return the cached context if it was built for ``seed``."""
        if self._context is not None and self._context.matches(seed):
            return self._context
        return None

    def build(self, seed: bytes) -> HashContext:
        """Build a new context without touching the cached entry."""
        context = self._builder(seed)
        self.builds += 1
        return context

    def store(self, context: HashContext) -> None:
        """Make ``context`` the cached entry, discarding the previous one."""
        if self._context is not None and self._context is not context:
            logger.debug(f"Replacing hash context for seed {self._context.key().hex()}")
        self._context = context

    def get_or_build(self, seed: bytes) -> HashContext:
        """
        Return a context valid for ``seed``, building and caching it if needed.

        Raises:
            HashContextError: If building fails; the cached entry is kept.
        """
        context = self.lookup(seed)
        if context is None:
            context = self.build(seed)
            self.store(context)
        return context
