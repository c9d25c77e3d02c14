"""Difficulty scaling and seed-keyed hashing context."""

from uzi_pool.mining.difficulty import Difficulty, scale_target
from uzi_pool.mining.hasher import (
    HashContext,
    HashContextCache,
    HashContextError,
    build_hash_context,
)

__all__ = [
    "Difficulty",
    "scale_target",
    "HashContext",
    "HashContextCache",
    "HashContextError",
    "build_hash_context",
]
