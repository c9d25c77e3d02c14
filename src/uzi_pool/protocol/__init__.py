"""Miner/node wire protocol module."""

from uzi_pool.protocol.messages import (
    Job,
    ProtocolError,
    Puzzle,
    PuzzleEnvelope,
    Share,
    Solution,
)

__all__ = [
    "Job",
    "ProtocolError",
    "Puzzle",
    "PuzzleEnvelope",
    "Share",
    "Solution",
]
