"""Miner protocol message dataclasses."""

from __future__ import annotations

import binascii
import json
from dataclasses import dataclass, field, replace
from typing import Any, List, Optional, Union

# Targets are carried as unsigned 32-bit integers
MAX_TARGET_ENCODING = 0xFFFFFFFF

# Header carrying the pool's authentication token on node requests
MINER_TOKEN_HEADER = "X-ZEEKA-MINER-TOKEN"

PUZZLE_PATH = "/miner/puzzle"
SOLUTION_PATH = "/miner/solution"


class ProtocolError(Exception):
    """Malformed message on the miner/node wire."""

    pass


def _load_object(data: Union[str, bytes, dict]) -> dict:
    """Decode JSON text into an object, or pass a mapping through."""
    if isinstance(data, dict):
        return data
    try:
        obj = json.loads(data)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ProtocolError(f"Invalid JSON: {e}") from e
    if not isinstance(obj, dict):
        raise ProtocolError(f"Expected JSON object, got {type(obj).__name__}")
    return obj


def _require(obj: dict, name: str, kind: type) -> Any:
    if name not in obj:
        raise ProtocolError(f"Missing field '{name}'")
    value = obj[name]
    # bool is an int subclass; a boolean offset or target is never valid
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ProtocolError(
            f"Field '{name}' must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


@dataclass(frozen=True)
class Puzzle:
    """A proof-of-work task as issued by the node."""

    key: str  # Hex-encoded RandomX seed
    blob: str  # Template the miner hashes with its nonce
    offset: int  # Start of the region the miner may vary
    size: int  # Length of that region
    target: int  # Compact difficulty encoding (u32)

    @classmethod
    def from_dict(cls, obj: dict) -> Puzzle:
        """
        Build a puzzle from its JSON object form.

        Raises:
            ProtocolError: If a field is missing, mistyped or out of range.
        """
        if not isinstance(obj, dict):
            raise ProtocolError(f"Puzzle must be an object, got {type(obj).__name__}")

        puzzle = cls(
            key=_require(obj, "key", str),
            blob=_require(obj, "blob", str),
            offset=_require(obj, "offset", int),
            size=_require(obj, "size", int),
            target=_require(obj, "target", int),
        )
        if puzzle.offset < 0 or puzzle.size < 0:
            raise ProtocolError(
                f"Puzzle offset/size must be non-negative (offset={puzzle.offset}, size={puzzle.size})"
            )
        if not 0 <= puzzle.target <= MAX_TARGET_ENCODING:
            raise ProtocolError(f"Puzzle target out of u32 range: {puzzle.target}")
        return puzzle

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "key": self.key,
            "blob": self.blob,
            "offset": self.offset,
            "size": self.size,
            "target": self.target,
        }

    def seed(self) -> bytes:
        """
        Decode the hex seed.

        Raises:
            ProtocolError: If the key is not valid hex.
        """
        try:
            return binascii.unhexlify(self.key)
        except (ValueError, binascii.Error) as e:
            raise ProtocolError(f"Invalid puzzle key '{self.key}': {e}") from e

    def with_target(self, target: int) -> Puzzle:
        """Return a copy of this puzzle carrying a different target."""
        return replace(self, target=target)


@dataclass(frozen=True)
class PuzzleEnvelope:
    """
    The current puzzle as carried on the wire: ``{"puzzle": <Puzzle-or-null>}``.

    A ``None`` puzzle means the node has no work available.
    """

    puzzle: Optional[Puzzle] = None

    @classmethod
    def parse(cls, data: Union[str, bytes, dict]) -> PuzzleEnvelope:
        """
        Parse an envelope from JSON text or an already decoded object.

        Raises:
            ProtocolError: If the body is not a valid envelope.
        """
        obj = _load_object(data)
        if "puzzle" not in obj:
            raise ProtocolError("Missing field 'puzzle'")
        raw = obj["puzzle"]
        return cls(puzzle=None if raw is None else Puzzle.from_dict(raw))

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"puzzle": self.puzzle.to_dict() if self.puzzle else None}

    @property
    def has_work(self) -> bool:
        return self.puzzle is not None


@dataclass(frozen=True)
class Solution:
    """A nonce a miner claims solves the advertised puzzle."""

    nonce: str

    @classmethod
    def parse(cls, data: Union[str, bytes, dict]) -> Solution:
        """
        Parse a solution from JSON text or an already decoded object.

        Raises:
            ProtocolError: If the nonce is missing or not a string.
        """
        obj = _load_object(data)
        return cls(nonce=_require(obj, "nonce", str))

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"nonce": self.nonce}


@dataclass(frozen=True)
class Share:
    """A nonce submitted by an identified miner (accounting record)."""

    pub_key: str
    nonce: str

    @classmethod
    def from_dict(cls, obj: dict) -> Share:
        if not isinstance(obj, dict):
            raise ProtocolError(f"Share must be an object, got {type(obj).__name__}")
        return cls(pub_key=_require(obj, "pub_key", str), nonce=_require(obj, "nonce", str))

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {"pub_key": self.pub_key, "nonce": self.nonce}


@dataclass(frozen=True)
class Job:
    """A puzzle together with the shares collected against it (accounting record)."""

    puzzle: Puzzle
    shares: List[Share] = field(default_factory=list)

    @classmethod
    def parse(cls, data: Union[str, bytes, dict]) -> Job:
        obj = _load_object(data)
        shares = _require(obj, "shares", list)
        return cls(
            puzzle=Puzzle.from_dict(_require(obj, "puzzle", dict)),
            shares=[Share.from_dict(s) for s in shares],
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "puzzle": self.puzzle.to_dict(),
            "shares": [s.to_dict() for s in self.shares],
        }
