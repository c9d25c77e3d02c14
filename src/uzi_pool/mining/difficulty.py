"""Compact difficulty targets and their rescaling."""

from __future__ import annotations

import math

# Low 24 bits of a target hold the mantissa
MANTISSA_BITS = 24
MAX_MANTISSA = 0xFFFFFF

# High byte counts the leading zero bytes a hash must have
MAX_ZEROS = 0xFF


class Difficulty:
    """
    A RandomX difficulty target in compact u32 form.

    The high byte is the number of leading zero bytes a hash must start with
    and the low 24 bits are a mantissa bounding the bytes that follow. The
    expected number of hashes needed to satisfy the target ("power") is::

        256 ** zeros * 0xFFFFFF / mantissa

    so more zero bytes or a smaller mantissa means more work.
    """

    __slots__ = ("_encoded",)

    def __init__(self, encoded: int):
        """
        Args:
            encoded: Compact target as an unsigned 32-bit integer.

        Raises:
            ValueError: If the value is not a u32 or has a zero mantissa.
        """
        if not 0 <= encoded <= 0xFFFFFFFF:
            raise ValueError(f"Target must be an unsigned 32-bit integer, got {encoded}")
        if encoded & MAX_MANTISSA == 0:
            raise ValueError(f"Target {encoded:#010x} has a zero mantissa")
        self._encoded = encoded

    @classmethod
    def from_parts(cls, zeros: int, mantissa: int) -> Difficulty:
        """Build a target from its zero-byte count and mantissa."""
        return cls((zeros << MANTISSA_BITS) | mantissa)

    @classmethod
    def from_log2_power(cls, log2_power: float) -> Difficulty:
        """
        Build the normalized target closest to ``2 ** log2_power`` hashes.

        The result is clamped to the encodable range: at least one hash, and
        no more than the hardest target (255 zero bytes, mantissa 1).
        """
        if log2_power <= 0:
            return cls.from_parts(0, MAX_MANTISSA)

        zeros = int(log2_power // 8)
        if zeros > MAX_ZEROS:
            return cls.from_parts(MAX_ZEROS, 1)

        # 2 ** (8 * zeros - log2_power) lies in (1/256, 1], keeping the
        # mantissa normalized in (0xFFFF, 0xFFFFFF]
        mantissa = round(MAX_MANTISSA * 2.0 ** (8 * zeros - log2_power))
        mantissa = min(max(mantissa, 1), MAX_MANTISSA)
        return cls.from_parts(zeros, mantissa)

    @property
    def zeros(self) -> int:
        return self._encoded >> MANTISSA_BITS

    @property
    def mantissa(self) -> int:
        return self._encoded & MAX_MANTISSA

    @property
    def log2_power(self) -> float:
        """Base-2 logarithm of the expected hash count."""
        return 8 * self.zeros + math.log2(MAX_MANTISSA / self.mantissa)

    def power(self) -> int:
        """Approximate number of hashes needed to meet this target."""
        return (256 ** self.zeros * MAX_MANTISSA) // self.mantissa

    def scale(self, factor: float) -> Difficulty:
        """
        Return a target whose power is ``factor`` times this one's.

        Args:
            factor: Positive multiplier; values below 1 make the target easier.

        Raises:
            ValueError: If factor is not positive.
        """
        if not factor > 0:
            raise ValueError(f"Scale factor must be positive, got {factor}")
        return Difficulty.from_log2_power(self.log2_power + math.log2(factor))

    def to_u32(self) -> int:
        return self._encoded

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Difficulty):
            return NotImplemented
        return self._encoded == other._encoded

    def __hash__(self) -> int:
        return hash(self._encoded)

    def __repr__(self) -> str:
        return f"Difficulty({self._encoded:#010x}, power~{self.power()})"


def scale_target(target: int, factor: float) -> int:
    """
    Rescale a compact target so it requires ``factor`` times the work.

    Args:
        target: Upstream compact target.
        factor: Work multiplier (0.1 gives an order of magnitude easier target).

    Returns:
        The rescaled compact target.

    Raises:
        ValueError: If the target is invalid or the factor is not positive.
    """
    return Difficulty(target).scale(factor).to_u32()
