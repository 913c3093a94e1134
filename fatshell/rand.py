"""A 64-bit linear congruential pseudo-random generator."""

from __future__ import annotations

_MULTIPLIER = 6364136223846793005
_MASK32 = (1 << 32) - 1
_MASK64 = (1 << 64) - 1


class Rand:
    """Generator of non-negative 31-bit pseudo-random integers."""

    def __init__(self) -> None:
        self._seed = 0

    def srand(self, s: int) -> None:
        """Reseed from the unsigned 32-bit value ``s``."""
        self._seed = ((s & _MASK32) - 1) & _MASK32

    def rand(self) -> int:
        """Advance the state and return the next value in ``[0, 2**31)``."""
        self._seed = (_MULTIPLIER * self._seed + 1) & _MASK64
        return self._seed >> 33