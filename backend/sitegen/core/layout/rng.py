"""Seeded pseudo-random stream for reproducible layouts.

Mulberry32: a tiny 32-bit multiply-xor-shift generator. It is fast and well
mixed for sampling geometry; it is not cryptographically secure.
"""

from __future__ import annotations

import json
import math
from typing import Sequence, TypeVar

_MASK32 = 0xFFFFFFFF
_TWO_POW_32 = 4294967296.0

T = TypeVar("T")


def _uint32(n: int) -> int:
    """Convert to unsigned 32-bit integer."""
    return n & _MASK32


def _imul(a: int, b: int) -> int:
    """32-bit integer multiply, low word only."""
    return (a * b) & _MASK32


def hash_string(text: str) -> int:
    """31-multiplier string hash folded to an unsigned 32-bit seed."""
    h = 0
    for ch in str(text):
        h = _uint32(h * 31 + ord(ch))
    return h


class Mulberry32:
    """Mulberry32 PRNG. ``random()`` (or calling the instance) gives [0, 1)."""

    def __init__(self, seed: int):
        self.state = _uint32(int(seed))
        self.call_count = 0

    def random(self) -> float:
        self.call_count += 1
        self.state = _uint32(self.state + 0x6D2B79F5)
        t = self.state
        t = _imul(t ^ (t >> 15), t | 1)
        t = _uint32(t + _imul(t ^ (t >> 7), t | 61)) ^ t
        return _uint32(t ^ (t >> 14)) / _TWO_POW_32

    __call__ = random

    def uniform(self, low: float, high: float) -> float:
        return low + (high - low) * self.random()

    def randint(self, low: int, high: int) -> int:
        """Integer in [low, high] inclusive."""
        if high < low:
            raise ValueError(f"Empty range [{low}, {high}]")
        return low + int(self.random() * (high - low + 1))

    def choice(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[int(self.random() * len(seq))]

    def gauss(self, mu: float = 0.0, sigma: float = 1.0) -> float:
        """Normal deviate via Box-Muller (consumes two draws)."""
        u1 = max(self.random(), 1e-12)
        u2 = self.random()
        return mu + sigma * math.sqrt(-2.0 * math.log(u1)) * math.cos(2 * math.pi * u2)


def derive_seed(ring, settings) -> int:
    """Seed for a run.

    An explicit ``settings.seed`` string is hashed and takes precedence.
    Otherwise the canonical JSON of the boundary and settings is hashed, so
    identical input reproduces the identical layout.
    """
    if settings.seed:
        return hash_string(settings.seed)

    payload = json.dumps(
        {
            "boundary": [[p.lat, p.lng] for p in ring],
            "settings": settings.to_dict(),
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hash_string(payload)
