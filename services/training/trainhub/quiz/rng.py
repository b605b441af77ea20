"""Seeded pseudo-random source for reproducible quiz arrangements.

A linear congruential generator keyed by explicit seed material. Nothing here
reads the clock or a process-global random source, so the same seed always
produces the same sequence and tests can assert exact values.

    seed' = (seed * 9301 + 49297) mod 233280
    value = seed' / 233280
"""

from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")

LCG_MULTIPLIER = 9301
LCG_INCREMENT = 49297
LCG_MODULUS = 233280

SEED_SEPARATOR = "-"


def lcg_step(seed: int) -> tuple[float, int]:
    """Advance the generator once. Returns ``(value, next_seed)``, value in [0, 1)."""
    next_seed = (seed * LCG_MULTIPLIER + LCG_INCREMENT) % LCG_MODULUS
    return next_seed / LCG_MODULUS, next_seed


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def string_hash(text: str) -> int:
    """Rolling ``hash * 31 + code_unit`` over UTF-16 code units.

    Wrapped to signed 32-bit after every step; the absolute value is returned
    so the result is always a usable non-negative seed.
    """
    encoded = text.encode("utf-16-le")
    h = 0
    for i in range(0, len(encoded), 2):
        code_unit = encoded[i] | (encoded[i + 1] << 8)
        h = _to_int32((h << 5) - h + code_unit)
    return abs(h)


def derive_seed(*parts: object) -> int:
    """Seed from identifying parts joined with ``-`` (e.g. learner, quiz, attempt)."""
    return string_hash(SEED_SEPARATOR.join(str(p) for p in parts))


class SeededRandom:
    """Stateful wrapper around :func:`lcg_step` for one randomization pass."""

    def __init__(self, seed: int) -> None:
        self.seed = seed

    def next(self) -> float:
        value, self.seed = lcg_step(self.seed)
        return value

    def next_int(self, upper: int) -> int:
        """Integer in ``[0, upper)``."""
        return int(self.next() * upper)


def seeded_shuffle(items: Sequence[T], rng: SeededRandom) -> list[T]:
    """Fisher–Yates shuffle into a new list; ``items`` is left untouched."""
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.next_int(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled
