"""
Deterministic index-seeded random numbers.

Every value is a pure function of its seed: re-rendering or retrying a
single frame regenerates identical geometry without replaying the
frames before it. The generator is mulberry32 applied to
``trunc(seed * 1e10)`` reduced to 32 bits.
"""

import math

import numpy as np

_MASK = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_SEED_SCALE = 10000000000.0
_DENOMINATOR = 4294967296.0


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK


def _mulberry32(t: int) -> float:
    t = _imul(t ^ (t >> 15), t | 1)
    t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK
    return ((t ^ (t >> 14)) & _MASK) / _DENOMINATOR


def sample(seed: float) -> float:
    """
    Return a value in [0, 1) determined solely by ``seed``.

    Args:
        seed: Any finite number. Integer indices are the common case.

    Returns:
        Float in [0, 1).
    """
    t = math.trunc(float(seed) * _SEED_SCALE + _INCREMENT) & _MASK
    return _mulberry32(t)


def sample_array(seeds) -> np.ndarray:
    """
    Vectorised :func:`sample` over an array of seeds.

    Element ``k`` of the result equals ``sample(seeds[k])``.
    """
    seeds = np.asarray(seeds, dtype=np.float64)
    t = np.trunc(seeds * _SEED_SCALE + _INCREMENT).astype(np.int64)
    t = (t & _MASK).astype(np.uint64)

    mask = np.uint64(_MASK)
    t = ((t ^ (t >> np.uint64(15))) * (t | np.uint64(1))) & mask
    t ^= (t + (((t ^ (t >> np.uint64(7))) * (t | np.uint64(61))) & mask)) & mask
    t = (t ^ (t >> np.uint64(14))) & mask
    return t.astype(np.float64) / _DENOMINATOR


def sample_range(start: int, count: int) -> np.ndarray:
    """Samples for the consecutive seeds ``start .. start + count - 1``."""
    return sample_array(np.arange(start, start + count, dtype=np.float64))
