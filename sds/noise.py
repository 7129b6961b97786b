"""SDS cipher — keyed white-noise generator.

The key is the whole secret: encrypt and decrypt each seed their own
generator with it and must then draw in lockstep, one value per sample.

    u ~ U[0, 1)           numpy Generator(PCG64), seeded with the key only
    z = Z1 + Z2*u         ∈ [-5, 5)
    n = z * sqrt(N0/DT)

PCG64 fills a batch with the same doubles as the equivalent run of single
draws, so values are pulled in blocks and served one at a time; the
sequence never depends on the block size.
"""

import numpy as np
from numpy.typing import NDArray

from .diagnostics import BadKeyError
from .params import DEFAULT_PARAMS, INT32_MAX, INT32_MIN, Z1, Z2, SDSParams

_BLOCK = 4096   # uniforms fetched per refill


def _check_key(key) -> int:
    if isinstance(key, bool) or not isinstance(key, (int, np.integer)):
        raise TypeError(f"key must be an integer, got {type(key).__name__}")
    key = int(key)
    if not INT32_MIN <= key <= INT32_MAX:
        raise BadKeyError(f"key must fit in a signed 32-bit integer, got {key}")
    return key


class NoiseGenerator:
    """Deterministic noise sequence derived from an integer key."""

    def __init__(self, key: int, params: SDSParams = DEFAULT_PARAMS):
        self.key    = _check_key(key)
        self.scale  = params.noise_scale
        # Negative keys keep their bit pattern; SeedSequence wants >= 0
        self._rng   = np.random.Generator(np.random.PCG64(self.key & 0xFFFFFFFF))
        self._buf: list[float] = []
        self._pos   = 0
        self.drawn  = 0

    @classmethod
    def seed(cls, key: int, params: SDSParams = DEFAULT_PARAMS) -> "NoiseGenerator":
        return cls(key, params)

    def _refill(self):
        z = Z1 + Z2 * self._rng.random(_BLOCK)
        self._buf = (z * self.scale).tolist()
        self._pos = 0

    def next(self) -> float:
        """Return the next noise value."""
        if self._pos >= len(self._buf):
            self._refill()
        value = self._buf[self._pos]
        self._pos  += 1
        self.drawn += 1
        return value

    __next__ = next

    def __iter__(self):
        return self

    def draw(self, n: int) -> NDArray[np.float64]:
        """Return the next *n* values as an array."""
        if n < 0:
            raise ValueError(f"n must be non-negative, got {n}")
        return np.fromiter((self.next() for _ in range(n)), dtype=np.float64, count=n)

    def __repr__(self) -> str:
        return f"NoiseGenerator(key={self.key}, drawn={self.drawn})"


def as_generator(key, params: SDSParams = DEFAULT_PARAMS) -> NoiseGenerator:
    """Accept either a key or a generator the caller already seeded."""
    if isinstance(key, NoiseGenerator):
        return key
    return NoiseGenerator.seed(key, params)
