"""SDS cipher — forward integration (encryption).

Each normalized sample c3 enters the SDS as the cubic stiffness of one
Euler step; the position x1 after that step is the ciphertext value.

    x1[k+1] = x1[k] + x2[k]*DT
    x2[k+1] = x2[k] + (n[k] - B1*x2[k] - B2*x2[k]*|x2[k]|
                       - C1*x1[k] - c3[k]*x1[k]^3 - C5*x1[k]^5) * DT

Output layout: x1[0] (the fixed seed, 0.1), then x1[1] … x1[N].  Sample
c3[N-1] only reaches x2[N], so it cannot be recovered from that stream;
``pad_tail=True`` appends x1[N+1] to make it recoverable.
"""

import math
from dataclasses import dataclass
from typing import Iterable, Iterator

import numpy as np
from numpy.typing import NDArray

from .diagnostics import DivergenceError
from .noise import NoiseGenerator, as_generator
from .params import DEFAULT_PARAMS, INT16_MAX, INT16_MIN, SDSParams, normalize


def advance(x1: float, x2: float, n_prev: float, c3: float,
            params: SDSParams = DEFAULT_PARAMS) -> tuple[float, float]:
    """One Euler step of the SDS.  Returns the new (x1, x2)."""
    dt = params.dt
    x1_new = x1 + x2 * dt
    x2_new = x2 + (
        n_prev
        - params.b1 * x2
        - params.b2 * x2 * abs(x2)
        - params.c1 * x1
        - c3 * x1 ** 3
        - params.c5 * x1 ** 5
    ) * dt
    return x1_new, x2_new


@dataclass
class SDSState:
    """Position, velocity and the noise value that drives the next step."""

    x1:     float
    x2:     float
    n_prev: float

    @classmethod
    def initial(cls, noise: NoiseGenerator,
                params: SDSParams = DEFAULT_PARAMS) -> "SDSState":
        """Fixed starting point; consumes the first noise draw as n_prev."""
        return cls(params.x10, params.x20, noise.next())

    def step(self, c3: float, n: float,
             params: SDSParams = DEFAULT_PARAMS) -> "SDSState":
        x1, x2 = advance(self.x1, self.x2, self.n_prev, c3, params)
        return SDSState(x1, x2, n)


def _check_sample(s) -> int:
    if isinstance(s, (float, np.floating)):
        if not float(s).is_integer():
            raise TypeError(f"samples must be integers, got {s!r}")
    elif not isinstance(s, (int, np.integer)) or isinstance(s, bool):
        raise TypeError(f"samples must be integers, got {type(s).__name__}")
    s = int(s)
    if not INT16_MIN <= s <= INT16_MAX:
        raise ValueError(f"sample {s} outside int16 range")
    return s


def iter_encrypt(
    samples: Iterable[int],
    key,
    *,
    params: SDSParams = DEFAULT_PARAMS,
    pad_tail: bool = False,
) -> Iterator[float]:
    """Yield the trajectory for *samples* one value at a time.

    Args:
        samples:  int16 samples, consumed strictly in order.
        key:      signed 32-bit integer, or an already-seeded NoiseGenerator.
        params:   SDS coefficients; must match the decrypting side.
        pad_tail: also yield x1[N+1] so the last sample survives decryption.

    Raises:
        DivergenceError: the state overflowed.  The default coefficients keep
            the system bounded; only custom params can get here.
    """
    noise = as_generator(key, params)
    dt = params.dt

    state = SDSState.initial(noise, params)
    x1, x2, n_prev = state.x1, state.x2, state.n_prev
    yield x1

    for i, s in enumerate(samples):
        c3 = normalize(_check_sample(s))
        n = noise.next()
        try:
            x1, x2 = advance(x1, x2, n_prev, c3, params)
        except OverflowError as exc:
            raise DivergenceError(f"step {i}: {exc}", index=i) from exc
        if not (math.isfinite(x1) and math.isfinite(x2)):
            raise DivergenceError(f"step {i}: state left the float range", index=i)
        yield x1
        n_prev = n

    if pad_tail:
        yield x1 + x2 * dt


def encrypt(
    samples,
    key,
    *,
    params: SDSParams = DEFAULT_PARAMS,
    pad_tail: bool = False,
) -> NDArray[np.float64]:
    """Encrypt int16 *samples* → float64 trajectory of len(samples)+1 values.

    ``encrypt([], key)`` is ``[0.1]``: the seed value alone.
    """
    samples = np.asarray(samples)
    if samples.ndim != 1:
        raise ValueError(f"samples must be 1-D (mono), got shape {samples.shape}")
    if samples.size and samples.dtype.kind not in "iu":
        # Let the per-sample check name the offending value
        samples = samples.tolist()
    else:
        if samples.size and (samples.min() < INT16_MIN or samples.max() > INT16_MAX):
            raise ValueError("samples outside int16 range")
        samples = samples.astype(np.int64).tolist()

    count = len(samples) + 1 + (1 if pad_tail else 0)
    return np.fromiter(
        iter_encrypt(samples, key, params=params, pad_tail=pad_tail),
        dtype=np.float64,
        count=count,
    )
