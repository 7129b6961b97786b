"""SDS cipher — inverse of the discretization (decryption).

Three consecutive positions pin down both velocities of a step,

    x2[i]   = (x1[i+1] - x1[i])   / DT
    x2[i+1] = (x1[i+2] - x1[i+1]) / DT

so the x2 update can be solved for the only unknown, c3[i]:

    c3 = [ (2*x1[i+1] - x1[i] - x1[i+2]) / DT^2 + n - C1*x1[i] - C5*x1[i]^5
           - B1*(x1[i+1]-x1[i])/DT - B2*(x1[i+1]-x1[i])*|x1[i+1]-x1[i]|/DT^2 ]
         / x1[i]^3

Noise cadence: window i needs n[i], the n_prev the encryptor held while
consuming sample i.  The encryptor's pre-loop draw is n[0], so a fresh
generator drawing once per window lines up exactly.

Conditioning: the division by x1[i]^3 magnifies rounding error, so windows
with |x1[i]| below ``params.x1_floor`` may be off by more than one LSB.
They are still decoded, and counted in a warning once the pass ends.
"""

import logging
from collections import deque
from typing import Iterable, Iterator

import numpy as np
from numpy.typing import NDArray

from .diagnostics import DegenerateWindowError
from .noise import as_generator
from .params import DEFAULT_PARAMS, SDSParams, denormalize

log = logging.getLogger(__name__)


def solve_c3(x1i: float, x1i1: float, x1i2: float, n: float,
             params: SDSParams = DEFAULT_PARAMS) -> float:
    """Recover the normalized sample from the window (x1[i], x1[i+1], x1[i+2])."""
    if x1i == 0.0:
        raise DegenerateWindowError("x1[i] is zero; c3 is unrecoverable")
    dt = params.dt
    d = x1i1 - x1i
    return (
        (2 * x1i1 - x1i - x1i2) / (dt * dt)
        + n
        - params.c1 * x1i
        - params.c5 * x1i ** 5
        - params.b1 * d / dt
        - params.b2 * d * abs(d) / (dt * dt)
    ) / x1i ** 3


def iter_decrypt(
    trajectory: Iterable[float],
    key,
    *,
    params: SDSParams = DEFAULT_PARAMS,
) -> Iterator[int]:
    """Yield int16 samples from a trajectory, one per 3-value window.

    The window slides by one value per sample.  A trajectory of fewer than
    three values yields nothing.

    Raises:
        DegenerateWindowError: x1[i] is exactly zero or c3 overflows to
            inf/nan.  ``.index`` is the window position.
    """
    noise = as_generator(key, params)
    window: deque[float] = deque(maxlen=3)

    i = 0
    ill = 0
    for x in trajectory:
        window.append(float(x))
        if len(window) < 3:
            continue
        n = noise.next()
        try:
            sample = denormalize(solve_c3(window[0], window[1], window[2], n, params))
        except (DegenerateWindowError, OverflowError) as exc:
            raise DegenerateWindowError(f"window {i}: {exc}", index=i) from exc
        if abs(window[0]) < params.x1_floor:
            ill += 1
        yield sample
        i += 1

    if ill:
        log.warning("%d of %d window(s) ill-conditioned (|x1| < %g); "
                    "those samples may be off by more than 1 LSB",
                    ill, i, params.x1_floor)


def decrypt(
    trajectory,
    key,
    *,
    params: SDSParams = DEFAULT_PARAMS,
) -> NDArray[np.int16]:
    """Decrypt a float64 trajectory → int16 samples (len(trajectory) - 2)."""
    trajectory = np.asarray(trajectory, dtype=np.float64)
    if trajectory.ndim != 1:
        raise ValueError(f"trajectory must be 1-D, got shape {trajectory.shape}")
    count = max(len(trajectory) - 2, 0)
    return np.fromiter(
        iter_decrypt(trajectory.tolist(), key, params=params),
        dtype=np.int16,
        count=count,
    )


def ill_conditioned(trajectory, params: SDSParams = DEFAULT_PARAMS) -> NDArray[np.bool_]:
    """Mask over decrypt windows: True where |x1[i]| < params.x1_floor."""
    trajectory = np.asarray(trajectory, dtype=np.float64)
    count = max(len(trajectory) - 2, 0)
    return np.abs(trajectory[:count]) < params.x1_floor
