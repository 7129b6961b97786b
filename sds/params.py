"""SDS cipher — all numeric constants, keyed in one place.

Encrypt and decrypt read every coefficient from here.  Changing a value
breaks compatibility with trajectories produced under the old value, so the
defaults are locked; pass an explicit :class:`SDSParams` to experiment.
"""

import math
from dataclasses import dataclass

from .diagnostics import DegenerateWindowError

# ── SDS coefficients ──────────────────────────────────────────────────────────
# x1'' = n - B1*x1' - B2*x1'*|x1'| - C1*x1 - c3*x1^3 - C5*x1^5
B1 = 0.02     # linear damping
B2 = 2.0      # quadratic damping
C1 = 1.0      # linear restoring force
C5 = 0.5      # quintic restoring force

# ── white noise + integration ─────────────────────────────────────────────────
N0 = 0.0004   # white noise intensity
DT = 0.1      # time step

# Uniform u ∈ [0,1) → z = Z1 + Z2*u ∈ [-5, 5)
Z1 = -5.0
Z2 = 10.0

# ── starting state (independent of the key) ──────────────────────────────────
X10 = 0.1
X20 = 0.0

# Below this |x1[i]| the decrypt division by x1^3 amplifies rounding error
# past one LSB; such windows are counted as ill-conditioned
X1_FLOOR = 5e-4

# ── sample scaling ────────────────────────────────────────────────────────────
MODIF     = 32768.0   # int16 [-32768, 32767] ↔ c3 ∈ [-1, 1]
INT16_MIN = -32768
INT16_MAX = 32767

# Keys are signed 32-bit integers
INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

# Canonical RIFF/WAVE header size; PCM data conventionally starts here
PCM_HEADER_LEN = 44


@dataclass(frozen=True)
class SDSParams:
    """Coefficient set shared by both ends of the cipher."""

    b1:  float = B1
    b2:  float = B2
    c1:  float = C1
    c5:  float = C5
    n0:  float = N0
    dt:  float = DT
    x10: float = X10
    x20: float = X20
    x1_floor: float = X1_FLOOR

    def __post_init__(self):
        if not self.dt > 0:
            raise ValueError(f"dt must be positive, got {self.dt}")
        if self.n0 < 0:
            raise ValueError(f"n0 must be non-negative, got {self.n0}")
        if self.x1_floor < 0:
            raise ValueError(f"x1_floor must be non-negative, got {self.x1_floor}")

    @property
    def noise_scale(self) -> float:
        """sqrt(N0 / DT): maps z ∈ [-5, 5) to a white-noise sample."""
        return math.sqrt(self.n0 / self.dt)


DEFAULT_PARAMS = SDSParams()


def normalize(sample: int) -> float:
    """int16 sample → c3 in [-1, 1]."""
    return sample / MODIF


def denormalize(c3: float) -> int:
    """c3 → int16 sample: truncate toward zero, then wrap to 16 bits.

    Values past the int16 range wrap two's-complement style instead of
    clipping.  Non-finite c3 cannot be represented and raises.
    """
    if not math.isfinite(c3):
        raise DegenerateWindowError(f"cannot convert non-finite c3={c3!r} to int16")
    value = int(c3 * MODIF)   # int() truncates toward zero
    return ((value - INT16_MIN) & 0xFFFF) + INT16_MIN
