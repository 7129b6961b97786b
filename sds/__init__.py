"""SDS — stochastic-differential-system stream cipher for 16-bit PCM audio.

Public API:
    encrypt(samples, key, *, params=DEFAULT_PARAMS, pad_tail=False) -> np.ndarray[float64]
    decrypt(trajectory, key, *, params=DEFAULT_PARAMS)              -> np.ndarray[int16]
    NoiseGenerator.seed(key)                                        -> NoiseGenerator
"""

from .decryptor import decrypt, ill_conditioned, iter_decrypt, solve_c3
from .diagnostics import (
    BadKeyError,
    DegenerateWindowError,
    DivergenceError,
    FailureCode,
    RoundTripReport,
    SDSError,
    WAVFormatError,
    compare,
)
from .encryptor import SDSState, advance, encrypt, iter_encrypt
from .noise import NoiseGenerator
from .params import DEFAULT_PARAMS, SDSParams

__version__ = "1.0.0"
__all__ = [
    "encrypt", "decrypt", "iter_encrypt", "iter_decrypt",
    "advance", "solve_c3", "ill_conditioned", "SDSState", "NoiseGenerator",
    "SDSParams", "DEFAULT_PARAMS",
    "SDSError", "WAVFormatError", "DegenerateWindowError", "DivergenceError",
    "BadKeyError",
    "FailureCode", "RoundTripReport", "compare",
]
