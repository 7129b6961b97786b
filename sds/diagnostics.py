"""SDS cipher — failure codes, exceptions and round-trip reports."""

from dataclasses import dataclass
from enum import Enum

import numpy as np


class FailureCode(str, Enum):
    """Reason an encrypt/decrypt pass did not complete."""

    NOT_WAV            = "not_wav"             # no RIFF/WAVE signature
    UNSUPPORTED_FORMAT = "unsupported_format"  # not mono 16-bit PCM (or not float64 trajectory)
    TRUNCATED          = "truncated"           # fmt / data chunk missing or cut short
    DEGENERATE_WINDOW  = "degenerate_window"   # x1[i] == 0 or c3 not finite
    DIVERGED           = "diverged"            # forward integration left the float range
    BAD_KEY            = "bad_key"             # key outside signed 32-bit range


class SDSError(RuntimeError):
    """Base class for cipher failures.  ``code`` says which kind, if known."""

    code: FailureCode | None = None

    def __init__(self, message: str, code: FailureCode | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class WAVFormatError(SDSError, ValueError):
    """Input is not a WAV container the cipher can handle."""

    code = FailureCode.UNSUPPORTED_FORMAT


class BadKeyError(SDSError, ValueError):
    """Key outside the signed 32-bit range."""

    code = FailureCode.BAD_KEY


class DegenerateWindowError(SDSError, ArithmeticError):
    """Decryption window whose x1[i] is zero, or whose c3 is not finite."""

    code = FailureCode.DEGENERATE_WINDOW

    def __init__(self, message: str, index: int | None = None):
        super().__init__(message)
        self.index = index


class DivergenceError(SDSError, ArithmeticError):
    """Encryption step whose state overflowed (only reachable with custom params)."""

    code = FailureCode.DIVERGED

    def __init__(self, message: str, index: int | None = None):
        super().__init__(message)
        self.index = index


@dataclass
class RoundTripReport:
    """Comparison of an original sample stream with its decrypted copy.

    The recovered stream is normally one sample shorter than the original
    (the last sample only reaches x2, which is never written); comparison
    covers the common prefix.  Windows whose |x1[i]| sits below the
    conditioning floor are counted in ``ill_conditioned`` and left out of
    the error figures.
    """

    samples:         int
    recovered:       int
    exact:           int   = 0
    max_error:       int   = 0
    beyond_1lsb:     int   = 0      # |error| > 1, well-conditioned windows only
    ill_conditioned: int   = 0

    @property
    def ok(self) -> bool:
        return self.beyond_1lsb == 0

    def summary(self) -> str:
        status = "OK" if self.ok else "FAIL"
        return (
            f"[{status}] {self.recovered}/{self.samples} samples recovered  "
            f"exact={self.exact} max_err={self.max_error} >1LSB={self.beyond_1lsb} "
            f"ill_conditioned={self.ill_conditioned}"
        )


def compare(original, recovered, trajectory=None, floor: float = 0.0) -> RoundTripReport:
    """Build a :class:`RoundTripReport` for *original* vs *recovered*.

    With *trajectory*, windows where |x1[i]| < *floor* are counted as
    ill-conditioned instead of being scored.
    """
    a = np.asarray(original, dtype=np.int64)
    b = np.asarray(recovered, dtype=np.int64)
    n = min(len(a), len(b))
    report = RoundTripReport(samples=len(a), recovered=len(b))
    if n == 0:
        return report

    good = np.ones(n, dtype=bool)
    if trajectory is not None:
        good = np.abs(np.asarray(trajectory, dtype=np.float64)[:n]) >= floor
        report.ill_conditioned = int(np.count_nonzero(~good))

    err = np.abs(a[:n] - b[:n])
    report.exact = int(np.count_nonzero(err == 0))
    if good.any():
        report.max_error   = int(err[good].max())
        report.beyond_1lsb = int(np.count_nonzero(err[good] > 1))
    return report
