"""
utils.py — WAV container I/O for the SDS cipher
Header parsing, PCM16 reading, float64 trajectory files
"""
import logging
import os
import struct
from dataclasses import dataclass

import numpy as np

from sds.diagnostics import FailureCode, WAVFormatError

log = logging.getLogger(__name__)

WAVE_FORMAT_PCM        = 0x0001
WAVE_FORMAT_IEEE_FLOAT = 0x0003
WAVE_FORMAT_EXTENSIBLE = 0xFFFE


# ─────────────────────────────────────────────────────────────
# Header
# ─────────────────────────────────────────────────────────────

@dataclass
class WAVHeader:
    format_tag:      int
    channels:        int
    sample_rate:     int
    bits_per_sample: int
    data_size:       int   # bytes actually available in the data chunk
    data_offset:     int   # file offset of the first data byte

    @property
    def block_align(self) -> int:
        return self.channels * self.bits_per_sample // 8

    @property
    def frame_count(self) -> int:
        return self.data_size // self.block_align if self.block_align else 0

    @property
    def duration(self) -> float:
        return self.frame_count / self.sample_rate if self.sample_rate else 0.0

    @property
    def is_pcm16_mono(self) -> bool:
        return (self.format_tag == WAVE_FORMAT_PCM
                and self.channels == 1 and self.bits_per_sample == 16)

    @property
    def is_float64_mono(self) -> bool:
        return (self.format_tag == WAVE_FORMAT_IEEE_FLOAT
                and self.channels == 1 and self.bits_per_sample == 64)

    def as_dict(self) -> dict:
        return {
            'format_tag':      self.format_tag,
            'channels':        self.channels,
            'sample_rate':     self.sample_rate,
            'bits_per_sample': self.bits_per_sample,
            'data_size':       self.data_size,
            'data_offset':     self.data_offset,
            'frames':          self.frame_count,
            'duration':        round(self.duration, 3),
        }


def read_wav_header(path: str) -> WAVHeader:
    """Walk the RIFF chunk list of *path* → WAVHeader.

    Chunks may come in any order; odd-sized chunks carry one pad byte.
    A data chunk that claims more bytes than the file holds is clamped.
    """
    file_size = os.path.getsize(path)
    with open(path, 'rb') as f:
        riff = f.read(12)
        if len(riff) < 12 or riff[:4] != b'RIFF' or riff[8:12] != b'WAVE':
            raise WAVFormatError(f'{path}: not a RIFF/WAVE file', FailureCode.NOT_WAV)

        fmt = None
        pos = 12
        while True:
            f.seek(pos)
            chunk = f.read(8)
            if len(chunk) < 8:
                break
            cid, size = chunk[:4], struct.unpack('<I', chunk[4:])[0]
            body = pos + 8
            if cid == b'fmt ':
                raw = f.read(min(size, 40))
                if len(raw) < 16:
                    raise WAVFormatError(f'{path}: fmt chunk too short',
                                         FailureCode.TRUNCATED)
                tag, channels, rate, _, _, bits = struct.unpack('<HHIIHH', raw[:16])
                if tag == WAVE_FORMAT_EXTENSIBLE and len(raw) >= 26:
                    # First two bytes of the SubFormat GUID hold the real tag
                    tag = struct.unpack('<H', raw[24:26])[0]
                fmt = (tag, channels, rate, bits)
            elif cid == b'data':
                if fmt is None:
                    raise WAVFormatError(f'{path}: data chunk before fmt chunk',
                                         FailureCode.TRUNCATED)
                available = max(file_size - body, 0)
                if size > available:
                    log.warning('%s: data chunk claims %d bytes, only %d present',
                                path, size, available)
                    size = available
                return WAVHeader(*fmt, data_size=size, data_offset=body)
            pos = body + size + (size & 1)

    raise WAVFormatError(f'{path}: no fmt/data chunk', FailureCode.TRUNCATED)


def build_float64_header(n_values: int, sample_rate: int) -> bytes:
    """Canonical 44-byte header for mono 64-bit IEEE float data."""
    data_size = n_values * 8
    fmt_chunk = (b'fmt '
                 + struct.pack('<I', 16)                          # chunk size
                 + struct.pack('<H', WAVE_FORMAT_IEEE_FLOAT)      # float
                 + struct.pack('<H', 1)                           # mono
                 + struct.pack('<I', sample_rate)                 # sample rate
                 + struct.pack('<I', sample_rate * 8)             # byte rate
                 + struct.pack('<H', 8)                           # block align
                 + struct.pack('<H', 64))                         # bits per sample
    header = (b'RIFF' + struct.pack('<I', 36 + data_size) + b'WAVE'
              + fmt_chunk
              + b'data' + struct.pack('<I', data_size))
    return header


# ─────────────────────────────────────────────────────────────
# Sample data
# ─────────────────────────────────────────────────────────────

def _read_data(path: str, header: WAVHeader, dtype: str) -> np.ndarray:
    itemsize = np.dtype(dtype).itemsize
    count = header.data_size // itemsize
    if header.data_size % itemsize:
        log.warning('%s: dropping %d trailing byte(s)', path, header.data_size % itemsize)
    with open(path, 'rb') as f:
        f.seek(header.data_offset)
        raw = f.read(count * itemsize)
    if len(raw) < count * itemsize:
        raise WAVFormatError(f'{path}: short read in data chunk', FailureCode.TRUNCATED)
    return np.frombuffer(raw, dtype=dtype)


def read_pcm16(path: str) -> tuple[np.ndarray, WAVHeader]:
    """Read mono 16-bit PCM → (int16 samples, header)."""
    header = read_wav_header(path)
    if not header.is_pcm16_mono:
        raise WAVFormatError(
            f'{path}: need mono 16-bit PCM, got {header.channels} ch '
            f'{header.bits_per_sample}-bit (format 0x{header.format_tag:04x})'
        )
    samples = _read_data(path, header, '<i2').astype(np.int16)
    log.debug('%s: %d samples at %d Hz', path, len(samples), header.sample_rate)
    return samples, header


def write_trajectory(path: str, trajectory: np.ndarray, sample_rate: int):
    """Write trajectory as a mono float64 WAV with a 44-byte header."""
    data = np.ascontiguousarray(trajectory, dtype='<f8')
    with open(path, 'wb') as f:
        f.write(build_float64_header(len(data), sample_rate))
        f.write(data.tobytes())


def read_trajectory(path: str) -> tuple[np.ndarray, WAVHeader]:
    """Read a trajectory written by :func:`write_trajectory`."""
    header = read_wav_header(path)
    if not header.is_float64_mono:
        raise WAVFormatError(
            f'{path}: not an SDS trajectory (need mono 64-bit float, got '
            f'{header.channels} ch {header.bits_per_sample}-bit '
            f'format 0x{header.format_tag:04x})'
        )
    return _read_data(path, header, '<f8').astype(np.float64), header
