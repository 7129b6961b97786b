"""
sds_bridge.py — File-level glue between the WAV container and the sds cipher.

    encrypt_wav_file(src, dst, key=1, *, pad_tail=False) -> (samples_in, values_out)
        mono 16-bit PCM WAV → float64 trajectory WAV.

    decrypt_wav_file(src, dst, key=1) -> samples_out
        float64 trajectory WAV → mono 16-bit PCM WAV at the same sample rate.

    wav_info(path) -> dict
        Header fields plus whatever soundfile reports about the file.

I/O errors (missing file, permissions, short reads) propagate unchanged.
"""
from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import scipy.io.wavfile as _wavfile
import soundfile as sf

from sds import decrypt, encrypt
from sds.params import DEFAULT_PARAMS, SDSParams
from utils import read_pcm16, read_trajectory, read_wav_header, write_trajectory

log = logging.getLogger(__name__)

DEFAULT_KEY = 1


def default_output_name(path: str, tag: str) -> str:
    """'song.wav' + 'encrypted' → 'song (encrypted).wav'."""
    p = Path(path)
    suffix = p.suffix or '.wav'
    return str(p.with_name(f'{p.stem} ({tag}){suffix}'))


def encrypt_wav_file(
    src: str,
    dst: str,
    key: int = DEFAULT_KEY,
    *,
    pad_tail: bool = False,
    params: SDSParams = DEFAULT_PARAMS,
) -> tuple[int, int]:
    """Encrypt the PCM in *src* into a trajectory WAV at *dst*.

    Returns:
        (number of input samples, number of trajectory values written)
    """
    samples, header = read_pcm16(src)
    log.info('encrypting %s: %d samples, %d Hz', src, len(samples), header.sample_rate)
    trajectory = encrypt(samples, key, params=params, pad_tail=pad_tail)
    write_trajectory(dst, trajectory, header.sample_rate)
    return len(samples), len(trajectory)


def decrypt_wav_file(
    src: str,
    dst: str,
    key: int = DEFAULT_KEY,
    *,
    params: SDSParams = DEFAULT_PARAMS,
) -> int:
    """Decrypt the trajectory WAV *src* into a 16-bit PCM WAV at *dst*.

    Returns the number of samples written.
    """
    trajectory, header = read_trajectory(src)
    log.info('decrypting %s: %d values, %d Hz', src, len(trajectory), header.sample_rate)
    samples = decrypt(trajectory, key, params=params)
    _wavfile.write(dst, header.sample_rate, samples.astype(np.int16))
    return len(samples)


def wav_info(path: str) -> dict:
    """Basic information about a WAV file (header + soundfile's view)."""
    header = read_wav_header(path)
    info = {'path': str(path), **header.as_dict()}
    try:
        sfi = sf.info(path)
    except RuntimeError as exc:   # libsndfile could not parse it
        log.debug('soundfile cannot open %s: %s', path, exc)
    else:
        info['format']  = sfi.format
        info['subtype'] = sfi.subtype
    return info
