"""
test_wavfile.py — WAV container, file bridge and CLI tests.
"""
from __future__ import annotations
import os
import re
import struct
import sys
sys.path.insert(0, os.path.dirname(__file__))

import numpy as np
import pytest
import scipy.io.wavfile as wavfile
import soundfile as sf

from sds import FailureCode, WAVFormatError, encrypt
from sds.params import PCM_HEADER_LEN
from sds_bridge import (
    decrypt_wav_file, default_output_name, encrypt_wav_file, wav_info,
)
from sdscipher import main
from utils import (
    WAVE_FORMAT_PCM, build_float64_header, read_pcm16, read_trajectory,
    read_wav_header, write_trajectory,
)


def _tone(n: int = 2000, sr: int = 8000) -> np.ndarray:
    t = np.arange(n) / sr
    return (0.5 * 32767 * np.sin(2 * np.pi * 330 * t)).astype(np.int16)


def _pcm_wav(path, samples, sr=8000):
    sf.write(str(path), samples, sr, subtype='PCM_16')
    return str(path)


def _raw_wav(chunks: list[tuple[bytes, bytes]]) -> bytes:
    body = b'WAVE'
    for cid, data in chunks:
        body += cid + struct.pack('<I', len(data)) + data
        if len(data) & 1:
            body += b'\x00'
    return b'RIFF' + struct.pack('<I', len(body)) + body


def _fmt(tag=WAVE_FORMAT_PCM, channels=1, sr=8000, bits=16) -> bytes:
    align = channels * bits // 8
    return struct.pack('<HHIIHH', tag, channels, sr, sr * align, align, bits)


# ─────────────────────────────────────────────────────────────────────────────
# Header parsing
# ─────────────────────────────────────────────────────────────────────────────

def test_read_pcm16_from_soundfile(tmp_path):
    samples = _tone()
    path = _pcm_wav(tmp_path / 'a.wav', samples)
    got, header = read_pcm16(path)
    assert got.dtype == np.int16
    assert np.array_equal(got, samples)
    assert header.sample_rate == 8000
    assert header.is_pcm16_mono
    assert header.frame_count == len(samples)


def test_header_skips_extra_chunks(tmp_path):
    pcm = np.array([1, -2, 3, -4], dtype='<i2').tobytes()
    raw = _raw_wav([(b'fmt ', _fmt()), (b'LIST', b'INFOxyz'), (b'data', pcm)])
    path = tmp_path / 'list.wav'
    path.write_bytes(raw)

    header = read_wav_header(str(path))
    # 12 RIFF + 24 fmt + 8+7+1 LIST + 8 data header
    assert header.data_offset == 60
    assert header.data_size == 8
    samples, _ = read_pcm16(str(path))
    assert samples.tolist() == [1, -2, 3, -4]


def test_oversized_data_chunk_is_clamped(tmp_path):
    pcm = np.array([10, 20, 30], dtype='<i2').tobytes()
    raw = _raw_wav([(b'fmt ', _fmt()), (b'data', pcm)])
    raw = raw[:40] + struct.pack('<I', 1000) + raw[44:]
    path = tmp_path / 'big.wav'
    path.write_bytes(raw)
    samples, header = read_pcm16(str(path))
    assert header.data_size == 6
    assert samples.tolist() == [10, 20, 30]


def test_odd_trailing_byte_dropped(tmp_path):
    raw = _raw_wav([(b'fmt ', _fmt()), (b'data', b'\x01\x00\x02\x00\x03')])
    path = tmp_path / 'odd.wav'
    path.write_bytes(raw)
    samples, _ = read_pcm16(str(path))
    assert samples.tolist() == [1, 2]


def test_not_a_wav(tmp_path):
    path = tmp_path / 'x.wav'
    path.write_bytes(b'OggS' + b'\x00' * 60)
    with pytest.raises(WAVFormatError) as exc:
        read_wav_header(str(path))
    assert exc.value.code is FailureCode.NOT_WAV
    assert isinstance(exc.value, ValueError)


def test_missing_data_chunk(tmp_path):
    path = tmp_path / 'nodata.wav'
    path.write_bytes(_raw_wav([(b'fmt ', _fmt())]))
    with pytest.raises(WAVFormatError) as exc:
        read_wav_header(str(path))
    assert exc.value.code is FailureCode.TRUNCATED


def test_stereo_rejected(tmp_path):
    stereo = np.stack([_tone(100), _tone(100)], axis=1)
    path = _pcm_wav(tmp_path / 's.wav', stereo)
    with pytest.raises(WAVFormatError) as exc:
        read_pcm16(path)
    assert exc.value.code is FailureCode.UNSUPPORTED_FORMAT


def test_missing_file_propagates(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_pcm16(str(tmp_path / 'nope.wav'))


# ─────────────────────────────────────────────────────────────────────────────
# Trajectory files
# ─────────────────────────────────────────────────────────────────────────────

def test_float64_header_layout():
    header = build_float64_header(5, 44100)
    assert len(header) == PCM_HEADER_LEN
    assert header[:4] == b'RIFF' and header[8:12] == b'WAVE'
    assert struct.unpack('<I', header[40:44])[0] == 40
    assert struct.unpack('<HH', header[20:24]) == (3, 1)


def test_trajectory_file_is_a_float_wav(tmp_path):
    traj = encrypt(_tone(300), 5)
    path = str(tmp_path / 't.wav')
    write_trajectory(path, traj, 8000)

    assert os.path.getsize(path) == 44 + len(traj) * 8
    got, header = read_trajectory(path)
    assert header.data_offset == 44
    assert header.is_float64_mono
    assert got.tobytes() == traj.tobytes()

    rate, data = wavfile.read(path)
    assert rate == 8000
    assert data.dtype == np.float64
    assert np.array_equal(data, traj)


def test_read_trajectory_rejects_pcm(tmp_path):
    path = _pcm_wav(tmp_path / 'p.wav', _tone(10))
    with pytest.raises(WAVFormatError):
        read_trajectory(path)


# ─────────────────────────────────────────────────────────────────────────────
# File bridge
# ─────────────────────────────────────────────────────────────────────────────

def test_default_output_name():
    assert default_output_name('Requiem for a Tower.wav', 'encrypted') == \
        'Requiem for a Tower (encrypted).wav'
    assert default_output_name('dir/song', 'decrypted') == os.path.join('dir', 'song (decrypted).wav')


@pytest.mark.parametrize('pad_tail', [False, True])
def test_file_roundtrip(tmp_path, pad_tail):
    samples = _tone(1500, sr=11025)
    src = _pcm_wav(tmp_path / 'in.wav', samples, sr=11025)
    enc = str(tmp_path / 'enc.wav')
    dec = str(tmp_path / 'dec.wav')

    n_in, n_out = encrypt_wav_file(src, enc, 4242, pad_tail=pad_tail)
    assert n_in == len(samples)
    assert n_out == len(samples) + (2 if pad_tail else 1)

    n_dec = decrypt_wav_file(enc, dec, 4242)
    assert n_dec == n_out - 2

    rate, out = wavfile.read(dec)
    assert rate == 11025
    assert out.dtype == np.int16
    traj, _ = read_trajectory(enc)
    err = np.abs(out.astype(int) - samples[:n_dec].astype(int))
    mask = np.abs(traj[:n_dec]) >= 0.005
    assert err[mask].max() <= 1

    # decrypted output is plain PCM the reader accepts again
    again, header = read_pcm16(dec)
    assert np.array_equal(again, out)
    assert header.data_offset == 44


def test_wav_info(tmp_path):
    path = _pcm_wav(tmp_path / 'i.wav', _tone(800))
    info = wav_info(path)
    assert info['sample_rate'] == 8000
    assert info['channels'] == 1
    assert info['bits_per_sample'] == 16
    assert info['frames'] == 800
    assert info['duration'] == pytest.approx(0.1)
    assert info['subtype'] == 'PCM_16'


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

def test_cli_encrypt_decrypt(tmp_path, capsys):
    src = _pcm_wav(tmp_path / 'song.wav', _tone(400))
    main(['encrypt', src, '--key', '0x10'])
    enc = str(tmp_path / 'song (encrypted).wav')
    assert os.path.exists(enc)

    out = str(tmp_path / 'plain.wav')
    main(['decrypt', enc, '-k', '16', '-o', out])
    samples, _ = read_pcm16(out)
    assert len(samples) == 399
    assert '✓ Saved' in capsys.readouterr().out


def test_cli_roundtrip_and_info(tmp_path, capsys):
    src = _pcm_wav(tmp_path / 'quiet.wav', np.zeros(10, dtype=np.int16))
    main(['roundtrip', src, '--pad-tail'])
    assert '[OK] 10/10' in capsys.readouterr().out
    main(['info', src])
    assert '"sample_rate": 8000' in capsys.readouterr().out


def test_cli_roundtrip_tone_passes_despite_zero_crossings(tmp_path, capsys):
    t = np.arange(44100) / 44100
    tone = (0.8 * 32767 * np.sin(2 * np.pi * 440 * t)).astype(np.int16)
    src = _pcm_wav(tmp_path / 'tone.wav', tone, sr=44100)

    main(['roundtrip', src, '--pad-tail'])
    out = capsys.readouterr().out
    assert '[OK] 44100/44100' in out
    assert int(re.search(r'ill_conditioned=(\d+)', out).group(1)) > 0


def test_cli_errors_exit_1(tmp_path, capsys):
    src = _pcm_wav(tmp_path / 'pcm.wav', _tone(10))
    with pytest.raises(SystemExit) as exc:
        main(['decrypt', src])
    assert exc.value.code == 1
    assert '✗ Error' in capsys.readouterr().err

    with pytest.raises(SystemExit) as exc:
        main(['encrypt', src, '--key', str(2 ** 31)])
    assert exc.value.code == 2
