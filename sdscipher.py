#!/usr/bin/env python3
"""
sdscipher.py — SDS sound cipher CLI entry point.

Commands:
  info       <wav>   Print WAV header fields (JSON)
  encrypt    <wav>   Mono 16-bit PCM WAV → float64 trajectory WAV
  decrypt    <wav>   Trajectory WAV → mono 16-bit PCM WAV
  roundtrip  <wav>   Encrypt + decrypt in memory and compare with the input

Run `python3 sdscipher.py --help` for full usage.
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path

_VERSION_FILE = Path(__file__).parent / 'VERSION'

# Add this directory to path so local imports work when called from anywhere
sys.path.insert(0, str(Path(__file__).parent))


def _version() -> str:
    return _VERSION_FILE.read_text().strip() if _VERSION_FILE.exists() else '0.0.0'


# ─────────────────────────────────────────────────────────────────────────────
# Sub-command handlers
# ─────────────────────────────────────────────────────────────────────────────

def cmd_info(args: argparse.Namespace):
    from sds_bridge import wav_info  # type: ignore

    print(json.dumps(wav_info(args.wav), indent=2))


def cmd_encrypt(args: argparse.Namespace):
    from sds_bridge import default_output_name, encrypt_wav_file  # type: ignore

    out_path = args.output or default_output_name(args.wav, 'encrypted')
    print(f'→ Encrypting {args.wav}  key={args.key}'
          f'{"  pad-tail" if args.pad_tail else ""}', file=sys.stderr)
    n_in, n_out = encrypt_wav_file(args.wav, out_path, args.key, pad_tail=args.pad_tail)
    size_kb = os.path.getsize(out_path) / 1024
    print(f'✓ Saved: {out_path}  ({size_kb:.1f} KB, {n_in} samples → {n_out} values)')


def cmd_decrypt(args: argparse.Namespace):
    from sds_bridge import default_output_name, decrypt_wav_file  # type: ignore

    out_path = args.output or default_output_name(args.wav, 'decrypted')
    print(f'→ Decrypting {args.wav}  key={args.key}', file=sys.stderr)
    n_out = decrypt_wav_file(args.wav, out_path, args.key)
    size_kb = os.path.getsize(out_path) / 1024
    print(f'✓ Saved: {out_path}  ({size_kb:.1f} KB, {n_out} samples)')


def cmd_roundtrip(args: argparse.Namespace):
    from sds import DEFAULT_PARAMS, compare, decrypt, encrypt  # type: ignore
    from utils import read_pcm16  # type: ignore

    samples, _ = read_pcm16(args.wav)
    trajectory = encrypt(samples, args.key, pad_tail=args.pad_tail)
    recovered  = decrypt(trajectory, args.key)
    report     = compare(samples, recovered, trajectory, DEFAULT_PARAMS.x1_floor)
    print(report.summary())
    if not report.ok:
        sys.exit(1)


# ─────────────────────────────────────────────────────────────────────────────
# Argument parser
# ─────────────────────────────────────────────────────────────────────────────

def _key(value: str) -> int:
    try:
        key = int(value, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f'key must be an integer, got {value!r}') from None
    if not -(2 ** 31) <= key <= 2 ** 31 - 1:
        raise argparse.ArgumentTypeError(f'key {key} does not fit in 32 bits')
    return key


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog='sdscipher',
        description='Stochastic-differential-system stream cipher for 16-bit PCM WAV.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python3 sdscipher.py info song.wav
  python3 sdscipher.py encrypt song.wav                   # → "song (encrypted).wav"
  python3 sdscipher.py encrypt song.wav --key 1234 --pad-tail -o song.sds.wav
  python3 sdscipher.py decrypt "song (encrypted).wav"     # → "song (encrypted) (decrypted).wav"
  python3 sdscipher.py roundtrip song.wav --key 1234
""",
    )
    p.add_argument('--version', action='version', version=f'%(prog)s {_version()}')
    p.add_argument('--verbose', '-v', action='store_true',
                   help='Log progress detail to stderr')
    sub = p.add_subparsers(dest='command', required=True)

    # ── info ──────────────────────────────────────────────────────────────────
    inf = sub.add_parser('info', help='Print WAV header fields as JSON.')
    inf.add_argument('wav', help='Input WAV file')
    inf.set_defaults(func=cmd_info)

    # ── encrypt ───────────────────────────────────────────────────────────────
    enc = sub.add_parser(
        'encrypt',
        help='Encrypt a mono 16-bit PCM WAV.',
        description=(
            'Drive the SDS with each sample and write the x1 trajectory as a '
            'mono 64-bit float WAV (one value more than there are samples).'
        ),
    )
    enc.add_argument('wav', help='Input WAV file (mono, 16-bit PCM)')
    enc.add_argument('--output', '-o', default=None,
                     help='Output path (default: "<name> (encrypted).wav")')
    enc.add_argument('--key', '-k', type=_key, default=1,
                     help='Signed 32-bit key (default: 1)')
    enc.add_argument('--pad-tail', action='store_true',
                     help='Write one extra value so the last sample also decrypts')
    enc.set_defaults(func=cmd_encrypt)

    # ── decrypt ───────────────────────────────────────────────────────────────
    dec = sub.add_parser(
        'decrypt',
        help='Decrypt a trajectory WAV back to 16-bit PCM.',
    )
    dec.add_argument('wav', help='Encrypted WAV file')
    dec.add_argument('--output', '-o', default=None,
                     help='Output path (default: "<name> (decrypted).wav")')
    dec.add_argument('--key', '-k', type=_key, default=1,
                     help='Signed 32-bit key used to encrypt (default: 1)')
    dec.set_defaults(func=cmd_decrypt)

    # ── roundtrip ─────────────────────────────────────────────────────────────
    rt = sub.add_parser(
        'roundtrip',
        help='Encrypt and decrypt in memory; report sample errors.',
    )
    rt.add_argument('wav', help='Input WAV file (mono, 16-bit PCM)')
    rt.add_argument('--key', '-k', type=_key, default=1)
    rt.add_argument('--pad-tail', action='store_true')
    rt.set_defaults(func=cmd_roundtrip)

    return p


# ─────────────────────────────────────────────────────────────────────────────
# Entry point
# ─────────────────────────────────────────────────────────────────────────────

def main(argv: list[str] | None = None):
    parser = build_parser()
    args   = parser.parse_args(argv)

    debug = bool(os.environ.get('SDSCIPHER_DEBUG'))
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        args.func(args)
    except KeyboardInterrupt:
        print('\n⚠ Interrupted.', file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f'✗ Error: {e}', file=sys.stderr)
        if debug:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
