#!/usr/bin/env python3
"""Decode a captured response window offline.

A failed gather logs the undecodable window base64-encoded. Paste that into
a file (or save a raw capture from the port) and run:

    python tools/decode_capture.py capture.b64 --base64
    python tools/decode_capture.py capture.bin --window 4000

Prints the settled screen and the scraped fields, or the decode failure.
"""

import argparse
import base64
import logging
import os
import sys
from pathlib import Path

from espree_lib import TerminalEmulator, parse_status_screen
from espree_lib.errors import FieldNotFound, TerminalError

logging.basicConfig(
    level=getattr(logging, os.getenv("LOG_LEVEL", "WARNING").upper(), logging.WARNING),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)


def load_capture(path: str, is_base64: bool) -> bytes:
    data = Path(path).read_bytes()
    if is_base64:
        data = base64.b64decode(b"".join(data.split()))
    return data


def decode_capture(data: bytes) -> int:
    """Decode and scrape one window; returns a process exit code."""
    emulator = TerminalEmulator()

    print(f"=== Decoding {len(data)} bytes ===")
    try:
        emulator.feed(data)
    except TerminalError as e:
        print(f"\n*** {type(e).__name__}: {e} ***")
        print("\nLast settled screen before the failure:")
        print(emulator.last_snapshot().as_text())
        return 2

    screen = emulator.last_snapshot()
    print("\n=== Settled screen ===")
    print(screen.as_text())

    print("\n=== Fields ===")
    try:
        fields = parse_status_screen(screen.as_text())
    except FieldNotFound as e:
        print(f"*** {e} ***")
        return 1

    for key, value in fields.items():
        print(f"{key:>22}: {value}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Decode a captured Espree response window")
    parser.add_argument("capture", help="File holding the captured bytes")
    parser.add_argument("--base64", action="store_true", help="Capture is base64 text, as logged")
    parser.add_argument(
        "--window", type=int, default=None, help="Only decode the first N bytes"
    )
    args = parser.parse_args()

    data = load_capture(args.capture, args.base64)
    if args.window is not None:
        data = data[:args.window]
    return decode_capture(data)


if __name__ == "__main__":
    sys.exit(main())
