#!/usr/bin/env python3
"""
Runbook: Single Gather Cycle
Expected: one reading with all seven fields after ~10 seconds
"""

import logging
import sys

from espree_lib import CollectorConfig, EspreeCollector
from espree_lib.errors import EspreeError

# ============================================================================
# CONFIGURATION - EDIT THIS
# ============================================================================
SERIAL_PORT = "/dev/ttyUSB0"  # Change to your port
BAUD_RATE = 9600
INSTRUMENT_NAME = "espree"

# ============================================================================
# TEST SCRIPT - DO NOT EDIT BELOW
# ============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

config = CollectorConfig(name=INSTRUMENT_NAME, port=SERIAL_PORT, baud=BAUD_RATE)

print("=" * 70)
print("Runbook: Espree Gather Cycle")
print("=" * 70)
print(f"Port: {config.port}")
print(f"Baud: {config.baud}")
print(f"Key delay: {config.key_delay_s}s x 4 keys")
print(f"Response window: {config.response_window} bytes")
print()

collector = EspreeCollector(config)

print("[1/2] Navigating to status screen and decoding...")
try:
    reading = collector.gather()
except EspreeError as e:
    print(f"✗ FAIL: {type(e).__name__}: {e}")
    if collector.last_screen is not None:
        print()
        print(collector.last_screen.as_text())
    print("=" * 70)
    sys.exit(1)

print()
print("[2/2] Settled screen:")
print(collector.last_screen.as_text())
print()

print(f"      Timestamp: {reading.ts.isoformat()}")
print(f"      Tags: {reading.tags}")
for key, value in reading.fields.items():
    print(f"      {key}: {value}")
print()
print("✓ PASS: All fields scraped")
print("=" * 70)
