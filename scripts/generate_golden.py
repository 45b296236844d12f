#!/usr/bin/env python3
"""Regenerate golden files for the recorded stream fixtures.

Usage:
    python scripts/generate_golden.py [streams_dir] [golden_dir]

Each ``*.txt`` under streams_dir is replayed one character at a time and the
committed lines are written to the file of the same name under golden_dir.
"""
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from qube.fixtures import generate_golden

FIXTURES = Path(__file__).parent.parent / "tests" / "fixtures"


def main():
    streams = Path(sys.argv[1]) if len(sys.argv) > 1 else FIXTURES / "streams"
    golden = Path(sys.argv[2]) if len(sys.argv) > 2 else FIXTURES / "golden"
    if not streams.is_dir():
        print(f"ERROR: {streams} not found")
        sys.exit(1)

    written = generate_golden(streams, golden)
    if not written:
        print(f"No fixtures found in {streams}")
    for name, count in written.items():
        print(f"Generated: {golden / name} ({count} lines)")


if __name__ == "__main__":
    main()
