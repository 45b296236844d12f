#!/usr/bin/env python3
"""Launch qube.

Usage:
    python run.py [config.yaml] [--debug] [--trace] [--verbose] [--mode MODE]
    python run.py --replay tests/fixtures/streams/chat.txt
"""
from qube.main import cli

if __name__ == "__main__":
    cli()
