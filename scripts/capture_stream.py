#!/usr/bin/env python3
"""Record a raw Amazon Q session as a stream fixture.

Run from a SEPARATE terminal:
    python scripts/capture_stream.py "first question" "second question" ...

Each argument is submitted in turn once the output has been quiet for a few
seconds. The raw PTY output is written verbatim, with a
``>>SET_LAST_CMD: `` directive line before every submission so the
fixture replays echo suppression the way the live app does.

Output: scripts/captures/<timestamp>.txt
"""

import sys
import time
from datetime import datetime
from pathlib import Path

import pexpect

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from qube.fixtures import DIRECTIVE_PREFIX
from qube.q_process import detect_q_cli

ROWS, COLS = 30, 80
CAPTURE_DIR = Path(__file__).parent / "captures"

# Delay between typing text and pressing Enter.
SUBMIT_DELAY = 0.15


def drain(child, seconds, poll=0.3):
    """Read PTY output until nothing arrives for ``seconds``."""
    out = []
    last = time.time()
    while time.time() - last < seconds:
        try:
            chunk = child.read_nonblocking(size=16384, timeout=poll)
            if chunk:
                out.append(chunk)
                last = time.time()
        except pexpect.TIMEOUT:
            pass
        except pexpect.EOF:
            print("  child exited")
            break
    return "".join(out)


def main():
    prompts = sys.argv[1:]
    CAPTURE_DIR.mkdir(parents=True, exist_ok=True)
    target = CAPTURE_DIR / f"{datetime.now().strftime('%Y%m%d-%H%M%S')}.txt"

    child = pexpect.spawn(
        detect_q_cli(), ["chat"], encoding="utf-8", dimensions=(ROWS, COLS),
    )
    parts = [drain(child, 5)]
    for prompt in prompts:
        print(f"  submit: {prompt}")
        # Directive must start on its own line
        if parts[-1] and not parts[-1].endswith("\n"):
            parts.append("\n")
        parts.append(f"{DIRECTIVE_PREFIX}{prompt}\n")
        child.send(prompt)
        time.sleep(SUBMIT_DELAY)
        child.send("\r")
        parts.append(drain(child, 6))

    child.close(force=True)
    target.write_bytes("".join(parts).encode("utf-8"))
    print(f"Saved {target}")


if __name__ == "__main__":
    main()
