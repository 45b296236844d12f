from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from rich.console import Console

from qube.app import QubeApp, render_fixture
from qube.config import AppConfig, ConfigError, load_config
from qube.fixtures import load_fixture
from qube.log_setup import setup_logging
from qube.q_process import SessionError

logger = logging.getLogger(__name__)


def build_config(
    config_path: str | None,
    debug: bool = False,
    trace: bool = False,
    verbose: bool = False,
    mode: str | None = None,
) -> AppConfig:
    """Load the config file and apply command-line overrides."""
    config = load_config(config_path)

    if debug:
        config.debug.enabled = True
    if trace:
        config.debug.trace = True
    if verbose:
        config.debug.verbose = True
    if mode:
        config.session.mode = mode

    return config


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Terminal front-end for Amazon Q chat")
    parser.add_argument("config", nargs="?", default=None,
                        help="Path to YAML config file (optional)")
    parser.add_argument("--debug", action="store_true",
                        help="Enable debug mode (verbose logging)")
    parser.add_argument("--trace", action="store_true",
                        help="Enable trace mode (writes trace file to debug/)")
    parser.add_argument("--verbose", action="store_true",
                        help="With --trace, also send trace output to terminal")
    parser.add_argument("--mode", default=None,
                        help="Session mode passed to the CLI (default: chat)")
    parser.add_argument("--replay", metavar="FILE", default=None,
                        help="Render a recorded stream fixture instead of starting a session")
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Entry point for qube. Returns the process exit status."""
    args = _parse_args(argv)
    console = Console()
    errors = Console(stderr=True)

    try:
        config = build_config(
            args.config, debug=args.debug, trace=args.trace,
            verbose=args.verbose, mode=args.mode,
        )
    except ConfigError as exc:
        errors.print(f"[red]Configuration error:[/red] {exc}")
        return 2

    setup_logging(
        debug=config.debug.enabled, trace=config.debug.trace,
        verbose=config.debug.verbose, trace_dir=config.debug.trace_dir,
    )

    if args.replay:
        try:
            text = load_fixture(Path(args.replay))
        except (OSError, UnicodeDecodeError) as exc:
            errors.print(f"[red]Cannot read {args.replay}:[/red] {exc}")
            return 1
        count = render_fixture(text, console)
        logger.debug("Replayed %s (%d records)", args.replay, count)
        return 0

    app = QubeApp(config, console=console)
    loop = asyncio.get_running_loop()
    runner = asyncio.create_task(app.run())
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, runner.cancel)

    try:
        return await runner
    except SessionError as exc:
        errors.print(f"[red]Session error:[/red] {exc}")
        return 1
    except asyncio.CancelledError:
        logger.info("Interrupted")
        return 130
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)


def cli() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
