#!/usr/bin/env python3
"""
wait_for_main.py — CLI entry point for wait-for.

Blocks until a file exists and, optionally, is readable / writable /
executable for a user, then exits.  If several modes are given, wait-for
waits for all of them.

Exit status
-----------
0   the file is ready
1   a fatal error occurred (stat / group lookup failure, unknown user, ...)
2   the invocation was malformed
130 interrupted with Ctrl+C

Usage
-----
    # Wait for a lock file to appear
    python -m waitfor.wait_for_main /run/app/ready

    # Wait until the build output is readable and executable by deploy
    wait-for -rx -U deploy ./dist/app
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from waitfor.config import load_config
from waitfor.errors import IdentityError, UsageError
from waitfor.identity import resolve_identity
from waitfor.monitor import DEFAULT_POLL_INTERVAL
from waitfor.waiter import ExitStatus, Waiter

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("waitfor")

EXIT_INTERRUPTED = 130


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="wait-for",
        usage="%(prog)s [--help] [-rwx] [-U USERNAME] <file>",
        description="Waits for a file to exist and optionally have one or more modes.",
        epilog="If multiple modes are specified, wait-for waits for all of them to become available.",
    )
    parser.add_argument("path", help="The file to wait for.")
    parser.add_argument(
        "-r",
        "--read",
        action="store_true",
        help="Wait for the file to become readable.",
    )
    parser.add_argument(
        "-w",
        "--write",
        action="store_true",
        help="Wait for the file to become writable.",
    )
    parser.add_argument(
        "-x",
        "--execute",
        action="store_true",
        help="Wait for the file to become executable.",
    )
    parser.add_argument(
        "-U",
        "--username",
        default=None,
        help="The username to run access checks for (NOT the user ID; default: current user).",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help=f"Seconds between checks when polling (default: {DEFAULT_POLL_INTERVAL}).",
    )
    parser.add_argument(
        "--poll",
        action="store_true",
        help="Do not use filesystem notifications; always poll.",
    )
    parser.add_argument(
        "--posix",
        action="store_true",
        help="Resolve permissions like the kernel does (first matching class wins) "
        "instead of accepting any class that grants the mode.",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Log every check.")
    verbosity.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors.")
    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Sequence[str] | None = None) -> int:
    """Parse CLI args, resolve the user and run the wait loop."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args)
        logging.getLogger().setLevel(cfg.log_level)
        identity = resolve_identity(cfg.username)
    except UsageError as exc:
        logger.error("%s", exc)
        return int(ExitStatus.USAGE)
    except IdentityError as exc:
        logger.error("%s", exc)
        return int(ExitStatus.FAILURE)

    waiter = Waiter(
        cfg.path,
        identity,
        cfg.request,
        policy=cfg.policy,
        poll_interval=cfg.poll_interval,
        use_notify=cfg.use_notify,
    )
    try:
        result = waiter.run()
    except KeyboardInterrupt:
        logger.info("Wait interrupted by user.")
        return EXIT_INTERRUPTED
    return int(result.status)


if __name__ == "__main__":
    sys.exit(main())
