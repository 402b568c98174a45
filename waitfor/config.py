from __future__ import annotations

import argparse
import logging
import os
from dataclasses import dataclass
from typing import Mapping

from waitfor.access import AccessRequest, PermissionPolicy
from waitfor.errors import UsageError
from waitfor.monitor import DEFAULT_POLL_INTERVAL

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class WaitConfig:
    path: str
    request: AccessRequest
    username: str | None
    poll_interval: float
    use_notify: bool
    policy: PermissionPolicy
    log_level: int


def _parse_interval(raw: str | float, source: str) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise UsageError(f"{source}: invalid poll interval {raw!r}") from e
    if value <= 0:
        raise UsageError(f"{source}: poll interval must be positive, got {raw!r}")
    return value


def _parse_flag(raw: str, source: str) -> bool:
    v = raw.strip().lower()
    if v in _TRUE_VALUES:
        return True
    if v in _FALSE_VALUES:
        return False
    raise UsageError(f"{source}: expected a boolean, got {raw!r}")


def _parse_level(raw: str, source: str) -> int:
    level = logging.getLevelName(raw.strip().upper())
    if not isinstance(level, int):
        raise UsageError(f"{source}: unknown log level {raw!r}")
    return level


def load_config(args: argparse.Namespace, environ: Mapping[str, str] | None = None) -> WaitConfig:
    env = os.environ if environ is None else environ

    if not args.path:
        raise UsageError("path cannot be empty")

    poll_interval = _parse_interval(args.poll_interval, "--poll-interval")
    use_notify = not args.poll
    if args.verbose:
        log_level = logging.DEBUG
    elif args.quiet:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO

    # Env overrides (handy when wait-for is buried in someone else's script)
    if "WAIT_FOR_POLL_INTERVAL" in env:
        poll_interval = _parse_interval(env["WAIT_FOR_POLL_INTERVAL"], "WAIT_FOR_POLL_INTERVAL")
    if "WAIT_FOR_NO_NOTIFY" in env:
        use_notify = not _parse_flag(env["WAIT_FOR_NO_NOTIFY"], "WAIT_FOR_NO_NOTIFY")
    if "WAIT_FOR_LOG_LEVEL" in env:
        log_level = _parse_level(env["WAIT_FOR_LOG_LEVEL"], "WAIT_FOR_LOG_LEVEL")

    return WaitConfig(
        path=args.path,
        request=AccessRequest(read=args.read, write=args.write, execute=args.execute),
        username=args.username,
        poll_interval=poll_interval,
        use_notify=use_notify,
        policy="posix" if args.posix else "permissive",
        log_level=log_level,
    )
