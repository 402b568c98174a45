"""
waiter.py — The wait loop for wait-for.

Combines a wait source and the access predicate into one loop:
  1. Evaluate the predicate.
  2. Stop on ``satisfied`` (success) or ``fatal`` (failure).
  3. Otherwise block on the wait source and go back to 1.

The predicate is evaluated before the first wait so an already-satisfied
path never depends on an event arriving.  The wait source is released on
every exit path, including exceptions raised while blocked.  If the
watched directory disappears, the loop carries on with a ``PollSource``.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable

from waitfor.access import AccessRequest, Identity, PermissionPolicy, WaitOutcome
from waitfor.errors import WatchClosedError, WatchDetachedError
from waitfor.evaluator import evaluate
from waitfor.monitor import DEFAULT_POLL_INTERVAL, PollSource, WaitSource, open_wait_source

logger = logging.getLogger(__name__)

SourceFactory = Callable[..., WaitSource]
EvaluateFn = Callable[..., WaitOutcome]


class ExitStatus(enum.IntEnum):
    SUCCESS = 0
    FAILURE = 1
    USAGE = 2


@dataclass(frozen=True)
class WaitResult:
    """How the wait ended.

    Attributes:
        status:      Process exit status to report.
        reason:      Human-readable failure reason (empty on success).
        evaluations: Number of predicate evaluations performed.
    """

    status: ExitStatus
    reason: str = ""
    evaluations: int = 0

    @property
    def ok(self) -> bool:
        return self.status == ExitStatus.SUCCESS


class Waiter:
    """Blocks until a path satisfies an access request.

    Parameters:
        path:           Path to wait for.
        identity:       User the access check is performed for.
        request:        Access modes that must be granted.
        policy:         Permission policy passed to the evaluator.
        poll_interval:  Sleep between checks when polling.
        use_notify:     Try filesystem notifications before polling.
        source_factory: Builds the wait source; see ``open_wait_source``.
        evaluate_fn:    The predicate; see ``evaluator.evaluate``.
    """

    def __init__(
        self,
        path: str,
        identity: Identity,
        request: AccessRequest,
        *,
        policy: PermissionPolicy = "permissive",
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        use_notify: bool = True,
        source_factory: SourceFactory = open_wait_source,
        evaluate_fn: EvaluateFn = evaluate,
    ) -> None:
        self.path = path
        self.identity = identity
        self.request = request
        self.policy = policy
        self.poll_interval = poll_interval
        self.use_notify = use_notify
        self._source_factory = source_factory
        self._evaluate = evaluate_fn
        self.evaluations = 0

    def check(self) -> WaitOutcome:
        """Run one evaluation of the predicate."""
        self.evaluations += 1
        return self._evaluate(self.path, self.identity, self.request, policy=self.policy)

    def run(self) -> WaitResult:
        """Block until the path is satisfactory or an error makes that impossible."""
        logger.debug(
            "Waiting for %s (mode %s, user %s)",
            self.path,
            self.request.describe(),
            self.identity.username,
        )
        source = self._source_factory(
            self.path,
            poll_interval=self.poll_interval,
            use_notify=self.use_notify,
        )
        try:
            logger.debug("Using %s", type(source).__name__)
            while True:
                outcome = self.check()
                if outcome.is_satisfied:
                    logger.debug("%s is ready after %d check(s).", self.path, self.evaluations)
                    return WaitResult(ExitStatus.SUCCESS, evaluations=self.evaluations)
                if outcome.is_fatal:
                    logger.error("%s", outcome.reason)
                    return WaitResult(ExitStatus.FAILURE, outcome.reason, self.evaluations)

                try:
                    source.wait()
                except WatchDetachedError as exc:
                    logger.debug("%s; polling instead.", exc)
                    source.close()
                    source = PollSource(self.poll_interval)
                except WatchClosedError as exc:
                    logger.error("%s", exc)
                    return WaitResult(ExitStatus.FAILURE, str(exc), self.evaluations)
        finally:
            source.close()


def run(path: str, identity: Identity, request: AccessRequest, **kwargs) -> WaitResult:
    """Convenience wrapper: ``Waiter(path, identity, request, **kwargs).run()``."""
    return Waiter(path, identity, request, **kwargs).run()
