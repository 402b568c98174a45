from __future__ import annotations

import os
import pwd
import threading
from typing import Any, Callable

import pytest

from waitfor.access import Identity
from waitfor.errors import GroupLookupError


@pytest.fixture
def me() -> Identity:
    """The identity that owns files created by the test process."""
    return Identity(username=pwd.getpwuid(os.getuid()).pw_name, uid=os.getuid(), primary_gid=os.getgid())


@pytest.fixture
def stranger() -> Identity:
    """An identity that owns nothing and shares no group with the test files."""
    return Identity(username="stranger", uid=os.getuid() + 40000, primary_gid=os.getgid() + 40000)


def no_groups(identity: Identity) -> list[int]:
    return [identity.primary_gid]


def broken_groups(identity: Identity) -> list[int]:
    raise GroupLookupError(f"could not retrieve list of user groups for {identity.username!r}")


class BackgroundCall:
    """Runs *fn* in a daemon thread so a hanging wait cannot hang the suite."""

    def __init__(self, fn: Callable[[], Any]) -> None:
        self.result: Any = None
        self.error: BaseException | None = None
        self._fn = fn
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        try:
            self.result = self._fn()
        except BaseException as exc:  # noqa: BLE001
            self.error = exc

    def join(self, timeout: float) -> bool:
        """Return ``True`` if the call finished within *timeout* seconds."""
        self._thread.join(timeout)
        return not self._thread.is_alive()


class FakeObserver:
    """Stands in for a watchdog observer and records its lifecycle."""

    instances: list["FakeObserver"] = []

    def __init__(self, start_error: OSError | None = None) -> None:
        self.start_error = start_error
        self.handler = None
        self.scheduled: list[tuple[str, bool]] = []
        self.started = False
        self.stopped = 0
        self.joined = 0
        self.alive = False
        FakeObserver.instances.append(self)

    def schedule(self, handler, path, recursive=False):  # noqa: ANN001
        self.handler = handler
        self.scheduled.append((path, recursive))

    def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True
        self.alive = True

    def stop(self) -> None:
        self.stopped += 1
        self.alive = False

    def join(self, timeout=None) -> None:  # noqa: ANN001
        self.joined += 1

    def is_alive(self) -> bool:
        return self.alive
