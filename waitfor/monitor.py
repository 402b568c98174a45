"""
monitor.py — Wait sources for wait-for.

A wait source answers a single question for the wait loop: "block until it
is worth checking the path again".  Two variants exist:

NotifySource
    Uses the ``watchdog`` library to watch the parent directory of the
    awaited path.  Any create / modify / attribute / move / delete event
    inside the directory wakes the waiter; the event payload itself is
    discarded.  Entries moved out of the directory are reported by watchdog
    as deletions.  If the watched directory itself is removed or renamed,
    the watch is gone and ``wait()`` raises ``WatchDetachedError``.

PollSource
    Sleeps a fixed short interval.  Used when a watch cannot be installed.

Public API
----------
open_wait_source(path, poll_interval, use_notify)
    Install a watch for *path* and return a ``NotifySource``, or fall back
    to a ``PollSource`` if that fails.
"""

from __future__ import annotations

import errno
import logging
import os
import threading
import time
from typing import Any, Callable, Protocol

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from waitfor.errors import WatchClosedError, WatchDetachedError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.01

# Attribute changes (chmod/chown) arrive from watchdog as "modified",
# entries moved away as "deleted".
_TRIGGER_EVENTS = frozenset({EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED, EVENT_TYPE_DELETED})
_DETACH_EVENTS = frozenset({EVENT_TYPE_DELETED, EVENT_TYPE_MOVED})


class WaitSource(Protocol):
    closed: bool

    def wait(self) -> None: ...
    def close(self) -> None: ...
    def __enter__(self) -> "WaitSource": ...
    def __exit__(self, *exc_info: Any) -> None: ...


class _WakeHandler(FileSystemEventHandler):
    """Sets a flag whenever something changes in the watched directory."""

    def __init__(self, directory: str, changed: threading.Event) -> None:
        super().__init__()
        self._directory = _normalize(directory)
        self._changed = changed
        self.detached = False

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in _TRIGGER_EVENTS:
            return
        if event.event_type in _DETACH_EVENTS and _normalize(event.src_path) == self._directory:
            self.detached = True
        self._changed.set()


def _normalize(path: str | bytes) -> str:
    return os.path.abspath(os.fsdecode(path))


class NotifySource:
    """Event-driven wait source backed by a watchdog observer.

    The observer is started in the constructor; ``OSError`` from installing
    the watch propagates after the observer has been released.

    Parameters:
        directory:         Directory to watch (non-recursive).
        observer_factory:  Callable returning a watchdog-compatible observer.
        liveness_interval: How often (seconds) ``wait()`` checks that the
                           observer and its watch are still running.
    """

    def __init__(
        self,
        directory: str,
        observer_factory: Callable[[], Any] = Observer,
        liveness_interval: float = 1.0,
    ) -> None:
        self.directory = directory
        self.closed = False
        self._liveness_interval = liveness_interval
        self._changed = threading.Event()
        self._handler = _WakeHandler(directory, self._changed)
        self._started = False
        self._observer = observer_factory()
        try:
            self._observer.schedule(self._handler, directory, recursive=False)
            self._observer.start()
        except OSError:
            self.close()
            raise
        self._started = True
        logger.debug("Watching: %s", directory)

    def wait(self) -> None:
        """Block until at least one change event has been delivered.

        An event delivered before this call (for instance between the last
        evaluation and now) is consumed immediately.

        Raises:
            WatchDetachedError: the watched directory was removed or renamed.
            WatchClosedError:   the observer stopped while the source was open.
        """
        if self.closed:
            raise WatchClosedError(f"watch on {self.directory} is closed")
        while not self._changed.wait(self._liveness_interval):
            if not self._observer.is_alive():
                raise WatchClosedError(f"watch on {self.directory} hung up unexpectedly")
            if not self._watch_alive():
                raise WatchDetachedError(f"watch on {self.directory} was dropped")
        self._changed.clear()
        if self._handler.detached:
            raise WatchDetachedError(f"watched directory {self.directory} was removed or renamed")

    def _watch_alive(self) -> bool:
        emitters = getattr(self._observer, "emitters", None)
        if emitters is None:
            return True
        return bool(emitters) and all(emitter.is_alive() for emitter in emitters)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._observer.stop()
        if self._started:
            self._observer.join(timeout=5)
        logger.debug("Watch on %s released.", self.directory)

    def __enter__(self) -> "NotifySource":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class PollSource:
    """Fixed-interval wait source."""

    def __init__(
        self,
        interval: float = DEFAULT_POLL_INTERVAL,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.interval = interval
        self.closed = False
        self._sleep = sleep

    def wait(self) -> None:
        self._sleep(self.interval)

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> "PollSource":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


def watch_directory(path: str) -> str:
    """Return the directory whose entries change when *path* changes.

    Trailing separators are ignored, so ``a/b/`` is watched through ``a``.
    """
    trimmed = path.rstrip(os.sep)
    if not trimmed:
        return os.sep if path else "."
    return os.path.dirname(trimmed) or "."


def open_wait_source(
    path: str,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    use_notify: bool = True,
    observer_factory: Callable[[], Any] = Observer,
) -> WaitSource:
    """Return the most efficient wait source available for *path*.

    Failing to install the watch is never fatal; it only costs efficiency.
    A missing parent directory is an ordinary waiting condition and falls
    back silently; every other failure is logged as a warning.
    """
    if not use_notify:
        logger.debug("Notifications disabled; polling every %.3fs", poll_interval)
        return PollSource(poll_interval)

    directory = watch_directory(path)
    try:
        return NotifySource(directory, observer_factory=observer_factory)
    except OSError as exc:
        if exc.errno in (errno.ENOENT, errno.ENOTDIR):
            logger.debug("Directory %s does not exist yet; polling instead.", directory)
        else:
            logger.warning(
                "Could not initialize watch on %s (falling back to poll mechanism): %s",
                directory,
                exc,
            )
    return PollSource(poll_interval)
