"""
access.py — Shared value types for wait-for.

Defines the request, identity and snapshot dataclasses that the evaluator
consumes, plus the ``WaitOutcome`` it produces for the wait loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

OutcomeKind = Literal["satisfied", "not_yet_satisfied", "fatal"]

# "permissive": any applicable class (owner, group, other) granting the bit
#               is enough.
# "posix":      only the first applicable class is consulted.
PermissionPolicy = Literal["permissive", "posix"]

MODE_NAMES = ("read", "write", "execute")


@dataclass(frozen=True)
class AccessRequest:
    """Access modes the path must grant.  No modes means "exists"."""

    read: bool = False
    write: bool = False
    execute: bool = False

    def modes(self) -> list[str]:
        return [name for name in MODE_NAMES if getattr(self, name)]

    def describe(self) -> str:
        """Render the request as an ``ls``-style triplet, e.g. ``r-x``."""
        return "".join(
            flag if wanted else "-"
            for flag, wanted in zip("rwx", (self.read, self.write, self.execute))
        )


@dataclass(frozen=True)
class Identity:
    """The user on whose behalf access is checked.

    Attributes:
        username:    Login name, used for the supplementary group lookup.
        uid:         Numeric user id compared against the file owner.
        primary_gid: Primary group id; always counts as membership.
    """

    username: str
    uid: int
    primary_gid: int


@dataclass(frozen=True)
class PathStatus:
    """Point-in-time metadata of the awaited path.  Never cached."""

    exists: bool
    owner_uid: int = -1
    owner_gid: int = -1
    mode_bits: int = 0

    @classmethod
    def missing(cls) -> "PathStatus":
        return cls(exists=False)


@dataclass(frozen=True)
class WaitOutcome:
    """Result of a single predicate evaluation."""

    kind: OutcomeKind
    reason: str = ""

    @classmethod
    def satisfied(cls) -> "WaitOutcome":
        return cls("satisfied")

    @classmethod
    def not_yet_satisfied(cls) -> "WaitOutcome":
        return cls("not_yet_satisfied")

    @classmethod
    def fatal(cls, reason: str) -> "WaitOutcome":
        return cls("fatal", reason)

    @property
    def is_satisfied(self) -> bool:
        return self.kind == "satisfied"

    @property
    def is_fatal(self) -> bool:
        return self.kind == "fatal"
