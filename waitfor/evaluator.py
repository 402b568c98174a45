"""
evaluator.py — Access predicate for wait-for.

Answers one question: does *path* exist right now and grant every mode in
an ``AccessRequest`` to an ``Identity``?

The check is side-effect free and cheap enough to run as the body of a
10 ms polling loop.  It never raises for filesystem or group-database
failures; those are reported as ``WaitOutcome.fatal`` so that the wait loop
alone decides when the process terminates.

Permission policy
-----------------
``permissive`` (default)
    Owner, group and other classes are independently sufficient: if *any*
    applicable class grants the bit, the mode is granted.  A file with mode
    ``0004`` owned by the identity is therefore readable, even though the
    kernel would deny the owner.

``posix``
    Conventional resolution: the first applicable class (owner, then group,
    then other) decides, and later classes are not consulted.
"""

from __future__ import annotations

import errno
import logging
import os
import stat
from typing import Callable, Sequence

from waitfor.access import AccessRequest, Identity, PathStatus, PermissionPolicy, WaitOutcome
from waitfor.errors import GroupLookupError

logger = logging.getLogger(__name__)

# Linux NGROUPS_MAX.  Membership lists longer than this cannot come from the
# kernel, so treat them as a broken group database instead of truncating.
MAX_GROUPS = 65536

# stat() failures that only mean "not there yet" while waiting.
_TRANSIENT_ERRNOS = frozenset({errno.ENOENT, errno.EACCES, errno.ENOTDIR, errno.ETXTBSY})

# mode name -> (owner bit, group bit, other bit)
_MODE_BITS = {
    "read": (stat.S_IRUSR, stat.S_IRGRP, stat.S_IROTH),
    "write": (stat.S_IWUSR, stat.S_IWGRP, stat.S_IWOTH),
    "execute": (stat.S_IXUSR, stat.S_IXGRP, stat.S_IXOTH),
}

GroupLookup = Callable[[Identity], Sequence[int]]


def stat_path(path: str) -> PathStatus:
    """Fetch a fresh metadata snapshot of *path*.

    Missing or untraversable paths come back as ``PathStatus.missing()``.
    Any other ``OSError`` propagates.
    """
    try:
        st = os.stat(path)
    except OSError as exc:
        if exc.errno in _TRANSIENT_ERRNOS:
            return PathStatus.missing()
        raise
    return PathStatus(
        exists=True,
        owner_uid=st.st_uid,
        owner_gid=st.st_gid,
        mode_bits=stat.S_IMODE(st.st_mode),
    )


def lookup_groups(identity: Identity) -> list[int]:
    """Return every group id *identity* belongs to, primary gid included."""
    try:
        groups = os.getgrouplist(identity.username, identity.primary_gid)
    except OSError as exc:
        raise GroupLookupError(
            f"could not retrieve list of user groups for {identity.username!r}: {exc}"
        ) from exc

    if len(groups) > MAX_GROUPS:
        raise GroupLookupError(
            f"user {identity.username!r} is listed in {len(groups)} groups "
            f"(limit {MAX_GROUPS})"
        )
    return list(groups)


def grants(
    status: PathStatus,
    identity: Identity,
    groups: Sequence[int],
    request: AccessRequest,
    policy: PermissionPolicy = "permissive",
) -> bool:
    """Apply the permission policy to an existing path's metadata."""
    is_owner = status.owner_uid == identity.uid
    is_in_group = status.owner_gid == identity.primary_gid or status.owner_gid in groups

    for mode in request.modes():
        owner_bit, group_bit, other_bit = _MODE_BITS[mode]
        if policy == "posix":
            if is_owner:
                allowed = bool(status.mode_bits & owner_bit)
            elif is_in_group:
                allowed = bool(status.mode_bits & group_bit)
            else:
                allowed = bool(status.mode_bits & other_bit)
        else:
            allowed = (
                (is_owner and bool(status.mode_bits & owner_bit))
                or (is_in_group and bool(status.mode_bits & group_bit))
                or bool(status.mode_bits & other_bit)
            )
        if not allowed:
            return False
    return True


def evaluate(
    path: str,
    identity: Identity,
    request: AccessRequest,
    *,
    policy: PermissionPolicy = "permissive",
    group_lookup: GroupLookup = lookup_groups,
) -> WaitOutcome:
    """Evaluate the wait predicate once.

    Returns:
        ``satisfied`` if *path* exists and grants every requested mode,
        ``not_yet_satisfied`` if it is missing or does not (yet) grant them,
        ``fatal`` if metadata or group membership could not be read.
    """
    try:
        status = stat_path(path)
    except OSError as exc:
        return WaitOutcome.fatal(f"could not stat awaited file {path}: {exc}")

    if not status.exists:
        return WaitOutcome.not_yet_satisfied()

    try:
        groups = group_lookup(identity)
    except GroupLookupError as exc:
        return WaitOutcome.fatal(str(exc))

    if grants(status, identity, groups, request, policy):
        return WaitOutcome.satisfied()

    logger.debug(
        "%s exists (mode=%04o uid=%d gid=%d) but does not grant %s to %s",
        path,
        status.mode_bits,
        status.owner_uid,
        status.owner_gid,
        request.describe(),
        identity.username,
    )
    return WaitOutcome.not_yet_satisfied()
