"""
identity.py — Resolve the user that access checks are performed for.
"""

from __future__ import annotations

import logging
import os
import pwd

from waitfor.access import Identity
from waitfor.errors import IdentityError, UsageError

logger = logging.getLogger(__name__)


def resolve_identity(username: str | None = None) -> Identity:
    """Look up *username* (or the invoking user) in the password database.

    Args:
        username: Login name to check access for.  ``None`` selects the
                  real uid of the current process.

    Raises:
        UsageError:    *username* is an empty string.
        IdentityError: no password-database entry exists.
    """
    if username is None:
        uid = os.getuid()
        try:
            entry = pwd.getpwuid(uid)
        except KeyError as exc:
            raise IdentityError(f"could not get passwd entry for uid {uid}") from exc
    elif not username:
        raise UsageError("username cannot be zero-length")
    else:
        try:
            entry = pwd.getpwnam(username)
        except KeyError as exc:
            raise IdentityError(f"no such user: {username}") from exc

    identity = Identity(username=entry.pw_name, uid=entry.pw_uid, primary_gid=entry.pw_gid)
    logger.debug("Checking access for %s (uid=%d gid=%d)", identity.username, identity.uid, identity.primary_gid)
    return identity
