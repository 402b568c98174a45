from __future__ import annotations

import os
import pwd

import pytest

from waitfor.errors import IdentityError, UsageError
from waitfor.identity import resolve_identity


def test_defaults_to_invoking_user() -> None:
    entry = pwd.getpwuid(os.getuid())
    ident = resolve_identity()
    assert ident.username == entry.pw_name
    assert ident.uid == os.getuid()
    assert ident.primary_gid == entry.pw_gid


def test_named_user_takes_ids_from_passwd() -> None:
    entry = pwd.getpwuid(0)
    ident = resolve_identity(entry.pw_name)
    assert ident.uid == 0
    assert ident.primary_gid == entry.pw_gid


def test_empty_username() -> None:
    with pytest.raises(UsageError):
        resolve_identity("")


def test_unknown_username() -> None:
    with pytest.raises(IdentityError):
        resolve_identity("no-such-user-wait-for")
