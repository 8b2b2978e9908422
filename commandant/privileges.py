"""
User-identity lookup and privilege elevation for launched processes.
"""
import os
from typing import NamedTuple

from .faults import UnknownUserError, UnsupportedPlatformError

try:
    import pwd
except ImportError:  # no user database (Windows)
    pwd = None

ELEVATION = ("sudo", "-E")


class Account(NamedTuple):
    name: str
    uid: int
    gid: int
    home: str


def lookup(name, /):
    """
    Resolve an account name through the system user database.

    Raises UnknownUserError for a name the database does not know, and
    UnsupportedPlatformError where there is no user database at all.
    """
    if not isinstance(name, str):
        raise TypeError(f"lookup() argument must be a string, not {type(name).__name__}")
    if pwd is None:
        raise UnsupportedPlatformError("running as another user is not supported on this platform", user=name)
    try:
        entry = pwd.getpwnam(name)
    except KeyError:
        raise UnknownUserError(f"user: unknown user {name}", user=name) from None
    return Account(entry.pw_name, entry.pw_uid, entry.pw_gid, entry.pw_dir)


def is_privileged():
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def elevation(command=ELEVATION, /):
    """
    Return the prefix that runs a command with elevated privileges, or an empty
    tuple when the current user already has them (or the platform cannot tell).
    """
    if isinstance(command, str):
        raise TypeError("elevation() argument must be a sequence of strings")
    if not hasattr(os, "geteuid") or is_privileged():
        return ()
    return tuple(command)


__all__ = (
    "ELEVATION",
    "Account",
    "lookup",
    "is_privileged",
    "elevation",
)
