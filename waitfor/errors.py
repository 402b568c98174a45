"""
errors.py — Exception hierarchy for wait-for.

The evaluator never raises these to its caller; it folds them into a
``WaitOutcome``.  The wait loop and the CLI are the only places that turn
them into an exit status.
"""


class WaitForError(Exception):
    """Base class for all wait-for errors."""


class UsageError(WaitForError):
    """Malformed invocation (bad arguments, empty username, bad env value)."""


class IdentityError(WaitForError):
    """The requested user could not be resolved from the password database."""


class GroupLookupError(WaitForError):
    """Supplementary group membership could not be determined."""


class WatchClosedError(WaitForError):
    """The notification watch stopped delivering events while held open."""


class WatchDetachedError(WaitForError):
    """The watched directory was removed or renamed; the watch is gone."""
