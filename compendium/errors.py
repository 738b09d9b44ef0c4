"""
compendium/errors.py -- Exception types and recorded problems.

Only programmer errors raise.  Data problems (unreadable files, dangling
cross-references) are recorded as ``ImportFailure`` / ``Diagnostic``
entries, logged, and the run carries on.
"""

from dataclasses import dataclass


class IndexStateError(RuntimeError):
    """The corpus index was used in the wrong lifecycle phase.

    Raised when a query that needs the prepared index runs before
    ``prepare()``, or when the index is mutated after it.
    """


class UnsupportedTypeError(ValueError):
    """No document builder is registered for a record type."""


@dataclass(frozen=True)
class ImportFailure:
    """A file that could not be imported."""
    path: str
    reason: str


@dataclass(frozen=True)
class Diagnostic:
    """A cross-reference that could not be resolved."""
    key: str
    display: str
    message: str
