"""Exceptions for diff operations.

Note: Names chosen to avoid collisions with stdlib and framework exceptions.
"""


class DiffError(Exception):
    """Base exception for all diff operations."""


class DiffStructureError(DiffError):
    """Raised when hunk fields or unified diff text are malformed."""


class DiffApplyError(DiffError):
    """Raised when a diff cannot be applied to the given content.

    Covers hunks whose context does not match the file at the stated offset
    and hunks whose header counts disagree with their tagged lines.
    """


class OversizedDiffError(DiffApplyError):
    """Raised when a diff rewrites most of a file and should be replaced by full content."""
