"""
Exception hierarchy for Impact Wrapped.

Row-level problems (parse, validation, duplicates) are collected as data
and returned to the caller. Only the exceptions below abort an operation.
"""

from typing import Iterable, List


class ImpactWrapError(Exception):
    """Base class for all service errors."""
    pass


class StorageError(ImpactWrapError):
    """Storage is unavailable or failed unexpectedly."""
    pass


class DuplicateDonorError(StorageError):
    """A unique constraint on donors was violated at insert time."""

    def __init__(self, emails: Iterable[str] = (), message: str = ""):
        self.emails: List[str] = list(emails)
        super().__init__(
            message or f"Donor already exists: {', '.join(self.emails) or 'unknown'}"
        )


class OrganizationNotFoundError(ImpactWrapError):
    """Referenced organization does not exist."""

    def __init__(self, organization_id: int):
        self.organization_id = organization_id
        super().__init__(f"Organization not found: {organization_id}")


class TokenCollisionError(ImpactWrapError):
    """No free impact token could be derived for an email."""
    pass


class UploadTooLargeError(ImpactWrapError):
    """An upload has more rows than the configured limit."""

    def __init__(self, rows: int, limit: int):
        self.rows = rows
        self.limit = limit
        super().__init__(f"Upload has {rows} rows; the limit is {limit}")
