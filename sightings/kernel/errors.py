"""
Error taxonomy for the revision store.

Every error is deterministic given the input and the persisted state; nothing
in the kernel retries. The HTTP layer maps them onto status codes.
"""

from typing import Optional


class RevisionStoreError(Exception):
    """Base class for kernel errors."""

    def __init__(self, message: str, *, item_id: Optional[str] = None, revision_id: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.item_id = item_id
        self.revision_id = revision_id


class NotFoundError(RevisionStoreError):
    """No matching item or revision."""


class NotAuthorizedError(RevisionStoreError):
    """The caller's roles do not grant the operation.

    Whether this becomes 401 or 403 depends on whether an identity was
    presented, which only the caller of the kernel knows.
    """


class InvalidStateError(RevisionStoreError):
    """Illegal transition, e.g. modifying a published revision."""


class ConflictError(InvalidStateError):
    """A concurrent writer got there first; read back state before retrying."""
