"""
Sightings Kernel - Core revision store

The kernel provides:
- Permissions: role -> permission table and the four entity predicates
- Models: revision tables and role assignments
- Errors: the store's error taxonomy

Stores, search and identity live in subpackages and are imported from there.
"""

from sightings.kernel.errors import (
    ConflictError,
    InvalidStateError,
    NotAuthorizedError,
    NotFoundError,
    RevisionStoreError,
)
from sightings.kernel.permissions import Permission, Role

__all__ = [
    "ConflictError",
    "InvalidStateError",
    "NotAuthorizedError",
    "NotFoundError",
    "RevisionStoreError",
    "Permission",
    "Role",
]
