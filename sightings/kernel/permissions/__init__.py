"""
Permission Core - role-based access control for owned entities.
"""

from sightings.kernel.permissions.roles import (
    IMPLICIT_ROLES,
    ROLE_PERMISSIONS,
    Permission,
    Role,
    has_permission,
    parse_roles,
    permissions_for,
)
from sightings.kernel.permissions.evaluator import (
    OwnedEntity,
    can_create,
    can_delete,
    can_edit,
    can_publish,
    can_read,
)

__all__ = [
    "IMPLICIT_ROLES",
    "ROLE_PERMISSIONS",
    "Permission",
    "Role",
    "has_permission",
    "parse_roles",
    "permissions_for",
    "OwnedEntity",
    "can_create",
    "can_delete",
    "can_edit",
    "can_publish",
    "can_read",
]
