"""
Roles, permissions and the fixed mapping between them.
"""

from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping


class Permission(str, Enum):
    """Atomic capabilities granted by roles."""
    READ_PUBLISHED = "read-published"
    READ_OWN = "read-own"
    READ_ALL = "read-all"
    EDIT_OWN = "edit-own"
    DELETE_OWN = "delete-own"
    DELETE_ALL = "delete-all"
    PUBLISH_OWN = "publish-own"
    PUBLISH_ALL = "publish-all"
    MANAGE_ROLES = "manage-roles"


class Role(str, Enum):
    """Named bundles of permissions."""
    PUBLIC = "public"
    AUTHENTICATED_USER = "authenticated-user"
    VALIDATED_USER = "validated-user"
    MODERATOR = "moderator"
    SECURITY_ADMIN = "security-admin"


# Roles every caller gets without an explicit assignment
IMPLICIT_ROLES: FrozenSet[Role] = frozenset({Role.PUBLIC, Role.AUTHENTICATED_USER})

# Read-only. There is no "edit-all": moderators
# can delete and publish other people's content but never rewrite it.
ROLE_PERMISSIONS: Mapping[Role, FrozenSet[Permission]] = MappingProxyType({
    Role.PUBLIC: frozenset({Permission.READ_PUBLISHED}),
    Role.AUTHENTICATED_USER: frozenset({
        Permission.READ_OWN,
        Permission.EDIT_OWN,
        Permission.DELETE_OWN,
    }),
    Role.VALIDATED_USER: frozenset({Permission.PUBLISH_OWN}),
    Role.MODERATOR: frozenset({
        Permission.READ_ALL,
        Permission.PUBLISH_ALL,
        Permission.DELETE_ALL,
    }),
    Role.SECURITY_ADMIN: frozenset({Permission.MANAGE_ROLES}),
})


def permissions_for(roles: Iterable[Role]) -> FrozenSet[Permission]:
    """Union of each role's fixed permission set."""
    granted: set[Permission] = set()
    for role in roles:
        granted.update(ROLE_PERMISSIONS.get(role, frozenset()))
    return frozenset(granted)


def has_permission(roles: Iterable[Role], permission: Permission) -> bool:
    """Check if any of the roles grants the permission."""
    return permission in permissions_for(roles)


def parse_roles(values: Iterable[str]) -> FrozenSet[Role]:
    """Convert stored role strings to Role members, ignoring unknown ones."""
    parsed = set()
    for value in values:
        try:
            parsed.add(Role(value))
        except ValueError:
            continue
    return frozenset(parsed)
