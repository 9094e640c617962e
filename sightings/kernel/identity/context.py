"""
Request-scoped caller identity.
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from sightings.kernel.permissions import (
    OwnedEntity,
    Permission,
    Role,
    can_create,
    can_delete,
    can_edit,
    can_publish,
    can_read,
    permissions_for,
)


@dataclass(frozen=True)
class AuthContext:
    """
    Who is calling and with which roles.

    Supplied per request by the identity collaborator; the kernel never
    issues or verifies credentials. An absent user_id means anonymous.
    """

    user_id: Optional[str]
    roles: FrozenSet[Role]

    @classmethod
    def for_user(cls, user_id: Optional[str] = None, roles: Iterable[Role] = ()) -> "AuthContext":
        """Build a context, adding the implicit roles."""
        all_roles = {Role.PUBLIC, *roles}
        if user_id:
            all_roles.add(Role.AUTHENTICATED_USER)
        else:
            user_id = None
            all_roles.discard(Role.AUTHENTICATED_USER)
        return cls(user_id=user_id, roles=frozenset(all_roles))

    @classmethod
    def anonymous(cls) -> "AuthContext":
        return cls.for_user(None)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def permissions(self) -> FrozenSet[Permission]:
        return permissions_for(self.roles)

    def has(self, permission: Permission) -> bool:
        return permission in self.permissions

    def can_read(self, entity: OwnedEntity) -> bool:
        return can_read(self.roles, entity, self.user_id)

    def can_edit(self, entity: OwnedEntity) -> bool:
        return can_edit(self.roles, entity, self.user_id)

    def can_delete(self, entity: OwnedEntity) -> bool:
        return can_delete(self.roles, entity, self.user_id)

    def can_publish(self, entity: OwnedEntity) -> bool:
        return can_publish(self.roles, entity, self.user_id)

    def can_create(self) -> bool:
        return can_create(self.roles, self.user_id)
