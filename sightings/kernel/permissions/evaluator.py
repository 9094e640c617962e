"""
Permission evaluator for owned entities.

Pure functions: the answer depends only on the caller's roles, the caller's
user id and the entity's ``owner``/``published`` fields. Nothing is cached;
role sets are request-scoped.
"""

from typing import Iterable, Optional, Protocol

from sightings.kernel.permissions.roles import Permission, Role, permissions_for


class OwnedEntity(Protocol):
    """Anything with an owner and a publication flag (observations, images)."""

    owner: str
    published: bool


def _is_owner(entity: OwnedEntity, user_id: Optional[str]) -> bool:
    return bool(user_id) and entity.owner == user_id


def can_read(roles: Iterable[Role], entity: OwnedEntity, user_id: Optional[str] = None) -> bool:
    """
    Check if the caller may see the entity.

    Sources (any one suffices):
    1. Entity is published and roles grant read-published
    2. Roles grant read-all
    3. Caller owns the entity and roles grant read-own
    """
    granted = permissions_for(roles)
    if entity.published and Permission.READ_PUBLISHED in granted:
        return True
    if Permission.READ_ALL in granted:
        return True
    return _is_owner(entity, user_id) and Permission.READ_OWN in granted


def can_edit(roles: Iterable[Role], entity: OwnedEntity, user_id: Optional[str] = None) -> bool:
    """Only the owner, holding edit-own, may edit."""
    if not user_id:
        return False
    return _is_owner(entity, user_id) and Permission.EDIT_OWN in permissions_for(roles)


def can_delete(roles: Iterable[Role], entity: OwnedEntity, user_id: Optional[str] = None) -> bool:
    granted = permissions_for(roles)
    if Permission.DELETE_ALL in granted:
        return True
    return _is_owner(entity, user_id) and Permission.DELETE_OWN in granted


def can_publish(roles: Iterable[Role], entity: OwnedEntity, user_id: Optional[str] = None) -> bool:
    granted = permissions_for(roles)
    if Permission.PUBLISH_ALL in granted:
        return True
    return _is_owner(entity, user_id) and Permission.PUBLISH_OWN in granted


def can_create(roles: Iterable[Role], user_id: Optional[str] = None) -> bool:
    """Creating has no entity to check against: an identity plus edit-own."""
    return bool(user_id) and Permission.EDIT_OWN in permissions_for(roles)
