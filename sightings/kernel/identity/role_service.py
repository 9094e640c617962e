"""
Role service for stored role assignments.
"""

from typing import Iterable, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sightings.kernel.errors import ConflictError, InvalidStateError, NotAuthorizedError, NotFoundError
from sightings.kernel.identity.context import AuthContext
from sightings.kernel.models.user_role import UserRoleAssignment
from sightings.kernel.permissions import IMPLICIT_ROLES, Permission, Role, parse_roles
from sightings.logging_config import get_logger

logger = get_logger(__name__)


class RoleService:
    """
    Service for role assignment operations.

    Resolves the effective role set of a user id from three sources: the
    implicit roles, the bootstrap grants from configuration and the rows in
    user_roles.
    """

    def __init__(
        self,
        session: AsyncSession,
        bootstrap_roles: Optional[Mapping[str, Iterable[Role]]] = None,
    ):
        self.session = session
        self.bootstrap_roles = {
            user_id: frozenset(roles) for user_id, roles in (bootstrap_roles or {}).items()
        }

    async def get_roles(self, user_id: str) -> List[Role]:
        """Explicitly stored roles of a user, sorted by name."""
        result = await self.session.execute(
            select(UserRoleAssignment.role).where(UserRoleAssignment.user_id == user_id)
        )
        return sorted(parse_roles(result.scalars().all()), key=lambda r: r.value)

    async def resolve(self, user_id: Optional[str]) -> AuthContext:
        """
        Build the request context for a caller.

        Args:
            user_id: Stable id forwarded by the identity provider, None if
                the request is anonymous

        Returns:
            AuthContext carrying implicit, bootstrap and stored roles
        """
        if not user_id:
            return AuthContext.anonymous()
        roles = set(self.bootstrap_roles.get(user_id, frozenset()))
        roles.update(await self.get_roles(user_id))
        return AuthContext.for_user(user_id, roles)

    def _require_manager(self, actor: AuthContext, action: str, user_id: str) -> None:
        if not actor.has(Permission.MANAGE_ROLES):
            logger.info(
                "Denied role %s", action,
                extra={"target_user_id": user_id, "actor": actor.user_id},
            )
            raise NotAuthorizedError(f"Not allowed to {action} roles")

    @staticmethod
    def _check_assignable(role: Role) -> None:
        if role in IMPLICIT_ROLES:
            raise InvalidStateError(f"Role {role.value} is implicit and cannot be stored")

    async def assign_role(self, actor: AuthContext, user_id: str, role: Role) -> UserRoleAssignment:
        """
        Grant a role to a user.

        Raises:
            NotAuthorizedError: actor lacks manage-roles
            InvalidStateError: role is implicit
            ConflictError: the user already holds the role
        """
        self._require_manager(actor, "assign", user_id)
        self._check_assignable(role)

        existing = await self.session.get(UserRoleAssignment, (user_id, role.value))
        if existing is not None:
            raise ConflictError(f"User {user_id} already has role {role.value}")

        assignment = UserRoleAssignment(
            user_id=user_id,
            role=role.value,
            assigned_by=actor.user_id,
        )
        self.session.add(assignment)
        await self.session.flush()

        logger.info(
            "Role assigned",
            extra={"target_user_id": user_id, "role": role.value, "actor": actor.user_id},
        )
        return assignment

    async def remove_role(self, actor: AuthContext, user_id: str, role: Role) -> None:
        """
        Revoke a stored role.

        Raises:
            NotAuthorizedError: actor lacks manage-roles
            InvalidStateError: role is implicit
            NotFoundError: the user does not hold the role
        """
        self._require_manager(actor, "remove", user_id)
        self._check_assignable(role)

        existing = await self.session.get(UserRoleAssignment, (user_id, role.value))
        if existing is None:
            raise NotFoundError(f"User {user_id} does not have role {role.value}")

        await self.session.delete(existing)
        await self.session.flush()

        logger.info(
            "Role removed",
            extra={"target_user_id": user_id, "role": role.value, "actor": actor.user_id},
        )
