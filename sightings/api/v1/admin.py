"""
Admin endpoints for user role assignments.
"""

from fastapi import APIRouter, Response, status

from sightings.api.deps import Auth, RoleServiceDep
from sightings.kernel.errors import NotAuthorizedError
from sightings.kernel.identity import RoleService
from sightings.kernel.permissions import Permission, Role
from sightings.schemas.role import RoleAssignRequest, UserRolesResponse

router = APIRouter()


async def _roles_response(role_service: RoleService, user_id: str) -> UserRolesResponse:
    stored = await role_service.get_roles(user_id)
    effective = await role_service.resolve(user_id)
    return UserRolesResponse(
        user_id=user_id,
        roles=stored,
        effective_roles=sorted(effective.roles, key=lambda r: r.value),
        permissions=sorted(p.value for p in effective.permissions),
    )


@router.get("/users/{user_id}/roles", response_model=UserRolesResponse)
async def get_user_roles(user_id: str, context: Auth, role_service: RoleServiceDep):
    """Roles of a user. Anyone may look up their own; others need manage-roles."""
    if context.user_id != user_id and not context.has(Permission.MANAGE_ROLES):
        raise NotAuthorizedError("Not allowed to view roles of other users")
    return await _roles_response(role_service, user_id)


@router.post(
    "/users/{user_id}/roles",
    response_model=UserRolesResponse,
    status_code=status.HTTP_201_CREATED,
)
async def assign_user_role(
    user_id: str,
    data: RoleAssignRequest,
    context: Auth,
    role_service: RoleServiceDep,
):
    await role_service.assign_role(context, user_id, data.role)
    return await _roles_response(role_service, user_id)


@router.delete("/users/{user_id}/roles/{role}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_user_role(user_id: str, role: Role, context: Auth, role_service: RoleServiceDep):
    await role_service.remove_role(context, user_id, role)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
