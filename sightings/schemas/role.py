"""
Role management schemas.
"""

from typing import List

from pydantic import BaseModel

from sightings.kernel.permissions import Role


class RoleAssignRequest(BaseModel):
    """Grant a role to a user."""
    
    role: Role


class UserRolesResponse(BaseModel):
    """Stored and effective roles of a user."""
    
    user_id: str
    roles: List[Role]
    effective_roles: List[Role]
    permissions: List[str]
