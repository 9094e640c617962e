"""
Identity - request-scoped caller context and stored role assignments.
"""

from sightings.kernel.identity.context import AuthContext
from sightings.kernel.identity.role_service import RoleService

__all__ = [
    "AuthContext",
    "RoleService",
]
