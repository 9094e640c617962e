"""
Pydantic schemas for API request/response validation.
"""

from sightings.schemas.common import (
    ErrorResponse,
    GeoPoint,
    HealthResponse,
    ListResponse,
    RevisionResponse,
)
from sightings.schemas.image import (
    ImageResponse,
    ImageUpdate,
    ImageUploadFields,
)
from sightings.schemas.observation import (
    ImageRef,
    ObservationCreate,
    ObservationDetailResponse,
    ObservationResponse,
    ObservationUpdate,
)
from sightings.schemas.role import (
    RoleAssignRequest,
    UserRolesResponse,
)

__all__ = [
    # Common
    "ErrorResponse",
    "GeoPoint",
    "HealthResponse",
    "ListResponse",
    "RevisionResponse",
    # Images
    "ImageResponse",
    "ImageUpdate",
    "ImageUploadFields",
    # Observations
    "ImageRef",
    "ObservationCreate",
    "ObservationDetailResponse",
    "ObservationResponse",
    "ObservationUpdate",
    # Roles
    "RoleAssignRequest",
    "UserRolesResponse",
]
