"""
Kernel Data Models

SQLAlchemy models for the revision store: one table per revisioned entity
type, one row per revision.
"""

from sightings.kernel.models.base import (
    Base,
    GeoPointMixin,
    RevisionMixin,
    UTCDateTime,
    generate_item_id,
    utcnow,
)
from sightings.kernel.models.observation import ObservationRevision
from sightings.kernel.models.image import ImageRevision
from sightings.kernel.models.user_role import UserRoleAssignment

__all__ = [
    # Base
    "Base",
    "GeoPointMixin",
    "RevisionMixin",
    "UTCDateTime",
    "generate_item_id",
    "utcnow",
    # Revisioned entities
    "ObservationRevision",
    "ImageRevision",
    # Roles
    "UserRoleAssignment",
]
