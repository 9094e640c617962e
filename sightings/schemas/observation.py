"""
Observation schemas.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from sightings.kernel.identity.context import AuthContext
from sightings.kernel.models.observation import ObservationRevision
from sightings.schemas.common import GeoPoint, RevisionResponse
from sightings.schemas.image import ImageResponse


class ImageRef(BaseModel):
    """Pin to one specific image revision."""
    
    item_id: str = Field(..., min_length=1, max_length=36)
    revision_id: int = Field(..., ge=0)


class ObservationCreate(BaseModel):
    """Observation creation request."""
    
    description: Optional[str] = Field(None, max_length=5000)
    location: Optional[GeoPoint] = None
    image_refs: List[ImageRef] = []


class ObservationUpdate(BaseModel):
    """
    Observation revision request.

    Omitted fields keep their value, explicit nulls clear them.
    """
    
    description: Optional[str] = Field(None, max_length=5000)
    location: Optional[GeoPoint] = None
    image_refs: Optional[List[ImageRef]] = None


class ObservationResponse(RevisionResponse):
    """Observation revision response."""
    
    description: Optional[str] = None
    image_refs: List[ImageRef] = []

    @classmethod
    def from_revision(cls, observation: ObservationRevision, context: AuthContext) -> "ObservationResponse":
        return cls(
            **cls.base_fields(observation, context),
            description=observation.description,
            image_refs=[ImageRef(**ref) for ref in observation.image_refs or []],
        )


class ObservationDetailResponse(ObservationResponse):
    """Observation with its pinned images resolved."""
    
    images: List[ImageResponse] = []
