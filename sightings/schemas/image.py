"""
Image schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from sightings.kernel.identity.context import AuthContext
from sightings.kernel.models.image import ImageRevision
from sightings.schemas.common import GeoPoint, RevisionResponse


class ImageUploadFields(BaseModel):
    """Metadata sent alongside the uploaded bytes."""
    
    description: Optional[str] = Field(None, max_length=5000)
    location: Optional[GeoPoint] = None
    metadata_created_at: Optional[datetime] = None


class ImageUpdate(BaseModel):
    """
    Image revision request.

    The payload is immutable; only descriptive fields can change. Omitted
    fields keep their value, explicit nulls clear them.
    """
    
    description: Optional[str] = Field(None, max_length=5000)
    location: Optional[GeoPoint] = None


class ImageResponse(RevisionResponse):
    """Image revision response."""
    
    storage_key: str
    content_type: Optional[str] = None
    description: Optional[str] = None
    metadata_created_at: Optional[datetime] = None
    url: Optional[str] = None

    @classmethod
    def from_revision(
        cls,
        image: ImageRevision,
        context: AuthContext,
        url: Optional[str] = None,
    ) -> "ImageResponse":
        return cls(
            **cls.base_fields(image, context),
            storage_key=image.storage_key,
            content_type=image.content_type,
            description=image.description,
            metadata_created_at=image.metadata_created_at,
            url=url,
        )
