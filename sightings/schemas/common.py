"""
Common schema types used across the API.
"""

from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from sightings.kernel.identity.context import AuthContext
from sightings.kernel.models.base import GeoPointMixin, RevisionMixin

T = TypeVar("T")


class ErrorResponse(BaseModel):
    """Standard error response."""
    
    detail: str
    code: Optional[str] = None
    item_id: Optional[str] = None
    revision_id: Optional[int] = None
    request_id: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    
    status: str = "ok"
    version: str
    database: str = "connected"


class GeoPoint(BaseModel):
    """WGS84 point."""
    
    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    @classmethod
    def from_row(cls, row: GeoPointMixin) -> Optional["GeoPoint"]:
        if not row.has_location:
            return None
        return cls(latitude=row.latitude, longitude=row.longitude)


class RevisionResponse(BaseModel):
    """Fields every revisioned entity shares, plus what the caller may do."""
    
    item_id: str
    revision_id: int
    owner: str
    published: bool
    submitted: bool
    created_at: datetime
    updated_at: datetime
    revision_created_at: datetime
    location: Optional[GeoPoint] = None

    # Computed for the calling user
    can_edit: bool = False
    can_delete: bool = False
    can_publish: bool = False

    @staticmethod
    def base_fields(row: RevisionMixin, context: AuthContext) -> dict:
        return {
            "item_id": row.item_id,
            "revision_id": row.revision_id,
            "owner": row.owner,
            "published": row.published,
            "submitted": row.submitted,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
            "revision_created_at": row.revision_created_at,
            "location": GeoPoint.from_row(row),
            "can_edit": context.can_edit(row),
            "can_delete": context.can_delete(row),
            "can_publish": context.can_publish(row),
        }


class ListResponse(BaseModel, Generic[T]):
    """
    One page of results.

    There is no total: rows are filtered per caller after the query runs,
    so a count would be either wrong or expensive.
    """
    
    items: List[T]
    skip: int = 0
    limit: int
    has_more: bool = False

    @classmethod
    def create(cls, items: List[T], skip: int, limit: int, has_more: bool = False) -> "ListResponse[T]":
        return cls(items=items, skip=skip, limit=limit, has_more=has_more)
