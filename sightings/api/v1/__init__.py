"""
API v1 routes.
"""

from fastapi import APIRouter

from sightings.api.v1 import admin, images, observations
from sightings.schemas.common import ErrorResponse

router = APIRouter(
    responses={
        401: {"model": ErrorResponse, "description": "No identity on the request"},
        403: {"model": ErrorResponse, "description": "Not permitted for the caller's roles"},
        404: {"model": ErrorResponse, "description": "Item or revision not found"},
        409: {"model": ErrorResponse, "description": "Concurrent write conflict"},
    },
)

router.include_router(observations.router, prefix="/observations", tags=["Observations"])
router.include_router(images.router, prefix="/images", tags=["Images"])
router.include_router(admin.router, prefix="/admin", tags=["Admin"])
