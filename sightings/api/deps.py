"""
FastAPI dependencies for identity, database sessions and stores.
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from sightings.config import get_settings
from sightings.database import get_db
from sightings.kernel.identity import AuthContext, RoleService
from sightings.kernel.revisions import ImageStore, ObservationStore
from sightings.kernel.search import BoundingBox, NearPoint, SearchFilters, SortField, SortOrder, WithinRadius
from sightings.kernel.storage import BlobStore, MinioBlobStore
from sightings.logging_config import user_id_var


DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_role_service(db: DbSession) -> RoleService:
    settings = get_settings()
    bootstrap = {grant.user_id: grant.roles for grant in settings.bootstrap_roles}
    return RoleService(db, bootstrap_roles=bootstrap)


RoleServiceDep = Annotated[RoleService, Depends(get_role_service)]


async def get_auth_context(request: Request, role_service: RoleServiceDep) -> AuthContext:
    """
    Resolve the caller from the trusted identity header.

    The header is set by the upstream identity provider after it verified
    the session; requests without it are anonymous.
    """
    settings = get_settings()
    user_id = (request.headers.get(settings.identity_header) or "").strip() or None

    context = await role_service.resolve(user_id)

    # Exception handlers need this to choose between 401 and 403
    request.state.auth_context = context
    user_id_var.set(context.user_id)
    return context


Auth = Annotated[AuthContext, Depends(get_auth_context)]


@lru_cache
def get_blob_store() -> BlobStore:
    """Process-wide blob store; overridden in tests."""
    settings = get_settings()
    return MinioBlobStore.from_settings(
        endpoint=settings.blob_endpoint,
        access_key=settings.blob_access_key,
        secret_key=settings.blob_secret_key,
        bucket=settings.blob_bucket,
        secure=settings.blob_secure,
    )


BlobStoreDep = Annotated[BlobStore, Depends(get_blob_store)]


def get_image_store(db: DbSession, context: Auth, blob_store: BlobStoreDep) -> ImageStore:
    settings = get_settings()
    return ImageStore(
        db,
        context,
        blob_store=blob_store,
        url_ttl_seconds=settings.image_url_ttl_seconds,
        max_limit=settings.search_max_limit,
    )


ImageStoreDep = Annotated[ImageStore, Depends(get_image_store)]


def get_observation_store(db: DbSession, context: Auth, image_store: ImageStoreDep) -> ObservationStore:
    settings = get_settings()
    return ObservationStore(
        db,
        context,
        image_store=image_store,
        max_limit=settings.search_max_limit,
        near_default_max_distance_m=settings.near_default_max_distance_m,
    )


ObservationStoreDep = Annotated[ObservationStore, Depends(get_observation_store)]


def get_search_filters(
    owner: Optional[str] = None,
    published: Optional[bool] = None,
    submitted: Optional[bool] = None,
    revision_id: Optional[int] = Query(None, ge=0),
    latest_only: bool = False,
    min_lat: Optional[float] = None,
    max_lat: Optional[float] = None,
    min_lng: Optional[float] = None,
    max_lng: Optional[float] = None,
    lat: Optional[float] = Query(None, description="Center latitude for near/radius queries"),
    lng: Optional[float] = Query(None, description="Center longitude for near/radius queries"),
    max_distance_m: Optional[float] = Query(None, gt=0),
    radius_m: Optional[float] = Query(None, gt=0),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
    sort_by: SortField = SortField.CREATED,
    sort_order: SortOrder = SortOrder.DESC,
) -> SearchFilters:
    """
    Search query parameters.

    A box needs all four bounds. A center (lat, lng) with radius_m is a
    radius query; without it a nearest-first query cut off at
    max_distance_m.
    """
    settings = get_settings()
    geo = {}
    try:
        box = (min_lat, max_lat, min_lng, max_lng)
        if any(bound is not None for bound in box):
            geo["bounding_box"] = BoundingBox(
                min_lat=min_lat, max_lat=max_lat, min_lng=min_lng, max_lng=max_lng
            )
        if lat is not None or lng is not None:
            if radius_m is not None:
                geo["within_radius"] = WithinRadius(latitude=lat, longitude=lng, radius=radius_m)
            else:
                geo["near_point"] = NearPoint(
                    latitude=lat,
                    longitude=lng,
                    max_distance_m=max_distance_m or settings.near_default_max_distance_m,
                )
        return SearchFilters(
            owner=owner,
            published=published,
            submitted=submitted,
            revision_id=revision_id,
            latest_only=latest_only,
            skip=skip,
            limit=min(limit, settings.search_max_limit),
            sort_by=sort_by,
            sort_order=sort_order,
            **geo,
        )
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


Filters = Annotated[SearchFilters, Depends(get_search_filters)]
