"""
Observation endpoints.
"""

from typing import List

from fastapi import APIRouter, Query, Response, status

from sightings.api.deps import Auth, Filters, ImageStoreDep, ObservationStoreDep
from sightings.kernel.identity import AuthContext
from sightings.kernel.models.observation import ObservationRevision
from sightings.kernel.revisions import ImageStore, ObservationStore
from sightings.schemas.common import ListResponse
from sightings.schemas.image import ImageResponse
from sightings.schemas.observation import (
    ObservationCreate,
    ObservationDetailResponse,
    ObservationResponse,
    ObservationUpdate,
)

router = APIRouter()


async def _detail(
    observation: ObservationRevision,
    store: ObservationStore,
    image_store: ImageStore,
    context: AuthContext,
) -> ObservationDetailResponse:
    """Embed the pinned images, each with a signed URL."""
    images = []
    for image in await store.resolve_images(observation):
        url = await image_store.signed_url(image)
        images.append(ImageResponse.from_revision(image, context, url=url))
    base = ObservationResponse.from_revision(observation, context)
    return ObservationDetailResponse(**base.model_dump(), images=images)


@router.get("", response_model=ListResponse[ObservationResponse])
async def search_observations(store: ObservationStoreDep, context: Auth, filters: Filters):
    """
    Search observations visible to the caller.

    Supports owner/published/submitted filters, bounding boxes
    (min_lat..max_lng), nearest-first queries (lat, lng, max_distance_m)
    and radius membership (lat, lng, radius_m).
    """
    page = await store.search_page(filters)
    items = [ObservationResponse.from_revision(row, context) for row in page.items]
    return ListResponse.create(items, skip=filters.skip, limit=filters.limit, has_more=page.has_more)


@router.post("", response_model=ObservationResponse, status_code=status.HTTP_201_CREATED)
async def create_observation(data: ObservationCreate, store: ObservationStoreDep, context: Auth):
    """Create an observation at revision 0."""
    observation = await store.create_object(data)
    return ObservationResponse.from_revision(observation, context)


@router.get("/pending", response_model=List[ObservationResponse])
async def list_pending_observations(
    store: ObservationStoreDep,
    context: Auth,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
):
    """Moderation queue (moderators only)."""
    rows = await store.list_pending(skip=skip, limit=limit)
    return [ObservationResponse.from_revision(row, context) for row in rows]


@router.get("/{item_id}", response_model=ObservationDetailResponse)
async def get_latest_observation(
    item_id: str,
    store: ObservationStoreDep,
    image_store: ImageStoreDep,
    context: Auth,
):
    observation = await store.get_latest_revision(item_id)
    return await _detail(observation, store, image_store, context)


@router.get("/{item_id}/published", response_model=ObservationDetailResponse)
async def get_published_observation(
    item_id: str,
    store: ObservationStoreDep,
    image_store: ImageStoreDep,
    context: Auth,
):
    observation = await store.get_published_revision(item_id)
    return await _detail(observation, store, image_store, context)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_observation(item_id: str, store: ObservationStoreDep):
    """Delete the observation with all its revisions."""
    await store.delete_object(item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{item_id}/revisions", response_model=List[ObservationResponse])
async def list_observation_revisions(item_id: str, store: ObservationStoreDep, context: Auth):
    rows = await store.list_revisions(item_id)
    return [ObservationResponse.from_revision(row, context) for row in rows]


@router.post(
    "/{item_id}/revisions",
    response_model=ObservationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_observation_revision(
    item_id: str,
    data: ObservationUpdate,
    store: ObservationStoreDep,
    context: Auth,
):
    """New revision: the latest one with the supplied fields overlaid."""
    observation = await store.create_revision(item_id, data)
    return ObservationResponse.from_revision(observation, context)


@router.get("/{item_id}/revisions/{revision_id}", response_model=ObservationDetailResponse)
async def get_observation_revision(
    item_id: str,
    revision_id: int,
    store: ObservationStoreDep,
    image_store: ImageStoreDep,
    context: Auth,
):
    observation = await store.get_revision(item_id, revision_id)
    return await _detail(observation, store, image_store, context)


@router.patch("/{item_id}/revisions/{revision_id}", response_model=ObservationResponse)
async def update_observation_revision(
    item_id: str,
    revision_id: int,
    data: ObservationUpdate,
    store: ObservationStoreDep,
    context: Auth,
):
    """Patch an unpublished revision in place."""
    observation = await store.update_revision(item_id, revision_id, data)
    return ObservationResponse.from_revision(observation, context)


@router.post("/{item_id}/revisions/{revision_id}/submit", response_model=ObservationResponse)
async def submit_observation_revision(
    item_id: str,
    revision_id: int,
    store: ObservationStoreDep,
    context: Auth,
):
    observation = await store.submit_revision(item_id, revision_id)
    return ObservationResponse.from_revision(observation, context)


@router.post("/{item_id}/revisions/{revision_id}/publish", response_model=ObservationResponse)
async def publish_observation_revision(
    item_id: str,
    revision_id: int,
    store: ObservationStoreDep,
    context: Auth,
):
    observation = await store.publish_revision(item_id, revision_id)
    return ObservationResponse.from_revision(observation, context)


@router.delete("/{item_id}/revisions/{revision_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_observation_revision(item_id: str, revision_id: int, store: ObservationStoreDep):
    await store.delete_revision(item_id, revision_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
