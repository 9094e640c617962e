"""
Image endpoints.

Uploads send the raw bytes as the request body with their Content-Type;
descriptive metadata travels in the query string.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Header, HTTPException, Query, Request, Response, status

from sightings.api.deps import Auth, DbSession, Filters, ImageStoreDep
from sightings.kernel.identity import AuthContext
from sightings.kernel.models.image import ImageRevision
from sightings.kernel.revisions import ImageStore
from sightings.schemas.common import GeoPoint, ListResponse
from sightings.schemas.image import ImageResponse, ImageUpdate, ImageUploadFields

router = APIRouter()

# Refuse anything larger than this before touching storage
MAX_UPLOAD_BYTES = 20 * 1024 * 1024


async def _with_url(image: ImageRevision, store: ImageStore, context: AuthContext) -> ImageResponse:
    url = await store.signed_url(image)
    return ImageResponse.from_revision(image, context, url=url)


@router.get("", response_model=ListResponse[ImageResponse])
async def search_images(store: ImageStoreDep, context: Auth, filters: Filters):
    page = await store.search_page(filters)
    items = [ImageResponse.from_revision(row, context) for row in page.items]
    return ListResponse.create(items, skip=filters.skip, limit=filters.limit, has_more=page.has_more)


@router.post("", response_model=ImageResponse, status_code=status.HTTP_201_CREATED)
async def upload_image(
    request: Request,
    store: ImageStoreDep,
    context: Auth,
    content_type: str = Header(...),
    description: Optional[str] = Query(None, max_length=5000),
    latitude: Optional[float] = Query(None, ge=-90.0, le=90.0),
    longitude: Optional[float] = Query(None, ge=-180.0, le=180.0),
    metadata_created_at: Optional[datetime] = None,
):
    """
    Upload image bytes and create the image at revision 0.
    """
    media_type = content_type.split(";")[0].strip().lower()
    if not media_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Only image/* uploads are accepted",
        )
    if (latitude is None) != (longitude is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="latitude and longitude must be given together",
        )

    data = await request.body()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty upload")
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Upload exceeds {MAX_UPLOAD_BYTES} bytes",
        )

    location = GeoPoint(latitude=latitude, longitude=longitude) if latitude is not None else None
    fields = ImageUploadFields(
        description=description,
        location=location,
        metadata_created_at=metadata_created_at,
    )

    image = await store.upload_image(data, media_type, fields)
    return await _with_url(image, store, context)


@router.get("/pending", response_model=List[ImageResponse])
async def list_pending_images(
    store: ImageStoreDep,
    context: Auth,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1),
):
    """Moderation queue (moderators only)."""
    rows = await store.list_pending(skip=skip, limit=limit)
    return [ImageResponse.from_revision(row, context) for row in rows]


@router.get("/{item_id}", response_model=ImageResponse)
async def get_latest_image(item_id: str, store: ImageStoreDep, context: Auth):
    image = await store.get_latest_revision(item_id)
    return await _with_url(image, store, context)


@router.get("/{item_id}/published", response_model=ImageResponse)
async def get_published_image(item_id: str, store: ImageStoreDep, context: Auth):
    image = await store.get_published_revision(item_id)
    return await _with_url(image, store, context)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_image(item_id: str, store: ImageStoreDep, db: DbSession):
    """Delete the image, all its revisions and the stored bytes."""
    latest = await store.delete_object(item_id)
    # Bytes go only after the rows are gone for good
    await db.commit()
    await store.discard_blob(latest)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{item_id}/revisions", response_model=List[ImageResponse])
async def list_image_revisions(item_id: str, store: ImageStoreDep, context: Auth):
    rows = await store.list_revisions(item_id)
    return [ImageResponse.from_revision(row, context) for row in rows]


@router.post("/{item_id}/revisions", response_model=ImageResponse, status_code=status.HTTP_201_CREATED)
async def create_image_revision(item_id: str, data: ImageUpdate, store: ImageStoreDep, context: Auth):
    image = await store.create_revision(item_id, data)
    return await _with_url(image, store, context)


@router.get("/{item_id}/revisions/{revision_id}", response_model=ImageResponse)
async def get_image_revision(item_id: str, revision_id: int, store: ImageStoreDep, context: Auth):
    image = await store.get_revision(item_id, revision_id)
    return await _with_url(image, store, context)


@router.get("/{item_id}/revisions/{revision_id}/payload")
async def download_image_payload(item_id: str, revision_id: int, store: ImageStoreDep):
    """Stream the stored bytes through the API (for clients that cannot use signed URLs)."""
    data, content_type = await store.read_payload(item_id, revision_id)
    return Response(content=data, media_type=content_type or "application/octet-stream")


@router.patch("/{item_id}/revisions/{revision_id}", response_model=ImageResponse)
async def update_image_revision(
    item_id: str,
    revision_id: int,
    data: ImageUpdate,
    store: ImageStoreDep,
    context: Auth,
):
    image = await store.update_revision(item_id, revision_id, data)
    return await _with_url(image, store, context)


@router.post("/{item_id}/revisions/{revision_id}/submit", response_model=ImageResponse)
async def submit_image_revision(item_id: str, revision_id: int, store: ImageStoreDep, context: Auth):
    image = await store.submit_revision(item_id, revision_id)
    return ImageResponse.from_revision(image, context)


@router.post("/{item_id}/revisions/{revision_id}/publish", response_model=ImageResponse)
async def publish_image_revision(item_id: str, revision_id: int, store: ImageStoreDep, context: Auth):
    image = await store.publish_revision(item_id, revision_id)
    return ImageResponse.from_revision(image, context)


@router.delete("/{item_id}/revisions/{revision_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_image_revision(item_id: str, revision_id: int, store: ImageStoreDep):
    await store.delete_revision(item_id, revision_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
