"""
Image Store - revisioned metadata around an immutable blob.
"""

import mimetypes
import uuid
from typing import Optional, Tuple

from sightings.kernel.errors import InvalidStateError
from sightings.kernel.identity.context import AuthContext
from sightings.kernel.models.image import ImageRevision
from sightings.kernel.revisions.store import Fields, RevisionStore
from sightings.kernel.storage import BlobStore
from sightings.logging_config import get_logger

logger = get_logger(__name__)

# Fields an uploader may supply next to the bytes
UPLOAD_FIELDS = frozenset({"description", "latitude", "longitude", "metadata_created_at"})


def storage_key_for(content_type: Optional[str]) -> str:
    """Fresh blob key, e.g. images/1b9d...e4.jpg"""
    extension = mimetypes.guess_extension(content_type or "") or ""
    if extension == ".jpe":
        extension = ".jpg"
    return f"images/{uuid.uuid4()}{extension}"


class ImageStore(RevisionStore[ImageRevision]):
    """
    Images: the stored bytes never change, so storage_key, content_type and
    the capture time are fixed at upload. Later revisions may only change
    the description and location.
    """

    model = ImageRevision
    entity_name = "image"
    payload_fields = frozenset({
        "storage_key",
        "content_type",
        "description",
        "latitude",
        "longitude",
        "metadata_created_at",
    })
    mutable_fields = frozenset({"description", "latitude", "longitude"})

    def __init__(
        self,
        session,
        context: AuthContext,
        *,
        blob_store: Optional[BlobStore] = None,
        url_ttl_seconds: int = 3600,
        max_limit: int = 1000,
    ):
        super().__init__(session, context, max_limit=max_limit)
        self.blob_store = blob_store
        self.url_ttl_seconds = url_ttl_seconds

    def _require_blob_store(self) -> BlobStore:
        if self.blob_store is None:
            raise RuntimeError("ImageStore was created without a blob store")
        return self.blob_store

    async def create_object(self, fields: Optional[Fields] = None) -> ImageRevision:
        """Images only come into being through upload_image."""
        if not self.context.can_create():
            raise self._deny("create")
        raise InvalidStateError("Images are created by uploading their bytes")

    async def upload_image(
        self,
        data: bytes,
        content_type: str,
        fields: Optional[Fields] = None,
    ) -> ImageRevision:
        """
        Store the bytes and create revision 0 pointing at them.

        The create permission is checked before anything is written. If the
        row cannot be inserted the blob is removed again.

        Args:
            data: Raw image bytes
            content_type: MIME type reported by the uploader
            fields: description, location, metadata_created_at

        Returns:
            The new image revision
        """
        if not self.context.can_create():
            raise self._deny("create")
        values = self._to_columns(fields, UPLOAD_FIELDS)
        blob_store = self._require_blob_store()

        key = storage_key_for(content_type)
        await blob_store.put(key, data, content_type)
        try:
            image = await super().create_object({
                **values,
                "storage_key": key,
                "content_type": content_type,
            })
        except Exception:
            await blob_store.delete(key)
            raise

        logger.info(
            "Uploaded image",
            extra={"item_id": image.item_id, "storage_key": key, "size": len(data)},
        )
        return image

    async def signed_url(self, image: ImageRevision) -> Optional[str]:
        """Time-limited retrieval URL, None when no blob store is attached."""
        if self.blob_store is None:
            return None
        return await self.blob_store.signed_url(image.storage_key, self.url_ttl_seconds)

    async def read_payload(self, item_id: str, revision_id: int) -> Tuple[bytes, Optional[str]]:
        """Bytes and content type of a revision the caller may read."""
        image = await self.get_revision(item_id, revision_id)
        data = await self._require_blob_store().get(image.storage_key)
        return data, image.content_type

    async def discard_blob(self, image: ImageRevision) -> None:
        """
        Remove the stored bytes of a deleted image.

        delete_object leaves the blob alone; call this once that deletion
        is committed so a rolled-back delete never loses the bytes.
        """
        if self.blob_store is None:
            return
        await self.blob_store.delete(image.storage_key)
        logger.info(
            "Discarded image blob",
            extra={"item_id": image.item_id, "storage_key": image.storage_key},
        )
