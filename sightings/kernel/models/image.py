"""
Image revisions - descriptive metadata around an immutable binary payload.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from sightings.kernel.models.base import Base, GeoPointMixin, RevisionMixin, UTCDateTime


class ImageRevision(Base, RevisionMixin, GeoPointMixin):
    """
    One snapshot of an image's metadata.

    storage_key and metadata_created_at come from the upload and are
    identical in every revision; only description and location change.
    """

    __tablename__ = "image_revisions"

    storage_key: Mapped[str] = mapped_column(String(512), nullable=False)
    content_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # Capture time from the camera, when known
    metadata_created_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime(), nullable=True)

    __table_args__ = (
        Index("ix_image_revisions_location", "latitude", "longitude"),
        Index("ix_image_revisions_storage_key", "storage_key"),
        Index(
            "uq_image_revisions_published_item",
            "item_id",
            unique=True,
            sqlite_where=text("published = 1"),
            postgresql_where=text("published"),
        ),
    )

    def __repr__(self) -> str:
        return f"<ImageRevision {self.item_id} r{self.revision_id} key={self.storage_key}>"
