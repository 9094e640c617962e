"""
Observation revisions - a sighting with optional text, point and images.
"""

from typing import Any, Dict, List, Optional

from sqlalchemy import Index, JSON, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from sightings.kernel.models.base import Base, GeoPointMixin, RevisionMixin


class ObservationRevision(Base, RevisionMixin, GeoPointMixin):
    """
    One immutable snapshot of an observation.

    image_refs pins concrete image revisions ({"item_id", "revision_id"}),
    never "latest", so revising an image cannot silently change what an
    observation shows.
    """

    __tablename__ = "observation_revisions"

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_refs: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)

    __table_args__ = (
        Index("ix_observation_revisions_location", "latitude", "longitude"),
        Index("ix_observation_revisions_moderation", "submitted", "published"),
        # At most one published revision per item
        Index(
            "uq_observation_revisions_published_item",
            "item_id",
            unique=True,
            sqlite_where=text("published = 1"),
            postgresql_where=text("published"),
        ),
    )

    def __repr__(self) -> str:
        return f"<ObservationRevision {self.item_id} r{self.revision_id}{' published' if self.published else ''}>"
