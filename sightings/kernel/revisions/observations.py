"""
Observation Store - revisioned sightings with geospatial search.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from sightings.kernel.errors import NotAuthorizedError, NotFoundError
from sightings.kernel.identity.context import AuthContext
from sightings.kernel.models.image import ImageRevision
from sightings.kernel.models.observation import ObservationRevision
from sightings.kernel.revisions.images import ImageStore
from sightings.kernel.revisions.store import RevisionStore
from sightings.kernel.search import BoundingBox, NearPoint, SearchFilters, WithinRadius
from sightings.logging_config import get_logger

logger = get_logger(__name__)

_NO_GEO = {"bounding_box": None, "near_point": None, "within_radius": None}


def _ref_dict(ref: Any) -> Dict[str, Any]:
    if isinstance(ref, BaseModel):
        ref = ref.model_dump()
    return {"item_id": str(ref["item_id"]), "revision_id": int(ref["revision_id"])}


class ObservationStore(RevisionStore[ObservationRevision]):
    """
    Observations: description, optional point and pinned image revisions.

    When an ImageStore is attached, every pinned image must exist and be
    readable by the caller at write time.
    """

    model = ObservationRevision
    entity_name = "observation"
    payload_fields = frozenset({"description", "latitude", "longitude", "image_refs"})
    mutable_fields = payload_fields

    def __init__(
        self,
        session,
        context: AuthContext,
        *,
        image_store: Optional[ImageStore] = None,
        max_limit: int = 1000,
        near_default_max_distance_m: float = 10000.0,
    ):
        super().__init__(session, context, max_limit=max_limit)
        self.image_store = image_store
        self.near_default_max_distance_m = near_default_max_distance_m

    def _creation_defaults(self) -> Dict[str, Any]:
        return {"image_refs": []}

    def _prepare_fields(self, values: Dict[str, Any]) -> Dict[str, Any]:
        if "image_refs" in values:
            refs = values["image_refs"] or []
            # Set semantics: drop repeated pins, keep first-seen order
            unique: List[Dict[str, Any]] = []
            for ref in map(_ref_dict, refs):
                if ref not in unique:
                    unique.append(ref)
            values["image_refs"] = unique
        return values

    async def _validate_payload(self, values: Dict[str, Any]) -> None:
        if self.image_store is None:
            return
        for ref in values.get("image_refs") or []:
            try:
                await self.image_store.get_revision(ref["item_id"], ref["revision_id"])
            except NotAuthorizedError as exc:
                raise NotFoundError(
                    f"Image {ref['item_id']} revision {ref['revision_id']} not found",
                    item_id=ref["item_id"],
                    revision_id=ref["revision_id"],
                ) from exc

    async def resolve_images(self, observation: ObservationRevision) -> List[ImageRevision]:
        """
        Pinned image revisions the caller may read, in reference order.

        References that no longer resolve (deleted, or unreadable to this
        caller) are skipped.
        """
        if self.image_store is None:
            return []
        images = []
        for ref in observation.image_refs or []:
            try:
                image = await self.image_store.get_revision(ref["item_id"], ref["revision_id"])
            except (NotFoundError, NotAuthorizedError) as exc:
                logger.info(
                    "Skipping unresolved image reference",
                    extra={
                        "item_id": observation.item_id,
                        "image_item_id": ref["item_id"],
                        "image_revision_id": ref["revision_id"],
                        "reason": type(exc).__name__,
                    },
                )
                continue
            images.append(image)
        return images

    # Geospatial search

    async def search_in_bounding_box(
        self,
        min_lat: float,
        max_lat: float,
        min_lng: float,
        max_lng: float,
        filters: Optional[SearchFilters] = None,
    ) -> List[ObservationRevision]:
        """Observations inside an axis-aligned box, bounds inclusive."""
        box = BoundingBox(min_lat=min_lat, max_lat=max_lat, min_lng=min_lng, max_lng=max_lng)
        filters = (filters or SearchFilters()).model_copy(update={**_NO_GEO, "bounding_box": box})
        return await self.search_objects(filters)

    async def search_near(
        self,
        longitude: float,
        latitude: float,
        max_distance_m: Optional[float] = None,
        filters: Optional[SearchFilters] = None,
    ) -> List[ObservationRevision]:
        """Observations within max_distance_m of a point, nearest first."""
        near = NearPoint(
            longitude=longitude,
            latitude=latitude,
            max_distance_m=max_distance_m or self.near_default_max_distance_m,
        )
        filters = (filters or SearchFilters()).model_copy(update={**_NO_GEO, "near_point": near})
        return await self.search_objects(filters)

    async def search_within_radius(
        self,
        longitude: float,
        latitude: float,
        radius_m: float,
        filters: Optional[SearchFilters] = None,
    ) -> List[ObservationRevision]:
        circle = WithinRadius(longitude=longitude, latitude=latitude, radius=radius_m)
        filters = (filters or SearchFilters()).model_copy(update={**_NO_GEO, "within_radius": circle})
        return await self.search_objects(filters)
