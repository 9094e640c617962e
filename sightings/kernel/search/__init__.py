"""
Search / Filter Composer - permission-aware queries with geospatial predicates.
"""

from sightings.kernel.search.geo import (
    EARTH_RADIUS_M,
    BoundingBox,
    NearPoint,
    WithinRadius,
    central_angle,
    distance_m,
)
from sightings.kernel.search.filters import (
    GeoPredicate,
    SearchFilters,
    SearchPage,
    SearchPlan,
    SortField,
    SortOrder,
    compose_search,
    finish_page,
    finish_search,
    visibility_clause,
)

__all__ = [
    "EARTH_RADIUS_M",
    "BoundingBox",
    "NearPoint",
    "WithinRadius",
    "central_angle",
    "distance_m",
    "GeoPredicate",
    "SearchFilters",
    "SearchPage",
    "SearchPlan",
    "SortField",
    "SortOrder",
    "compose_search",
    "finish_page",
    "finish_search",
    "visibility_clause",
]
