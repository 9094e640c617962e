"""
Geospatial predicates for located revisions.

Each predicate compiles to an index-friendly rectangle on the
latitude/longitude columns and, where the rectangle over-selects (circles),
is refined exactly in Python with great-circle distances.
"""

import math
from typing import Annotated, Any, ClassVar, List, Sequence, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import and_, or_
from sqlalchemy.sql import ColumnElement

# Earth radius for converting meters to radians, as in 2dsphere queries
EARTH_RADIUS_M = 6_378_100.0

RowT = TypeVar("RowT")

Latitude = Annotated[float, Field(ge=-90.0, le=90.0)]
Longitude = Annotated[float, Field(ge=-180.0, le=180.0)]


def central_angle(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Angle in radians between two points on the sphere (haversine)."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = phi2 - phi1
    dlmb = math.radians(lng2 - lng1)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * math.asin(min(1.0, math.sqrt(h)))


def distance_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in meters."""
    return central_angle(lat1, lng1, lat2, lng2) * EARTH_RADIUS_M


class BoundingBox(BaseModel):
    """Axis-aligned rectangle, bounds inclusive."""

    model_config = ConfigDict(frozen=True)

    min_lat: Latitude
    max_lat: Latitude
    min_lng: Longitude
    max_lng: Longitude

    # Rectangle matching is exact in SQL
    needs_refinement: ClassVar[bool] = False

    @model_validator(mode="after")
    def _check_order(self) -> "BoundingBox":
        if self.min_lat > self.max_lat:
            raise ValueError("min_lat must not exceed max_lat")
        if self.min_lng > self.max_lng:
            raise ValueError("min_lng must not exceed max_lng")
        return self

    def clause(self, model: Any) -> ColumnElement[bool]:
        return and_(
            model.latitude.between(self.min_lat, self.max_lat),
            model.longitude.between(self.min_lng, self.max_lng),
        )

    def refine(self, rows: Sequence[RowT]) -> List[RowT]:
        return list(rows)


class _Circle(BaseModel):
    """Spherical cap around a center point."""

    model_config = ConfigDict(frozen=True)

    longitude: Longitude
    latitude: Latitude

    needs_refinement: ClassVar[bool] = True

    @property
    def radius_m(self) -> float:
        raise NotImplementedError

    @property
    def angle(self) -> float:
        """Cap radius in radians."""
        return self.radius_m / EARTH_RADIUS_M

    def distance_to(self, row: Any) -> float:
        return distance_m(self.latitude, self.longitude, row.latitude, row.longitude)

    def contains(self, row: Any) -> bool:
        if row.latitude is None or row.longitude is None:
            return False
        return central_angle(self.latitude, self.longitude, row.latitude, row.longitude) <= self.angle

    def clause(self, model: Any) -> ColumnElement[bool]:
        """Smallest lat/lng rectangle enclosing the cap."""
        located = and_(model.latitude.is_not(None), model.longitude.is_not(None))
        angle = self.angle
        if angle >= math.pi:
            return located

        dlat = math.degrees(angle)
        lat_min, lat_max = self.latitude - dlat, self.latitude + dlat
        if lat_min <= -90.0 or lat_max >= 90.0:
            # Cap covers a pole: every longitude qualifies
            return and_(located, model.latitude.between(max(lat_min, -90.0), min(lat_max, 90.0)))

        ratio = math.sin(angle) / math.cos(math.radians(self.latitude))
        if ratio >= 1.0:
            return and_(located, model.latitude.between(lat_min, lat_max))
        dlng = math.degrees(math.asin(ratio))
        lng_min, lng_max = self.longitude - dlng, self.longitude + dlng

        if lng_min < -180.0:
            lng_clause = or_(model.longitude >= lng_min + 360.0, model.longitude <= lng_max)
        elif lng_max > 180.0:
            lng_clause = or_(model.longitude >= lng_min, model.longitude <= lng_max - 360.0)
        else:
            lng_clause = model.longitude.between(lng_min, lng_max)
        return and_(located, model.latitude.between(lat_min, lat_max), lng_clause)


class NearPoint(_Circle):
    """Rows within max_distance_m of the point, nearest first."""

    max_distance_m: float = Field(..., gt=0)

    @property
    def radius_m(self) -> float:
        return self.max_distance_m

    def refine(self, rows: Sequence[RowT]) -> List[RowT]:
        inside = [row for row in rows if self.contains(row)]
        inside.sort(key=self.distance_to)
        return inside


class WithinRadius(_Circle):
    """Unordered membership in the cap of radius_m around the point."""

    radius: float = Field(..., gt=0, description="Radius in meters")

    @property
    def radius_m(self) -> float:
        return self.radius

    def refine(self, rows: Sequence[RowT]) -> List[RowT]:
        return [row for row in rows if self.contains(row)]
