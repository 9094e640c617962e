"""Unit tests for geospatial predicates."""

import math
from types import SimpleNamespace

import pytest
from pydantic import ValidationError
from sqlalchemy.dialects import sqlite

from sightings.kernel.models import ObservationRevision
from sightings.kernel.search import (
    EARTH_RADIUS_M,
    BoundingBox,
    NearPoint,
    WithinRadius,
    central_angle,
    distance_m,
)


def point(lat, lng):
    return SimpleNamespace(latitude=lat, longitude=lng)


def sql(clause) -> str:
    return str(clause.compile(dialect=sqlite.dialect(), compile_kwargs={"literal_binds": True}))


class TestDistance:
    
    def test_zero_distance(self):
        assert distance_m(10.0, 20.0, 10.0, 20.0) == 0.0
    
    def test_one_degree_of_latitude(self):
        expected = math.radians(1.0) * EARTH_RADIUS_M
        assert distance_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(expected)
    
    def test_antipodes(self):
        assert central_angle(0.0, 0.0, 0.0, 180.0) == pytest.approx(math.pi)
    
    def test_across_antimeridian(self):
        assert distance_m(0.0, 179.9, 0.0, -179.9) == pytest.approx(distance_m(0.0, 0.0, 0.0, 0.2))


class TestBoundingBox:
    
    def test_rejects_inverted_bounds(self):
        with pytest.raises(ValidationError):
            BoundingBox(min_lat=10, max_lat=0, min_lng=0, max_lng=10)
        with pytest.raises(ValidationError):
            BoundingBox(min_lat=0, max_lat=10, min_lng=10, max_lng=0)
    
    def test_rejects_out_of_range(self):
        with pytest.raises(ValidationError):
            BoundingBox(min_lat=-91, max_lat=0, min_lng=0, max_lng=10)
        with pytest.raises(ValidationError):
            BoundingBox(min_lat=0, max_lat=10, min_lng=0, max_lng=181)
    
    def test_clause_is_inclusive_range(self):
        box = BoundingBox(min_lat=0, max_lat=60, min_lng=0, max_lng=60)
        rendered = sql(box.clause(ObservationRevision))
        assert "observation_revisions.latitude BETWEEN" in rendered
        assert "observation_revisions.longitude BETWEEN" in rendered
        assert " OR " not in rendered
        assert not box.needs_refinement


class TestNearPoint:
    
    def test_requires_positive_distance(self):
        with pytest.raises(ValidationError):
            NearPoint(longitude=0, latitude=0, max_distance_m=0)
    
    def test_refine_orders_by_distance_and_cuts_off(self):
        near = NearPoint(longitude=0.0, latitude=0.0, max_distance_m=300_000)
        far = point(0.0, 5.0)
        close = point(0.0, 1.0)
        closer = point(0.5, 0.0)
        unlocated = point(None, None)
        assert near.refine([far, close, unlocated, closer]) == [closer, close]
        assert near.needs_refinement
    
    def test_clause_bounds_latitude(self):
        near = NearPoint(longitude=20.0, latitude=10.0, max_distance_m=111_000)
        rendered = sql(near.clause(ObservationRevision))
        assert "latitude BETWEEN" in rendered
        assert "longitude BETWEEN" in rendered
    
    def test_clause_wraps_across_antimeridian(self):
        near = NearPoint(longitude=179.9, latitude=0.0, max_distance_m=50_000)
        rendered = sql(near.clause(ObservationRevision))
        assert " OR " in rendered
    
    def test_clause_near_pole_drops_longitude(self):
        near = NearPoint(longitude=0.0, latitude=89.9, max_distance_m=50_000)
        rendered = sql(near.clause(ObservationRevision))
        assert "longitude BETWEEN" not in rendered


class TestWithinRadius:
    
    def test_membership_uses_spherical_cap(self):
        circle = WithinRadius(longitude=0.0, latitude=0.0, radius=200_000)
        inside = point(1.0, 1.0)      # ~157 km
        outside = point(2.0, 2.0)     # ~314 km
        assert circle.refine([outside, inside]) == [inside]
    
    def test_angle_uses_earth_radius(self):
        circle = WithinRadius(longitude=0.0, latitude=0.0, radius=EARTH_RADIUS_M)
        assert circle.angle == pytest.approx(1.0)
    
    def test_whole_sphere_only_requires_a_location(self):
        circle = WithinRadius(longitude=0.0, latitude=0.0, radius=EARTH_RADIUS_M * 4)
        rendered = sql(circle.clause(ObservationRevision))
        assert "BETWEEN" not in rendered
        assert "IS NOT NULL" in rendered
