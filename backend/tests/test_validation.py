"""Tests for ring normalization, validation, repair and measurement."""

import pytest

from sitegen.core.geometry.projection import LatLng
from sitegen.core.geometry.validation import (
    InvalidRingError,
    ValidationSeverity,
    contains_polygon,
    is_simple_ring,
    normalize_ring,
    repair_self_intersections,
    ring_area_sq_m,
    ring_centroid,
    simplify_ring,
    to_latlng,
    validate_ring,
)

TRIANGLE = [(0.0, 0.0), (0.0, 0.001), (0.001, 0.0)]
BOWTIE = [(0.0, 0.0), (0.001, 0.001), (0.001, 0.0), (0.0, 0.001)]


class TestToLatLng:
    def test_mapping(self):
        assert to_latlng({"lat": 1, "lng": 2}) == LatLng(1.0, 2.0)

    def test_long_names(self):
        assert to_latlng({"latitude": 1, "longitude": 2}) == LatLng(1.0, 2.0)

    def test_pair(self):
        assert to_latlng((1, 2)) == LatLng(1.0, 2.0)

    def test_out_of_range(self):
        with pytest.raises(InvalidRingError):
            to_latlng({"lat": 95, "lng": 0})

    def test_missing_key(self):
        with pytest.raises(InvalidRingError):
            to_latlng({"lat": 1})


class TestNormalizeRing:
    def test_closes_ring(self):
        ring = normalize_ring(TRIANGLE)
        assert len(ring) == 4
        assert ring[0] == ring[-1]

    def test_already_closed(self):
        ring = normalize_ring(TRIANGLE + [TRIANGLE[0]])
        assert len(ring) == 4

    def test_strips_consecutive_duplicates(self):
        path = [TRIANGLE[0], TRIANGLE[0], TRIANGLE[1], TRIANGLE[1], TRIANGLE[2]]
        assert len(normalize_ring(path)) == 4

    def test_idempotent(self):
        path = [TRIANGLE[0], TRIANGLE[1], TRIANGLE[1], TRIANGLE[2], TRIANGLE[0], TRIANGLE[0]]
        once = normalize_ring(path)
        assert normalize_ring(once) == once

    def test_idempotent_on_square(self, square_ring):
        ring = square_ring(50)
        assert normalize_ring(normalize_ring(ring)) == normalize_ring(ring)

    def test_too_few_distinct_points(self):
        with pytest.raises(InvalidRingError):
            normalize_ring([(0, 0), (0, 0), (1, 1), (0, 0)])

    def test_empty(self):
        with pytest.raises(InvalidRingError):
            normalize_ring([])

    def test_rejects_out_of_range(self):
        with pytest.raises(InvalidRingError):
            normalize_ring([(0, 0), (0, 200), (1, 1)])


class TestValidateRing:
    def test_valid_triangle(self):
        result = validate_ring(TRIANGLE)
        assert result.valid
        assert result.ring[0] == result.ring[-1]

    def test_too_few_points(self):
        result = validate_ring(TRIANGLE[:2])
        assert not result.valid
        assert any(i.code == "TOO_FEW_POINTS" for i in result.issues)

    def test_invalid_coordinate(self):
        result = validate_ring([(0, 0), (float("nan"), 1), (1, 1)])
        assert any(i.code == "INVALID_COORD" for i in result.errors)

    def test_auto_closed_warning(self):
        result = validate_ring(TRIANGLE)
        assert any(i.code == "AUTO_CLOSED" and i.severity == ValidationSeverity.WARNING
                   for i in result.issues)

    def test_consecutive_duplicate_warning(self):
        result = validate_ring([TRIANGLE[0], TRIANGLE[0], TRIANGLE[1], TRIANGLE[2]])
        assert result.valid
        assert any(i.code == "CONSECUTIVE_DUPLICATE" for i in result.warnings)

    def test_degenerate_after_dedup(self):
        result = validate_ring([(0, 0), (0, 0), (1, 1)])
        assert any(i.code == "DEGENERATE_AFTER_DEDUP" for i in result.errors)

    def test_collinear(self):
        result = validate_ring([(0, 0), (0, 0.001), (0, 0.002)])
        assert not result.valid
        assert any(i.code == "ALL_COLLINEAR" for i in result.errors)

    def test_self_intersection_repaired(self):
        result = validate_ring(BOWTIE)
        assert result.valid
        assert any(i.code == "SELF_INTERSECTION" for i in result.warnings)
        assert any(i.code == "AUTO_REPAIRED" for i in result.issues)
        assert is_simple_ring(result.ring)

    def test_self_intersection_without_fix(self):
        result = validate_ring(BOWTIE, auto_fix=False)
        assert not result.valid
        assert result.ring is None


class TestSelfIntersection:
    def test_square_is_simple(self, square_ring):
        assert is_simple_ring(square_ring(100))

    def test_bowtie_is_not_simple(self):
        assert not is_simple_ring(normalize_ring(BOWTIE))

    def test_repair_returns_simple_ring(self):
        repaired = repair_self_intersections(normalize_ring(BOWTIE))
        assert repaired is not None
        assert is_simple_ring(repaired)
        assert repaired[0] == repaired[-1]

    def test_repair_leaves_valid_ring_alone(self, square_ring):
        ring = square_ring(100)
        repaired = repair_self_intersections(ring)
        assert ring_area_sq_m(repaired) == pytest.approx(ring_area_sq_m(ring), rel=1e-6)


class TestContainment:
    def test_inner_inside(self, square_ring):
        assert contains_polygon(square_ring(100), square_ring(20))

    def test_far_away(self, square_ring):
        assert not contains_polygon(square_ring(100), square_ring(20, center=(500, 0)))

    def test_centroid_only_by_default(self, square_ring):
        outer = square_ring(100)
        straddling = square_ring(80, center=(30, 0))
        assert contains_polygon(outer, straddling)
        assert not contains_polygon(outer, straddling, strict=True)

    def test_strict_full_containment(self, square_ring):
        assert contains_polygon(square_ring(100), square_ring(20), strict=True)

    def test_malformed_ring_is_not_contained(self, square_ring):
        assert not contains_polygon(square_ring(100), [])


class TestMeasurement:
    def test_area_of_square(self, square_ring):
        assert ring_area_sq_m(square_ring(100)) == pytest.approx(10_000, rel=1e-4)

    def test_area_of_short_ring(self):
        assert ring_area_sq_m([LatLng(0, 0), LatLng(0, 1)]) == 0.0

    def test_centroid_of_square(self, square_ring, origin):
        c = ring_centroid(square_ring(100))
        assert c.lat == pytest.approx(origin.lat, abs=1e-9)
        assert c.lng == pytest.approx(origin.lng, abs=1e-9)

    def test_simplify_drops_collinear_vertices(self, metre_ring):
        ring = metre_ring([(0, 0), (50, 0), (100, 0), (100, 50), (100, 100), (0, 100)])
        assert len(ring) == 7
        simplified = simplify_ring(ring, tolerance_m=1.0)
        assert len(simplified) == 5
        assert ring_area_sq_m(simplified) == pytest.approx(10_000, rel=1e-3)

    def test_simplify_zero_tolerance_is_identity(self, square_ring):
        ring = square_ring(100)
        assert simplify_ring(ring, 0) == ring
