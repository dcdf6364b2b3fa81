"""Tests for zone rules: building compatibility, zone validation and stats."""

import pytest

from sitegen.core.zoning.rules import (
    PlacementValidation,
    Zone,
    ZoneGeometry,
    ZoneKind,
    calculate_zone_stats,
    compatible_zone_kinds,
    suggest_zone_kinds,
    validate_building_placement,
    validate_zone,
    validate_zone_geometry,
)


@pytest.fixture
def zones(square_ring):
    """A residential zone west of the origin and a commercial zone east of it."""
    return [
        Zone(ring=square_ring(100, center=(-60, 0)), kind=ZoneKind.RESIDENTIAL),
        Zone(ring=square_ring(100, center=(60, 0)), kind=ZoneKind.COMMERCIAL),
    ]


class TestBuildingPlacement:
    def test_residential_in_residential_zone(self, zones, square_ring):
        result = validate_building_placement(square_ring(10, center=(-60, 0)), "residential", zones)
        assert result.is_valid
        assert result.compatible_zone == ZoneKind.RESIDENTIAL
        assert result.reasons == []

    def test_commercial_in_residential_zone(self, zones, square_ring):
        result = validate_building_placement(square_ring(10, center=(-60, 0)), "commercial", zones)
        assert not result.is_valid
        assert result.compatible_zone is None
        assert result.reasons == [
            "Building type 'commercial' is not compatible with residential zone. "
            "Expected one of: commercial"
        ]

    def test_detached_house_needs_residential_zone(self, square_ring):
        footprint = square_ring(12)
        commercial = [Zone(ring=square_ring(100), kind=ZoneKind.COMMERCIAL)]
        residential = [Zone(ring=square_ring(100), kind=ZoneKind.RESIDENTIAL)]

        rejected = validate_building_placement(footprint, "house_detached", commercial)
        assert rejected.is_valid is False
        assert "not compatible" in rejected.reasons[0]

        accepted = validate_building_placement(footprint, "house_detached", residential)
        assert accepted.is_valid is True
        assert accepted.compatible_zone == ZoneKind.RESIDENTIAL

    def test_outside_every_zone(self, zones, square_ring):
        result = validate_building_placement(square_ring(10, center=(0, 500)), "residential", zones)
        assert not result.is_valid
        assert result.reasons == ["Building must be placed within a zoned area."]

    def test_no_zones(self, square_ring):
        result = validate_building_placement(square_ring(10), "office", [])
        assert not result.is_valid

    def test_flat_block_fits_both(self, zones, square_ring):
        west = validate_building_placement(square_ring(10, center=(-60, 0)), "flat_block", zones)
        east = validate_building_placement(square_ring(10, center=(60, 0)), "flat_block", zones)
        assert west.compatible_zone == ZoneKind.RESIDENTIAL
        assert east.compatible_zone == ZoneKind.COMMERCIAL

    def test_unknown_type_uses_default_kinds(self, square_ring):
        amenity = [Zone(ring=square_ring(100), kind=ZoneKind.AMENITY)]
        assert validate_building_placement(square_ring(10), "warehouse", amenity).is_valid
        solar = [Zone(ring=square_ring(100), kind=ZoneKind.SOLAR)]
        assert not validate_building_placement(square_ring(10), "warehouse", solar).is_valid

    def test_later_zone_can_match(self, square_ring):
        nested = [
            Zone(ring=square_ring(200), kind=ZoneKind.COMMERCIAL),
            Zone(ring=square_ring(100), kind=ZoneKind.RESIDENTIAL),
        ]
        result = validate_building_placement(square_ring(10), "house_detached", nested)
        assert result.is_valid
        assert result.compatible_zone == ZoneKind.RESIDENTIAL

    def test_strict_needs_full_containment(self, square_ring):
        zone = [Zone(ring=square_ring(100), kind=ZoneKind.RESIDENTIAL)]
        straddling = square_ring(20, center=(45, 0))
        assert validate_building_placement(straddling, "residential", zone).is_valid
        assert not validate_building_placement(straddling, "residential", zone, strict=True).is_valid

    def test_compatible_kinds(self):
        assert compatible_zone_kinds("office") == (ZoneKind.COMMERCIAL,)
        assert compatible_zone_kinds("anything") == (
            ZoneKind.RESIDENTIAL, ZoneKind.COMMERCIAL, ZoneKind.AMENITY,
        )

    def test_to_dict(self):
        result = PlacementValidation(is_valid=True, compatible_zone=ZoneKind.RESIDENTIAL)
        assert result.to_dict() == {"isValid": True, "reasons": [], "compatibleZone": "residential"}


class TestZoneGeometry:
    def test_too_small(self, square_ring):
        result = validate_zone_geometry(ZoneGeometry(outer=square_ring(5)), min_area_sq_m=100)
        assert not result.is_valid
        assert result.reasons == ["Zone area must be at least 100 m² (0.025 acres)"]

    def test_large_enough(self, square_ring):
        assert validate_zone_geometry(ZoneGeometry(outer=square_ring(20)), min_area_sq_m=100).is_valid

    def test_too_large(self, square_ring):
        result = validate_zone_geometry(ZoneGeometry(outer=square_ring(20)), max_area_sq_m=100)
        assert any("cannot exceed" in r for r in result.reasons)

    def test_self_intersection_is_repaired(self, metre_ring):
        bowtie = metre_ring([(0, 0), (100, 100), (100, 0), (0, 100)])
        result = validate_zone_geometry(ZoneGeometry(outer=bowtie))
        assert not result.is_valid
        assert "Zone cannot have self-intersections" in result.reasons
        assert result.repaired_geometry is not None
        assert result.repaired_geometry[0] == result.repaired_geometry[-1]


class TestValidateZone:
    @pytest.fixture
    def boundary(self, square_ring):
        return square_ring(200)

    def test_valid_zone(self, boundary, square_ring):
        result = validate_zone(ZoneGeometry(outer=square_ring(50)), ZoneKind.RESIDENTIAL, boundary)
        assert result.is_valid
        assert result.zone_kind == ZoneKind.RESIDENTIAL
        assert result.suggestions == []

    def test_outside_boundary(self, boundary, square_ring):
        outside = ZoneGeometry(outer=square_ring(50, center=(300, 0)))
        result = validate_zone(outside, ZoneKind.RESIDENTIAL, boundary)
        assert "Zone must be completely within the project boundary" in result.reasons
        assert "Ensure the entire zone is within the project boundary" in result.suggestions

    def test_overlap(self, boundary, square_ring):
        existing = [Zone(ring=square_ring(80), kind=ZoneKind.COMMERCIAL)]
        result = validate_zone(ZoneGeometry(outer=square_ring(50)), ZoneKind.RESIDENTIAL, boundary, existing)
        assert result.reasons == ["Zone overlaps with existing commercial zone"]
        assert result.suggestions == ["Avoid overlapping with existing zones"]

    def test_holes_rejected_unless_allowed(self, boundary, square_ring):
        holed = ZoneGeometry(outer=square_ring(100), holes=[square_ring(10)])
        assert "Holes are not allowed in zones" in validate_zone(holed, ZoneKind.GREEN_SPACE, boundary).reasons
        assert validate_zone(holed, ZoneKind.GREEN_SPACE, boundary, allow_holes=True).is_valid

    def test_kind_minimum_area(self, boundary, square_ring):
        result = validate_zone(ZoneGeometry(outer=square_ring(20)), ZoneKind.SOLAR, boundary)
        assert not result.is_valid
        assert result.suggestions == ["Try drawing a larger area for solar zones"]

    def test_to_dict(self, boundary, square_ring):
        data = validate_zone(ZoneGeometry(outer=square_ring(50)), ZoneKind.AMENITY, boundary).to_dict()
        assert data == {
            "isValid": True,
            "reasons": [],
            "zoneKind": "amenity",
            "suggestions": [],
            "repairedGeometry": None,
        }


class TestSuggestions:
    def test_large_area(self):
        assert suggest_zone_kinds(1500) == [
            ZoneKind.RESIDENTIAL, ZoneKind.AMENITY, ZoneKind.COMMERCIAL,
            ZoneKind.GREEN_SPACE, ZoneKind.SOLAR,
        ]

    def test_small_area(self):
        assert suggest_zone_kinds(150) == [ZoneKind.RESIDENTIAL, ZoneKind.AMENITY]

    def test_too_small(self):
        assert suggest_zone_kinds(50) == []

    def test_nearby_residential_suggests_amenity(self):
        assert suggest_zone_kinds(50, nearby=[ZoneKind.RESIDENTIAL]) == [ZoneKind.AMENITY]


class TestZoneStats:
    def test_square(self, square_ring):
        stats = calculate_zone_stats(ZoneGeometry(outer=square_ring(100)), ZoneKind.RESIDENTIAL)
        assert stats["areaSqM"] == pytest.approx(10_000, rel=1e-3)
        assert stats["perimeterM"] == pytest.approx(400, rel=1e-3)
        assert stats["areaAcres"] == pytest.approx(10_000 / 4046.86, rel=1e-3)
        assert stats["zoneKind"] == "residential"
        assert stats["config"]["name"] == "Residential"

    def test_holes_reduce_area(self, square_ring):
        holed = ZoneGeometry(outer=square_ring(100), holes=[square_ring(10)])
        assert calculate_zone_stats(holed, ZoneKind.GREEN_SPACE)["areaSqM"] == pytest.approx(9_900, rel=1e-3)

    def test_degenerate_ring(self, origin):
        stats = calculate_zone_stats(ZoneGeometry(outer=[origin]), ZoneKind.AMENITY)
        assert stats["areaSqM"] == 0.0
        assert stats["perimeterM"] == 0.0
