"""Zone kinds, zone validation, and building/zone compatibility.

Zones are drawn by the user in geographic coordinates; everything here
works on ``LatLng`` rings and never raises for bad geometry. Problems are
reported as human-readable reasons instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

from sitegen.core.geometry.projection import LatLng, LocalProjection
from sitegen.core.geometry.validation import (
    InvalidRingError,
    contains_polygon,
    is_simple_ring,
    normalize_ring,
    repair_self_intersections,
    ring_area_sq_m,
)
from sitegen.utils.units import sq_m_to_acres

logger = logging.getLogger(__name__)


class ZoneKind(str, Enum):
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    GREEN_SPACE = "green_space"
    AMENITY = "amenity"
    SOLAR = "solar"


@dataclass(frozen=True)
class ZoneKindConfig:
    name: str
    min_area_sq_m: float
    description: str
    max_area_sq_m: float | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "minAreaSqM": self.min_area_sq_m,
            "maxAreaSqM": self.max_area_sq_m,
            "description": self.description,
        }


ZONE_KIND_CONFIGS: dict[ZoneKind, ZoneKindConfig] = {
    ZoneKind.RESIDENTIAL: ZoneKindConfig("Residential", 100, "Housing and residential development"),
    ZoneKind.COMMERCIAL: ZoneKindConfig("Commercial", 200, "Business and commercial development"),
    ZoneKind.GREEN_SPACE: ZoneKindConfig("Green Space", 500, "Parks, recreation, and natural areas"),
    ZoneKind.AMENITY: ZoneKindConfig("Amenity", 100, "Community facilities and public services"),
    ZoneKind.SOLAR: ZoneKindConfig("Solar", 1000, "Solar panel installations"),
}

# Building type -> zone kinds it may be placed in.
COMPATIBLE_ZONES: dict[str, tuple[ZoneKind, ...]] = {
    "residential": (ZoneKind.RESIDENTIAL,),
    "commercial": (ZoneKind.COMMERCIAL,),
    "house_detached": (ZoneKind.RESIDENTIAL,),
    "flat_block": (ZoneKind.RESIDENTIAL, ZoneKind.COMMERCIAL),
    "office": (ZoneKind.COMMERCIAL,),
}
DEFAULT_COMPATIBLE_ZONES = (ZoneKind.RESIDENTIAL, ZoneKind.COMMERCIAL, ZoneKind.AMENITY)


@dataclass
class Zone:
    ring: list[LatLng]
    kind: ZoneKind


@dataclass
class ZoneGeometry:
    outer: list[LatLng]
    holes: list[list[LatLng]] = field(default_factory=list)


@dataclass
class PlacementValidation:
    is_valid: bool
    reasons: list[str] = field(default_factory=list)
    compatible_zone: ZoneKind | None = None

    def to_dict(self) -> dict:
        return {
            "isValid": self.is_valid,
            "reasons": list(self.reasons),
            "compatibleZone": self.compatible_zone.value if self.compatible_zone else None,
        }


@dataclass
class ZoneValidationResult:
    is_valid: bool
    reasons: list[str] = field(default_factory=list)
    zone_kind: ZoneKind | None = None
    suggestions: list[str] = field(default_factory=list)
    repaired_geometry: list[LatLng] | None = None

    def to_dict(self) -> dict:
        return {
            "isValid": self.is_valid,
            "reasons": list(self.reasons),
            "zoneKind": self.zone_kind.value if self.zone_kind else None,
            "suggestions": list(self.suggestions),
            "repairedGeometry": (
                [p.to_dict() for p in self.repaired_geometry] if self.repaired_geometry else None
            ),
        }


# ── 1. Building placement ──────────────────────────────────────────────

def compatible_zone_kinds(building_type: str) -> tuple[ZoneKind, ...]:
    return COMPATIBLE_ZONES.get(building_type, DEFAULT_COMPATIBLE_ZONES)


def validate_building_placement(
    footprint: Sequence[LatLng],
    building_type: str,
    zones: Iterable[Zone],
    strict: bool = False,
) -> PlacementValidation:
    """Check that a footprint sits in a zone that allows its building type.

    Zones are tried in order; the first containing zone of a compatible
    kind wins. A footprint outside every zone is always invalid.
    """
    allowed = compatible_zone_kinds(building_type)
    reasons: list[str] = []

    for zone in zones:
        if not contains_polygon(zone.ring, footprint, strict=strict):
            continue
        if zone.kind in allowed:
            return PlacementValidation(is_valid=True, compatible_zone=zone.kind)
        reasons.append(
            f"Building type '{building_type}' is not compatible with {zone.kind.value} zone. "
            f"Expected one of: {', '.join(k.value for k in allowed)}"
        )

    if not reasons:
        reasons.append("Building must be placed within a zoned area.")
    return PlacementValidation(is_valid=False, reasons=reasons)


# ── 2. Zone validation ─────────────────────────────────────────────────

def zone_area_sq_m(geometry: ZoneGeometry) -> float:
    """Outer area minus holes, in square metres."""
    area = ring_area_sq_m(geometry.outer)
    for hole in geometry.holes:
        area -= ring_area_sq_m(hole)
    return max(area, 0.0)


def validate_zone_geometry(
    geometry: ZoneGeometry,
    min_area_sq_m: float = 1.0,
    max_area_sq_m: float | None = None,
    require_simple: bool = True,
    min_vertices: int = 3,
) -> ZoneValidationResult:
    reasons: list[str] = []

    if len(geometry.outer) < min_vertices + 1:
        reasons.append(f"Zone must have at least {min_vertices} vertices")

    area = zone_area_sq_m(geometry)
    if area < min_area_sq_m:
        reasons.append(
            f"Zone area must be at least {min_area_sq_m:g} m² "
            f"({sq_m_to_acres(min_area_sq_m):.3f} acres)"
        )
    if max_area_sq_m and area > max_area_sq_m:
        reasons.append(
            f"Zone area cannot exceed {max_area_sq_m:g} m² "
            f"({sq_m_to_acres(max_area_sq_m):.3f} acres)"
        )

    if require_simple and not is_simple_ring(geometry.outer):
        reasons.append("Zone cannot have self-intersections")
        repaired = repair_self_intersections(geometry.outer)
        if repaired is not None:
            return ZoneValidationResult(is_valid=False, reasons=reasons, repaired_geometry=repaired)

    for i, hole in enumerate(geometry.holes, start=1):
        if len(hole) < min_vertices + 1:
            reasons.append(f"Hole {i} must have at least {min_vertices} vertices")
        if require_simple and not is_simple_ring(hole):
            reasons.append(f"Hole {i} cannot have self-intersections")

    return ZoneValidationResult(is_valid=not reasons, reasons=reasons)


def validate_zone_boundary(zone_ring: Sequence[LatLng], boundary_ring: Sequence[LatLng]) -> str | None:
    """Reason the zone falls outside the boundary, or None when it is inside."""
    if not contains_polygon(boundary_ring, zone_ring):
        return "Zone must be completely within the project boundary"
    return None


def validate_zone_conflicts(zone_ring: Sequence[LatLng], existing: Iterable[Zone]) -> list[str]:
    conflicts = []
    for other in existing:
        if contains_polygon(other.ring, zone_ring) or contains_polygon(zone_ring, other.ring):
            conflicts.append(f"Zone overlaps with existing {other.kind.value} zone")
    return conflicts


def validate_zone(
    geometry: ZoneGeometry,
    kind: ZoneKind,
    boundary_ring: Sequence[LatLng],
    existing: Iterable[Zone] = (),
    allow_holes: bool = False,
) -> ZoneValidationResult:
    """Geometry, boundary, overlap and hole rules for one zone, with suggestions."""
    config = ZONE_KIND_CONFIGS[kind]
    geom = validate_zone_geometry(
        geometry,
        min_area_sq_m=config.min_area_sq_m,
        max_area_sq_m=config.max_area_sq_m,
    )
    reasons = list(geom.reasons)

    outside = validate_zone_boundary(geometry.outer, boundary_ring)
    if outside:
        reasons.append(outside)
    reasons.extend(validate_zone_conflicts(geometry.outer, existing))
    if not allow_holes and geometry.holes:
        reasons.append("Holes are not allowed in zones")

    suggestions = []
    if any("area" in r for r in reasons):
        suggestions.append(f"Try drawing a larger area for {config.name.lower()} zones")
    if any("boundary" in r for r in reasons):
        suggestions.append("Ensure the entire zone is within the project boundary")
    if any("self-intersections" in r for r in reasons):
        suggestions.append("Try drawing a simpler shape without crossing lines")
    if any("overlaps" in r for r in reasons):
        suggestions.append("Avoid overlapping with existing zones")

    return ZoneValidationResult(
        is_valid=not reasons,
        reasons=reasons,
        zone_kind=kind,
        suggestions=suggestions,
        repaired_geometry=geom.repaired_geometry,
    )


# ── 3. Suggestions and statistics ──────────────────────────────────────

def suggest_zone_kinds(area_sq_m: float, nearby: Iterable[ZoneKind] = ()) -> list[ZoneKind]:
    """Zone kinds whose minimum area the given area satisfies, smallest first."""
    suggestions: list[ZoneKind] = []
    if area_sq_m >= 1000:
        suggestions += [ZoneKind.SOLAR, ZoneKind.GREEN_SPACE]
    if area_sq_m >= 500:
        suggestions += [ZoneKind.COMMERCIAL, ZoneKind.GREEN_SPACE]
    if area_sq_m >= 200:
        suggestions += [ZoneKind.RESIDENTIAL, ZoneKind.COMMERCIAL, ZoneKind.AMENITY]
    if area_sq_m >= 100:
        suggestions += [ZoneKind.RESIDENTIAL, ZoneKind.AMENITY]

    nearby = set(nearby)
    if ZoneKind.RESIDENTIAL in nearby and ZoneKind.AMENITY not in suggestions:
        suggestions.append(ZoneKind.AMENITY)
    if ZoneKind.COMMERCIAL in nearby and ZoneKind.RESIDENTIAL not in suggestions:
        suggestions.append(ZoneKind.RESIDENTIAL)

    unique = list(dict.fromkeys(suggestions))
    return sorted(unique, key=lambda k: ZONE_KIND_CONFIGS[k].min_area_sq_m)


def calculate_zone_stats(geometry: ZoneGeometry, kind: ZoneKind) -> dict:
    try:
        outer = normalize_ring(geometry.outer)
    except InvalidRingError:
        logger.debug("Degenerate zone ring; reporting zero stats")
        area, perimeter = 0.0, 0.0
    else:
        area = zone_area_sq_m(ZoneGeometry(outer=outer, holes=geometry.holes))
        perimeter = LocalProjection.from_ring(outer).to_polygon(outer).exterior.length

    return {
        "areaSqM": area,
        "areaAcres": sq_m_to_acres(area),
        "perimeterM": perimeter,
        "zoneKind": kind.value,
        "config": ZONE_KIND_CONFIGS[kind].to_dict(),
    }
