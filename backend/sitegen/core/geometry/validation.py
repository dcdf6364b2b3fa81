"""Geographic ring normalization, validation, and measurement.

This module catches bad boundary input BEFORE it reaches the layout
pipeline, producing clear error messages instead of cryptic topology
exceptions further downstream.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Mapping, Sequence

from shapely.errors import GEOSException
from shapely.geometry import LinearRing, Polygon
from shapely.validation import explain_validity, make_valid

from sitegen.core.geometry.projection import LatLng, LocalProjection
from sitegen.core.geometry.safe_ops import largest_polygon

logger = logging.getLogger(__name__)


class InvalidRingError(ValueError):
    """Raised when a coordinate path cannot be turned into a valid ring."""


class ValidationSeverity(Enum):
    ERROR = auto()    # ring is rejected
    WARNING = auto()  # fixed automatically
    INFO = auto()     # note about an applied fix


@dataclass
class GeometryIssue:
    severity: ValidationSeverity
    code: str
    message: str
    location: LatLng | None = None


@dataclass
class ValidationResult:
    ring: list[LatLng] | None
    issues: list[GeometryIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not any(i.severity == ValidationSeverity.ERROR for i in self.issues)

    @property
    def errors(self) -> list[GeometryIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.ERROR]

    @property
    def warnings(self) -> list[GeometryIssue]:
        return [i for i in self.issues if i.severity == ValidationSeverity.WARNING]


# ── 1. Point coercion ──────────────────────────────────────────────────

def to_latlng(point: LatLng | Mapping | Sequence[float]) -> LatLng:
    """Accept a LatLng, a ``{lat, lng}`` mapping, or a ``(lat, lng)`` pair."""
    if isinstance(point, LatLng):
        return point
    try:
        if isinstance(point, Mapping):
            lat = point["lat"] if "lat" in point else point["latitude"]
            lng = point["lng"] if "lng" in point else point["longitude"]
        else:
            lat, lng = point
        return LatLng(lat=float(lat), lng=float(lng))
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidRingError(f"Invalid coordinate {point!r}: {e}") from e


# ── 2. Ring normalization ──────────────────────────────────────────────

def normalize_ring(path: Iterable) -> list[LatLng]:
    """Turn a coordinate path into a closed ring.

    - Rejects out-of-range or non-finite coordinates
    - Removes duplicate consecutive points
    - Requires at least 3 distinct vertices
    - Closes the ring (first == last)

    Normalizing an already-normalized ring returns an equal ring.
    """
    points = [to_latlng(p) for p in path]
    if not points:
        raise InvalidRingError("Cannot normalize empty path")

    deduped = _deduplicate_consecutive(points)
    if len(deduped) > 1 and deduped[0] == deduped[-1]:
        deduped = deduped[:-1]

    if len(deduped) < 3:
        raise InvalidRingError(
            f"Path must have at least 3 non-duplicate points, got {len(deduped)}"
        )

    return deduped + [deduped[0]]


def validate_ring(path: Iterable, auto_fix: bool = True) -> ValidationResult:
    """Full validation pipeline for a geographic ring.

    Steps:
    1. Coerce and range-check every point
    2. Drop consecutive duplicates and close the ring
    3. Reject collinear (zero-area) rings
    4. Detect self-intersections and optionally repair them

    Returns a ValidationResult with the (possibly repaired) ring and all
    issues found. Never raises for bad input.
    """
    issues: list[GeometryIssue] = []

    try:
        raw = [to_latlng(p) for p in path]
    except InvalidRingError as e:
        issues.append(GeometryIssue(ValidationSeverity.ERROR, "INVALID_COORD", str(e)))
        return ValidationResult(ring=None, issues=issues)

    if len(raw) < 3:
        issues.append(GeometryIssue(
            ValidationSeverity.ERROR,
            "TOO_FEW_POINTS",
            f"Need at least 3 points for a polygon, got {len(raw)}",
        ))
        return ValidationResult(ring=None, issues=issues)

    for i in range(len(raw) - 1):
        if raw[i] == raw[i + 1]:
            issues.append(GeometryIssue(
                ValidationSeverity.WARNING,
                "CONSECUTIVE_DUPLICATE",
                f"Points {i} and {i+1} are identical at ({raw[i].lat}, {raw[i].lng})",
                location=raw[i],
            ))

    if raw[0] != raw[-1]:
        issues.append(GeometryIssue(
            ValidationSeverity.WARNING,
            "AUTO_CLOSED",
            "Appended closing point (first and last points differed)",
            location=raw[-1],
        ))

    try:
        ring = normalize_ring(raw)
    except InvalidRingError as e:
        issues.append(GeometryIssue(ValidationSeverity.ERROR, "DEGENERATE_AFTER_DEDUP", str(e)))
        return ValidationResult(ring=None, issues=issues)

    if _all_collinear(ring[:-1]):
        issues.append(GeometryIssue(
            ValidationSeverity.ERROR,
            "ALL_COLLINEAR",
            "All points are collinear: polygon would have zero area",
        ))
        return ValidationResult(ring=None, issues=issues)

    if not is_simple_ring(ring):
        issues.append(GeometryIssue(
            ValidationSeverity.WARNING if auto_fix else ValidationSeverity.ERROR,
            "SELF_INTERSECTION",
            f"Ring crosses itself: {explain_validity(Polygon(_lnglat(ring)))}",
        ))
        if not auto_fix:
            return ValidationResult(ring=None, issues=issues)

        repaired = repair_self_intersections(ring)
        if repaired is None:
            issues.append(GeometryIssue(
                ValidationSeverity.ERROR,
                "UNREPAIRABLE",
                "Self-intersecting ring could not be repaired",
            ))
            return ValidationResult(ring=None, issues=issues)

        issues.append(GeometryIssue(
            ValidationSeverity.INFO,
            "AUTO_REPAIRED",
            "Ring was repaired with make_valid(); the largest piece was kept",
        ))
        ring = repaired

    return ValidationResult(ring=ring, issues=issues)


# ── 3. Self-intersection ───────────────────────────────────────────────

def is_simple_ring(ring: Sequence[LatLng]) -> bool:
    """True when the ring does not cross or touch itself."""
    coords = _lnglat(ring)
    if len(coords) < 4:
        return False
    try:
        return LinearRing(coords).is_simple
    except (GEOSException, ValueError):
        return False


def repair_self_intersections(ring: Sequence[LatLng]) -> list[LatLng] | None:
    """Best-effort repair of a self-intersecting ring.

    The ring is split into valid pieces and the largest one is returned.
    Returns None when no polygonal piece survives; this is a known
    limitation, callers must treat it as "unrepairable".
    """
    try:
        fixed = make_valid(Polygon(_lnglat(ring)))
    except (GEOSException, ValueError) as e:
        logger.debug("make_valid failed on ring: %s", e)
        return None

    largest = largest_polygon(fixed)
    if largest is None:
        return None
    try:
        return normalize_ring(
            LatLng(lat=lat, lng=lng) for lng, lat in largest.exterior.coords
        )
    except InvalidRingError:
        return None


# ── 4. Containment and measurement ─────────────────────────────────────

def contains_polygon(
    outer: Sequence[LatLng],
    inner: Sequence[LatLng],
    strict: bool = False,
) -> bool:
    """Check whether ``inner`` lies inside ``outer``.

    By default only the centroid of ``inner`` is tested (point-in-polygon),
    a practical approximation of full containment. ``strict=True`` requires
    every part of ``inner`` to be covered. Never raises; malformed rings
    are reported as not contained.
    """
    try:
        outer_poly = Polygon(_lnglat(outer))
        inner_poly = Polygon(_lnglat(inner))
        if outer_poly.is_empty or inner_poly.is_empty:
            return False
        if strict:
            return make_valid(outer_poly).covers(inner_poly)
        return outer_poly.covers(inner_poly.centroid)
    except (GEOSException, ValueError, TypeError) as e:
        logger.warning("Error checking polygon containment: %s", e)
        return False


def ring_area_sq_m(ring: Sequence[LatLng]) -> float:
    """Planar area of a ring in square metres (local projection)."""
    if len(ring) < 3:
        return 0.0
    projection = LocalProjection.from_ring(ring)
    return abs(projection.to_polygon(ring).area)


def ring_centroid(ring: Sequence[LatLng]) -> LatLng:
    """Area centroid of the ring, or the vertex average for degenerate rings."""
    coords = _lnglat(ring)
    if len(coords) >= 3:
        poly = Polygon(coords)
        if poly.area > 0:
            c = poly.centroid
            return LatLng(lat=c.y, lng=c.x)

    distinct = coords[:-1] if len(coords) > 1 and coords[0] == coords[-1] else coords
    if not distinct:
        raise InvalidRingError("Cannot compute the centroid of an empty ring")
    return LatLng(
        lat=sum(lat for _, lat in distinct) / len(distinct),
        lng=sum(lng for lng, _ in distinct) / len(distinct),
    )


def simplify_ring(ring: Sequence[LatLng], tolerance_m: float) -> list[LatLng]:
    """Douglas-Peucker simplification with a tolerance in metres."""
    if len(ring) <= 4 or tolerance_m <= 0:
        return list(ring)

    projection = LocalProjection.from_ring(ring)
    simplified = projection.to_polygon(ring).simplify(tolerance_m, preserve_topology=True)
    if simplified.is_empty or simplified.geom_type != "Polygon":
        return list(ring)
    return normalize_ring(projection.unproject_coords(simplified.exterior.coords))


# ── Helpers ─────────────────────────────────────────────────────────────

def _lnglat(ring: Sequence[LatLng]) -> list[tuple[float, float]]:
    return [(p.lng, p.lat) for p in ring]


def _deduplicate_consecutive(points: list[LatLng]) -> list[LatLng]:
    if not points:
        return []
    result = [points[0]]
    for p in points[1:]:
        if p != result[-1]:
            result.append(p)
    return result


def _all_collinear(points: Sequence[LatLng]) -> bool:
    """Zero-area test: cross product of every point against the first edge."""
    if len(points) < 3:
        return True
    x0, y0 = points[0].lng, points[0].lat
    x1, y1 = points[1].lng, points[1].lat
    for p in points[2:]:
        cross = (x1 - x0) * (p.lat - y0) - (y1 - y0) * (p.lng - x0)
        if abs(cross) > 1e-14:
            return False
    return True
