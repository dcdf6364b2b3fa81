"""Road corridor offsetting and polygon inset/outset.

A road is a 1D centreline; its corridor is the centreline buffered by half
the road width. This module handles the three geometric problems of the
subdivider and the building placer:

1. CHAIN MERGING: joining graph edges into polylines before buffering
2. CORRIDOR UNION: merging overlapping corridors at junctions
3. INSETS: shrinking parcels by a setback, with a scale fallback
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterable

from shapely.affinity import scale
from shapely.geometry import LineString, MultiLineString, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import linemerge

from sitegen.core.geometry.safe_ops import attempt, safe_buffer, safe_union


class JoinStyle(Enum):
    """How two offset road edges connect at a bend."""
    MITRE = auto()   # sharp point
    BEVEL = auto()   # flat cut at corner
    ROUND = auto()   # rounded corner


class CapStyle(Enum):
    """How a corridor terminates at a dead end."""
    FLAT = auto()    # square cut at endpoint
    SQUARE = auto()  # extends by half-width past endpoint
    ROUND = auto()   # semicircle


Segment = tuple[tuple[float, float], tuple[float, float]]


# ── 1. Single-road corridor ────────────────────────────────────────────

@dataclass
class RoadCorridor:
    """A road with a computed carriageway polygon from its centreline."""

    centerline: LineString
    width: float
    join: JoinStyle = JoinStyle.ROUND
    cap: CapStyle = CapStyle.ROUND

    @property
    def half_width(self) -> float:
        return self.width / 2

    @property
    def polygon(self) -> Polygon | None:
        """Centreline buffered by half the road width, or None if degenerate."""
        return safe_buffer(
            self.centerline,
            self.half_width,
            cap_style=self.cap.name.lower(),
            join_style=self.join.name.lower(),
        )


# ── 2. Chains and corridor union ───────────────────────────────────────

def merge_centerlines(segments: Iterable[Segment], tolerance: float = 0.0) -> list[LineString]:
    """Join graph edges into maximal polylines, then simplify each one.

    Simplifying bounds the vertex count fed to the buffer operation;
    a two-point segment is returned unchanged.
    """
    lines = [LineString([a, b]) for a, b in segments if a != b]
    if not lines:
        return []

    merged = linemerge(MultiLineString(lines))
    chains = list(merged.geoms) if hasattr(merged, "geoms") else [merged]

    if tolerance > 0:
        chains = [c.simplify(tolerance, preserve_topology=False) for c in chains]
    return [c for c in chains if not c.is_empty and c.length > 0]


def corridor_union(corridors: list[RoadCorridor]) -> BaseGeometry | None:
    """Merge corridor polygons into one road surface.

    Each centreline is buffered independently, then the polygons are
    unioned so junction overlaps count once. Returns None if nothing
    usable came out.
    """
    return safe_union(c.polygon for c in corridors)


# ── 3. Insets for parcels and building envelopes ───────────────────────

def offset_polygon_inward(polygon: Polygon, distance: float) -> BaseGeometry | None:
    """Shrink a polygon by ``distance``. Returns None if it collapses.

    The result may be a MultiPolygon when a narrow waist pinches off.
    """
    if distance <= 0:
        return polygon
    return safe_buffer(polygon, -distance, join_style="mitre", mitre_limit=2.0)


def scale_about_centroid(polygon: Polygon, factor: float) -> Polygon | None:
    """Uniformly scale a polygon around its centroid."""
    c = polygon.centroid
    return attempt(scale, polygon, xfact=factor, yfact=factor, origin=(c.x, c.y))


# ── Helpers ─────────────────────────────────────────────────────────────

def bearing_degrees(origin: tuple[float, float], target: tuple[float, float]) -> float:
    """Compass bearing from origin to target, clockwise from north in [0, 360)."""
    dx = target[0] - origin[0]
    dy = target[1] - origin[1]
    if dx == 0 and dy == 0:
        return 0.0
    return math.degrees(math.atan2(dx, dy)) % 360.0


def direction_from_bearing(bearing: float) -> tuple[float, float]:
    """Unit vector (east, north) for a compass bearing in degrees."""
    rad = math.radians(bearing)
    return (math.sin(rad), math.cos(rad))
