"""Building placement on developable parcels.

One footprint per parcel at most. The footprint faces the nearest road,
shrinks until it fits the buildable region, and keeps a clear gap of the
configured spacing to every building placed before it.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable

from shapely.affinity import rotate
from shapely.geometry import MultiLineString, Point, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import nearest_points
from shapely.prepared import prep

from sitegen.core.geometry.offset import bearing_degrees, offset_polygon_inward, scale_about_centroid
from sitegen.core.geometry.safe_ops import largest_polygon, safe_difference, safe_intersection
from sitegen.core.layout.parcels import road_surface
from sitegen.core.layout.rng import Mulberry32
from sitegen.core.layout.roads import RoadNetwork
from sitegen.core.layout.settings import BuildingShape, LayoutSettings

logger = logging.getLogger(__name__)

MAX_FIT_ATTEMPTS = 8
SHRINK_FACTOR = 0.92
FALLBACK_SCALE = 0.92

ZoneFilter = Callable[[Polygon], bool]


@dataclass(frozen=True)
class Building:
    footprint: Polygon
    floors: int
    rotation: float          # degrees clockwise from north
    shape: BuildingShape
    parcel_index: int

    @property
    def area(self) -> float:
        return self.footprint.area

    @property
    def gross_floor_area(self) -> float:
        return self.footprint.area * self.floors


# ── 1. Buildable region ────────────────────────────────────────────────

def buildable_region(
    parcel: Polygon,
    settings: LayoutSettings,
    envelope: BaseGeometry | None = None,
    clearance: BaseGeometry | None = None,
) -> Polygon | None:
    """Where a footprint may go inside ``parcel``.

    Setback shrink, else a 92 % scale about the centroid, else the raw
    parcel. Only the largest piece is kept. The result is then clipped to
    the site envelope and has the road clearance zone removed.
    """
    region = largest_polygon(offset_polygon_inward(parcel, settings.building_setback))
    if region is None:
        region = scale_about_centroid(parcel, FALLBACK_SCALE)
    if region is None or region.is_empty:
        region = parcel

    if envelope is not None:
        region = largest_polygon(safe_intersection(region, envelope))
    if region is not None and clearance is not None:
        region = largest_polygon(safe_difference(region, clearance))
    return region


def site_envelope(boundary: Polygon, settings: LayoutSettings) -> BaseGeometry | None:
    """The boundary shrunk by the site setback (None if nothing is left)."""
    return offset_polygon_inward(boundary, settings.site_setback)


def road_clearance(network: RoadNetwork, settings: LayoutSettings) -> BaseGeometry | None:
    """Road corridors widened by the road setback on each side."""
    if settings.road_setback <= 0 or not network.graph.edges:
        return None
    return road_surface(network, settings, extra_width=settings.road_setback)


# ── 2. Footprints ──────────────────────────────────────────────────────

def footprint_outline(
    width: float,
    depth: float,
    shape: BuildingShape,
    rng: Mulberry32,
) -> list[tuple[float, float]]:
    """Footprint ring centred on the origin, front facing +y (north)."""
    xmin, xmax = -width / 2, width / 2
    ymin, ymax = -depth / 2, depth / 2

    if shape == BuildingShape.L_SHAPE:
        xmid = xmin + width * (0.4 + rng.random() * 0.2)
        ymid = ymin + depth * (0.4 + rng.random() * 0.2)
        return [(xmin, ymin), (xmax, ymin), (xmax, ymid), (xmid, ymid),
                (xmid, ymax), (xmin, ymax)]

    if shape == BuildingShape.T_SHAPE:
        x1 = xmin + width * 0.25
        x2 = xmin + width * 0.75
        ymid = ymin + depth * 0.5
        return [(xmin, ymax), (xmax, ymax), (xmax, ymid), (x2, ymid),
                (x2, ymin), (x1, ymin), (x1, ymid), (xmin, ymid)]

    return [(xmin, ymin), (xmax, ymin), (xmax, ymax), (xmin, ymax)]


def oriented_footprint(
    center: tuple[float, float],
    outline: list[tuple[float, float]],
    bearing: float,
    scale: float = 1.0,
) -> Polygon:
    cx, cy = center
    local = Polygon([(cx + x * scale, cy + y * scale) for x, y in outline])
    # Shapely rotates counter-clockwise; bearings run clockwise.
    return rotate(local, -bearing, origin=(cx, cy))


def road_bearing(origin: tuple[float, float], roads: MultiLineString | None) -> float:
    """Bearing from ``origin`` to the closest point on the road network."""
    if roads is None:
        return 0.0
    here = Point(origin)
    _, on_road = nearest_points(here, roads)
    return bearing_degrees(origin, (on_road.x, on_road.y))


# ── 3. Placement ───────────────────────────────────────────────────────

def place_building(
    parcel: Polygon,
    parcel_index: int,
    roads: MultiLineString | None,
    settings: LayoutSettings,
    rng: Mulberry32,
    envelope: BaseGeometry | None = None,
    clearance: BaseGeometry | None = None,
    placed_buffers: list[BaseGeometry] | None = None,
    zone_filter: ZoneFilter | None = None,
    zone_rejections: set[int] | None = None,
) -> Building | None:
    """Try to fit one building on ``parcel``. Returns None when nothing fits.

    A parcel left empty after a candidate failed ``zone_filter`` is
    recorded in ``zone_rejections``.
    """
    region = buildable_region(parcel, settings, envelope, clearance)
    if region is None or region.area < settings.min_building_size:
        return None

    c = parcel.centroid
    if not region.contains(c):
        c = region.representative_point()
    center = (c.x, c.y)
    bearing = road_bearing(center, roads)

    shape = settings.building_shape
    if shape == BuildingShape.MIXED:
        shape = rng.choice([BuildingShape.RECTANGLE, BuildingShape.L_SHAPE, BuildingShape.T_SHAPE])

    width = rng.uniform(*settings.building_width)
    depth = rng.uniform(*settings.building_depth)
    if width * depth > settings.max_building_size:
        k = math.sqrt(settings.max_building_size / (width * depth))
        width, depth = width * k, depth * k
    outline = footprint_outline(width, depth, shape, rng)
    floors = rng.randint(*settings.floors)

    fits = prep(region)
    inside_site = prep(envelope) if envelope is not None else None
    half_gap = settings.spacing / 2
    placed_buffers = placed_buffers if placed_buffers is not None else []

    scale = 1.0
    zone_blocked = False
    for _ in range(MAX_FIT_ATTEMPTS):
        footprint = oriented_footprint(center, outline, bearing, scale)
        if footprint.area < settings.min_building_size:
            break

        if not _acceptable(footprint, region, fits, inside_site, half_gap, placed_buffers, settings):
            scale *= SHRINK_FACTOR
            continue
        if zone_filter is not None and not zone_filter(footprint):
            zone_blocked = True
            scale *= SHRINK_FACTOR
            continue
        return Building(
            footprint=footprint,
            floors=floors,
            rotation=bearing,
            shape=shape,
            parcel_index=parcel_index,
        )

    if zone_blocked and zone_rejections is not None:
        zone_rejections.add(parcel_index)
    logger.debug("No building fits parcel %d", parcel_index)
    return None


def _acceptable(footprint, region, fits, inside_site, half_gap, placed_buffers, settings) -> bool:
    if not fits.intersects(footprint):
        return False
    overlap = safe_intersection(footprint, region)
    if overlap is None or overlap.area < settings.fit_threshold * footprint.area:
        return False
    if inside_site is not None and not inside_site.covers(footprint):
        return False
    halo = footprint.buffer(half_gap)
    return all(halo.disjoint(other) for other in placed_buffers)


def place_buildings(
    parcels: list[Polygon],
    network: RoadNetwork,
    settings: LayoutSettings,
    rng: Mulberry32,
    boundary: Polygon,
    zone_filter: ZoneFilter | None = None,
    zone_rejections: set[int] | None = None,
) -> list[Building]:
    """Place at most one building per developable parcel, in parcel order."""
    envelope = site_envelope(boundary, settings)
    if envelope is None:
        logger.info("Site setback leaves no buildable area; no buildings placed")
        return []
    clearance = road_clearance(network, settings)

    buildings: list[Building] = []
    buffers: list[BaseGeometry] = []
    for i, parcel in enumerate(parcels):
        building = place_building(
            parcel, i, network.lines, settings, rng,
            envelope=envelope,
            clearance=clearance,
            placed_buffers=buffers,
            zone_filter=zone_filter,
            zone_rejections=zone_rejections,
        )
        if building is not None:
            buildings.append(building)
            buffers.append(building.footprint.buffer(settings.spacing / 2))

    logger.info("Buildings: %d placed on %d developable parcels", len(buildings), len(parcels))
    return buildings
