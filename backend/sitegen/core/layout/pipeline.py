"""End-to-end layout generation.

boundary -> projected + seeded -> roads -> blocks -> parcels
         -> {green spaces, developable parcels} -> buildings

Each stage consumes the previous stage's result and nothing is shared
between runs. Bad input raises :class:`InvalidRingError`; every other
failure inside a stage falls back locally, so a run either returns a
complete layout (possibly with empty collections) or raises once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import cached_property
from typing import Any, Iterable, Mapping, Sequence

from shapely.geometry import LineString, Polygon, mapping
from shapely.geometry.base import BaseGeometry

from sitegen.core.geometry.projection import LatLng, LocalProjection
from sitegen.core.geometry.validation import (
    InvalidRingError,
    normalize_ring,
    ring_area_sq_m,
    validate_ring,
)
from sitegen.core.layout.buildings import Building, place_buildings, site_envelope
from sitegen.core.layout.greenspace import GreenSpaceAllocation, allocate_green_space
from sitegen.core.layout.parcels import build_blocks, road_surface, subdivide_blocks
from sitegen.core.layout.rng import Mulberry32, derive_seed
from sitegen.core.layout.roads import RoadNetwork, grow_road_network
from sitegen.core.layout.settings import LayoutSettings, resolve_settings
from sitegen.core.zoning.rules import Zone, validate_building_placement
from sitegen.utils.units import sq_m_to_hectares

logger = logging.getLogger(__name__)


class UnsupportedBoundaryError(InvalidRingError):
    """The boundary is not a point list or a supported GeoJSON shape."""


# ── 1. Boundary input ──────────────────────────────────────────────────

def coerce_boundary(raw: Any) -> list[LatLng]:
    """Extract one exterior ring from a point list or a GeoJSON object.

    Accepts a sequence of ``{lat, lng}`` points, or a GeoJSON ``Feature``,
    ``FeatureCollection`` (first polygonal feature), ``Polygon`` (holes are
    ignored) or ``MultiPolygon`` (largest part).
    """
    if isinstance(raw, Mapping):
        kind = raw.get("type")
        if kind == "FeatureCollection":
            for feature in _sequence(raw.get("features"), "FeatureCollection features"):
                if not isinstance(feature, Mapping):
                    raise UnsupportedBoundaryError("FeatureCollection features must be GeoJSON objects")
                geometry = feature.get("geometry")
                if isinstance(geometry, Mapping) and geometry.get("type") in ("Polygon", "MultiPolygon"):
                    return coerce_boundary(geometry)
            raise UnsupportedBoundaryError("FeatureCollection contains no Polygon feature")
        if kind == "Feature":
            geometry = raw.get("geometry")
            if not isinstance(geometry, Mapping):
                raise UnsupportedBoundaryError("Feature has no geometry object")
            return coerce_boundary(geometry)
        if kind == "Polygon":
            return _geojson_ring(_first_ring(raw.get("coordinates")))
        if kind == "MultiPolygon":
            polygons = _sequence(raw.get("coordinates"), "MultiPolygon coordinates")
            parts = [_geojson_ring(_first_ring(p)) for p in polygons]
            if not parts:
                raise UnsupportedBoundaryError("MultiPolygon has no parts")
            return max(parts, key=ring_area_sq_m)
        raise UnsupportedBoundaryError(f"Unsupported boundary type: {kind!r}")

    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise UnsupportedBoundaryError(
            f"Boundary must be a list of points or a GeoJSON polygon, got {type(raw).__name__}"
        )
    return list(raw)


def _sequence(value, what: str) -> Sequence:
    if value is None:
        return []
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise UnsupportedBoundaryError(f"{what} must be an array, got {type(value).__name__}")
    return value


def _first_ring(coordinates) -> list:
    if not coordinates or not isinstance(coordinates, Sequence):
        raise UnsupportedBoundaryError("Polygon has no coordinates")
    return coordinates[0]


def _geojson_ring(positions) -> list[LatLng]:
    _sequence(positions, "Polygon ring")
    try:
        return normalize_ring((pos[1], pos[0]) for pos in positions)
    except (TypeError, IndexError, KeyError) as e:
        raise UnsupportedBoundaryError(f"Malformed GeoJSON position: {e}") from e


def prepare_boundary(raw: Any, max_points: int | None = None) -> list[LatLng]:
    """Coerce, normalize and (if needed) repair the site boundary."""
    points = coerce_boundary(raw)
    if max_points is not None and len(points) > max_points:
        raise InvalidRingError(f"Boundary has {len(points)} points; the limit is {max_points}")

    result = validate_ring(points)
    if not result.valid:
        raise InvalidRingError("; ".join(issue.message for issue in result.errors))
    for issue in result.warnings:
        logger.debug("Boundary %s: %s", issue.code, issue.message)
    if any(issue.code == "AUTO_REPAIRED" for issue in result.issues):
        logger.warning("Boundary crossed itself; kept the largest repaired piece")
    return result.ring


# ── 2. Result ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SiteLayout:
    """Everything one run produced. Geometry is in local planar metres."""

    ring: list[LatLng]
    projection: LocalProjection
    settings: LayoutSettings
    seed: int
    boundary: Polygon
    envelope: BaseGeometry | None
    network: RoadNetwork
    blocks: list[Polygon]
    parcels: list[Polygon]
    allocation: GreenSpaceAllocation
    buildings: list[Building]
    rejected_by_zoning: int = 0
    zones: list[Zone] = field(default_factory=list)

    @cached_property
    def road_surface(self) -> BaseGeometry | None:
        if not self.network.graph.edges:
            return None
        return road_surface(self.network, self.settings)

    @cached_property
    def stats(self) -> dict:
        site_area = self.boundary.area
        footprint = sum(b.area for b in self.buildings)
        green_area = self.allocation.green_area
        return {
            "siteAreaSqM": site_area,
            "siteAreaHa": sq_m_to_hectares(site_area),
            "roadNodeCount": self.network.graph.node_count,
            "roadSegmentCount": self.network.graph.edge_count,
            "roadLengthM": sum(LineString(s).length for s in self.network.graph.segments()),
            "growthRounds": self.network.rounds,
            "growthTermination": self.network.termination,
            "attractorCount": len(self.network.attractors),
            "blockCount": len(self.blocks),
            "parcelCount": len(self.parcels),
            "greenSpaceCount": len(self.allocation.green),
            "greenSpaceAreaSqM": green_area,
            "greenSpaceRatio": green_area / site_area if site_area else 0.0,
            "buildingCount": len(self.buildings),
            "footprintAreaSqM": footprint,
            "grossFloorAreaSqM": sum(b.gross_floor_area for b in self.buildings),
            "siteCoverage": footprint / site_area if site_area else 0.0,
            "rejectedByZoning": self.rejected_by_zoning,
        }

    # ── GeoJSON ─────────────────────────────────────────────────────────

    def _feature(self, geom: BaseGeometry, properties: dict) -> dict:
        return {
            "type": "Feature",
            "geometry": mapping(self.projection.to_geographic(geom)),
            "properties": properties,
        }

    def roads_geojson(self) -> dict:
        features = [
            self._feature(LineString(seg), {"id": f"r_{i}", "parent": a, "child": b})
            for i, (seg, (a, b)) in enumerate(zip(self.network.graph.segments(), self.network.graph.edges))
        ]
        return {"type": "FeatureCollection", "features": features}

    def parcels_geojson(self) -> dict:
        green = set(self.allocation.green_indices)
        features = [
            self._feature(p, {
                "id": f"p_{i}",
                "areaSqM": p.area,
                "greenSpace": i in green,
            })
            for i, p in enumerate(self.parcels)
        ]
        return {"type": "FeatureCollection", "features": features}

    def green_spaces_geojson(self) -> dict:
        features = [
            self._feature(self.parcels[i], {"id": f"g_{n}", "parcel": f"p_{i}", "areaSqM": self.parcels[i].area})
            for n, i in enumerate(self.allocation.green_indices)
        ]
        return {"type": "FeatureCollection", "features": features}

    def buildings_geojson(self) -> dict:
        features = [
            self._feature(b.footprint, {
                "id": f"b_{n}",
                "floors": b.floors,
                "rotation": b.rotation,
                "shape": b.shape.value,
                "areaSqM": b.area,
                "buildingType": self.settings.building_type,
            })
            for n, b in enumerate(self.buildings)
        ]
        return {"type": "FeatureCollection", "features": features}

    def to_response(self) -> dict:
        return {
            "roads": self.roads_geojson(),
            "parcels": self.parcels_geojson(),
            "greenSpaces": self.green_spaces_geojson(),
            "buildings": self.buildings_geojson(),
            "stats": self.stats,
            "seed": self.seed,
        }


# ── 3. Pipeline ────────────────────────────────────────────────────────

def _zone_filter(projection: LocalProjection, zones: list[Zone], building_type: str):
    def allowed(footprint: Polygon) -> bool:
        ring = projection.unproject_coords(footprint.exterior.coords)
        result = validate_building_placement(ring, building_type, zones, strict=True)
        if not result.is_valid:
            logger.debug("Building rejected by zone validation: %s", "; ".join(result.reasons))
        return result.is_valid

    return allowed


def generate_layout(
    boundary: Any,
    settings: LayoutSettings | None = None,
    zones: Iterable[Zone] | None = None,
    max_extent_m: float | None = None,
    max_points: int | None = None,
) -> SiteLayout:
    """Run the full pipeline on a site boundary.

    Raises InvalidRingError (or UnsupportedBoundaryError) for unusable
    input. Sites too small for any parcel come back with empty
    collections rather than an error.
    """
    settings = settings or resolve_settings()
    ring = prepare_boundary(boundary, max_points=max_points)

    projection = LocalProjection.from_ring(ring)
    site = projection.to_polygon(ring)
    if not site.is_valid or site.area <= 0:
        raise InvalidRingError("Boundary does not enclose any area")

    minx, miny, maxx, maxy = site.bounds
    extent = max(maxx - minx, maxy - miny)
    if max_extent_m is not None and extent > max_extent_m:
        raise InvalidRingError(
            f"Site spans {extent:.0f} m; the limit is {max_extent_m:.0f} m"
        )

    seed = derive_seed(ring, settings)
    rng = Mulberry32(seed)
    logger.info(
        "Generating layout: %.0f m², density=%s, layout=%s, seed=%d",
        site.area, settings.density.value, settings.layout.value, seed,
    )

    network = grow_road_network(site, settings, rng)
    blocks = build_blocks(site, network, settings)
    parcels = subdivide_blocks(blocks, network, settings, rng)
    allocation = allocate_green_space(parcels, network.attractors, settings, site)

    zones = list(zones or [])
    rejected: set[int] = set()
    zone_filter = _zone_filter(projection, zones, settings.building_type) if zones else None
    buildings = place_buildings(
        allocation.developable, network, settings, rng, site,
        zone_filter=zone_filter, zone_rejections=rejected,
    )

    # Building.parcel_index refers to the developable list; remap to all parcels.
    green = set(allocation.green_indices)
    developable_idx = [i for i in range(len(parcels)) if i not in green]
    buildings = [
        Building(b.footprint, b.floors, b.rotation, b.shape, developable_idx[b.parcel_index])
        for b in buildings
    ]

    layout = SiteLayout(
        ring=ring,
        projection=projection,
        settings=settings,
        seed=seed,
        boundary=site,
        envelope=site_envelope(site, settings),
        network=network,
        blocks=blocks,
        parcels=parcels,
        allocation=allocation,
        buildings=buildings,
        rejected_by_zoning=len(rejected),
        zones=zones,
    )
    logger.info(
        "Layout done: %d road segments, %d parcels (%d green), %d buildings",
        network.graph.edge_count, len(parcels), len(allocation.green), len(buildings),
    )
    return layout
