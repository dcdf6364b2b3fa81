"""Geographic <-> local planar projection.

Every downstream stage works in metres on a plane tangent to the site. The
projection is an equirectangular approximation anchored at the boundary
centroid: x grows east, y grows north. It is accurate for sites up to a few
kilometres across; distortion is not corrected beyond that.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import shapely
from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry

EARTH_RADIUS_M = 6378137.0
_RAD = math.pi / 180


@dataclass(frozen=True)
class LatLng:
    """A geographic point in decimal degrees."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            raise ValueError(f"Coordinate ({self.lat}, {self.lng}) is not finite")
        if not -90 <= self.lat <= 90:
            raise ValueError(f"Latitude {self.lat} is outside [-90, 90]")
        if not -180 <= self.lng <= 180:
            raise ValueError(f"Longitude {self.lng} is outside [-180, 180]")

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


@dataclass(frozen=True)
class LocalProjection:
    """Equirectangular local tangent plane centred on ``origin``."""

    origin: LatLng

    @property
    def _cos_lat(self) -> float:
        return math.cos(self.origin.lat * _RAD)

    @classmethod
    def from_ring(cls, ring: Sequence[LatLng]) -> "LocalProjection":
        """Anchor the projection at the centroid of a ring."""
        from sitegen.core.geometry.validation import ring_centroid

        return cls(ring_centroid(ring))

    def project(self, point: LatLng) -> tuple[float, float]:
        x = EARTH_RADIUS_M * self._cos_lat * (point.lng - self.origin.lng) * _RAD
        y = EARTH_RADIUS_M * (point.lat - self.origin.lat) * _RAD
        return (x, y)

    def unproject(self, xy: tuple[float, float]) -> LatLng:
        lat, lng = self._inverse(xy[0], xy[1])
        return LatLng(lat=lat, lng=lng)

    def project_ring(self, ring: Sequence[LatLng]) -> list[tuple[float, float]]:
        return [self.project(p) for p in ring]

    def unproject_coords(self, coords) -> list[LatLng]:
        return [self.unproject((x, y)) for x, y in coords]

    def to_polygon(self, ring: Sequence[LatLng]) -> Polygon:
        """Project a geographic ring into a planar Shapely polygon."""
        return Polygon(self.project_ring(ring))

    def to_geographic(self, geom: BaseGeometry) -> BaseGeometry:
        """Map a planar geometry back to (lng, lat) coordinates for GeoJSON."""

        def _inverse_xy(x, y):
            lat, lng = self._inverse(x, y)
            return lng, lat

        return shapely.transform(geom, _inverse_xy, interleaved=False)

    def _inverse(self, x, y):
        # Works on scalars and on the coordinate arrays shapely passes in.
        lat = y / EARTH_RADIUS_M / _RAD + self.origin.lat
        lng = x / (EARTH_RADIUS_M * self._cos_lat) / _RAD + self.origin.lng
        return lat, lng
