"""Shared fixtures: geographic rings built from planar metre coordinates."""

import pytest
from shapely.geometry import Point, Polygon

from sitegen.core.geometry.projection import LatLng, LocalProjection
from sitegen.core.geometry.validation import normalize_ring

ORIGIN = LatLng(lat=51.5, lng=-0.12)


def ring_from_metres(coords, origin: LatLng = ORIGIN) -> list[LatLng]:
    projection = LocalProjection(origin)
    return normalize_ring(projection.unproject(c) for c in coords)


def square_coords(side: float, center=(0.0, 0.0)):
    h = side / 2
    cx, cy = center
    return [(cx - h, cy - h), (cx + h, cy - h), (cx + h, cy + h), (cx - h, cy + h)]


@pytest.fixture
def origin() -> LatLng:
    return ORIGIN


@pytest.fixture
def square_ring():
    """Factory: closed geographic square ring of ``side`` metres."""
    def make(side: float, center=(0.0, 0.0)) -> list[LatLng]:
        return ring_from_metres(square_coords(side, center))
    return make


@pytest.fixture
def metre_ring():
    """Factory: closed geographic ring from planar metre coordinates."""
    return ring_from_metres


@pytest.fixture
def geo_covers():
    """Predicate: every vertex of a (lng, lat) geometry lies in the ring, within 1e-6 degrees."""
    def covers(ring: list[LatLng], geometry: dict) -> bool:
        site = Polygon([(p.lng, p.lat) for p in ring]).buffer(1e-6)
        return all(site.covers(Point(xy)) for xy in _positions(geometry["coordinates"]))
    return covers


def _positions(coords):
    if coords and isinstance(coords[0], (int, float)):
        yield tuple(coords)
        return
    for c in coords:
        yield from _positions(c)
