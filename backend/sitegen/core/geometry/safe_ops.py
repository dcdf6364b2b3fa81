"""Uniform wrapper around Shapely boolean operations.

GEOS can throw on edge-case inputs (nearly collinear slivers, rings that
touch themselves after buffering, ...) or return empty results. Every call
site in the layout pipeline goes through :func:`attempt`, which turns both
outcomes into ``None`` so the caller applies its documented fallback.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from shapely.errors import GEOSException
from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from shapely.validation import make_valid

logger = logging.getLogger(__name__)


def attempt(op: Callable[..., BaseGeometry | None], *args, **kwargs) -> BaseGeometry | None:
    """Run a geometry operation; return None if it raises or yields nothing."""
    try:
        result = op(*args, **kwargs)
    except (GEOSException, ValueError) as e:
        logger.debug("%s failed: %s", getattr(op, "__name__", op), e)
        return None

    if result is None or result.is_empty:
        return None

    if not result.is_valid:
        try:
            result = make_valid(result)
        except (GEOSException, ValueError) as e:
            logger.debug("make_valid failed after %s: %s", getattr(op, "__name__", op), e)
            return None
        if result.is_empty:
            return None

    return result


def safe_union(geoms: Iterable[BaseGeometry]) -> BaseGeometry | None:
    parts = [g for g in geoms if g is not None and not g.is_empty]
    if not parts:
        return None
    return attempt(unary_union, parts)


def safe_difference(a: BaseGeometry, b: BaseGeometry) -> BaseGeometry | None:
    return attempt(a.difference, b)


def safe_intersection(a: BaseGeometry, b: BaseGeometry) -> BaseGeometry | None:
    return attempt(a.intersection, b)


def safe_buffer(geom: BaseGeometry, distance: float, **kwargs) -> BaseGeometry | None:
    return attempt(geom.buffer, distance, **kwargs)


def polygon_parts(geom: BaseGeometry | None) -> list[Polygon]:
    """Flatten any geometry into its non-empty polygon pieces.

    make_valid() and boolean ops can return GeometryCollections mixing
    polygons with stray lines and points; only areal pieces survive.
    """
    if geom is None or geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom] if geom.area > 0 else []
    if hasattr(geom, "geoms"):
        parts: list[Polygon] = []
        for g in geom.geoms:
            parts.extend(polygon_parts(g))
        return parts
    return []


def largest_polygon(geom: BaseGeometry | None) -> Polygon | None:
    """The largest polygon piece by area, or None."""
    parts = polygon_parts(geom)
    if not parts:
        return None
    return max(parts, key=lambda p: p.area)
