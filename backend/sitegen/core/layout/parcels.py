"""Block and parcel subdivision.

Blocks are what is left of the site once road corridors are cut out.
Each block is then split into parcels with a Voronoi diagram whose seeds
are biased toward the roads, so frontage parcels come out smaller.
"""

from __future__ import annotations

import logging
import math

from shapely.geometry import MultiLineString, MultiPoint, Point, Polygon, box
from shapely.ops import voronoi_diagram
from shapely.prepared import prep

from sitegen.core.geometry.offset import RoadCorridor, corridor_union, merge_centerlines
from sitegen.core.geometry.safe_ops import attempt, polygon_parts, safe_difference, safe_intersection
from sitegen.core.layout.rng import Mulberry32
from sitegen.core.layout.roads import RoadNetwork
from sitegen.core.layout.settings import LayoutSettings

logger = logging.getLogger(__name__)

SEED_ATTEMPTS_PER_CELL = 60
MIN_ACCEPT_PROBABILITY = 0.15


# ── 1. Blocks ──────────────────────────────────────────────────────────

def road_surface(network: RoadNetwork, settings: LayoutSettings, extra_width: float = 0.0):
    """Union of all road corridors, or None when there are no usable roads."""
    chains = merge_centerlines(network.graph.segments(), settings.simplify_tolerance)
    if not chains:
        return None
    corridors = [RoadCorridor(centerline=c, width=settings.road_width + 2 * extra_width) for c in chains]
    return corridor_union(corridors)


def build_blocks(boundary: Polygon, network: RoadNetwork, settings: LayoutSettings) -> list[Polygon]:
    """Subtract the road surface from the boundary and keep large pieces.

    Falls back to the whole boundary when there are no roads or the
    boolean operations fail. Pieces smaller than the minimum parcel area
    are discarded, never kept undersized.
    """
    blocks = [boundary]
    surface = road_surface(network, settings) if network.graph.edges else None

    if surface is None:
        if network.graph.edges:
            logger.warning("Road corridor union failed; using the whole site as one block")
    else:
        remainder = safe_difference(boundary, surface)
        if remainder is None:
            logger.warning("Subtracting roads from the site failed; using the whole site as one block")
        else:
            blocks = polygon_parts(remainder)

    kept = [b for b in blocks if b.area >= settings.min_parcel_area]
    logger.debug("Blocks: %d kept of %d candidates", len(kept), len(blocks))
    return kept


# ── 2. Parcels ─────────────────────────────────────────────────────────

def subdivide_block(
    block: Polygon,
    roads: MultiLineString | None,
    settings: LayoutSettings,
    rng: Mulberry32,
) -> list[Polygon]:
    """Split one block into parcels of roughly the target area.

    Seeds are rejection-sampled inside the block, accepted with a
    probability that falls off with distance to the nearest road. The
    Voronoi cells are clipped to the block; pieces under the minimum
    area are dropped. If nothing usable comes out the block itself is
    the single parcel.
    """
    target = max(1, round(block.area / settings.target_parcel_area))
    if target == 1:
        return [block]

    seeds = _weighted_seeds(block, roads, target, settings, rng)
    if len(seeds) < 2:
        return [block]

    cells = attempt(voronoi_diagram, MultiPoint(seeds), envelope=box(*block.bounds))
    if cells is None:
        return [block]

    parcels: list[Polygon] = []
    for cell in polygon_parts(cells):
        clipped = safe_intersection(cell, block)
        parcels.extend(p for p in polygon_parts(clipped) if p.area >= settings.min_parcel_area)

    return parcels or [block]


def subdivide_blocks(
    blocks: list[Polygon],
    network: RoadNetwork,
    settings: LayoutSettings,
    rng: Mulberry32,
) -> list[Polygon]:
    parcels: list[Polygon] = []
    for block in blocks:
        parcels.extend(subdivide_block(block, network.lines, settings, rng))
    logger.info("Parcels: %d from %d blocks", len(parcels), len(blocks))
    return parcels


def _weighted_seeds(
    block: Polygon,
    roads: MultiLineString | None,
    target: int,
    settings: LayoutSettings,
    rng: Mulberry32,
) -> list[tuple[float, float]]:
    inside = prep(block)
    minx, miny, maxx, maxy = block.bounds
    falloff = math.sqrt(settings.target_parcel_area)

    seeds: list[tuple[float, float]] = []
    for _ in range(target * SEED_ATTEMPTS_PER_CELL):
        if len(seeds) >= target:
            break
        pt = Point(rng.uniform(minx, maxx), rng.uniform(miny, maxy))
        if not inside.contains(pt):
            continue
        d = roads.distance(pt) if roads is not None else 0.0
        weight = max(MIN_ACCEPT_PROBABILITY, 1.0 / (1.0 + d / falloff))
        if rng.random() < weight:
            seeds.append((pt.x, pt.y))

    # Duplicate seeds make the Voronoi diagram degenerate.
    return list(dict.fromkeys(seeds))
