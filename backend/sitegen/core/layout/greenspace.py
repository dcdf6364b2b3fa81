"""Green-space allocation over subdivided parcels."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from shapely.geometry import Point, Polygon
from shapely.strtree import STRtree

from sitegen.core.layout.roads import Attractor
from sitegen.core.layout.settings import GreenSpaceType, LayoutSettings

logger = logging.getLogger(__name__)

AREA_WEIGHT = 0.05


@dataclass
class GreenSpaceAllocation:
    green: list[Polygon] = field(default_factory=list)
    developable: list[Polygon] = field(default_factory=list)
    green_indices: list[int] = field(default_factory=list)

    @property
    def green_area(self) -> float:
        return sum(p.area for p in self.green)


def score_parcels(
    parcels: list[Polygon],
    attractors: list[Attractor],
    settings: LayoutSettings,
    boundary: Polygon | None = None,
) -> list[float]:
    """Walkability score per parcel.

    Counts attractors (consumed or not) within the walk radius of the
    parcel centroid and adds a small area bonus. ``central`` and
    ``perimeter`` types damp the score with distance to the site centre
    or to the site edge respectively.
    """
    radius = settings.walk_radius
    points = [Point(a.position) for a in attractors]
    tree = STRtree(points) if points else None

    site_centre = boundary.centroid if boundary is not None else None
    site_edge = boundary.exterior if boundary is not None else None
    falloff = max(radius, 1.0)

    scores = []
    for parcel in parcels:
        c = parcel.centroid
        nearby = 0
        if tree is not None:
            nearby = len(tree.query(c, predicate="dwithin", distance=radius))
        score = nearby + AREA_WEIGHT * math.sqrt(parcel.area)

        if settings.green_space_type == GreenSpaceType.CENTRAL and site_centre is not None:
            score *= 1.0 / (1.0 + c.distance(site_centre) / falloff)
        elif settings.green_space_type == GreenSpaceType.PERIMETER and site_edge is not None:
            score *= 1.0 / (1.0 + c.distance(site_edge) / falloff)
        scores.append(score)
    return scores


def allocate_green_space(
    parcels: list[Polygon],
    attractors: list[Attractor],
    settings: LayoutSettings,
    boundary: Polygon | None = None,
) -> GreenSpaceAllocation:
    """Greedily mark the best-scoring parcels green until the ratio is met.

    Every parcel ends up in exactly one of the two lists. Ties keep the
    parcel order.
    """
    ratio = settings.clamped_green_ratio
    if settings.green_space_type == GreenSpaceType.NONE:
        ratio = 0.0

    total = sum(p.area for p in parcels)
    wanted = ratio * total
    if not parcels or wanted <= 0:
        return GreenSpaceAllocation(developable=list(parcels))

    scores = score_parcels(parcels, attractors, settings, boundary)
    order = sorted(range(len(parcels)), key=lambda i: -scores[i])

    chosen: set[int] = set()
    acquired = 0.0
    for i in order:
        if acquired >= wanted:
            break
        chosen.add(i)
        acquired += parcels[i].area

    allocation = GreenSpaceAllocation(
        green=[p for i, p in enumerate(parcels) if i in chosen],
        developable=[p for i, p in enumerate(parcels) if i not in chosen],
        green_indices=sorted(chosen),
    )
    logger.info(
        "Green space: %d parcels, %.0f of %.0f m² (target ratio %.2f)",
        len(allocation.green), acquired, total, ratio,
    )
    return allocation
