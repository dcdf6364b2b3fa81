"""Road network growth by space colonization.

Attractor points are scattered over the site. Each round, every live
attractor pulls on its nearest road node; nodes that feel a pull sprout a
new node one step along the summed pull direction. Attractors reached by
new growth are consumed. The graph only ever gains nodes and edges, and
each new edge joins an existing node to a freshly created one, so the
network is a forest rooted at the site centroid.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from functools import cached_property

from shapely.geometry import MultiLineString, Point, Polygon, box
from shapely.prepared import prep
from shapely.strtree import STRtree

from sitegen.core.geometry.offset import Segment, direction_from_bearing
from sitegen.core.layout.rng import Mulberry32
from sitegen.core.layout.settings import LayoutSettings, LayoutStyle, RoadStyle

logger = logging.getLogger(__name__)

MAX_GROWTH_ROUNDS = 1500
MAX_ATTRACTORS = 4000
ANTI_CLUSTER_FACTOR = 0.3   # of a step length
MIN_LIVE_ATTRACTORS = 30
MIN_LIVE_FRACTION = 0.03


@dataclass
class Attractor:
    """A growth target. Consumed attractors stay in the list for diagnostics."""

    position: tuple[float, float]
    consumed: bool = False


@dataclass
class RoadGraph:
    """Append-only road graph in planar metres."""

    nodes: list[tuple[float, float]] = field(default_factory=list)
    edges: list[tuple[int, int]] = field(default_factory=list)  # (parent, child)

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    def add_node(self, point: tuple[float, float]) -> int:
        self.nodes.append((float(point[0]), float(point[1])))
        return len(self.nodes) - 1

    def add_edge(self, parent: int, child: int) -> None:
        """Connect an existing node to the node just created."""
        if not (0 <= parent < child == len(self.nodes) - 1):
            raise ValueError(
                f"Edge ({parent}, {child}) must join an existing node to the newest node"
            )
        self.edges.append((parent, child))

    def segments(self) -> list[Segment]:
        return [(self.nodes[a], self.nodes[b]) for a, b in self.edges]

    def roots(self) -> list[int]:
        children = {b for _, b in self.edges}
        return [i for i in range(len(self.nodes)) if i not in children]


@dataclass
class RoadNetwork:
    """Result of the growth stage."""

    graph: RoadGraph
    attractors: list[Attractor]
    rounds: int = 0
    termination: str = "not_started"

    @cached_property
    def lines(self) -> MultiLineString | None:
        """All edges as one MultiLineString, or None when there are no roads."""
        if not self.graph.edges:
            return None
        return MultiLineString(self.graph.segments())

    @property
    def live_attractors(self) -> int:
        return sum(1 for a in self.attractors if not a.consumed)


# ── 1. Attractor sampling ──────────────────────────────────────────────

def sample_attractors(boundary: Polygon, settings: LayoutSettings, rng: Mulberry32) -> list[Attractor]:
    """Scatter attractors inside the boundary according to the layout style."""
    count = min(MAX_ATTRACTORS, int(round(boundary.area / 10_000 * settings.attractors_per_hectare)))
    if count <= 0:
        return []

    inside = prep(boundary)
    style = settings.layout

    if style == LayoutStyle.GRID:
        candidates = _grid_candidates(boundary, count, rng)
    elif style == LayoutStyle.RADIAL:
        candidates = _radial_candidates(boundary, count, rng)
    elif style == LayoutStyle.CLUSTER:
        candidates = _cluster_candidates(boundary, inside, count, rng)
    elif style == LayoutStyle.LINEAR:
        candidates = _linear_candidates(boundary, count, rng)
    else:
        candidates = _uniform_candidates(boundary, count, rng)

    attractors: list[Attractor] = []
    for pt in candidates:
        if len(attractors) >= count:
            break
        if inside.contains(Point(pt)):
            attractors.append(Attractor(position=pt))
    return attractors


def _uniform_candidates(boundary: Polygon, count: int, rng: Mulberry32):
    minx, miny, maxx, maxy = boundary.bounds
    for _ in range(count * 30):
        yield (rng.uniform(minx, maxx), rng.uniform(miny, maxy))


def _grid_candidates(boundary: Polygon, count: int, rng: Mulberry32):
    minx, miny, maxx, maxy = boundary.bounds
    pitch = math.sqrt(boundary.area / count)
    jitter = pitch * 0.25
    y = miny + pitch / 2
    while y < maxy:
        x = minx + pitch / 2
        while x < maxx:
            yield (x + rng.uniform(-jitter, jitter), y + rng.uniform(-jitter, jitter))
            x += pitch
        y += pitch


def _radial_candidates(boundary: Polygon, count: int, rng: Mulberry32):
    centre = boundary.centroid
    minx, miny, maxx, maxy = boundary.bounds
    r_max = max(math.hypot(cx - centre.x, cy - centre.y)
                for cx, cy in ((minx, miny), (minx, maxy), (maxx, miny), (maxx, maxy)))
    rings = max(2, round(math.sqrt(count) / 2))
    radii = [r_max * (i + 1) / rings for i in range(rings)]
    total = sum(radii)
    pitch = r_max / rings
    for r in radii:
        per_ring = max(6, round(count * r / total))
        for k in range(per_ring):
            bearing = 360.0 * k / per_ring + rng.uniform(-10, 10)
            dx, dy = direction_from_bearing(bearing)
            rr = r + rng.uniform(-0.25, 0.25) * pitch
            yield (centre.x + dx * rr, centre.y + dy * rr)


def _cluster_candidates(boundary: Polygon, inside, count: int, rng: Mulberry32):
    minx, miny, maxx, maxy = boundary.bounds
    n_clusters = max(3, min(8, count // 80))
    centres = []
    for _ in range(n_clusters * 50):
        if len(centres) >= n_clusters:
            break
        pt = (rng.uniform(minx, maxx), rng.uniform(miny, maxy))
        if inside.contains(Point(pt)):
            centres.append(pt)
    if not centres:
        yield from _uniform_candidates(boundary, count, rng)
        return
    sigma = math.sqrt(boundary.area / len(centres)) / 3
    for _ in range(count * 30):
        cx, cy = rng.choice(centres)
        yield (rng.gauss(cx, sigma), rng.gauss(cy, sigma))


def _linear_candidates(boundary: Polygon, count: int, rng: Mulberry32):
    minx, miny, maxx, maxy = boundary.bounds
    horizontal = (maxx - minx) >= (maxy - miny)
    mid = (miny + maxy) / 2 if horizontal else (minx + maxx) / 2
    spread = ((maxy - miny) if horizontal else (maxx - minx)) / 6
    for _ in range(count * 30):
        along = rng.uniform(minx, maxx) if horizontal else rng.uniform(miny, maxy)
        across = rng.gauss(mid, spread)
        yield (along, across) if horizontal else (across, along)


# ── 2. Growth ──────────────────────────────────────────────────────────

def grow_road_network(boundary: Polygon, settings: LayoutSettings, rng: Mulberry32) -> RoadNetwork:
    """Grow a road forest from the centroid toward sampled attractors.

    Stops when a round produces no pulls, when live attractors fall below
    max(30, 3% of the initial count), when a round adds no node, or after
    MAX_GROWTH_ROUNDS. Hitting the cap is a normal outcome: the partially
    grown network is returned.
    """
    attractors = sample_attractors(boundary, settings, rng)
    graph = RoadGraph()
    inside = prep(boundary)

    root_pt = boundary.centroid
    if not inside.contains(root_pt):
        root_pt = boundary.representative_point()
    root = graph.add_node((root_pt.x, root_pt.y))

    spokes = 6 if settings.road_style == RoadStyle.CONNECT_NEIGHBORS else 3
    for k in range(spokes):
        dx, dy = direction_from_bearing(360.0 * k / spokes)
        end = (root_pt.x + dx * settings.min_road_segment_length,
               root_pt.y + dy * settings.min_road_segment_length)
        if inside.contains(Point(end)):
            graph.add_edge(root, graph.add_node(end))

    network = RoadNetwork(graph=graph, attractors=attractors)
    floor = max(MIN_LIVE_ATTRACTORS, math.ceil(MIN_LIVE_FRACTION * len(attractors)))
    step = settings.road_segment_length
    min_gap = ANTI_CLUSTER_FACTOR * step

    network.termination = "iteration_cap"
    while network.rounds < MAX_GROWTH_ROUNDS:
        live = [a for a in attractors if not a.consumed]
        if len(live) < floor:
            network.termination = "attractors_exhausted"
            break

        pulls = _accumulate_pulls(graph, live, settings.influence_radius)
        if not pulls:
            network.termination = "no_pulls"
            break

        network.rounds += 1
        new_nodes = _grow(graph, pulls, inside, step, min_gap)
        if not new_nodes:
            # Nothing changed, so every later round would be identical.
            network.termination = "stalled"
            break

        _consume(live, [graph.nodes[i] for i in new_nodes], settings.kill_radius)

    logger.info(
        "Road growth: %d nodes, %d edges, %d rounds, %d/%d attractors live (%s)",
        graph.node_count, graph.edge_count, network.rounds,
        network.live_attractors, len(attractors), network.termination,
    )
    return network


def _accumulate_pulls(graph: RoadGraph, live: list[Attractor], influence: float) -> dict[int, list[float]]:
    """Sum unit pull vectors per node from attractors within the influence radius.

    Nearest-node ties resolve to the lowest node index.
    """
    tree = STRtree([Point(p) for p in graph.nodes])
    hits = tree.query_nearest(
        [Point(a.position) for a in live],
        max_distance=influence,
        all_matches=True,
    )

    nearest: dict[int, int] = {}
    for i, j in zip(hits[0].tolist(), hits[1].tolist()):
        if i not in nearest or j < nearest[i]:
            nearest[i] = j

    pulls: dict[int, list[float]] = {}
    for i in sorted(nearest):
        j = nearest[i]
        ax, ay = live[i].position
        nx, ny = graph.nodes[j]
        d = math.hypot(ax - nx, ay - ny)
        if d == 0 or d > influence:
            continue
        acc = pulls.setdefault(j, [0.0, 0.0])
        acc[0] += (ax - nx) / d
        acc[1] += (ay - ny) / d
    return pulls


def _grow(graph: RoadGraph, pulls: dict[int, list[float]], inside, step: float, min_gap: float) -> list[int]:
    existing = STRtree([Point(p) for p in graph.nodes])
    new_nodes: list[int] = []

    for j in sorted(pulls):
        sx, sy = pulls[j]
        norm = math.hypot(sx, sy)
        if norm < 1e-9:
            continue  # opposing pulls cancelled out

        nx, ny = graph.nodes[j]
        cand = (nx + sx / norm * step, ny + sy / norm * step)
        if not inside.contains(Point(cand)):
            continue

        window = box(cand[0] - min_gap, cand[1] - min_gap, cand[0] + min_gap, cand[1] + min_gap)
        nearby = existing.query(window).tolist() + new_nodes
        if any(_dist(cand, graph.nodes[k]) < min_gap for k in nearby):
            continue

        child = graph.add_node(cand)
        graph.add_edge(j, child)
        new_nodes.append(child)

    return new_nodes


def _consume(live: list[Attractor], new_points: list[tuple[float, float]], kill_radius: float) -> None:
    tree = STRtree([Point(a.position) for a in live])
    for x, y in new_points:
        window = box(x - kill_radius, y - kill_radius, x + kill_radius, y + kill_radius)
        for i in tree.query(window).tolist():
            if _dist(live[i].position, (x, y)) <= kill_radius:
                live[i].consumed = True


def _dist(a: tuple[float, float], b: tuple[float, float]) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])
