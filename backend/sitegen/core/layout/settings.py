"""Layout settings: density presets plus explicit overrides.

A run's configuration is resolved exactly once by :func:`resolve_settings`
and is immutable afterwards. Density supplies the baseline; any field passed
explicitly (and not None) wins over the density default.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from enum import Enum


class Density(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very-high"


class LayoutStyle(str, Enum):
    """Attractor distribution that drives road growth."""
    GRID = "grid"
    CUL_DE_SAC = "cul-de-sac"
    RADIAL = "radial"
    ORGANIC = "organic"
    LINEAR = "linear"
    CLUSTER = "cluster"
    MIXED = "mixed"


class RoadStyle(str, Enum):
    CONNECT_NEIGHBORS = "connect-neighbors"  # six initial spokes
    TRUNK_BRANCH = "trunk-branch"            # three initial spokes


class GreenSpaceType(str, Enum):
    NONE = "none"
    DISTRIBUTED = "distributed"
    CENTRAL = "central"
    PERIMETER = "perimeter"


class BuildingShape(str, Enum):
    RECTANGLE = "rectangle"
    L_SHAPE = "l-shape"
    T_SHAPE = "t-shape"
    MIXED = "mixed"


@dataclass(frozen=True)
class LayoutSettings:
    """Every tunable of the layout pipeline. Lengths in metres, areas in m²."""

    density: Density = Density.MEDIUM

    # Roads
    road_width: float = 7.0
    road_segment_length: float = 20.0     # growth step
    min_road_segment_length: float = 10.0  # initial spoke length
    influence_radius: float = 75.0
    kill_radius: float = 11.0
    attractors_per_hectare: float = 24.0
    road_style: RoadStyle = RoadStyle.TRUNK_BRANCH
    layout: LayoutStyle = LayoutStyle.ORGANIC

    # Parcels
    min_parcel_area: float = 200.0
    target_parcel_area: float = 600.0
    simplify_tolerance: float = 1.0

    # Green space
    green_space_ratio: float = 0.2
    green_space_type: GreenSpaceType = GreenSpaceType.DISTRIBUTED
    walk_radius: float = 150.0

    # Buildings
    building_setback: float = 5.0
    building_width: tuple[float, float] = (10.0, 16.0)
    building_depth: tuple[float, float] = (8.0, 12.0)
    floors: tuple[int, int] = (2, 3)
    min_building_size: float = 60.0
    max_building_size: float = 400.0
    spacing: float = 10.0
    fit_threshold: float = 0.85
    building_shape: BuildingShape = BuildingShape.RECTANGLE
    building_type: str = "house_detached"

    # Site envelope
    site_setback: float = 0.0
    road_setback: float = 0.0

    seed: str | None = None

    def __post_init__(self) -> None:
        for name in ("road_width", "road_segment_length", "min_road_segment_length",
                     "influence_radius", "kill_radius", "min_parcel_area",
                     "target_parcel_area"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

        for name in ("building_width", "building_depth", "floors"):
            low, high = getattr(self, name)
            if low <= 0 or high < low:
                raise ValueError(f"{name} must be a positive (min, max) range, got {(low, high)}")

        if self.max_building_size < self.min_building_size:
            raise ValueError(
                f"max_building_size {self.max_building_size} is below "
                f"min_building_size {self.min_building_size}"
            )
        if not 0 < self.fit_threshold <= 1:
            raise ValueError(f"fit_threshold must be in (0, 1], got {self.fit_threshold}")
        for name in ("simplify_tolerance", "building_setback", "spacing",
                     "site_setback", "road_setback", "attractors_per_hectare",
                     "walk_radius"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative, got {getattr(self, name)}")

    @property
    def clamped_green_ratio(self) -> float:
        return min(max(self.green_space_ratio, 0.0), 0.9)

    def to_dict(self) -> dict:
        """Plain JSON-ready dict (enums as their values, ranges as lists)."""
        out = {}
        for key, value in asdict(self).items():
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, tuple):
                value = list(value)
            out[key] = value
        return out


DENSITY_PRESETS: dict[Density, LayoutSettings] = {
    Density.LOW: LayoutSettings(
        density=Density.LOW,
        road_width=8.0, road_segment_length=24.0, min_road_segment_length=12.0,
        influence_radius=90.0, kill_radius=14.0, attractors_per_hectare=16.0,
        min_parcel_area=400.0, target_parcel_area=1200.0, simplify_tolerance=1.5,
        green_space_ratio=0.25,
        building_setback=6.0, building_width=(12.0, 20.0), building_depth=(10.0, 16.0),
        floors=(1, 2), min_building_size=100.0, max_building_size=600.0, spacing=12.0,
    ),
    Density.MEDIUM: LayoutSettings(density=Density.MEDIUM),
    Density.HIGH: LayoutSettings(
        density=Density.HIGH,
        road_width=6.0, road_segment_length=16.0, min_road_segment_length=8.0,
        influence_radius=60.0, kill_radius=9.0, attractors_per_hectare=32.0,
        min_parcel_area=120.0, target_parcel_area=350.0, simplify_tolerance=0.75,
        green_space_ratio=0.15,
        building_setback=3.5, building_width=(8.0, 14.0), building_depth=(8.0, 12.0),
        floors=(2, 4), min_building_size=50.0, max_building_size=300.0, spacing=7.0,
    ),
    Density.VERY_HIGH: LayoutSettings(
        density=Density.VERY_HIGH,
        road_width=6.0, road_segment_length=14.0, min_road_segment_length=8.0,
        influence_radius=50.0, kill_radius=8.0, attractors_per_hectare=40.0,
        min_parcel_area=80.0, target_parcel_area=220.0, simplify_tolerance=0.5,
        green_space_ratio=0.1,
        building_setback=2.5, building_width=(7.0, 12.0), building_depth=(7.0, 10.0),
        floors=(3, 6), min_building_size=36.0, max_building_size=200.0, spacing=5.0,
    ),
}

_FIELD_NAMES = {f.name for f in fields(LayoutSettings)}

_ENUM_FIELDS = {
    "layout": LayoutStyle,
    "road_style": RoadStyle,
    "green_space_type": GreenSpaceType,
    "building_shape": BuildingShape,
}


def resolve_settings(density: Density | str = Density.MEDIUM, **overrides) -> LayoutSettings:
    """Build the immutable settings for one run.

    Overrides set to None are treated as "not given" and keep the preset
    value. Unknown override names raise TypeError.
    """
    try:
        level = Density(density)
    except ValueError as e:
        valid = ", ".join(d.value for d in Density)
        raise ValueError(f"Unknown density '{density}'. Valid: {valid}") from e

    unknown = set(overrides) - _FIELD_NAMES
    if unknown:
        raise TypeError(f"Unknown layout setting(s): {', '.join(sorted(unknown))}")

    explicit = {k: v for k, v in overrides.items() if v is not None}
    for key in ("building_width", "building_depth", "floors"):
        if key in explicit:
            explicit[key] = tuple(explicit[key])
    for key, enum_cls in _ENUM_FIELDS.items():
        if key in explicit:
            explicit[key] = enum_cls(explicit[key])

    return replace(DENSITY_PRESETS[level], **explicit)
