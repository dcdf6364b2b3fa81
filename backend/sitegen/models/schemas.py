"""Pydantic schemas for API request/response validation.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from sitegen.core.layout.settings import BuildingShape, Density, GreenSpaceType, LayoutStyle, RoadStyle
from sitegen.core.zoning.rules import ZoneKind


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LatLngInput(CamelModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)

    @field_validator("lat", "lng")
    @classmethod
    def must_be_finite(cls, v: float) -> float:
        if not math.isfinite(v):
            raise ValueError("Coordinate must be a finite number")
        return v


class ZoneInput(CamelModel):
    ring: list[LatLngInput]
    kind: ZoneKind


# Numeric tuning knobs that map 1:1 onto LayoutSettings fields.
TUNING_FIELDS = (
    "road_width", "road_segment_length", "min_road_segment_length",
    "influence_radius", "kill_radius", "attractors_per_hectare",
    "min_parcel_area", "target_parcel_area", "simplify_tolerance",
    "green_space_ratio", "walk_radius", "building_setback",
    "building_width", "building_depth", "floors", "fit_threshold",
)


class GenerateLayoutRequest(CamelModel):
    boundary: list[LatLngInput] | dict[str, Any]
    density: Density = Density.MEDIUM
    layout: LayoutStyle | None = None
    road_style: RoadStyle | None = None
    green_space_type: GreenSpaceType | None = None
    seed: str | None = None
    road_setback: float | None = Field(default=None, ge=0)
    site_setback: float | None = Field(default=None, ge=0)
    min_building_size: float | None = Field(default=None, gt=0)
    max_building_size: float | None = Field(default=None, gt=0)
    spacing: float | None = Field(default=None, ge=0)
    building_shape: BuildingShape | None = None
    building_type: str | None = None

    road_width: float | None = Field(default=None, gt=0)
    road_segment_length: float | None = Field(default=None, gt=0)
    min_road_segment_length: float | None = Field(default=None, gt=0)
    influence_radius: float | None = Field(default=None, gt=0)
    kill_radius: float | None = Field(default=None, gt=0)
    attractors_per_hectare: float | None = Field(default=None, ge=0, le=400)
    min_parcel_area: float | None = Field(default=None, gt=0)
    target_parcel_area: float | None = Field(default=None, gt=0)
    simplify_tolerance: float | None = Field(default=None, ge=0)
    green_space_ratio: float | None = None
    walk_radius: float | None = Field(default=None, ge=0)
    building_setback: float | None = Field(default=None, ge=0)
    building_width: tuple[float, float] | None = None
    building_depth: tuple[float, float] | None = None
    floors: tuple[int, int] | None = None
    fit_threshold: float | None = Field(default=None, gt=0, le=1)

    zones: list[ZoneInput] = []

    @field_validator("seed", mode="before")
    @classmethod
    def seed_as_text(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    def boundary_payload(self) -> list[dict] | dict[str, Any]:
        if isinstance(self.boundary, list):
            return [p.model_dump() for p in self.boundary]
        return self.boundary

    def layout_overrides(self) -> dict[str, Any]:
        """Explicitly provided settings, keyed by LayoutSettings field name."""
        keys = (
            "layout", "road_style", "green_space_type", "seed", "road_setback",
            "site_setback", "min_building_size", "max_building_size", "spacing",
            "building_shape", "building_type",
        ) + TUNING_FIELDS
        return {k: getattr(self, k) for k in keys if getattr(self, k) is not None}


class PlacementRequest(CamelModel):
    footprint: list[LatLngInput]
    building_type: str
    zones: list[ZoneInput] = []
    strict: bool = False


class PlacementResponse(CamelModel):
    is_valid: bool
    reasons: list[str]
    compatible_zone: ZoneKind | None = None


class ZoneValidationRequest(CamelModel):
    outer: list[LatLngInput]
    holes: list[list[LatLngInput]] = []
    kind: ZoneKind
    boundary: list[LatLngInput]
    existing_zones: list[ZoneInput] = []
    allow_holes: bool = False


class LayoutResponse(CamelModel):
    roads: dict
    parcels: dict
    green_spaces: dict
    buildings: dict
    stats: dict
    seed: int
