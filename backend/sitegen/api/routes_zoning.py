"""Zoning endpoints: building/zone compatibility, zone validation, suggestions."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from sitegen.api.routes_generate import to_zones
from sitegen.core.geometry.projection import LatLng
from sitegen.core.geometry.validation import InvalidRingError, normalize_ring
from sitegen.core.zoning.rules import (
    ZONE_KIND_CONFIGS,
    ZoneGeometry,
    calculate_zone_stats,
    suggest_zone_kinds,
    validate_building_placement,
    validate_zone,
)
from sitegen.models.schemas import PlacementRequest, PlacementResponse, ZoneValidationRequest

router = APIRouter(tags=["zoning"])


def _ring(points) -> list[LatLng]:
    try:
        return normalize_ring(p.model_dump() for p in points)
    except InvalidRingError as e:
        raise HTTPException(422, detail=[{"message": str(e)}])


@router.post("/zoning/validate-placement", response_model=PlacementResponse)
async def validate_placement(req: PlacementRequest):
    """Check whether a building footprint sits in a compatible zone."""
    result = validate_building_placement(
        _ring(req.footprint), req.building_type, to_zones(req.zones), strict=req.strict,
    )
    return result.to_dict()


@router.post("/zoning/validate-zone")
async def validate_zone_route(req: ZoneValidationRequest):
    """Validate a drawn zone against the site boundary and existing zones."""
    geometry = ZoneGeometry(outer=_ring(req.outer), holes=[_ring(h) for h in req.holes])
    result = validate_zone(
        geometry,
        req.kind,
        _ring(req.boundary),
        existing=to_zones(req.existing_zones),
        allow_holes=req.allow_holes,
    )
    body = result.to_dict()
    body["stats"] = calculate_zone_stats(geometry, req.kind)
    return body


@router.get("/zoning/suggest")
async def suggest(area_sq_m: float = Query(..., ge=0)):
    """Zone kinds whose minimum area fits the given area."""
    kinds = suggest_zone_kinds(area_sq_m)
    return {
        "areaSqM": area_sq_m,
        "suggestions": [k.value for k in kinds],
        "configs": {k.value: ZONE_KIND_CONFIGS[k].to_dict() for k in kinds},
    }
