"""Layout endpoints: generate a site layout from a boundary, list density presets."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException
from starlette.concurrency import run_in_threadpool

from sitegen.config import settings
from sitegen.core.geometry.validation import InvalidRingError, normalize_ring
from sitegen.core.layout.pipeline import SiteLayout, generate_layout
from sitegen.core.layout.settings import DENSITY_PRESETS, resolve_settings
from sitegen.core.zoning.rules import Zone
from sitegen.models.schemas import GenerateLayoutRequest, LayoutResponse, ZoneInput

logger = logging.getLogger(__name__)

router = APIRouter(tags=["layout"])


def to_zones(items: list[ZoneInput]) -> list[Zone]:
    try:
        return [Zone(ring=normalize_ring(p.model_dump() for p in z.ring), kind=z.kind) for z in items]
    except InvalidRingError as e:
        raise HTTPException(422, detail=[{"message": f"Invalid zone: {e}"}])


def run_layout(req: GenerateLayoutRequest) -> SiteLayout:
    """Resolve settings and run the pipeline, mapping bad input to HTTP 422."""
    try:
        layout_settings = resolve_settings(req.density, **req.layout_overrides())
    except (TypeError, ValueError) as e:
        raise HTTPException(422, detail=[{"message": str(e)}])

    zones = to_zones(req.zones)
    try:
        return generate_layout(
            req.boundary_payload(),
            layout_settings,
            zones=zones,
            max_extent_m=settings.max_site_extent_m,
            max_points=settings.max_boundary_points,
        )
    except InvalidRingError as e:
        logger.info("Rejected boundary: %s", e)
        raise HTTPException(422, detail=[{"message": str(e)}])


@router.post("/layout/generate", response_model=LayoutResponse)
async def generate(req: GenerateLayoutRequest):
    """Generate roads, parcels, green spaces and buildings for a site."""
    layout = await run_in_threadpool(run_layout, req)
    return layout.to_response()


@router.get("/layout/presets")
async def presets():
    """Density presets with every resolved setting."""
    return {
        "default": settings.default_density,
        "presets": {level.value: preset.to_dict() for level, preset in DENSITY_PRESETS.items()},
    }
