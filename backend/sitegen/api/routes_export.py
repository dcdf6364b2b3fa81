"""Export endpoints: generate a layout and return it as a DXF download."""

from __future__ import annotations

import io

from fastapi import APIRouter
from fastapi.responses import StreamingResponse
from starlette.concurrency import run_in_threadpool

from sitegen.api.routes_generate import run_layout
from sitegen.core.exporter.dxf_writer import export_layout
from sitegen.models.schemas import GenerateLayoutRequest

router = APIRouter(tags=["export"])


def _render_dxf(req: GenerateLayoutRequest) -> bytes:
    layout = run_layout(req)
    return export_layout(layout).to_bytes()


@router.post("/export/dxf")
async def export_dxf(req: GenerateLayoutRequest):
    """Generate the layout and stream it as a DXF file (metres)."""
    dxf_bytes = await run_in_threadpool(_render_dxf, req)
    return StreamingResponse(
        io.BytesIO(dxf_bytes),
        media_type="application/dxf",
        headers={"Content-Disposition": 'attachment; filename="site-layout.dxf"'},
    )
