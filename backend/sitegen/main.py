"""Site Layout Generator: FastAPI application entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sitegen.config import settings
from sitegen.api.routes_generate import router as layout_router
from sitegen.api.routes_zoning import router as zoning_router
from sitegen.api.routes_export import router as export_router

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

VERSION = "0.1.0"

app = FastAPI(
    title=settings.app_name,
    version=VERSION,
    description="Generate roads, parcels, green space and buildings for a site boundary, export to DXF.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(layout_router, prefix="/api")
app.include_router(zoning_router, prefix="/api")
app.include_router(export_router, prefix="/api")


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": settings.app_name, "version": VERSION}
