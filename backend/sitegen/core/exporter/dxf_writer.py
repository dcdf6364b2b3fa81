"""DXF export of a generated site layout.

Drawing conventions:
  - Coordinates are the layout's local planar metres (1 unit = 1 m)
  - Every entity sits on one of the site layers from dxf_layers
  - Areas are closed LWPOLYLINEs; filled areas also get a SOLID hatch
    whose boundary paths include the holes
  - R2010 output, readable by AutoCAD 2010+ and LibreCAD

What goes where:
  Boundary       C-PROP (+ C-PROP-SETB for the setback envelope)
  Roads          C-ROAD-CNTR lines, C-ROAD outline, C-ROAD-FILL hatch
  Parcels        C-PRCL
  Green space    L-PLNT outline, L-PLNT-FILL hatch
  Buildings      A-BLDG outline, A-BLDG-FILL hatch, storey label
"""

from __future__ import annotations

import io

import ezdxf
from ezdxf.enums import TextEntityAlignment
from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry

from sitegen.core.exporter.dxf_layers import (
    CUSTOM_LINETYPES, DXF_UNITS, LAYER_MAP, LAYERS, NORTH_ARROW_BLOCK, TEXT_STYLES,
)
from sitegen.core.geometry.safe_ops import polygon_parts


class DXFExporter:
    """Accumulates site geometry in an ezdxf document."""

    def __init__(self, unit: str = "m"):
        self.unit = unit
        self.doc = ezdxf.new("R2010", setup=True)
        self.msp = self.doc.modelspace()

        self._register_resources()
        self._define_north_arrow()

        self.doc.header["$INSUNITS"] = DXF_UNITS.get(unit, DXF_UNITS["m"])
        self.doc.header["$LTSCALE"] = 1.0

    def _register_resources(self):
        for name, (pattern, description) in CUSTOM_LINETYPES.items():
            if name not in self.doc.linetypes:
                self.doc.linetypes.add(name, pattern=pattern, description=description)

        for layer_def in LAYERS:
            if layer_def.name in self.doc.layers:
                continue
            layer = self.doc.layers.add(layer_def.name, color=layer_def.color, linetype=layer_def.linetype)
            layer.dxf.lineweight = layer_def.lineweight
            if not layer_def.plot:
                layer.dxf.plot = 0

        for name, font in TEXT_STYLES.items():
            if name not in self.doc.styles:
                self.doc.styles.add(name, font=font)

    def _define_north_arrow(self):
        """Unit-height arrow pointing up, with an N above the tip."""
        if NORTH_ARROW_BLOCK in self.doc.blocks:
            return
        block = self.doc.blocks.new(name=NORTH_ARROW_BLOCK)
        attribs = {"layer": "A-ANNO-NOTE"}
        block.add_lwpolyline([(0, 0), (0.3, -0.8), (-0.3, -0.8)], close=True, dxfattribs=attribs)
        block.add_text("N", height=0.3, dxfattribs=attribs).set_placement((0, 0.15))

    # ── Areas ───────────────────────────────────────────────────────────

    def _draw_area(self, geom: BaseGeometry, layer: str, fill_layer: str | None = None):
        for polygon in polygon_parts(geom):
            rings = [list(polygon.exterior.coords)] + [list(r.coords) for r in polygon.interiors]
            for ring in rings:
                self.msp.add_lwpolyline(ring, close=True, dxfattribs={"layer": layer})
            if fill_layer is None:
                continue
            hatch = self.msp.add_hatch(color=LAYER_MAP[fill_layer].color, dxfattribs={"layer": fill_layer})
            for ring in rings:
                hatch.paths.add_polyline_path(ring, is_closed=True)

    def add_boundary(self, polygon: Polygon):
        self._draw_area(polygon, "C-PROP")

    def add_setback_envelope(self, geom: BaseGeometry):
        self._draw_area(geom, "C-PROP-SETB")

    def add_road_surface(self, geom: BaseGeometry):
        self._draw_area(geom, "C-ROAD", fill_layer="C-ROAD-FILL")

    def add_parcel(self, polygon: Polygon):
        self._draw_area(polygon, "C-PRCL")

    def add_green_space(self, polygon: Polygon):
        self._draw_area(polygon, "L-PLNT", fill_layer="L-PLNT-FILL")

    def add_building(self, footprint: Polygon, floors: int | None = None):
        self._draw_area(footprint, "A-BLDG", fill_layer="A-BLDG-FILL")
        if floors:
            c = footprint.centroid
            self.add_label((c.x, c.y), f"{floors}F", height=1.5)

    # ── Lines and annotation ────────────────────────────────────────────

    def add_road_centerline(self, start: tuple, end: tuple):
        self.msp.add_line(start, end, dxfattribs={"layer": "C-ROAD-CNTR"})

    def add_label(self, position: tuple, text: str, height: float = 2.0):
        label = self.msp.add_text(text, height=height, dxfattribs={"layer": "A-ANNO-TEXT", "style": "SITE_LABEL"})
        label.set_placement(position, align=TextEntityAlignment.MIDDLE_CENTER)

    def add_note(self, position: tuple, text: str, height: float = 3.0):
        note = self.msp.add_mtext(text, dxfattribs={
            "layer": "A-ANNO-NOTE",
            "style": "SITE_NOTE",
            "char_height": height,
            "width": 120,
        })
        note.set_location(insert=position)

    def add_north_arrow(self, position: tuple, scale: float = 10.0):
        self.msp.add_blockref(NORTH_ARROW_BLOCK, insert=position, dxfattribs={
            "layer": "A-ANNO-NOTE", "xscale": scale, "yscale": scale,
        })

    # ── Output ──────────────────────────────────────────────────────────

    def save(self, filepath: str):
        self.doc.saveas(filepath)

    def to_bytes(self) -> bytes:
        buffer = io.StringIO()
        self.doc.write(buffer)
        return buffer.getvalue().encode("utf-8")


def export_layout(layout, unit: str = "m") -> DXFExporter:
    """Draw every stage of a :class:`SiteLayout` into a new exporter."""
    exporter = DXFExporter(unit=unit)

    exporter.add_boundary(layout.boundary)
    if layout.envelope is not None and layout.settings.site_setback > 0:
        exporter.add_setback_envelope(layout.envelope)

    for start, end in layout.network.graph.segments():
        exporter.add_road_centerline(start, end)
    if layout.road_surface is not None:
        exporter.add_road_surface(layout.road_surface)

    for parcel in layout.allocation.developable:
        exporter.add_parcel(parcel)
    for green in layout.allocation.green:
        exporter.add_green_space(green)
    for building in layout.buildings:
        exporter.add_building(building.footprint, building.floors)

    minx, miny, maxx, maxy = layout.boundary.bounds
    span = max(maxx - minx, maxy - miny, 1.0)
    exporter.add_north_arrow((maxx + span * 0.05, maxy), scale=span * 0.05)

    stats = layout.stats
    exporter.add_note(
        (minx, miny - span * 0.05),
        f"Seed {layout.seed}\\P"
        f"Site area {stats['siteAreaSqM']:.0f} m²\\P"
        f"Parcels {stats['parcelCount']}  Buildings {stats['buildingCount']}",
    )
    return exporter
