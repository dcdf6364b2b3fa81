"""Layers, linetypes and text styles for exported site plans.

Layer names use the AIA CAD Layer Guidelines discipline prefixes:
C- civil (property, roads, parcels), L- landscape, A- architectural.
Colours are ACI indices (1 red, 2 yellow, 3 green, 4 cyan, 7 white,
8 dark grey, 250-255 grey ramp). Lineweights are hundredths of a
millimetre; -1 means "by layer default".
"""

from __future__ import annotations

from dataclasses import dataclass

from ezdxf import units


@dataclass(frozen=True)
class LayerDef:
    name: str
    color: int
    linetype: str
    lineweight: int
    description: str
    plot: bool = True


LAYERS: list[LayerDef] = [
    LayerDef("C-PROP", 2, "Continuous", 70, "Site boundary"),
    LayerDef("C-PROP-SETB", 3, "DASHED", 25, "Site setback envelope"),
    LayerDef("C-ROAD", 8, "Continuous", 35, "Road corridor outlines"),
    LayerDef("C-ROAD-FILL", 252, "Continuous", -1, "Road surface hatching"),
    LayerDef("C-ROAD-CNTR", 1, "CENTER", 13, "Road centrelines"),
    LayerDef("C-PRCL", 4, "Continuous", 18, "Parcel lines"),
    LayerDef("L-PLNT", 3, "Continuous", 25, "Green space outlines"),
    LayerDef("L-PLNT-FILL", 3, "Continuous", -1, "Green space hatching", plot=False),
    LayerDef("A-BLDG", 7, "Continuous", 50, "Building footprints"),
    LayerDef("A-BLDG-FILL", 250, "Continuous", -1, "Building footprint hatching"),
    LayerDef("A-ANNO-TEXT", 2, "Continuous", -1, "Labels"),
    LayerDef("A-ANNO-NOTE", 2, "Continuous", -1, "Notes and north arrow"),
]

LAYER_MAP: dict[str, LayerDef] = {layer.name: layer for layer in LAYERS}

# name -> (pattern in metres, description); drawings are 1 unit = 1 m.
CUSTOM_LINETYPES: dict[str, tuple[str, str]] = {
    "DASHED": ("A,2.0,-1.0", "Dashed, 2 m on 1 m off"),
    "CENTER": ("A,8.0,-2.0,2.0,-2.0", "Centre line, long-short"),
}

# name -> font
TEXT_STYLES: dict[str, str] = {
    "SITE_LABEL": "Arial",
    "SITE_NOTE": "Arial",
}

DXF_UNITS = {
    "mm": units.MM,
    "cm": units.CM,
    "m": units.M,
    "ft": units.FT,
    "in": units.IN,
}

NORTH_ARROW_BLOCK = "SITE_NORTH"
