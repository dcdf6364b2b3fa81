"""Unit conversion utilities. Internal planar representation is always metres."""

SQ_M_PER_HECTARE = 10_000.0
SQ_M_PER_ACRE = 4046.86


def sq_m_to_hectares(area_sq_m: float) -> float:
    return area_sq_m / SQ_M_PER_HECTARE


def sq_m_to_acres(area_sq_m: float) -> float:
    return area_sq_m / SQ_M_PER_ACRE
