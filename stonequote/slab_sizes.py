"""
Standard slab sizes by material family.

Used when a material record carries no slab dimensions of its own.
Source: supplier spec sheets (Caesarstone, Silestone, Essastone, Dekton).
"""

import re

from .config import settings
from .schemas import Material, SlabSize

SLAB_SIZES = {
    "ENGINEERED_QUARTZ_JUMBO": SlabSize(length_mm=3200, width_mm=1600, name="Engineered Quartz (Jumbo)"),
    "ENGINEERED_QUARTZ_STANDARD": SlabSize(length_mm=3050, width_mm=1440, name="Engineered Quartz (Standard)"),
    "NATURAL_STONE": SlabSize(length_mm=2800, width_mm=1600, name="Natural Stone"),
    "PORCELAIN": SlabSize(length_mm=3200, width_mm=1600, name="Porcelain"),
}

# Brand / stone name -> slab family
MATERIAL_FAMILIES = {
    "caesarstone": "ENGINEERED_QUARTZ_JUMBO",
    "silestone": "ENGINEERED_QUARTZ_JUMBO",
    "smartstone": "ENGINEERED_QUARTZ_JUMBO",
    "essastone": "ENGINEERED_QUARTZ_STANDARD",
    "granite": "NATURAL_STONE",
    "marble": "NATURAL_STONE",
    "quartzite": "NATURAL_STONE",
    "porcelain": "PORCELAIN",
    "dekton": "PORCELAIN",
    "neolith": "PORCELAIN",
}


def get_slab_size(material_name: str) -> SlabSize:
    """Slab size for a material family name; unknown names get the default family."""
    normalised = re.sub(r"[^a-z]", "", (material_name or "").lower())
    family = MATERIAL_FAMILIES.get(normalised, settings.DEFAULT_SLAB_FAMILY)
    return SLAB_SIZES[family]


def slab_size_for_material(material: Material) -> SlabSize:
    """The material's own slab dimensions take precedence over family defaults."""
    if material.slab_length_mm and material.slab_width_mm:
        return SlabSize(
            length_mm=material.slab_length_mm,
            width_mm=material.slab_width_mm,
            name=material.name or "material",
        )
    return get_slab_size(material.name)


def usable_dimensions(slab: SlabSize, edge_trim_mm: float = 20) -> tuple:
    """(max_length, max_width) after trimming edge_trim_mm off every side."""
    return (
        slab.length_mm - edge_trim_mm * 2,
        slab.width_mm - edge_trim_mm * 2,
    )
