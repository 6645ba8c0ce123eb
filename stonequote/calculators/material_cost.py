"""
Material cost calculator.

Pieces are grouped by material. Each group is priced on the tenant's basis:

    PER_SLAB          slab count x price per slab
                      (falls back to per-m2 when the material has no slab price)
    PER_SQUARE_METRE  area x price per m2, then the waste factor

The margin is applied on top of the (waste-adjusted) group cost and reported
on its own line. A piece with override_material_cost is charged exactly that
amount: no margin, no waste.
A priced piece whose material has no usable price is a ConfigurationError.

Each group's non-override total is then allocated back to its pieces by area
share, with the rounding remainder on the last piece in input order.
"""

import logging
import math
from collections import OrderedDict

from ..config import settings
from ..errors import ConfigurationError
from ..models import MaterialPricingBasis
from ..slab_sizes import slab_size_for_material
from .base import BaseCalculator, round_money, round_qty, sum_money, record_warning

logger = logging.getLogger(__name__)


def allocate_by_area(total: float, areas: list) -> list:
    """
    Split a money total across pieces in proportion to their areas.

    Every share is rounded to the cent; the last share takes the remainder
    so the shares always sum to exactly `total`.
    """
    if not areas:
        return []
    total_area = sum(areas)
    if total_area <= 0:
        shares = [0.0] * len(areas)
        shares[-1] = round_money(total)
        return shares

    shares = [round_money(total * (area / total_area)) for area in areas[:-1]]
    shares.append(round_money(total - sum_money(shares)))
    return shares


class MaterialCostCalculator(BaseCalculator):
    """
    Prices material for a whole quote.

    Usage:
        calc = MaterialCostCalculator(context, warnings_out)
        result = calc.calculate(pieces, materials_by_id, slab_count=None)
        result["breakdown"]      # quote-level materials section
        result["per_piece"]      # {piece_id: material share dict}
    """

    def __init__(self, context, warnings_out: list = None,
                 margin_adjust_percent: float = 0.0):
        self.context = context
        self.warnings = warnings_out if warnings_out is not None else []
        self.margin_adjust_percent = margin_adjust_percent or 0.0

    def calculate(self, pieces: list, materials_by_id: dict, slab_count: int = None) -> dict:
        groups = self._group_by_material(pieces, materials_by_id)
        priced_materials = {p.material_id for p in pieces if p.override_material_cost is None}
        single_material = len(priced_materials) <= 1
        waste_percent = self.effective_waste_percent()

        group_results = []
        per_piece = {}
        for material_id, group_pieces in groups.items():
            material = materials_by_id.get(material_id)
            group = self._price_group(
                material, material_id, group_pieces, waste_percent,
                slab_count if single_material else None,
            )
            group_results.append(group)
            per_piece.update(self._allocate_group(material, group_pieces, group))

        breakdown = self._summarise(group_results, pieces, waste_percent,
                                   grouped=not single_material)
        return {"breakdown": breakdown, "per_piece": per_piece}

    # --- Margin / waste ---

    def effective_margin_percent(self, material) -> float:
        """(material override -> supplier default -> 0) + tenant adjustment."""
        base = 0.0
        if material is not None:
            if material.margin_override_percent is not None:
                base = material.margin_override_percent
            elif material.supplier and material.supplier.default_margin_percent is not None:
                base = material.supplier.default_margin_percent
        return base + self.margin_adjust_percent

    def effective_waste_percent(self) -> float:
        """Tenant waste factor, clamped to [0, MAX_WASTE_FACTOR_PERCENT]. PER_SQUARE_METRE only."""
        if self.context.material_pricing_basis != MaterialPricingBasis.PER_SQUARE_METRE:
            return 0.0
        requested = self.context.waste_factor_percent or 0.0
        clamped = max(0.0, min(settings.MAX_WASTE_FACTOR_PERCENT, requested))
        if clamped != requested:
            record_warning(
                self.warnings,
                f"Waste factor {requested}% is outside normal range "
                f"(0-{settings.MAX_WASTE_FACTOR_PERCENT:g}%). Clamping to {clamped:g}%.",
            )
        return clamped

    # --- Internals ---

    def _group_by_material(self, pieces, materials_by_id) -> "OrderedDict":
        groups = OrderedDict()
        for piece in pieces:
            if piece.override_material_cost is None:
                if piece.material_id is None:
                    raise ConfigurationError(
                        f"{piece.display_name} has no material and no material cost override"
                    )
                if piece.material_id not in materials_by_id:
                    raise ConfigurationError(
                        f"{piece.display_name} references unknown material {piece.material_id!r}"
                    )
            groups.setdefault(piece.material_id, []).append(piece)
        return groups

    def _price_group(self, material, material_id, group_pieces, waste_percent,
                     optimiser_slab_count) -> dict:
        priced = [p for p in group_pieces if p.override_material_cost is None]
        overrides = [p for p in group_pieces if p.override_material_cost is not None]

        area = sum(p.area_sqm for p in group_pieces)
        priced_area = sum(p.area_sqm for p in priced)
        override_total = sum_money(round_money(p.override_material_cost) for p in overrides)

        basis = self.context.material_pricing_basis
        slab_count = None
        slab_rate = None
        base_cost = 0.0
        waste_applies = False

        if priced:
            if basis == MaterialPricingBasis.PER_SLAB and material.price_per_slab:
                slab_count = optimiser_slab_count
                if slab_count is None:
                    slab = slab_size_for_material(material)
                    slab_count = math.ceil(round(priced_area / slab.area_sqm, 6))
                slab_rate = material.price_per_slab
                base_cost = round_money(slab_count * slab_rate)
            else:
                if not material.price_per_sqm:
                    raise ConfigurationError(
                        f"Material {material.name or material_id!r} has no usable price "
                        f"for {basis.value} pricing"
                    )
                if basis == MaterialPricingBasis.PER_SLAB:
                    logger.info(
                        "Material %s has no slab price - pricing per m2", material.name or material_id,
                    )
                base_cost = round_money(priced_area * material.price_per_sqm)
                waste_applies = basis == MaterialPricingBasis.PER_SQUARE_METRE

        applied_waste = waste_percent if waste_applies and waste_percent > 0 else 0.0
        cost_with_waste = round_money(base_cost * (1 + applied_waste / 100))
        margin_percent = self.effective_margin_percent(material) if priced else 0.0
        margin_amount = round_money(cost_with_waste * (margin_percent / 100))
        priced_total = round_money(cost_with_waste + margin_amount)

        return {
            "material_id": material_id,
            "material_name": material.name if material is not None else None,
            "fabrication_category": self._category(material),
            "piece_ids": [p.id for p in group_pieces],
            "total_area_m2": round_qty(area),
            "pricing_basis": basis.value,
            "slab_count": slab_count,
            "slab_rate": slab_rate,
            "rate_per_sqm": material.price_per_sqm if material is not None else None,
            "base_cost": base_cost,
            "waste_factor_percent": applied_waste or None,
            "adjusted_area_m2": round_qty(priced_area * (1 + applied_waste / 100)) if applied_waste else None,
            "cost_with_waste": cost_with_waste,
            "margin_percent": margin_percent,
            "margin_amount": margin_amount,
            "override_total": override_total,
            "priced_total": priced_total,
            "total": sum_money([priced_total, override_total]),
        }

    def _allocate_group(self, material, group_pieces, group) -> dict:
        priced = [p for p in group_pieces if p.override_material_cost is None]
        shares = allocate_by_area(group["priced_total"], [p.area_sqm for p in priced])
        margin_shares = allocate_by_area(group["margin_amount"], [p.area_sqm for p in priced])

        per_piece = {}
        for piece, share, margin_share in zip(priced, shares, margin_shares):
            per_piece[piece.id] = {
                "material_id": piece.material_id,
                "material_name": group["material_name"],
                "area_sqm": round_qty(piece.area_sqm),
                "margin_amount": margin_share,
                "is_override": False,
                "total": share,
            }
        for piece in group_pieces:
            if piece.override_material_cost is not None:
                per_piece[piece.id] = {
                    "material_id": piece.material_id,
                    "material_name": group["material_name"],
                    "area_sqm": round_qty(piece.area_sqm),
                    "margin_amount": 0.0,
                    "is_override": True,
                    "total": round_money(piece.override_material_cost),
                }
        return per_piece

    def _summarise(self, groups, pieces, waste_percent, grouped=False) -> dict:
        slab_counts = [g["slab_count"] for g in groups if g["slab_count"] is not None]
        adjusted = [g["adjusted_area_m2"] for g in groups if g["adjusted_area_m2"] is not None]
        breakdown = {
            "total_area_m2": round_qty(sum(p.area_sqm for p in pieces)),
            "pricing_basis": self.context.material_pricing_basis.value,
            "slab_count": sum(slab_counts) if slab_counts else None,
            "subtotal": sum_money(g["cost_with_waste"] for g in groups),
            "margin_amount": sum_money(g["margin_amount"] for g in groups),
            "override_total": sum_money(g["override_total"] for g in groups),
            "waste_factor_percent": waste_percent if adjusted else None,
            "adjusted_area_m2": round_qty(sum(adjusted)) if adjusted else None,
            "total": sum_money(g["total"] for g in groups),
        }
        if grouped:
            breakdown["by_material"] = groups
        return breakdown

    def _category(self, material) -> str:
        if material is not None and material.fabrication_category:
            return material.fabrication_category
        return settings.DEFAULT_FABRICATION_CATEGORY
