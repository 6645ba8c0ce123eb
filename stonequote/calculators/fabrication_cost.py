"""
Fabrication cost calculator (per piece).

Every line is rounded to the cent where it is computed:

    cutting       perimeter (Lm) or area (m2) x CUTTING rate, tier discount
    polishing     finished-edge Lm (or Lm x thickness as m2) x POLISHING rate, tier discount
    edges         per finished side: category -> thickness tier -> base rate,
                  padded to the profile's minimum length, minimum charge, tier discount
    cutouts       grouped by type: category -> base rate, x thickness multiplier above 20mm
    lamination    thick pieces only: finished-edge Lm x 20mm polishing rate x multiplier
    installation  area, perimeter or 1 (FIXED) x INSTALLATION rate
    waterfall     one WATERFALL_END per flagged piece (optional rate)

An oversize piece (one that does not fit on a single slab of its material) is
charged a JOIN (required rate) plus a grain matching surcharge on the piece's
fabrication subtotal.
"""

import logging
from collections import OrderedDict

from ..config import settings
from ..models import LaminationMethod, ServiceType, ServiceUnit
from ..slab_sizes import get_slab_size, slab_size_for_material
from .base import (
    BaseCalculator, finished_edge_lm, is_thick, record_warning,
    round_money, round_qty, sum_money,
)
from .slab_fit import calculate_cut_plan

logger = logging.getLogger(__name__)


def quantity_for_unit(unit: ServiceUnit, linear_metres: float, square_metres: float) -> float:
    if unit == ServiceUnit.FIXED:
        return 1.0
    if unit == ServiceUnit.SQUARE_METRE:
        return square_metres
    return linear_metres


class FabricationCostCalculator(BaseCalculator):
    """
    Prices fabrication for one piece at a time.

    Usage:
        calc = FabricationCostCalculator(resolver, context, discount_percent=10)
        breakdown = calc.price_piece(piece, material, material_share)
    """

    def __init__(self, resolver, context, discount_percent: float = 0.0,
                 edge_trim_mm: float = None):
        self.resolver = resolver
        self.context = context
        self.discount_percent = discount_percent or 0.0
        self.edge_trim_mm = settings.EDGE_TRIM_MM if edge_trim_mm is None else edge_trim_mm

    @property
    def warnings(self) -> list:
        return self.resolver.warnings

    def price_piece(self, piece, material=None, material_share: dict = None) -> dict:
        """
        Full per-piece breakdown.

        Returns:
            {
                piece_id, piece_name, fabrication_category, dimensions,
                materials: material share dict or None,
                fabrication: {cutting, polishing, edges, cutouts, lamination,
                              installation, waterfall, subtotal},
                oversize: dict or None,
                piece_total: float,
            }
        """
        category = self.fabrication_category(material)

        fabrication = {
            "cutting": self.cutting(piece, category),
            "polishing": self.polishing(piece, category),
            "edges": self.edges(piece, category),
            "cutouts": self.cutouts(piece, category),
            "lamination": self.lamination(piece, category),
            "installation": self.installation(piece, category),
            "waterfall": self.waterfall(piece, category),
        }
        fabrication["subtotal"] = sum_money(self._fabrication_totals(fabrication))

        oversize = self.oversize(piece, material, category, fabrication["subtotal"])

        parts = [fabrication["subtotal"]]
        if material_share is not None:
            parts.append(material_share["total"])
        if oversize is not None:
            parts += [oversize["join_cost"], oversize["grain_matching_surcharge"]]

        return {
            "piece_id": piece.id,
            "piece_name": piece.display_name,
            "fabrication_category": category,
            "dimensions": {
                "length_mm": piece.length_mm,
                "width_mm": piece.width_mm,
                "thickness_mm": piece.thickness_mm,
            },
            "materials": material_share,
            "fabrication": fabrication,
            "oversize": oversize,
            "piece_total": sum_money(parts),
        }

    def fabrication_category(self, material) -> str:
        if material is not None and material.fabrication_category:
            return material.fabrication_category
        return settings.DEFAULT_FABRICATION_CATEGORY

    # --- Services ---

    def cutting(self, piece, category: str) -> dict:
        unit = self.context.cutting_unit
        qty = quantity_for_unit(unit, piece.perimeter_lm, piece.area_sqm)
        resolved = self.resolver.service(ServiceType.CUTTING, piece.thickness_mm, category)
        base = round_money(resolved.apply_minimum(qty * resolved.rate))
        discount, _ = self.apply_discount(base, self.discount_percent)
        return self.make_line(qty, unit.value, resolved.rate, base, discount, self.discount_percent)

    def polishing(self, piece, category: str) -> dict:
        unit = self.context.polishing_unit
        edge_lm = finished_edge_lm(piece)
        qty = quantity_for_unit(unit, edge_lm, edge_lm * (piece.thickness_mm / 1000))
        resolved = self.resolver.service(ServiceType.POLISHING, piece.thickness_mm, category)
        base = round_money(qty * resolved.rate)
        if edge_lm > 0:
            base = round_money(resolved.apply_minimum(base))
        discount, _ = self.apply_discount(base, self.discount_percent)
        return self.make_line(qty, unit.value, resolved.rate, base, discount, self.discount_percent)

    def installation(self, piece, category: str):
        unit = self.context.installation_unit
        qty = quantity_for_unit(unit, piece.perimeter_lm, piece.area_sqm)
        resolved = self.resolver.service(ServiceType.INSTALLATION, piece.thickness_mm, category)
        base = round_money(resolved.apply_minimum(qty * resolved.rate))
        if base <= 0:
            return None
        return self.make_line(qty, unit.value, resolved.rate, base)

    def waterfall(self, piece, category: str):
        if not piece.is_waterfall:
            return None
        resolved = self.resolver.service(
            ServiceType.WATERFALL_END, piece.thickness_mm, category, required=False,
        )
        if resolved is None:
            return None
        base = round_money(resolved.apply_minimum(resolved.rate))
        return self.make_line(1, ServiceUnit.FIXED.value, resolved.rate, base)

    def lamination(self, piece, category: str):
        """Thick pieces with a build-up method only. Priced off the 20mm polishing rate."""
        if not is_thick(piece.thickness_mm) or piece.lamination_method == LaminationMethod.NONE:
            return None

        edge_lm = finished_edge_lm(piece)
        polish_20mm = self.resolver.service(
            ServiceType.POLISHING, settings.THICKNESS_TIER_MM, category,
        ).rate
        if piece.lamination_method == LaminationMethod.MITRED:
            multiplier = self.context.mitred_multiplier
        else:
            multiplier = self.context.laminated_multiplier

        total = round_money(edge_lm * polish_20mm * multiplier)
        if total <= 0:
            return None
        return {
            "method": piece.lamination_method.value,
            "finished_edge_lm": round_qty(edge_lm),
            "base_rate": polish_20mm,
            "multiplier": multiplier,
            "total": total,
        }

    # --- Edge profiles ---

    def edges(self, piece, category: str) -> list:
        lines = []
        for side, edge_id, length_mm in piece.edge_sides():
            if not edge_id:
                continue
            resolved = self.resolver.edge(edge_id, piece.thickness_mm, category)
            edge_type = resolved.record

            linear_metres = length_mm / 1000
            billed_lm = linear_metres
            min_length = edge_type.minimum_length_lm or 0
            if min_length > 0 and linear_metres < min_length:
                billed_lm = min_length

            base = round_money(resolved.apply_minimum(round_money(billed_lm * resolved.rate)))
            discount, _ = self.apply_discount(base, self.discount_percent)
            line = self.make_line(
                billed_lm, ServiceUnit.LINEAR_METRE.value, resolved.rate, base,
                discount, self.discount_percent,
                side=side,
                edge_type_id=edge_type.id,
                edge_type_name=edge_type.name,
                length_mm=length_mm,
                linear_metres=round_qty(linear_metres),
            )
            lines.append(line)
        return lines

    # --- Cutouts ---

    def cutouts(self, piece, category: str) -> list:
        grouped = OrderedDict()
        for cutout in piece.cutouts:
            cutout_type = self.resolver.cutout_type(cutout.type)
            if cutout_type is None:
                record_warning(
                    self.warnings,
                    f"{piece.display_name}: unknown cutout type {cutout.type!r} - not charged",
                )
                continue
            if cutout_type.id in grouped:
                grouped[cutout_type.id]["quantity"] += cutout.quantity
            else:
                grouped[cutout_type.id] = {"type": cutout_type, "quantity": cutout.quantity}

        multiplier = self.context.cutout_thickness_multiplier if is_thick(piece.thickness_mm) else 1.0

        lines = []
        for entry in grouped.values():
            cutout_type = entry["type"]
            resolved = self.resolver.cutout(cutout_type, category)
            rate = round_money(resolved.rate * multiplier)
            base = round_money(resolved.apply_minimum(round_money(entry["quantity"] * rate)))
            lines.append({
                "cutout_type_id": cutout_type.id,
                "cutout_type_name": cutout_type.name,
                "quantity": entry["quantity"],
                "rate": rate,
                "thickness_multiplier": multiplier,
                "base_amount": base,
                "discount": 0.0,
                "total": base,
            })
        return lines

    # --- Oversize ---

    def oversize(self, piece, material, category: str, fabrication_subtotal: float):
        """JOIN + grain matching surcharge when the piece has to be split. None when it fits."""
        slab = slab_size_for_material(material) if material is not None else get_slab_size(None)
        plan = calculate_cut_plan(piece, slab, self.edge_trim_mm)
        if plan["fits_on_single_slab"]:
            for message in plan["warnings"]:
                logger.info("%s: %s", piece.display_name, message)
            return None

        join_rate = self.resolver.service(
            ServiceType.JOIN, piece.thickness_mm, category, required=True,
        ).rate
        join_length_lm = round_qty(plan["join_length_mm"] / 1000)
        join_cost = round_money(join_length_lm * join_rate)

        surcharge_percent = self.context.grain_matching_surcharge_percent or 0.0
        grain = round_money(fabrication_subtotal * (surcharge_percent / 100))

        for message in plan["warnings"]:
            record_warning(self.warnings, f"{piece.display_name}: {message}")

        return {
            "is_oversize": True,
            "strategy": plan["strategy"],
            "slab": {"name": slab.name, "length_mm": slab.length_mm, "width_mm": slab.width_mm},
            "total_slabs_required": plan["total_slabs_required"],
            "join_count": len(plan["joins"]),
            "joins": plan["joins"],
            "segments": plan["segments"],
            "join_length_lm": join_length_lm,
            "join_rate": join_rate,
            "join_cost": join_cost,
            "grain_matching_surcharge_percent": surcharge_percent,
            "fabrication_subtotal_before_surcharge": fabrication_subtotal,
            "grain_matching_surcharge": grain,
            "warnings": plan["warnings"],
        }

    # --- Internals ---

    def _fabrication_totals(self, fabrication: dict) -> list:
        totals = [fabrication["cutting"]["total"], fabrication["polishing"]["total"]]
        for key in ("lamination", "installation", "waterfall"):
            if fabrication[key] is not None:
                totals.append(fabrication[key]["total"])
        totals += [e["total"] for e in fabrication["edges"]]
        totals += [c["total"] for c in fabrication["cutouts"]]
        return totals
