"""
Quote aggregator.

Combines material and fabrication pricing into a QuoteResult.
Pure math: no I/O, no shared state. Identical inputs give identical output.

Input: pieces + materials + rate tables + tenant PricingContext
       (+ delivery info, custom charges, discount)
Output: QuoteResult dict

    pieces_subtotal = materials + edges + cutouts + services
    base_subtotal   = pieces_subtotal + delivery + templating
    subtotal        = base_subtotal + custom charges
    total           = subtotal - discount (floored at 0), or the quote override
    total_inc_gst   = total + total x gst_rate
"""

import logging
from collections import OrderedDict

from .calculators.base import record_warning, round_money, round_qty, sum_money
from .calculators.fabrication_cost import FabricationCostCalculator
from .calculators.material_cost import MaterialCostCalculator
from .calculators.rate_resolver import RateResolver
from .errors import ConfigurationError, ValidationError
from .models import DiscountAppliesTo, DiscountType, ServiceType, ServiceUnit
from .validation import validate_pieces

logger = logging.getLogger(__name__)


class QuoteAggregator:
    """
    Prices a whole quote from one input snapshot.

    A fresh instance per quote: the warnings list it collects belongs to the
    result it returns.
    """

    def __init__(self, rate_tables, pricing_context, fabrication_discount_percent: float = 0.0,
                 material_margin_adjust_percent: float = 0.0, edge_trim_mm: float = None):
        if pricing_context is None:
            raise ConfigurationError("Tenant pricing settings are missing. Configure them before pricing quotes.")
        if rate_tables is None:
            raise ConfigurationError("Rate tables are missing. Configure service rates before pricing quotes.")

        self.context = pricing_context
        self.warnings = []
        self.resolver = RateResolver(rate_tables, self.warnings)
        self.material_calc = MaterialCostCalculator(
            pricing_context, self.warnings, material_margin_adjust_percent,
        )
        self.fabrication_calc = FabricationCostCalculator(
            self.resolver, pricing_context, fabrication_discount_percent, edge_trim_mm,
        )

    def price(self, pieces, materials, delivery_info=None, custom_charges=None,
              discount_spec=None, slab_count: int = None, override_total: float = None) -> dict:
        """
        Price every piece and roll the quote up.

        Raises:
            ConfigurationError: a required rate is missing, or a piece has no material
            ValidationError: a piece fails its geometry or mitred-edge checks
        """
        pieces = list(pieces)
        materials_by_id = self._index_materials(materials)

        self.resolver.validate_required()
        validate_pieces(pieces, self.resolver)

        # --- Material ---
        material_result = self.material_calc.calculate(pieces, materials_by_id, slab_count)
        per_piece_material = material_result["per_piece"]

        # --- Per piece ---
        piece_breakdowns = [
            self.fabrication_calc.price_piece(
                piece,
                materials_by_id.get(piece.material_id),
                per_piece_material[piece.id],
            )
            for piece in pieces
        ]

        # --- Aggregate sections ---
        materials_section = material_result["breakdown"]
        edges_section = self._aggregate_edges(piece_breakdowns)
        cutouts_section = self._aggregate_cutouts(piece_breakdowns)
        services_section = self._aggregate_services(piece_breakdowns)

        pieces_subtotal = sum_money([
            materials_section["total"],
            edges_section["total"],
            cutouts_section["total"],
            services_section["total"],
        ])

        # --- Quote-level charges ---
        delivery = self._delivery(delivery_info)
        templating = self._templating(delivery_info)
        base_subtotal = sum_money([
            pieces_subtotal,
            delivery["final_cost"] if delivery else 0.0,
            templating["final_cost"] if templating else 0.0,
        ])

        charges = self._custom_charges(custom_charges)
        subtotal = sum_money([base_subtotal, charges["total"]])

        discount = self._apply_discount(discount_spec, base_subtotal, charges["total"])
        calculated_total = discount["discounted_subtotal"]

        if override_total is not None:
            total = round_money(override_total)
            logger.info("Quote total overridden: %.2f (calculated %.2f)", total, calculated_total)
        else:
            total = calculated_total

        gst_amount = round_money(total * self.context.gst_rate)

        logger.info(
            "Priced quote: %d pieces, subtotal %.2f, total %.2f, %d warnings",
            len(pieces), subtotal, total, len(self.warnings),
        )

        return {
            "currency": self.context.currency,
            "pieces": piece_breakdowns,
            "materials": materials_section,
            "edges": edges_section,
            "cutouts": cutouts_section,
            "services": services_section,
            "pieces_subtotal": pieces_subtotal,
            "delivery": delivery,
            "templating": templating,
            "base_subtotal": base_subtotal,
            "custom_charges": charges,
            "subtotal": subtotal,
            "discount": discount,
            "calculated_total": calculated_total,
            "override_total": round_money(override_total) if override_total is not None else None,
            "total": total,
            "gst_rate": self.context.gst_rate,
            "gst_amount": gst_amount,
            "total_inc_gst": sum_money([total, gst_amount]),
            "warnings": list(self.warnings),
        }

    # --- Inputs ---

    def _index_materials(self, materials) -> dict:
        if materials is None:
            return {}
        if isinstance(materials, dict):
            return dict(materials)
        return {m.id: m for m in materials}

    # --- Aggregation ---

    def _aggregate_edges(self, piece_breakdowns) -> dict:
        by_type = OrderedDict()
        for breakdown in piece_breakdowns:
            for line in breakdown["fabrication"]["edges"]:
                entry = by_type.setdefault(line["edge_type_id"], {
                    "edge_type_id": line["edge_type_id"],
                    "name": line["edge_type_name"],
                    "linear_metres": [],
                    "base_amount": [],
                    "discount": [],
                    "total": [],
                })
                entry["linear_metres"].append(line["quantity"])
                entry["base_amount"].append(line["base_amount"])
                entry["discount"].append(line["discount"])
                entry["total"].append(line["total"])

        items = [
            {
                "edge_type_id": e["edge_type_id"],
                "name": e["name"],
                "linear_metres": round_qty(sum(e["linear_metres"])),
                "subtotal": sum_money(e["base_amount"]),
                "discount": sum_money(e["discount"]),
                "total": sum_money(e["total"]),
            }
            for e in by_type.values()
        ]
        return {
            "total_linear_metres": round_qty(sum(i["linear_metres"] for i in items)),
            "by_type": items,
            "subtotal": sum_money(i["subtotal"] for i in items),
            "discount": sum_money(i["discount"] for i in items),
            "total": sum_money(i["total"] for i in items),
        }

    def _aggregate_cutouts(self, piece_breakdowns) -> dict:
        by_type = OrderedDict()
        for breakdown in piece_breakdowns:
            for line in breakdown["fabrication"]["cutouts"]:
                entry = by_type.setdefault(line["cutout_type_id"], {
                    "cutout_type_id": line["cutout_type_id"],
                    "name": line["cutout_type_name"],
                    "quantity": 0,
                    "totals": [],
                })
                entry["quantity"] += line["quantity"]
                entry["totals"].append(line["total"])

        items = [
            {
                "cutout_type_id": e["cutout_type_id"],
                "name": e["name"],
                "quantity": e["quantity"],
                "subtotal": sum_money(e["totals"]),
            }
            for e in by_type.values()
        ]
        subtotal = sum_money(i["subtotal"] for i in items)
        return {"items": items, "subtotal": subtotal, "discount": 0.0, "total": subtotal}

    def _aggregate_services(self, piece_breakdowns) -> dict:
        """
        Cutting, polishing, lamination, installation and waterfall ends are
        summed per (service type, fabrication category, rate), so 20mm and 40mm
        pieces land on separate lines. Joins and grain matching surcharges
        stay one line per oversize piece.
        """
        grouped = OrderedDict()
        per_piece_items = []

        for breakdown in piece_breakdowns:
            fab = breakdown["fabrication"]
            category = breakdown["fabrication_category"]
            lines = [
                (ServiceType.CUTTING, fab["cutting"]),
                (ServiceType.POLISHING, fab["polishing"]),
                (ServiceType.LAMINATION, fab["lamination"]),
                (ServiceType.INSTALLATION, fab["installation"]),
                (ServiceType.WATERFALL_END, fab["waterfall"]),
            ]
            for service_type, line in lines:
                if line is None:
                    continue
                rate = line.get("rate", line.get("base_rate"))
                key = (service_type.value, category, rate)
                entry = grouped.setdefault(key, {
                    "service_type": service_type.value,
                    "unit": line.get("unit", ServiceUnit.LINEAR_METRE.value),
                    "rate": rate,
                    "quantity": 0.0,
                    "totals": [],
                })
                entry["quantity"] += line.get("quantity", line.get("finished_edge_lm", 0.0))
                entry["totals"].append(line["total"])

            oversize = breakdown["oversize"]
            if oversize is None:
                continue
            per_piece_items.append(self.fabrication_calc.make_service_item(
                ServiceType.JOIN.value,
                f"Join - {oversize['strategy']} ({breakdown['piece_name']})",
                oversize["join_length_lm"],
                ServiceUnit.LINEAR_METRE.value,
                oversize["join_rate"],
                oversize["join_cost"],
                category,
            ))
            if oversize["grain_matching_surcharge"] > 0:
                per_piece_items.append(self.fabrication_calc.make_service_item(
                    ServiceType.GRAIN_MATCHING.value,
                    f"Grain Matching Surcharge ({breakdown['piece_name']})",
                    1,
                    ServiceUnit.FIXED.value,
                    oversize["grain_matching_surcharge"],
                    oversize["grain_matching_surcharge"],
                    category,
                ))

        items = [
            self.fabrication_calc.make_service_item(
                service_type,
                service_type.replace("_", " ").title(),
                entry["quantity"],
                entry["unit"],
                entry["rate"],
                sum_money(entry["totals"]),
                category,
            )
            for (service_type, category, _rate), entry in grouped.items()
        ]
        items += per_piece_items

        subtotal = sum_money(i["subtotal"] for i in items)
        return {"items": items, "subtotal": subtotal, "total": subtotal}

    # --- Quote-level charges ---

    def _delivery(self, delivery_info):
        if delivery_info is None:
            return None
        calculated = round_money(delivery_info.delivery_cost) if delivery_info.delivery_cost is not None else None
        override = delivery_info.override_delivery_cost
        if override is not None:
            final = round_money(override)
        else:
            final = calculated or 0.0
        return {
            "address": delivery_info.address,
            "distance_km": delivery_info.distance_km,
            "zone": delivery_info.zone,
            "calculated_cost": calculated,
            "override_cost": round_money(override) if override is not None else None,
            "final_cost": final,
        }

    def _templating(self, delivery_info):
        if delivery_info is None:
            return None
        override = delivery_info.override_templating_cost
        if not delivery_info.templating_required and override is None:
            return None
        calculated = (
            round_money(delivery_info.templating_cost)
            if delivery_info.templating_cost is not None else None
        )
        if override is not None:
            final = round_money(override)
        else:
            final = calculated or 0.0
        return {
            "required": delivery_info.templating_required,
            "distance_km": delivery_info.templating_distance_km,
            "calculated_cost": calculated,
            "override_cost": round_money(override) if override is not None else None,
            "final_cost": final,
        }

    def _custom_charges(self, custom_charges) -> dict:
        items = [
            {"description": c.description, "amount": round_money(c.amount)}
            for c in (custom_charges or [])
        ]
        return {"items": items, "total": sum_money(i["amount"] for i in items)}

    def _apply_discount(self, discount_spec, base_subtotal: float, custom_total: float) -> dict:
        """
        ALL discounts base + custom charges together. FABRICATION_ONLY discounts
        the base only and adds the custom charges back afterwards. Never below 0.
        """
        if discount_spec is None or not discount_spec.value:
            return {
                "discount_type": None,
                "value": 0.0,
                "applies_to": None,
                "discountable_amount": 0.0,
                "amount": 0.0,
                "discounted_subtotal": max(0.0, sum_money([base_subtotal, custom_total])),
            }

        if discount_spec.value < 0:
            raise ValidationError(f"Discount value must not be negative (got {discount_spec.value})")

        if discount_spec.applies_to == DiscountAppliesTo.FABRICATION_ONLY:
            discountable = base_subtotal
            carried = custom_total
        else:
            discountable = sum_money([base_subtotal, custom_total])
            carried = 0.0

        if discount_spec.discount_type == DiscountType.PERCENTAGE:
            requested = round_money(discountable * (discount_spec.value / 100))
        else:
            requested = round_money(discount_spec.value)

        amount = min(requested, max(discountable, 0.0))
        if amount < requested:
            record_warning(
                self.warnings,
                f"Discount of {requested:.2f} exceeds the discountable amount "
                f"{discountable:.2f} - capped so the total does not go below 0",
            )
        discounted = max(0.0, round_money(discountable - amount))

        return {
            "discount_type": discount_spec.discount_type.value,
            "value": discount_spec.value,
            "applies_to": discount_spec.applies_to.value,
            "discountable_amount": discountable,
            "amount": amount,
            "discounted_subtotal": max(0.0, sum_money([discounted, carried])),
        }


def price_quote(pieces, materials, rate_tables, pricing_context, delivery_info=None,
                custom_charges=None, discount_spec=None, slab_count: int = None,
                fabrication_discount_percent: float = 0.0,
                material_margin_adjust_percent: float = 0.0,
                override_total: float = None, edge_trim_mm: float = None) -> dict:
    """
    Price a quote. The engine's single entry point.

    Args:
        pieces: [Piece]
        materials: [Material] or {material_id: Material}
        rate_tables: RateTables snapshot
        pricing_context: tenant PricingContext
        delivery_info: DeliveryInfo with pre-computed delivery/templating costs
        custom_charges: [CustomCharge]
        discount_spec: DiscountSpec
        slab_count: authoritative slab count from the optimiser (single-material quotes)
        fabrication_discount_percent: customer tier discount on cutting, polishing and edges
        material_margin_adjust_percent: tenant-level adjustment added to every material margin
        override_total: replaces the calculated total before GST
        edge_trim_mm: slab edge trim for oversize detection

    Returns:
        QuoteResult dict. Raises ConfigurationError / ValidationError
        instead of returning a partial result.
    """
    aggregator = QuoteAggregator(
        rate_tables, pricing_context,
        fabrication_discount_percent=fabrication_discount_percent,
        material_margin_adjust_percent=material_margin_adjust_percent,
        edge_trim_mm=edge_trim_mm,
    )
    return aggregator.price(
        pieces, materials, delivery_info, custom_charges, discount_spec,
        slab_count=slab_count, override_total=override_total,
    )
