"""
Quote options ("what-if" pricing).

An option is priced by overlaying replacement values onto copies of the base
pieces and running the normal calculator on the copies. The base pieces are
never touched, so any number of options can be priced side by side.
"""

import logging

from .errors import PricingError
from .pricing_engine import price_quote

logger = logging.getLogger(__name__)

_OVERLAY_FIELDS = (
    "material_id", "thickness_mm", "length_mm", "width_mm",
    "edge_top", "edge_bottom", "edge_left", "edge_right",
    "cutouts", "lamination_method",
)


def apply_overlay(pieces, overlays) -> list:
    """
    New Piece snapshots with overlay values substituted.

    None in an overlay keeps the base value. Area and perimeter are derived
    properties, so they follow any overlaid length or width automatically.
    Overlays for piece ids not in the quote are ignored.
    """
    by_piece = {o.piece_id: o for o in overlays or []}
    known = {p.id for p in pieces}
    for piece_id in by_piece:
        if piece_id not in known:
            logger.warning("Overlay for unknown piece %s ignored", piece_id)

    result = []
    for piece in pieces:
        overlay = by_piece.get(piece.id)
        if overlay is None:
            result.append(piece)
            continue
        updates = {}
        for field in _OVERLAY_FIELDS:
            value = getattr(overlay, field)
            if value is not None:
                updates[field] = value
        result.append(piece.model_copy(update=updates) if updates else piece)
    return result


def price_option(pieces, overlays, materials, rate_tables, pricing_context, **kwargs) -> dict:
    """price_quote() on the overlaid pieces. Accepts every price_quote keyword."""
    return price_quote(apply_overlay(pieces, overlays), materials, rate_tables,
                       pricing_context, **kwargs)


def price_options(pieces, options, materials, rate_tables, pricing_context, **kwargs) -> list:
    """
    Price every option of a quote.

    One failing option does not stop the others: its entry carries the error
    message and no totals.

    Returns:
        [{name, is_base, subtotal, discount_amount, total, gst_amount,
          total_inc_gst, result, error}]
    """
    summaries = []
    for option in options:
        option_kwargs = dict(kwargs)
        option_kwargs["material_margin_adjust_percent"] = option.material_margin_adjust_percent
        overlays = [] if option.is_base else option.overlays

        try:
            result = price_option(pieces, overlays, materials, rate_tables,
                                  pricing_context, **option_kwargs)
        except PricingError as e:
            logger.error("Failed to price option %r: %s", option.name, e)
            summaries.append({
                "name": option.name,
                "is_base": option.is_base,
                "subtotal": None,
                "discount_amount": None,
                "total": None,
                "gst_amount": None,
                "total_inc_gst": None,
                "result": None,
                "error": str(e),
            })
            continue

        summaries.append({
            "name": option.name,
            "is_base": option.is_base,
            "subtotal": result["subtotal"],
            "discount_amount": result["discount"]["amount"],
            "total": result["total"],
            "gst_amount": result["gst_amount"],
            "total_inc_gst": result["total_inc_gst"],
            "result": result,
            "error": None,
        })
    return summaries
