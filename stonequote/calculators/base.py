"""
Shared helpers for all pricing calculators.

Money is rounded half-up to the cent at the point it is computed, so any
re-aggregation of the emitted line items reproduces the emitted totals.
"""

import logging
import math
import warnings
from decimal import Decimal, ROUND_HALF_UP

from ..config import settings
from ..errors import ConfigurationError, DataIntegrityWarning

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def round_money(value: float) -> float:
    """Round half-up to 2 decimals. Uses the decimal repr so 1.005 -> 1.01."""
    if value is None or not math.isfinite(value):
        raise ConfigurationError(f"Non-finite money value produced: {value!r}")
    return float(Decimal(repr(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def round_qty(value: float) -> float:
    """Quantities (m, m², Lm) are displayed to 2 decimals as well."""
    return float(Decimal(repr(value)).quantize(CENT, rounding=ROUND_HALF_UP))


def sum_money(values) -> float:
    """Exact sum of already-rounded money values."""
    total = sum((Decimal(repr(v)) for v in values), Decimal("0"))
    return float(total.quantize(CENT, rounding=ROUND_HALF_UP))


def is_thick(thickness_mm: float) -> bool:
    return thickness_mm > settings.THICKNESS_TIER_MM


def finished_edge_lm(piece) -> float:
    """Linear metres of edges carrying a profile. Raw (None) sides are excluded."""
    return sum(length for _, edge_id, length in piece.edge_sides() if edge_id) / 1000


def record_warning(warnings_out: list, message: str):
    """Log a non-fatal data-integrity condition and keep it on the result."""
    logger.warning(message)
    warnings.warn(message, DataIntegrityWarning, stacklevel=3)
    if message not in warnings_out:
        warnings_out.append(message)


class BaseCalculator:
    """Common line-item builders."""

    def apply_discount(self, base_amount: float, discount_pct: float) -> tuple:
        """Returns (discount, total) for a line, both rounded."""
        discount = round_money(base_amount * (discount_pct / 100.0))
        return discount, round_money(base_amount - discount)

    def make_line(self, quantity: float, unit: str, rate: float,
                  base_amount: float, discount: float = 0.0,
                  discount_pct: float = 0.0, **extra) -> dict:
        """Build a priced line matching the per-piece breakdown contract."""
        line = {
            "quantity": round_qty(quantity),
            "unit": unit,
            "rate": rate,
            "base_amount": round_money(base_amount),
            "discount": round_money(discount),
            "total": round_money(base_amount - discount),
            "discount_percentage": discount_pct,
        }
        line.update(extra)
        return line

    def make_service_item(self, service_type: str, name: str, quantity: float,
                          unit: str, rate: float, subtotal: float,
                          fabrication_category: str = None) -> dict:
        """Build a quote-level service line for aggregate display."""
        return {
            "service_type": service_type,
            "name": name,
            "quantity": round_qty(quantity),
            "unit": unit,
            "rate": rate,
            "subtotal": round_money(subtotal),
            "fabrication_category": fabrication_category,
        }
