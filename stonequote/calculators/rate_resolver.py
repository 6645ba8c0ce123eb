"""
Rate resolution with ordered fallback.

Service rates are keyed by (service_type, fabrication_category). A lookup
walks an ordered list of strategies and stops at the first hit:

1. exact (type, category) match
2. the category-less record for the type
3. the first record of the type

Required service types (CUTTING, POLISHING, INSTALLATION, and JOIN for an
oversize piece) raise ConfigurationError when nothing matches, so a quote is
never silently priced at $0. Optional types return None and the caller omits
the charge with a logged warning.

Edge and cutout rates have their own chains:
    edge:   category override -> thickness-tiered edge rate -> base rate
    cutout: category rate -> flat base rate
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..config import settings
from ..errors import ConfigurationError
from ..models import REQUIRED_SERVICE_TYPES, ServiceType
from .base import is_thick, record_warning

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedRate:
    """A rate picked for one thickness tier, plus the record it came from."""
    rate: float
    record: object
    matched_by: str
    minimum_charge: Optional[float] = None

    def apply_minimum(self, cost: float) -> float:
        """max(cost, minimum_charge) when a positive minimum is configured."""
        if self.minimum_charge and self.minimum_charge > 0:
            return max(cost, self.minimum_charge)
        return cost


# --- Service rate lookup strategies ---

def exact_match(records, rate_type, category):
    for r in records:
        if r.service_type == rate_type and category and r.fabrication_category == category:
            return r
    return None


def uncategorised_match(records, rate_type, category):
    for r in records:
        if r.service_type == rate_type and not r.fabrication_category:
            return r
    return None


def any_match(records, rate_type, category):
    for r in records:
        if r.service_type == rate_type:
            return r
    return None


SERVICE_RATE_STRATEGIES: List[Callable] = [exact_match, uncategorised_match, any_match]


def select_tier(rate_20mm: float, rate_40mm: float, thickness_mm: float) -> float:
    return rate_40mm if is_thick(thickness_mm) else rate_20mm


def get_rate(table, rate_type, thickness_mm: float, fabrication_category: str = None,
             required: bool = None, strategies: List[Callable] = None,
             warnings_out: list = None) -> Optional[ResolvedRate]:
    """
    Resolve a service rate for one thickness tier.

    Args:
        table: list of ServiceRate records
        rate_type: ServiceType
        thickness_mm: piece thickness; <= 20mm uses rate_20mm, else rate_40mm
        fabrication_category: material category, e.g. "ENGINEERED"
        required: defaults to True for CUTTING/POLISHING/INSTALLATION
        strategies: lookup order, defaults to SERVICE_RATE_STRATEGIES
        warnings_out: collects the warning issued for a missing optional rate

    Returns:
        ResolvedRate, or None for a missing optional rate.
    """
    rate_type = ServiceType(rate_type)
    if required is None:
        required = rate_type in REQUIRED_SERVICE_TYPES

    for strategy in strategies or SERVICE_RATE_STRATEGIES:
        record = strategy(table, rate_type, fabrication_category)
        if record is not None:
            if strategy is not exact_match and fabrication_category:
                logger.info(
                    "%s rate for category %s resolved by %s",
                    rate_type.value, fabrication_category, strategy.__name__,
                )
            return ResolvedRate(
                rate=select_tier(record.rate_20mm, record.rate_40mm, thickness_mm),
                record=record,
                matched_by=strategy.__name__,
                minimum_charge=record.minimum_charge,
            )

    if required:
        raise ConfigurationError(
            f"No {rate_type.value} rate found"
            + (f" for fabrication category {fabrication_category}" if fabrication_category else "")
            + ". Configure it in the service rate table before pricing quotes."
        )

    record_warning(
        warnings_out if warnings_out is not None else [],
        f"No {rate_type.value} rate configured"
        + (f" for {fabrication_category}" if fabrication_category else "")
        + " - charge omitted",
    )
    return None


class RateResolver:
    """Rate lookups over one RateTables snapshot."""

    def __init__(self, rate_tables, warnings_out: list = None):
        self.tables = rate_tables
        self.warnings = warnings_out if warnings_out is not None else []
        self._edge_types = {e.id: e for e in rate_tables.edge_types}
        self._cutout_types = {c.id: c for c in rate_tables.cutout_types}

    def validate_required(self):
        """Fail fast if any always-required service type has no record at all."""
        loaded = {r.service_type for r in self.tables.service_rates}
        missing = [t.value for t in REQUIRED_SERVICE_TYPES if t not in loaded]
        if missing:
            raise ConfigurationError(
                f"Missing required service rates: {', '.join(missing)}. "
                f"Configure these before pricing quotes."
            )

    def service(self, rate_type, thickness_mm: float, category: str = None,
                required: bool = None) -> Optional[ResolvedRate]:
        return get_rate(
            self.tables.service_rates, rate_type, thickness_mm,
            category or settings.DEFAULT_FABRICATION_CATEGORY,
            required=required, warnings_out=self.warnings,
        )

    # --- Edges ---

    def edge_type(self, edge_type_id: str):
        edge_type = self._edge_types.get(edge_type_id)
        if edge_type is None:
            raise ConfigurationError(
                f"Edge profile {edge_type_id!r} is not configured in the edge type table"
            )
        return edge_type

    def edge(self, edge_type_id: str, thickness_mm: float, category: str = None) -> ResolvedRate:
        """category override -> thickness-tiered edge rate -> base rate."""
        edge_type = self.edge_type(edge_type_id)
        thick = is_thick(thickness_mm)

        for r in self.tables.edge_category_rates:
            if r.edge_type_id == edge_type.id and category and r.fabrication_category == category:
                return ResolvedRate(
                    rate=select_tier(r.rate_20mm, r.rate_40mm, thickness_mm),
                    record=edge_type, matched_by="category",
                    minimum_charge=edge_type.minimum_charge,
                )

        tier_rate = edge_type.rate_40mm if thick else edge_type.rate_20mm
        if tier_rate is not None:
            return ResolvedRate(rate=tier_rate, record=edge_type, matched_by="thickness",
                                minimum_charge=edge_type.minimum_charge)

        if self.tables.edge_category_rates:
            record_warning(
                self.warnings,
                f"No {category} or thickness rate for edge {edge_type.name!r} - using base rate",
            )
        return ResolvedRate(rate=edge_type.base_rate, record=edge_type, matched_by="base",
                            minimum_charge=edge_type.minimum_charge)

    # --- Cutouts ---

    def cutout_type(self, cutout_type_id: str):
        """None for an unknown cutout type; cutouts are never fatal."""
        return self._cutout_types.get(cutout_type_id)

    def cutout(self, cutout_type, category: str = None) -> ResolvedRate:
        """category rate -> flat base rate. Both zero is logged, not raised."""
        for r in self.tables.cutout_category_rates:
            if r.cutout_type_id == cutout_type.id and category and r.fabrication_category == category:
                return ResolvedRate(rate=r.rate, record=cutout_type, matched_by="category",
                                    minimum_charge=cutout_type.minimum_charge)

        if not cutout_type.base_rate:
            record_warning(
                self.warnings,
                f"No category rate or base rate for cutout {cutout_type.name!r} "
                f"in category {category}. Cost will be $0.",
            )
        elif self.tables.cutout_category_rates:
            logger.info("Cutout %s has no %s rate - using base rate", cutout_type.name, category)
        return ResolvedRate(rate=cutout_type.base_rate, record=cutout_type, matched_by="base",
                            minimum_charge=cutout_type.minimum_charge)
