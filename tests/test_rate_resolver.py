"""
Rate resolver tests: fallback order, thickness tiers, required/optional policy,
edge and cutout chains.
"""

import pytest

from stonequote.calculators.rate_resolver import RateResolver, ResolvedRate, get_rate
from stonequote.errors import ConfigurationError, DataIntegrityWarning
from stonequote.models import ServiceType
from stonequote.schemas import CutoutCategoryRate, EdgeCategoryRate, EdgeType, ServiceRate

from conftest import sample_rate_tables, sample_service_rates


def _cutting(category, rate_20mm, rate_40mm, minimum_charge=None):
    return ServiceRate(service_type=ServiceType.CUTTING, fabrication_category=category,
                       name=f"Cutting {category}", rate_20mm=rate_20mm, rate_40mm=rate_40mm,
                       minimum_charge=minimum_charge)


# ============================================================
# Service rate fallback order
# ============================================================

def test_exact_category_match_wins():
    table = [_cutting(None, 20, 50), _cutting("ENGINEERED", 17.5, 45)]
    resolved = get_rate(table, ServiceType.CUTTING, 20, "ENGINEERED")
    assert resolved.rate == 17.5
    assert resolved.matched_by == "exact_match"


def test_falls_back_to_uncategorised_record():
    table = [_cutting("ENGINEERED", 17.5, 45), _cutting(None, 20, 50)]
    resolved = get_rate(table, ServiceType.CUTTING, 20, "NATURAL")
    assert resolved.rate == 20
    assert resolved.matched_by == "uncategorised_match"


def test_falls_back_to_first_record_of_type():
    table = [_cutting("PORCELAIN", 30, 60), _cutting("ENGINEERED", 17.5, 45)]
    resolved = get_rate(table, ServiceType.CUTTING, 20, "NATURAL")
    assert resolved.rate == 30
    assert resolved.matched_by == "any_match"


def test_thickness_tier_split_at_20mm():
    table = [_cutting("ENGINEERED", 17.5, 45)]
    assert get_rate(table, ServiceType.CUTTING, 20, "ENGINEERED").rate == 17.5
    assert get_rate(table, ServiceType.CUTTING, 20.5, "ENGINEERED").rate == 45
    assert get_rate(table, ServiceType.CUTTING, 40, "ENGINEERED").rate == 45


def test_apply_minimum_charge():
    resolved = ResolvedRate(rate=17.5, record=None, matched_by="exact_match", minimum_charge=200)
    assert resolved.apply_minimum(105.0) == 200
    assert resolved.apply_minimum(250.0) == 250.0
    assert ResolvedRate(rate=1, record=None, matched_by="x").apply_minimum(5.0) == 5.0


# ============================================================
# Required / optional policy
# ============================================================

@pytest.mark.parametrize("service_type", [
    ServiceType.CUTTING, ServiceType.POLISHING, ServiceType.INSTALLATION,
])
def test_missing_required_rate_raises(service_type):
    table = [r for r in sample_service_rates() if r.service_type != service_type]
    with pytest.raises(ConfigurationError):
        get_rate(table, service_type, 20, "ENGINEERED")


def test_join_required_when_asked():
    table = sample_service_rates(include=[ServiceType.CUTTING])
    with pytest.raises(ConfigurationError):
        get_rate(table, ServiceType.JOIN, 20, "ENGINEERED", required=True)


def test_missing_optional_rate_warns_and_returns_none():
    table = sample_service_rates(include=[ServiceType.CUTTING])
    collected = []
    with pytest.warns(DataIntegrityWarning):
        resolved = get_rate(table, ServiceType.WATERFALL_END, 20, "ENGINEERED",
                            warnings_out=collected)
    assert resolved is None
    assert collected == ["No WATERFALL_END rate configured for ENGINEERED - charge omitted"]


def test_validate_required_lists_missing_types():
    tables = sample_rate_tables(service_rates=sample_service_rates(include=[ServiceType.CUTTING]))
    with pytest.raises(ConfigurationError) as exc:
        RateResolver(tables).validate_required()
    assert "POLISHING" in str(exc.value)
    assert "INSTALLATION" in str(exc.value)


def test_validate_required_passes_with_seed_rates(rate_tables):
    RateResolver(rate_tables).validate_required()


# ============================================================
# Edge chain
# ============================================================

def test_edge_category_override_first():
    tables = sample_rate_tables(edge_category_rates=[
        EdgeCategoryRate(edge_type_id="bullnose", fabrication_category="NATURAL",
                         rate_20mm=12, rate_40mm=18),
    ])
    resolver = RateResolver(tables)
    assert resolver.edge("bullnose", 20, "NATURAL").rate == 12
    assert resolver.edge("bullnose", 40, "NATURAL").rate == 18
    assert resolver.edge("bullnose", 20, "ENGINEERED").matched_by == "thickness"


def test_edge_thickness_tier_then_base(rate_tables):
    resolver = RateResolver(rate_tables)
    assert resolver.edge("ogee", 20).rate == 20
    assert resolver.edge("ogee", 40).rate == 25


def test_edge_base_rate_when_no_tier_rates():
    tables = sample_rate_tables(edge_types=[EdgeType(id="arris", name="Arris", base_rate=8)])
    resolved = RateResolver(tables).edge("arris", 40)
    assert resolved.rate == 8
    assert resolved.matched_by == "base"


def test_unknown_edge_type_is_configuration_error(rate_tables):
    with pytest.raises(ConfigurationError):
        RateResolver(rate_tables).edge("does-not-exist", 20)


# ============================================================
# Cutout chain
# ============================================================

def test_cutout_category_rate_then_base():
    tables = sample_rate_tables(cutout_category_rates=[
        CutoutCategoryRate(cutout_type_id="undermount", fabrication_category="NATURAL", rate=350),
    ])
    resolver = RateResolver(tables)
    sink = resolver.cutout_type("undermount")
    assert resolver.cutout(sink, "NATURAL").rate == 350
    assert resolver.cutout(sink, "ENGINEERED").rate == 300


def test_zero_rate_cutout_warns_not_fails(rate_tables):
    resolver = RateResolver(rate_tables)
    with pytest.warns(DataIntegrityWarning):
        resolved = resolver.cutout(resolver.cutout_type("custom"), "ENGINEERED")
    assert resolved.rate == 0
    assert len(resolver.warnings) == 1


def test_unknown_cutout_type_is_none(rate_tables):
    assert RateResolver(rate_tables).cutout_type("nope") is None
