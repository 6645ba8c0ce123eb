"""
Shared test fixtures: seed rate tables, tenant settings and materials.

Rates mirror the seed data a new tenant starts with.
"""

import pytest

from stonequote.models import ServiceType
from stonequote.schemas import (
    CutoutType, EdgeType, Material, PricingContext, RateTables, ServiceRate, Supplier,
)


def sample_service_rates(include=None):
    rates = [
        ServiceRate(service_type=ServiceType.CUTTING, fabrication_category="ENGINEERED",
                    name="Cutting", rate_20mm=17.50, rate_40mm=45.00),
        ServiceRate(service_type=ServiceType.POLISHING, fabrication_category="ENGINEERED",
                    name="Polishing", rate_20mm=45.00, rate_40mm=115.00),
        ServiceRate(service_type=ServiceType.INSTALLATION, fabrication_category="ENGINEERED",
                    name="Installation", rate_20mm=140.00, rate_40mm=170.00),
        ServiceRate(service_type=ServiceType.WATERFALL_END, fabrication_category="ENGINEERED",
                    name="Waterfall End", rate_20mm=300.00, rate_40mm=650.00),
        ServiceRate(service_type=ServiceType.JOIN, fabrication_category="ENGINEERED",
                    name="Join", rate_20mm=150.00, rate_40mm=150.00),
    ]
    if include is not None:
        rates = [r for r in rates if r.service_type in include]
    return rates


def sample_edge_types():
    return [
        EdgeType(id="pencil", name="Pencil Round", base_rate=0, rate_20mm=0, rate_40mm=0),
        EdgeType(id="bullnose", name="Bullnose", base_rate=10, rate_20mm=10, rate_40mm=10),
        EdgeType(id="ogee", name="Ogee", base_rate=20, rate_20mm=20, rate_40mm=25),
        EdgeType(id="curved", name="Curved Finished Edge", base_rate=255,
                 rate_20mm=255, rate_40mm=535, minimum_length_lm=1.0),
    ]


def sample_cutout_types():
    return [
        CutoutType(id="hotplate", name="Hotplate", base_rate=65),
        CutoutType(id="undermount", name="Undermount Sink", base_rate=300),
        CutoutType(id="taphole", name="Tap Hole", base_rate=25),
        CutoutType(id="custom", name="Custom Cutout", base_rate=0),
    ]


def sample_rate_tables(**overrides):
    tables = {
        "service_rates": sample_service_rates(),
        "edge_types": sample_edge_types(),
        "cutout_types": sample_cutout_types(),
    }
    tables.update(overrides)
    return RateTables(**tables)


@pytest.fixture
def rate_tables():
    return sample_rate_tables()


@pytest.fixture
def pricing_context():
    return PricingContext()


@pytest.fixture
def quartz():
    """Caesarstone: jumbo slab, $400/m2 or $2000/slab, no margin."""
    return Material(id="quartz", name="Caesarstone", price_per_sqm=400.0,
                    price_per_slab=2000.0, fabrication_category="ENGINEERED")


@pytest.fixture
def marble():
    return Material(id="marble", name="Marble", price_per_sqm=600.0,
                    fabrication_category="NATURAL",
                    supplier=Supplier(name="Stone Co", default_margin_percent=15.0))
