"""
Input snapshot types.

Every model is frozen: the caller loads one consistent snapshot of pieces,
materials, rates and tenant settings, and the engine never writes back to it.
from_attributes lets the persistence layer hand ORM rows straight in.
"""

from pydantic import BaseModel
from typing import Optional, List, Union

from .models import (
    LaminationMethod, ServiceUnit, MaterialPricingBasis, ServiceType,
    DiscountType, DiscountAppliesTo,
)

Id = Union[int, str]


class CutoutSpec(BaseModel):
    type: str
    quantity: int = 1
    length_mm: Optional[float] = None
    width_mm: Optional[float] = None

    class Config:
        frozen = True
        from_attributes = True


class Piece(BaseModel):
    id: Id
    name: Optional[str] = None
    length_mm: float
    width_mm: float
    thickness_mm: float = 20.0
    material_id: Optional[Id] = None
    edge_top: Optional[str] = None
    edge_bottom: Optional[str] = None
    edge_left: Optional[str] = None
    edge_right: Optional[str] = None
    cutouts: List[CutoutSpec] = []
    lamination_method: LaminationMethod = LaminationMethod.NONE
    override_material_cost: Optional[float] = None
    is_waterfall: bool = False

    class Config:
        frozen = True
        from_attributes = True

    @property
    def area_sqm(self) -> float:
        return (self.length_mm * self.width_mm) / 1_000_000

    @property
    def perimeter_lm(self) -> float:
        return 2 * (self.length_mm + self.width_mm) / 1000

    @property
    def display_name(self) -> str:
        return self.name or f"Piece {self.id}"

    def edge_sides(self) -> list:
        """(side, edge_type_id, length_mm) for all four sides.

        Top and bottom run along the piece width, left and right along its length.
        """
        return [
            ("top", self.edge_top, self.width_mm),
            ("bottom", self.edge_bottom, self.width_mm),
            ("left", self.edge_left, self.length_mm),
            ("right", self.edge_right, self.length_mm),
        ]


class Supplier(BaseModel):
    id: Optional[Id] = None
    name: Optional[str] = None
    default_margin_percent: Optional[float] = None

    class Config:
        frozen = True
        from_attributes = True


class Material(BaseModel):
    id: Id
    name: str = ""
    price_per_sqm: Optional[float] = None
    price_per_slab: Optional[float] = None
    slab_length_mm: Optional[float] = None
    slab_width_mm: Optional[float] = None
    fabrication_category: Optional[str] = None
    margin_override_percent: Optional[float] = None
    supplier: Optional[Supplier] = None

    class Config:
        frozen = True
        from_attributes = True


class ServiceRate(BaseModel):
    service_type: ServiceType
    fabrication_category: Optional[str] = None
    name: str = ""
    rate_20mm: float
    rate_40mm: float
    minimum_charge: Optional[float] = None

    class Config:
        frozen = True
        from_attributes = True


class EdgeType(BaseModel):
    id: str
    name: str
    base_rate: float = 0.0
    rate_20mm: Optional[float] = None
    rate_40mm: Optional[float] = None
    minimum_charge: Optional[float] = None
    minimum_length_lm: Optional[float] = None

    class Config:
        frozen = True
        from_attributes = True


class EdgeCategoryRate(BaseModel):
    edge_type_id: str
    fabrication_category: str
    rate_20mm: float
    rate_40mm: float

    class Config:
        frozen = True
        from_attributes = True


class CutoutType(BaseModel):
    id: str
    name: str
    base_rate: float = 0.0
    minimum_charge: Optional[float] = None

    class Config:
        frozen = True
        from_attributes = True


class CutoutCategoryRate(BaseModel):
    cutout_type_id: str
    fabrication_category: str
    rate: float

    class Config:
        frozen = True
        from_attributes = True


class RateTables(BaseModel):
    service_rates: List[ServiceRate] = []
    edge_types: List[EdgeType] = []
    edge_category_rates: List[EdgeCategoryRate] = []
    cutout_types: List[CutoutType] = []
    cutout_category_rates: List[CutoutCategoryRate] = []

    class Config:
        frozen = True
        from_attributes = True


class PricingContext(BaseModel):
    """Tenant pricing settings."""
    material_pricing_basis: MaterialPricingBasis = MaterialPricingBasis.PER_SLAB
    cutting_unit: ServiceUnit = ServiceUnit.LINEAR_METRE
    polishing_unit: ServiceUnit = ServiceUnit.LINEAR_METRE
    installation_unit: ServiceUnit = ServiceUnit.SQUARE_METRE
    currency: str = "AUD"
    gst_rate: float = 0.10
    laminated_multiplier: float = 1.30
    mitred_multiplier: float = 1.50
    waste_factor_percent: float = 0.0
    grain_matching_surcharge_percent: float = 15.0
    cutout_thickness_multiplier: float = 1.0

    class Config:
        frozen = True
        from_attributes = True


class DeliveryInfo(BaseModel):
    address: Optional[str] = None
    distance_km: Optional[float] = None
    zone: Optional[str] = None
    delivery_cost: Optional[float] = None
    override_delivery_cost: Optional[float] = None
    templating_required: bool = False
    templating_distance_km: Optional[float] = None
    templating_cost: Optional[float] = None
    override_templating_cost: Optional[float] = None

    class Config:
        frozen = True
        from_attributes = True


class CustomCharge(BaseModel):
    description: str
    amount: float

    class Config:
        frozen = True
        from_attributes = True


class DiscountSpec(BaseModel):
    discount_type: DiscountType
    value: float
    applies_to: DiscountAppliesTo = DiscountAppliesTo.ALL

    class Config:
        frozen = True
        from_attributes = True


class SlabSize(BaseModel):
    length_mm: float
    width_mm: float
    name: str = ""

    class Config:
        frozen = True

    @property
    def area_sqm(self) -> float:
        return (self.length_mm * self.width_mm) / 1_000_000


class PieceOverlay(BaseModel):
    """Replacement values for one piece when pricing a quote option.

    None means "keep the base piece's value".
    """
    piece_id: Id
    material_id: Optional[Id] = None
    thickness_mm: Optional[float] = None
    length_mm: Optional[float] = None
    width_mm: Optional[float] = None
    edge_top: Optional[str] = None
    edge_bottom: Optional[str] = None
    edge_left: Optional[str] = None
    edge_right: Optional[str] = None
    cutouts: Optional[List[CutoutSpec]] = None
    lamination_method: Optional[LaminationMethod] = None

    class Config:
        frozen = True
        from_attributes = True


class QuoteOption(BaseModel):
    """A named "what-if" variant of a quote: overlays on the base pieces."""
    name: str
    is_base: bool = False
    overlays: List[PieceOverlay] = []
    material_margin_adjust_percent: float = 0.0

    class Config:
        frozen = True
        from_attributes = True
