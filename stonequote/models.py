import enum


class LaminationMethod(str, enum.Enum):
    NONE = "NONE"
    LAMINATED = "LAMINATED"
    MITRED = "MITRED"


class ServiceUnit(str, enum.Enum):
    LINEAR_METRE = "LINEAR_METRE"
    SQUARE_METRE = "SQUARE_METRE"
    FIXED = "FIXED"


class MaterialPricingBasis(str, enum.Enum):
    PER_SLAB = "PER_SLAB"
    PER_SQUARE_METRE = "PER_SQUARE_METRE"


class ServiceType(str, enum.Enum):
    CUTTING = "CUTTING"
    POLISHING = "POLISHING"
    INSTALLATION = "INSTALLATION"
    JOIN = "JOIN"
    WATERFALL_END = "WATERFALL_END"
    # Line-item labels only, never looked up in the rate table
    LAMINATION = "LAMINATION"
    GRAIN_MATCHING = "GRAIN_MATCHING"


class JoinStrategy(str, enum.Enum):
    NONE = "NONE"
    LENGTHWISE = "LENGTHWISE"
    WIDTHWISE = "WIDTHWISE"
    MULTI_JOIN = "MULTI_JOIN"


class JoinOrientation(str, enum.Enum):
    VERTICAL = "VERTICAL"
    HORIZONTAL = "HORIZONTAL"


class DiscountType(str, enum.Enum):
    PERCENTAGE = "PERCENTAGE"
    ABSOLUTE = "ABSOLUTE"


class DiscountAppliesTo(str, enum.Enum):
    ALL = "ALL"
    FABRICATION_ONLY = "FABRICATION_ONLY"


# Always charged; a quote cannot be priced without them.
# JOIN is added per piece once the piece is known to be oversize.
REQUIRED_SERVICE_TYPES = [
    ServiceType.CUTTING,
    ServiceType.POLISHING,
    ServiceType.INSTALLATION,
]
