"""
Stone quote pricing and slab cut-planning engine.
"""

from .calculators.slab_fit import calculate_cut_plan
from .errors import ConfigurationError, DataIntegrityWarning, PricingError, ValidationError
from .pricing_engine import QuoteAggregator, price_quote
from .quote_options import apply_overlay, price_option, price_options

__version__ = "0.1.0"
