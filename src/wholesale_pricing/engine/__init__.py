"""Engine subpackage - tier resolution, discount stacking and price orchestration."""
from .pricing_engine import PricingEngine
from .models import CustomerContext, PriceBreakdown, PriceRequest, PricingTier
from .tier_resolver import select_tier
from .discount_composer import compose

__all__ = [
    'PricingEngine', 'CustomerContext', 'PriceBreakdown', 'PriceRequest',
    'PricingTier', 'select_tier', 'compose',
]
