from app.pricing.tiers import (  # noqa: F401
    ConfiguredTier, UnconfiguredTier, ProductPricing, RETAIL, WHOLESALE,
)
from app.pricing.discounts import Discount, discount_status  # noqa: F401
from app.pricing.resolver import PricingError, ResolvedPrice, resolve_price  # noqa: F401
