"""Engine subpackage - layered price resolution."""
from .pricing_engine import PricingService
from .models import PriceContext, PriceItem, PricingResult, AppliedRule, RuleImpact
from ..errors import (
    PricingError, ProductNotFound, VariantNotFound, NoDefaultVariant, RuleNotFound,
    EnrichmentUnavailable, InvalidPriceContext, CurrencyMismatch,
)

__all__ = [
    'PricingService', 'PriceContext', 'PriceItem', 'PricingResult', 'AppliedRule', 'RuleImpact',
    'PricingError', 'ProductNotFound', 'VariantNotFound', 'NoDefaultVariant', 'RuleNotFound',
    'EnrichmentUnavailable', 'InvalidPriceContext', 'CurrencyMismatch',
]
