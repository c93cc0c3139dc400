"""
Exception taxonomy for the pricing engine.

Resolution failures (product, variant, rule) abort the calculation.
EnrichmentUnavailable is raised by optional lookups and is always
recovered by the benefit stacker.
"""
from typing import Any, Optional


class PricingError(Exception):
    """Base error carrying a machine code and an HTTP status for the API layer."""

    code = "pricing_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class ProductNotFound(PricingError):
    code = "product_not_found"
    status_code = 404

    def __init__(self, product_id: str):
        super().__init__(f"Product not found with ID: {product_id}", {"product_id": product_id})


class VariantNotFound(PricingError):
    code = "variant_not_found"
    status_code = 404

    def __init__(self, variant_id: str):
        super().__init__(f"Variant not found with ID: {variant_id}", {"variant_id": variant_id})


class NoDefaultVariant(PricingError):
    code = "no_default_variant"
    status_code = 404

    def __init__(self, product_id: str):
        super().__init__(f"No default variant found for product: {product_id}", {"product_id": product_id})


class RuleNotFound(PricingError):
    code = "rule_not_found"
    status_code = 404

    def __init__(self, rule_id: str):
        super().__init__(f"Pricing rule not found with ID: {rule_id}", {"rule_id": rule_id})


class InvalidPriceContext(PricingError, ValueError):
    code = "invalid_price_context"
    status_code = 422


class CurrencyMismatch(PricingError, ValueError):
    code = "currency_mismatch"
    status_code = 400

    def __init__(self, expected: str, actual: str):
        super().__init__(
            f"Cannot combine amounts in {expected} and {actual}",
            {"expected": expected, "actual": actual},
        )


class EnrichmentUnavailable(PricingError):
    """An optional data source (membership, loyalty) could not be queried."""

    code = "enrichment_unavailable"
    status_code = 503

    def __init__(self, source: str, reason: str):
        super().__init__(f"{source} data unavailable: {reason}", {"source": source})
        self.source = source
