import os
import sys
from datetime import datetime, timedelta

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from storefront_pricing.data.catalog import CatalogRepository
from storefront_pricing.data.customer_prices import CustomerPriceRepository
from storefront_pricing.data.pricing_rules import PricingRuleRepository
from storefront_pricing.data.tier_prices import TierPriceRepository
from storefront_pricing.engine import PriceContext, PricingService

# A Wednesday at noon
NOW = datetime(2025, 6, 11, 12, 0)

PRODUCTS = [
    {"product_id": "P1", "name": "Widget", "category_id": "CAT-A", "currency_code": "USD",
     "default_variant_id": "V1"},
    {"product_id": "P2", "name": "Gadget", "category_id": "CAT-B", "currency_code": "USD"},
    {"product_id": "P3", "name": "Orphan", "category_id": "CAT-A", "currency_code": "EUR"},
    {"product_id": "P0", "name": "Free Sample", "category_id": "CAT-A", "currency_code": "USD"},
]

VARIANTS = [
    {"variant_id": "V1", "product_id": "P1", "sku": "W-1", "price": 50.0, "is_default": True},
    {"variant_id": "V1-SALE", "product_id": "P1", "sku": "W-2", "price": 60.0, "sale_price": 45.0},
    {"variant_id": "V2", "product_id": "P2", "sku": "G-1", "price": 100.0, "is_default": True},
    {"variant_id": "V0", "product_id": "P0", "sku": "S-1", "price": 0.0, "is_default": True},
]


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def catalog():
    return CatalogRepository.from_records(PRODUCTS, VARIANTS)


@pytest.fixture
def make_service(catalog):
    """Factory building a service over in-memory repositories and a fixed clock."""
    def _make(tiers=(), price_lists=(), customer_prices=(), rules=(),
              membership=None, loyalty=None, **kwargs):
        return PricingService(
            catalog=catalog,
            tier_prices=TierPriceRepository.from_records(list(tiers)),
            customer_prices=CustomerPriceRepository.from_records(list(price_lists), list(customer_prices)),
            pricing_rules=PricingRuleRepository.from_records(list(rules)),
            membership=membership,
            loyalty=loyalty,
            clock=lambda: NOW,
            **kwargs,
        )
    return _make


@pytest.fixture
def service(make_service):
    return make_service()


@pytest.fixture
def make_context():
    """PriceContext dated at the fixed clock unless told otherwise."""
    def _context(**kwargs):
        kwargs.setdefault('date', NOW)
        return PriceContext(**kwargs)
    return _context


@pytest.fixture
def make_rule():
    """Stored-form rule dict with sensible defaults."""
    def _rule(rule_id, adjustments, **kwargs):
        data = {
            "id": rule_id,
            "name": kwargs.pop('name', rule_id.replace('-', ' ').title()),
            "type": "dynamic",
            "scope": "global",
            "status": "active",
            "priority": 1,
            "adjustments": [{"type": t, "value": v} for t, v in adjustments],
            "created_at": (NOW - timedelta(days=30)).isoformat(),
        }
        data.update(kwargs)
        return data
    return _rule
