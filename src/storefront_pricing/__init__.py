"""
Storefront Pricing Package

Layered price resolution for the storefront backend.
Resolves a product's final price through Tier → Customer Price List →
Promotional Rules → Membership → Loyalty layers with a full audit trail.
"""

__version__ = "1.0.0"
