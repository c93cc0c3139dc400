"""
Tier Price Resolver - quantity-break overrides.
"""
import logging
from datetime import datetime
from typing import Optional

from ..data.tier_prices import TierPriceRepository
from ..rules.models import AdjustmentType
from .models import AppliedRule, PriceContext

logger = logging.getLogger(__name__)


class TierPriceResolver:
    """Replaces the running price with the best quantity tier, if any."""

    def __init__(self, repository: TierPriceRepository):
        self.repository = repository

    def apply(
        self,
        product_id: str,
        context: PriceContext,
        current_price: float,
        as_of: Optional[datetime] = None,
    ) -> tuple[float, Optional[AppliedRule]]:
        """Returns (new_price, audit_entry). Only runs for quantity > 1."""
        if context.quantity <= 1:
            return current_price, None

        tier = self.repository.find_applicable_tier(
            product_id,
            context.quantity,
            variant_id=context.variant_id,
            customer_group_ids=context.customer_group_ids,
            as_of=as_of,
        )
        if tier is None:
            logger.debug("No tier for product %s at quantity %d", product_id, context.quantity)
            return current_price, None

        logger.debug("Tier %s (%d+ units) sets price to %.2f", tier.id, tier.quantity_min, tier.price)
        return tier.price, AppliedRule(
            rule_id=tier.id,
            rule_name=f"Tier Pricing ({tier.quantity_min}+ units)",
            adjustment_type=AdjustmentType.OVERRIDE,
            adjustment_value=tier.price,
            impact=current_price - tier.price,
        )
