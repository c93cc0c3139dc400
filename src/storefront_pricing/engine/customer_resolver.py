"""
Customer Price Resolver - applies the highest-priority customer price list entry.
"""
import logging
from datetime import datetime
from typing import Optional

from ..data.customer_prices import CustomerPriceRepository
from .adjustments import apply_adjustment
from .models import AppliedRule, PriceContext

logger = logging.getLogger(__name__)


class CustomerPriceResolver:
    """
    Looks up the price lists naming the customer (or one of its groups)
    and applies the first matching product price. At most one customer
    price is applied per calculation, however many lists match.
    """

    def __init__(self, repository: CustomerPriceRepository):
        self.repository = repository

    def apply(
        self,
        product_id: str,
        context: PriceContext,
        current_price: float,
        as_of: Optional[datetime] = None,
    ) -> tuple[float, Optional[AppliedRule]]:
        if not context.customer_id:
            return current_price, None

        price_lists = self.repository.find_price_lists_for_customer(
            context.customer_id, context.customer_group_ids, as_of=as_of
        )
        if not price_lists:
            return current_price, None

        prices = self.repository.find_prices_for_product(
            product_id, context.variant_id, [pl.id for pl in price_lists]
        )
        if not prices:
            logger.debug("Customer %s has %d price list(s) but none price product %s",
                         context.customer_id, len(price_lists), product_id)
            return current_price, None

        customer_price = prices[0]
        new_price = apply_adjustment(current_price, customer_price.adjustment_type,
                                     customer_price.adjustment_value)

        price_list = next((pl for pl in price_lists if pl.id == customer_price.price_list_id), None)
        list_name = price_list.name if price_list else 'Custom'

        logger.debug("Customer price from list '%s': %.2f -> %.2f", list_name, current_price, new_price)
        return new_price, AppliedRule(
            rule_id=customer_price.id,
            rule_name=f"Customer Price ({list_name})",
            adjustment_type=customer_price.adjustment_type,
            adjustment_value=customer_price.adjustment_value,
            impact=current_price - new_price,
        )
