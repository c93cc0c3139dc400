"""
Benefit Stacker - membership discount, then loyalty point redemption.

Both layers are optional enrichments: any lookup failure is logged,
noted on the result as a warning, and the calculation carries on.
"""
import logging
from typing import Callable, Optional

from ..data.loyalty import LoyaltyRepository
from ..data.membership import MembershipRepository
from ..rules.models import AdjustmentType
from .adjustments import apply_adjustment
from .models import AppliedRule, PriceContext

logger = logging.getLogger(__name__)

DEFAULT_POINTS_TO_MONEY_RATIO = 0.01
LOYALTY_RULE_ID = "loyalty_points"

Warn = Callable[[str], None]


def parse_redemption(data: dict, default_ratio: float) -> tuple[int, float]:
    """
    Read (points, ratio) from a request's additional data.

    Raises ValueError for a malformed ratio or a fractional point count.
    """
    raw_ratio = data.get('points_to_money_ratio')
    try:
        ratio = default_ratio if raw_ratio is None else float(raw_ratio)
    except (TypeError, ValueError):
        raise ValueError(f"invalid points_to_money_ratio {raw_ratio!r}")
    if not ratio > 0:
        raise ValueError(f"points_to_money_ratio must be positive, got {raw_ratio!r}")

    raw_points = data.get('loyalty_points_to_apply') or 0
    try:
        points = float(raw_points)
    except (TypeError, ValueError):
        raise ValueError(f"invalid loyalty_points_to_apply {raw_points!r}")
    if not points.is_integer():
        raise ValueError(f"loyalty_points_to_apply must be a whole number, got {raw_points!r}")

    return int(points), ratio


class BenefitStacker:
    """Applies the best membership percentage and then a loyalty redemption preview."""

    def __init__(
        self,
        membership_repository: Optional[MembershipRepository] = None,
        loyalty_repository: Optional[LoyaltyRepository] = None,
        points_to_money_ratio: float = DEFAULT_POINTS_TO_MONEY_RATIO,
    ):
        self.membership_repository = membership_repository
        self.loyalty_repository = loyalty_repository
        self.points_to_money_ratio = points_to_money_ratio

    def apply_membership(
        self, context: PriceContext, current_price: float, warn: Warn
    ) -> tuple[float, Optional[AppliedRule]]:
        if not context.customer_id:
            return current_price, None

        try:
            if self.membership_repository is None:
                raise LookupError("membership module not configured")
            benefits = self.membership_repository.get_user_membership_benefits(context.customer_id)
        except Exception as e:
            logger.warning("Membership benefits not applied for customer %s: %s", context.customer_id, e)
            warn(f"Membership benefits not applied: {e}")
            return current_price, None

        discounts = [
            b for b in benefits or []
            if b.benefit_type == 'discount' and b.discount_percentage is not None
        ]
        if not discounts:
            return current_price, None

        best = max(discounts, key=lambda b: b.discount_percentage)
        new_price = apply_adjustment(current_price, AdjustmentType.PERCENTAGE, best.discount_percentage)
        return new_price, AppliedRule(
            rule_id=best.id,
            rule_name=f"Membership: {best.name}",
            adjustment_type=AdjustmentType.PERCENTAGE,
            adjustment_value=best.discount_percentage,
            impact=current_price - new_price,
        )

    def apply_loyalty(
        self, context: PriceContext, current_price: float, warn: Warn
    ) -> tuple[float, Optional[AppliedRule]]:
        """
        Preview a points redemption. Points are never debited here; the
        checkout transaction commits the deduction.
        """
        data = context.additional_data
        if not context.customer_id or not data.get('apply_loyalty_discount'):
            return current_price, None

        try:
            requested, ratio = parse_redemption(data, self.points_to_money_ratio)
            if self.loyalty_repository is None:
                raise LookupError("loyalty module not configured")
            balance = self.loyalty_repository.find_customer_points(context.customer_id)
        except Exception as e:
            logger.warning("Loyalty discount not applied for customer %s: %s", context.customer_id, e)
            warn(f"Loyalty discount not applied: {e}")
            return current_price, None

        if balance is None:
            return current_price, None

        if not 0 < requested <= balance.current_points:
            if requested > balance.current_points:
                logger.debug("Customer %s requested %d points but holds %d",
                             context.customer_id, requested, balance.current_points)
            return current_price, None

        points_value = requested * ratio
        new_price = max(0.0, current_price - points_value)
        return new_price, AppliedRule(
            rule_id=LOYALTY_RULE_ID,
            rule_name=f"Loyalty Points ({requested} points)",
            adjustment_type=AdjustmentType.FIXED,
            adjustment_value=points_value,
            impact=current_price - new_price,
        )
