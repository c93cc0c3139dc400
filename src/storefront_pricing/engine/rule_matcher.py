"""
Rule Matcher - Selects, checks and applies promotional pricing rules.

Two phases: the repository returns a broad candidate set, then each
candidate is checked against the exact request context here, in
priority order, and every eligible rule's adjustments are applied to
the running price.
"""
import logging
from datetime import datetime
from typing import Optional

from ..data.pricing_rules import PricingRuleRepository
from ..rules.models import PricingRule, RuleScope
from .adjustments import apply_adjustments
from .conditions import evaluate_condition
from .models import AppliedRule, PriceContext

logger = logging.getLogger(__name__)


class RuleMatcher:
    """
    Matches and applies promotional rules to a single priced item.

    Every eligible rule contributes one audit entry summarised by its
    first adjustment; the entry also lists all the rule's adjustments.
    """

    def __init__(self, repository: PricingRuleRepository):
        self.repository = repository

    def find_candidate_rules(
        self,
        product_id: str,
        category_id: Optional[str],
        context: PriceContext,
        as_of: Optional[datetime] = None,
    ) -> list[PricingRule]:
        return self.repository.find_active_rules(
            product_id,
            category_id,
            context.customer_id,
            context.customer_group_ids,
            as_of=as_of,
        )

    def check_eligibility(
        self,
        rule: PricingRule,
        context: PriceContext,
        category_id: Optional[str] = None,
    ) -> tuple[bool, str]:
        """
        Check a candidate against the request context.

        Returns (eligible, reason) - reason names the first failed check.
        """
        if rule.rule_id in context.exclude_rule_ids:
            return False, "excluded by request"

        # Date window
        if rule.start_date and rule.start_date > context.date:
            return False, f"starts {rule.start_date.isoformat()}"
        if rule.end_date and rule.end_date < context.date:
            return False, f"ended {rule.end_date.isoformat()}"

        # Quantity range
        if rule.minimum_quantity and context.quantity < rule.minimum_quantity:
            return False, f"qty<{rule.minimum_quantity}"
        if rule.maximum_quantity and context.quantity > rule.maximum_quantity:
            return False, f"qty>{rule.maximum_quantity}"

        # Order amount
        if rule.minimum_order_amount and context.cart_total < rule.minimum_order_amount:
            return False, f"cart_total<{rule.minimum_order_amount}"

        # Scope allow-lists; an empty list admits nobody
        if rule.scope is RuleScope.PRODUCT:
            if not set(context.product_ids).intersection(rule.product_ids):
                return False, "product not in rule"

        if rule.scope is RuleScope.CATEGORY:
            if category_id not in rule.category_ids:
                return False, "category not in rule"

        if rule.scope is RuleScope.CUSTOMER:
            if not context.customer_id or context.customer_id not in rule.customer_ids:
                return False, "customer not in rule"

        if rule.scope is RuleScope.CUSTOMER_GROUP:
            if not context.customer_group_ids.intersection(rule.customer_group_ids):
                return False, "no matching customer group"

        # Declared conditions
        for condition in rule.conditions:
            if not evaluate_condition(condition, context):
                return False, f"condition {condition.type} failed"

        return True, "eligible"

    def apply_rule_to_price(self, rule: PricingRule, base_price: float) -> tuple[float, Optional[AppliedRule]]:
        """
        Apply every adjustment of a rule, in order.

        Returns (new_price, audit_entry); audit_entry is None for a rule
        without adjustments.
        """
        if not rule.adjustments:
            return base_price, None

        new_price = apply_adjustments(base_price, rule.adjustments)
        first = rule.representative_adjustment
        return new_price, AppliedRule(
            rule_id=rule.rule_id,
            rule_name=rule.name,
            adjustment_type=first.type,
            adjustment_value=first.value,
            impact=base_price - new_price,
            adjustments=list(rule.adjustments),
        )

    def apply_rules(
        self,
        rules: list[PricingRule],
        context: PriceContext,
        current_price: float,
        category_id: Optional[str] = None,
    ) -> tuple[float, list[AppliedRule]]:
        """Evaluate candidates highest priority first; ties keep candidate order."""
        applied = []
        for rule in sorted(rules, key=lambda r: -r.priority):
            eligible, reason = self.check_eligibility(rule, context, category_id)
            if not eligible:
                logger.debug("Rule %s skipped: %s", rule.rule_id, reason)
                continue

            current_price, entry = self.apply_rule_to_price(rule, current_price)
            if entry:
                logger.debug("Rule %s applied, impact %.2f", rule.rule_id, entry.impact)
                applied.append(entry)

        return current_price, applied
