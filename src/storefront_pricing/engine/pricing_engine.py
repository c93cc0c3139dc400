"""
Pricing Service - Layered price resolution with an audit trail.

Resolution order for one product:
1. Catalog: product, then explicit or default variant (effective price)
2. Tier price (quantity > 1): quantity-break override
3. Customer price list (customer known): highest-priority list entry
4. Promotional rules: every eligible rule, highest priority first
5. Membership: best percentage discount benefit
6. Loyalty: points redemption preview
7. Clamp at zero, round to 2 decimals
"""
import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable, Optional, Union

from ..config.settings import Settings, get_settings
from ..data.catalog import CatalogRepository
from ..data.customer_prices import CustomerPriceRepository
from ..data.loyalty import LoyaltyRepository
from ..data.membership import MembershipRepository
from ..data.pricing_rules import PricingRuleRepository
from ..data.tier_prices import TierPriceRepository
from ..errors import NoDefaultVariant, ProductNotFound, RuleNotFound, VariantNotFound
from ..rules.models import naive_local
from .adjustments import apply_adjustments
from .benefits import DEFAULT_POINTS_TO_MONEY_RATIO, BenefitStacker
from .customer_resolver import CustomerPriceResolver
from .models import AppliedRule, PriceContext, PriceItem, PricingResult, RuleImpact
from .rule_matcher import RuleMatcher
from .tier_resolver import TierPriceResolver

logger = logging.getLogger(__name__)


class PricingService:
    """
    Computes a single final price from independent, prioritized discount sources.

    Read-only: repositories are queried, never written, so concurrent
    calculations need no coordination.
    """

    def __init__(
        self,
        catalog: CatalogRepository,
        tier_prices: TierPriceRepository,
        customer_prices: CustomerPriceRepository,
        pricing_rules: PricingRuleRepository,
        membership: Optional[MembershipRepository] = None,
        loyalty: Optional[LoyaltyRepository] = None,
        default_currency: str = "USD",
        points_to_money_ratio: float = DEFAULT_POINTS_TO_MONEY_RATIO,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.catalog = catalog
        self.pricing_rules = pricing_rules
        self.default_currency = default_currency
        self.clock = clock

        self.tier_resolver = TierPriceResolver(tier_prices)
        self.customer_resolver = CustomerPriceResolver(customer_prices)
        self.rule_matcher = RuleMatcher(pricing_rules)
        self.benefits = BenefitStacker(membership, loyalty, points_to_money_ratio)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> 'PricingService':
        """Build the service over the file-backed repositories named in settings."""
        settings = settings or get_settings()
        return cls(
            catalog=CatalogRepository.from_csv(settings.products_csv, settings.variants_csv,
                                               default_currency=settings.default_currency),
            tier_prices=TierPriceRepository.from_csv(settings.tier_prices_csv),
            customer_prices=CustomerPriceRepository.from_files(settings.price_lists_json,
                                                               settings.customer_prices_csv),
            pricing_rules=PricingRuleRepository.from_json(settings.pricing_rules_json),
            membership=MembershipRepository.from_json(settings.memberships_json),
            loyalty=LoyaltyRepository.from_csv(settings.loyalty_points_csv),
            default_currency=settings.default_currency,
            points_to_money_ratio=settings.points_to_money_ratio,
        )

    def _resolve(self, product_id: str, variant_id: Optional[str]):
        product = self.catalog.find_product(product_id)
        if product is None:
            raise ProductNotFound(product_id)

        if variant_id:
            variant = self.catalog.find_variant(variant_id)
            if variant is None:
                raise VariantNotFound(variant_id)
        else:
            variant = self.catalog.find_default_variant(product_id)
            if variant is None:
                raise NoDefaultVariant(product_id)

        return product, variant

    def calculate_price(self, product_id: str, context: Optional[PriceContext] = None) -> PricingResult:
        """
        Calculate the final price of a product with full traceability.

        Args:
            product_id: Catalog product ID
            context: Request context (customer, quantity, date, cart state)

        Returns:
            PricingResult with original/final price and the applied-rule trail
        """
        context = context or PriceContext()
        product, variant = self._resolve(product_id, context.variant_id)
        as_of = naive_local(self.clock())

        original_price = variant.effective_price
        current_price = original_price
        result = PricingResult(
            original_price=original_price,
            final_price=original_price,
            currency=product.currency_code or self.default_currency,
        )

        def record(entry: Optional[AppliedRule]):
            if entry is not None:
                result.add_applied_rule(entry)

        # Tier pricing
        current_price, entry = self.tier_resolver.apply(product.product_id, context, current_price, as_of)
        record(entry)

        # Customer price lists
        current_price, entry = self.customer_resolver.apply(product.product_id, context, current_price, as_of)
        record(entry)

        # Promotional rules; the priced product always counts for product-scoped rules
        rule_context = context
        if product.product_id not in context.product_ids:
            rule_context = replace(context, product_ids=[*context.product_ids, product.product_id])

        candidates = self.rule_matcher.find_candidate_rules(
            product.product_id, product.category_id, rule_context, as_of
        )
        current_price, entries = self.rule_matcher.apply_rules(
            candidates, rule_context, current_price, product.category_id
        )
        for entry in entries:
            record(entry)

        # Membership, then loyalty
        current_price, entry = self.benefits.apply_membership(context, current_price, result.add_warning)
        record(entry)
        current_price, entry = self.benefits.apply_loyalty(context, current_price, result.add_warning)
        record(entry)

        result.final_price = round(max(0.0, current_price), 2)

        logger.debug("Priced %s: %.2f -> %.2f (%d adjustment(s))", product.product_id,
                     original_price, result.final_price, len(result.applied_rules))
        return result

    def calculate_prices(
        self,
        items: Iterable[Union[PriceItem, dict]],
        context: Optional[PriceContext] = None,
    ) -> dict[str, PricingResult]:
        """
        Price several items independently.

        Keys are product_id, or "product_id:variant_id" when a variant is given.
        """
        context = context or PriceContext()
        results = {}

        for item in items:
            if isinstance(item, dict):
                item = PriceItem(**item)
            quantity = 1 if item.quantity is None else item.quantity
            item_context = replace(context, variant_id=item.variant_id, quantity=quantity)
            results[item.key] = self.calculate_price(item.product_id, item_context)

        return results

    def calculate_rule_impact(
        self,
        rule_id: str,
        product_id: str,
        context: Optional[PriceContext] = None,
    ) -> RuleImpact:
        """
        Preview one rule in isolation.

        before_rule is the full calculation (the rule included if eligible);
        after_rule applies only this rule's adjustments to the original price.
        """
        context = context or PriceContext()
        before_rule = self.calculate_price(product_id, context)

        rule = self.pricing_rules.find_by_id(rule_id)
        if rule is None:
            raise RuleNotFound(rule_id)

        original_price = before_rule.original_price
        price_after_rule = apply_adjustments(original_price, rule.adjustments)
        first = rule.representative_adjustment
        impact = original_price - price_after_rule

        after_rule = PricingResult(
            original_price=original_price,
            final_price=price_after_rule,
            currency=before_rule.currency,
            applied_rules=[AppliedRule(
                rule_id=rule.rule_id,
                rule_name=rule.name,
                adjustment_type=first.type,
                adjustment_value=first.value,
                impact=impact,
                adjustments=list(rule.adjustments),
            )],
        )

        percentage_impact = (impact / original_price) * 100 if original_price else 0.0

        return RuleImpact(
            before_rule=before_rule,
            after_rule=after_rule,
            impact=impact,
            percentage_impact=percentage_impact,
        )
