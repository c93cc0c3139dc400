"""
Pricing rule repository - loads merchant rules and selects candidates.

Candidate selection only narrows by status, validity window and scope
allow-lists. Exact eligibility is decided by the rule matcher against
the full request context.
"""
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from ..rules.models import PricingRule, RuleScope, parse_rule

logger = logging.getLogger(__name__)

# Broadest first. A context clause admits every scope listed before its own.
SCOPE_ORDER = [
    RuleScope.GLOBAL,
    RuleScope.PRODUCT,
    RuleScope.CATEGORY,
    RuleScope.CUSTOMER,
    RuleScope.CUSTOMER_GROUP,
]


def _scope_clause(rule: PricingRule, scope: RuleScope, matches_allow_list: bool) -> bool:
    """One context clause: any broader scope, or this scope with a matching allow-list."""
    broader = SCOPE_ORDER[:SCOPE_ORDER.index(scope)]
    return rule.scope in broader or (rule.scope is scope and matches_allow_list)


def is_candidate(
    rule: PricingRule,
    product_id: Optional[str] = None,
    category_id: Optional[str] = None,
    customer_id: Optional[str] = None,
    customer_group_ids: Iterable[str] = (),
) -> bool:
    """
    OR of one clause per supplied context field.

    Supplying more context only ever widens the candidate set.
    """
    groups = set(customer_group_ids or ())
    clauses = []

    if product_id:
        clauses.append(_scope_clause(rule, RuleScope.PRODUCT, product_id in rule.product_ids))
    if category_id:
        clauses.append(_scope_clause(rule, RuleScope.CATEGORY, category_id in rule.category_ids))
    if customer_id:
        clauses.append(_scope_clause(rule, RuleScope.CUSTOMER, customer_id in rule.customer_ids))
    if groups:
        clauses.append(_scope_clause(rule, RuleScope.CUSTOMER_GROUP,
                                     bool(groups.intersection(rule.customer_group_ids))))

    if not clauses:
        return rule.scope is RuleScope.GLOBAL
    return any(clauses)


class PricingRuleRepository:
    """Read-only access to promotional pricing rules."""

    def __init__(self, rules: list[PricingRule]):
        self.rules = list(rules)
        self._by_id = {r.rule_id: r for r in self.rules}

    @classmethod
    def from_records(cls, records: list[dict]) -> 'PricingRuleRepository':
        return cls([PricingRule.from_dict(r) for r in records])

    @classmethod
    def from_json(cls, path: Path) -> 'PricingRuleRepository':
        """Load rules from JSON, skipping (and logging) any that fail validation."""
        if not path.exists():
            logger.warning("Pricing rules file not found at %s; no promotional rules loaded", path)
            return cls([])

        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        rules = []
        for raw in data.get('rules', []):
            rule, errors = parse_rule(raw)
            if errors:
                for err in errors:
                    logger.warning("Skipping invalid pricing rule: %s", err)
                continue
            rules.append(rule)

        logger.info("Loaded %d pricing rules from %s", len(rules), path)
        return cls(rules)

    def find_by_id(self, rule_id: str) -> Optional[PricingRule]:
        return self._by_id.get(str(rule_id))

    def list_rules(self, include_inactive: bool = True) -> list[PricingRule]:
        return [r for r in self.rules if include_inactive or r.is_active]

    def find_active_rules(
        self,
        product_id: Optional[str] = None,
        category_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        customer_group_ids: Iterable[str] = (),
        as_of: Optional[datetime] = None,
    ) -> list[PricingRule]:
        """Candidate rules ordered by priority desc, then created_at asc."""
        now = as_of or datetime.now()
        groups = list(customer_group_ids or ())

        candidates = [
            rule for rule in self.rules
            if rule.is_active
            and rule.in_window(now)
            and is_candidate(rule, product_id, category_id, customer_id, groups)
        ]
        candidates.sort(key=lambda r: (-r.priority, r.created_at or datetime.min))
        return candidates
