"""
Promotional rules: candidate selection, eligibility checks and conditions.
"""
from datetime import timedelta

import pytest

from storefront_pricing.data.pricing_rules import PricingRuleRepository, is_candidate
from storefront_pricing.engine.conditions import day_of_week, evaluate_condition, register_condition, CONDITION_EVALUATORS
from storefront_pricing.engine.models import PriceContext
from storefront_pricing.engine.rule_matcher import RuleMatcher
from storefront_pricing.rules.models import (
    AdjustmentType, PricingRule, RuleCondition, RuleScope, RuleStatus, RuleType, parse_rule,
)

from conftest import NOW


def rule(rule_id="R1", scope="global", **kwargs):
    data = {"id": rule_id, "scope": scope, "adjustments": [{"type": "percentage", "value": 10}]}
    data.update(kwargs)
    return PricingRule.from_dict(data)


@pytest.fixture
def matcher():
    return RuleMatcher(PricingRuleRepository([]))


# --- Candidate phase ---

def test_only_global_rules_without_context():
    assert is_candidate(rule(scope="global"))
    assert not is_candidate(rule(scope="product", product_ids=["P1"]))


def test_product_clause_matches_allow_list():
    product_rule = rule(scope="product", product_ids=["P1"])
    assert is_candidate(product_rule, product_id="P1")
    assert not is_candidate(product_rule, product_id="P2")


def test_more_context_widens_candidates():
    product_rule = rule(scope="product", product_ids=["P9"])
    customer_rule = rule(scope="customer", customer_ids=["C9"])

    assert not is_candidate(product_rule, product_id="P1")
    # Supplying a category admits every product-scoped rule
    assert is_candidate(product_rule, product_id="P1", category_id="CAT-A")

    assert not is_candidate(customer_rule, customer_id="C1")
    # Supplying groups admits every customer-scoped rule
    assert is_candidate(customer_rule, customer_id="C1", customer_group_ids={"vip"})


def test_group_clause_needs_overlap():
    group_rule = rule(scope="customer_group", customer_group_ids=["vip"])
    assert is_candidate(group_rule, customer_group_ids={"vip", "staff"})
    assert not is_candidate(group_rule, customer_group_ids={"staff"})


def test_find_active_rules_filters_and_orders():
    repo = PricingRuleRepository.from_records([
        {"id": "old", "priority": 5, "created_at": "2024-01-01T00:00:00",
         "adjustments": [{"type": "fixed", "value": 1}]},
        {"id": "new", "priority": 5, "created_at": "2024-06-01T00:00:00",
         "adjustments": [{"type": "fixed", "value": 1}]},
        {"id": "top", "priority": 9, "adjustments": [{"type": "fixed", "value": 1}]},
        {"id": "off", "priority": 9, "status": "inactive", "adjustments": [{"type": "fixed", "value": 1}]},
        {"id": "soon", "priority": 9, "start_date": (NOW + timedelta(days=1)).isoformat(),
         "adjustments": [{"type": "fixed", "value": 1}]},
    ])
    rules = repo.find_active_rules("P1", as_of=NOW)
    assert [r.rule_id for r in rules] == ["top", "old", "new"]

    # Lookup by ID ignores status
    assert repo.find_by_id("off").status is RuleStatus.INACTIVE
    assert len(repo.list_rules(include_inactive=False)) == 4


# --- Eligibility phase ---

def test_window_checked_against_context_date(matcher):
    future = rule(start_date=(NOW + timedelta(days=1)).isoformat())
    eligible, reason = matcher.check_eligibility(future, PriceContext(date=NOW))
    assert not eligible
    assert reason.startswith("starts")

    ended = rule(end_date=(NOW - timedelta(days=1)).isoformat())
    assert not matcher.check_eligibility(ended, PriceContext(date=NOW))[0]


def test_quantity_bounds(matcher):
    bulk = rule(minimum_quantity=5, maximum_quantity=10)
    assert not matcher.check_eligibility(bulk, PriceContext(quantity=4, date=NOW))[0]
    assert matcher.check_eligibility(bulk, PriceContext(quantity=5, date=NOW))[0]
    assert matcher.check_eligibility(bulk, PriceContext(quantity=10, date=NOW))[0]
    assert not matcher.check_eligibility(bulk, PriceContext(quantity=11, date=NOW))[0]


def test_minimum_order_amount(matcher):
    big_cart = rule(minimum_order_amount=200)
    assert not matcher.check_eligibility(big_cart, PriceContext(cart_total=199.99, date=NOW))[0]
    assert matcher.check_eligibility(big_cart, PriceContext(cart_total=200, date=NOW))[0]


def test_scope_allow_lists(matcher):
    product_rule = rule(scope="product", product_ids=["P1"])
    assert matcher.check_eligibility(product_rule, PriceContext(product_ids=["P2", "P1"], date=NOW))[0]
    assert not matcher.check_eligibility(product_rule, PriceContext(product_ids=["P2"], date=NOW))[0]

    category_rule = rule(scope="category", category_ids=["CAT-A"])
    assert matcher.check_eligibility(category_rule, PriceContext(date=NOW), category_id="CAT-A")[0]
    assert not matcher.check_eligibility(category_rule, PriceContext(date=NOW), category_id="CAT-B")[0]

    customer_rule = rule(scope="customer", customer_ids=["C1"])
    assert matcher.check_eligibility(customer_rule, PriceContext(customer_id="C1", date=NOW))[0]
    eligible, reason = matcher.check_eligibility(customer_rule, PriceContext(customer_id="C2", date=NOW))
    assert not eligible
    assert reason == "customer not in rule"

    group_rule = rule(scope="customer_group", customer_group_ids=["vip"])
    assert matcher.check_eligibility(group_rule, PriceContext(customer_group_ids={"vip"}, date=NOW))[0]
    assert not matcher.check_eligibility(group_rule, PriceContext(date=NOW))[0]


def test_empty_allow_lists_admit_nobody(matcher):
    # Scoped rules with no IDs are ineligible whatever the context
    context = PriceContext(customer_id="C1", customer_group_ids={"vip"}, product_ids=["P1"], date=NOW)
    for scope in (RuleScope.PRODUCT, RuleScope.CATEGORY, RuleScope.CUSTOMER, RuleScope.CUSTOMER_GROUP):
        empty = PricingRule(rule_id="empty", name="Empty", type=RuleType.DYNAMIC, scope=scope)
        eligible, _ = matcher.check_eligibility(empty, context, category_id="CAT-A")
        assert not eligible, scope


def test_excluded_rule(matcher):
    eligible, reason = matcher.check_eligibility(rule("R1"), PriceContext(exclude_rule_ids={"R1"}, date=NOW))
    assert not eligible
    assert reason == "excluded by request"


# --- Conditions ---

def test_day_of_week_counts_from_sunday():
    assert day_of_week(NOW) == 3  # Wednesday
    assert day_of_week(NOW + timedelta(days=4)) == 0  # Sunday


def test_builtin_conditions():
    context = PriceContext(date=NOW, additional_data={"customer_attributes": {"tier": "gold"}})

    assert evaluate_condition(RuleCondition("day_of_week", {"days": [3]}), context)
    assert not evaluate_condition(RuleCondition("day_of_week", {"days": [0, 6]}), context)

    assert evaluate_condition(RuleCondition("time_of_day", {"start_hour": 9, "end_hour": 17}), context)
    assert not evaluate_condition(RuleCondition("time_of_day", {"start_hour": 13, "end_hour": 17}), context)

    assert evaluate_condition(RuleCondition("date_range", {"start_date": "2025-06-01"}), context)
    assert not evaluate_condition(RuleCondition("date_range", {"end_date": "2025-06-10"}), context)

    assert evaluate_condition(RuleCondition("customer_attribute", {"attribute": "tier", "value": "gold"}), context)
    assert not evaluate_condition(RuleCondition("customer_attribute", {"attribute": "tier", "value": "silver"}), context)
    assert not evaluate_condition(RuleCondition("customer_attribute", {"attribute": "region", "value": "EU"}), context)


def test_condition_parameters_accept_camel_case():
    context = PriceContext(date=NOW)

    assert evaluate_condition(RuleCondition("time_of_day", {"startHour": 9, "endHour": 17}), context)
    assert not evaluate_condition(RuleCondition("time_of_day", {"startHour": 18, "endHour": 20}), context)
    assert not evaluate_condition(RuleCondition("date_range", {"startDate": "2025-12-01"}), context)


@pytest.mark.parametrize("condition", [
    RuleCondition("time_of_day", {}),
    RuleCondition("time_of_day", {"start_hour": 9}),
    RuleCondition("date_range", {}),
    RuleCondition("day_of_week", {}),
    RuleCondition("customer_attribute", {"value": "gold"}),
    RuleCondition("time_of_day", {"start_hour": "noon", "end_hour": 17}),
])
def test_known_condition_with_bad_parameters_never_matches(condition):
    context = PriceContext(date=NOW, additional_data={"customer_attributes": {"tier": "gold"}})
    assert not evaluate_condition(condition, context)


def test_unknown_condition_is_satisfied(matcher):
    flash = rule(conditions=[{"type": "weather", "parameters": {"sky": "sunny"}}])
    assert matcher.check_eligibility(flash, PriceContext(date=NOW)) == (True, "eligible")


def test_registered_condition_is_used():
    @register_condition("min_items")
    def _min_items(params, context):
        return len(context.product_ids) >= params["count"]

    try:
        condition = RuleCondition("min_items", {"count": 2})
        assert evaluate_condition(condition, PriceContext(product_ids=["P1", "P2"], date=NOW))
        assert not evaluate_condition(condition, PriceContext(product_ids=["P1"], date=NOW))
    finally:
        CONDITION_EVALUATORS.pop("min_items")


# --- Application ---

def test_rules_applied_in_priority_order(matcher):
    low = rule("low", priority=1)
    high = rule("high", priority=5)
    price, entries = matcher.apply_rules([low, high], PriceContext(date=NOW), 100.0)

    assert round(price, 2) == 81.00
    assert [e.rule_id for e in entries] == ["high", "low"]
    assert entries[0].impact == pytest.approx(10.0)
    assert entries[1].impact == pytest.approx(9.0)


def test_multi_adjustment_rule_records_one_entry(matcher):
    combo = rule("combo", adjustments=[
        {"type": "percentage", "value": 10},
        {"type": "fixed", "value": 70},
    ])
    price, entry = matcher.apply_rule_to_price(combo, 100.0)

    assert price == 70.0
    assert entry.adjustment_type is AdjustmentType.PERCENTAGE
    assert entry.adjustment_value == 10
    assert entry.impact == pytest.approx(30.0)
    assert len(entry.adjustments) == 2
    assert "+1 more adjustment(s)" in entry.describe()


def test_rule_without_adjustments_leaves_no_entry(matcher):
    empty = rule("empty", adjustments=[])
    price, entries = matcher.apply_rules([empty], PriceContext(date=NOW), 100.0)
    assert price == 100.0
    assert entries == []


# --- Parsing ---

def test_parse_rule_reports_errors():
    rule_obj, errors = parse_rule({"id": "bad", "scope": "galaxy"})
    assert rule_obj is None
    assert errors and "bad" in errors[0]

    rule_obj, errors = parse_rule({"id": "bad-adj", "adjustments": [{"type": "bogus", "value": 1}]})
    assert rule_obj is None

    rule_obj, errors = parse_rule({"name": "no id"})
    assert errors == ["id is required"]


def test_parse_rule_accepts_comma_lists():
    rule_obj, errors = parse_rule({"id": "R", "scope": "PRODUCT", "product_ids": "P1, P2"})
    assert errors == []
    assert rule_obj.scope is RuleScope.PRODUCT
    assert rule_obj.product_ids == ["P1", "P2"]


def test_parse_rule_normalizes_condition_parameters():
    rule_obj, errors = parse_rule({"id": "evening", "conditions": [
        {"type": "time_of_day", "parameters": {"startHour": "18", "endHour": 20}},
        {"type": "date_range", "parameters": {"startDate": "2025-12-01T00:00:00Z"}},
    ]})
    assert errors == []
    assert rule_obj.conditions[0].parameters == {"start_hour": 18, "end_hour": 20}
    start = rule_obj.conditions[1].parameters["start_date"]
    assert start.tzinfo is None


@pytest.mark.parametrize("condition, message", [
    ({"type": "time_of_day", "parameters": {"startHour": 18}}, "time_of_day condition missing end_hour"),
    ({"type": "date_range", "parameters": {}}, "date_range condition needs start_date or end_date"),
    ({"type": "day_of_week"}, "day_of_week condition missing days"),
    ({"type": "customer_attribute", "parameters": {"value": "gold"}}, "customer_attribute condition missing attribute"),
    ({"type": "date_range", "parameters": {"end_date": "soon"}}, "date_range condition has invalid end_date"),
])
def test_parse_rule_rejects_incomplete_conditions(condition, message):
    rule_obj, errors = parse_rule({"id": "bad-cond", "conditions": [condition]})
    assert rule_obj is None
    assert any(message in e for e in errors)


def test_parse_rule_keeps_unknown_condition_parameters():
    rule_obj, errors = parse_rule({"id": "R", "conditions": [{"type": "weather", "parameters": {"sky": "sunny"}}]})
    assert errors == []
    assert rule_obj.conditions[0].parameters == {"sky": "sunny"}


def test_from_json_skips_invalid_rules(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(
        '{"rules": [{"id": "ok", "adjustments": [{"type": "fixed", "value": 5}]},'
        ' {"id": "broken", "priority": "high"}]}',
        encoding="utf-8",
    )
    repo = PricingRuleRepository.from_json(path)
    assert [r.rule_id for r in repo.list_rules()] == ["ok"]


def test_from_json_missing_file(tmp_path):
    assert PricingRuleRepository.from_json(tmp_path / "nope.json").list_rules() == []
