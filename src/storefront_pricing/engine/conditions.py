"""
Rule condition evaluators.

Each condition tag maps to a registered evaluator. Tags with no
evaluator are treated as satisfied. Known tags whose parameters are
missing or malformed never match.
"""
import logging
from datetime import datetime
from typing import Callable

from ..rules.models import RuleCondition, normalize_condition
from .models import PriceContext

logger = logging.getLogger(__name__)

ConditionEvaluator = Callable[[dict, PriceContext], bool]

CONDITION_EVALUATORS: dict[str, ConditionEvaluator] = {}


def register_condition(tag: str):
    """Decorator registering an evaluator for a condition tag."""
    def decorator(func: ConditionEvaluator) -> ConditionEvaluator:
        CONDITION_EVALUATORS[tag] = func
        return func
    return decorator


def evaluate_condition(condition: RuleCondition, context: PriceContext) -> bool:
    evaluator = CONDITION_EVALUATORS.get(condition.type)
    if evaluator is None:
        logger.debug("Unknown condition type '%s' treated as satisfied", condition.type)
        return True

    parameters, errors = normalize_condition(condition.type, condition.parameters)
    if errors:
        logger.debug("Condition %s not satisfied: %s", condition.type, "; ".join(errors))
        return False
    return evaluator(parameters, context)


def day_of_week(moment: datetime) -> int:
    """0 = Sunday ... 6 = Saturday, the convention stored in rule conditions."""
    return (moment.weekday() + 1) % 7


@register_condition("date_range")
def _date_range(params: dict, context: PriceContext) -> bool:
    start = params.get('start_date')
    end = params.get('end_date')
    if start and start > context.date:
        return False
    if end and end < context.date:
        return False
    return True


@register_condition("day_of_week")
def _day_of_week(params: dict, context: PriceContext) -> bool:
    return day_of_week(context.date) in params['days']


@register_condition("time_of_day")
def _time_of_day(params: dict, context: PriceContext) -> bool:
    return params['start_hour'] <= context.date.hour < params['end_hour']


@register_condition("customer_attribute")
def _customer_attribute(params: dict, context: PriceContext) -> bool:
    attributes = context.additional_data.get('customer_attributes') or {}
    attribute = params['attribute']
    if attribute not in attributes:
        return False
    return attributes[attribute] == params['value']
