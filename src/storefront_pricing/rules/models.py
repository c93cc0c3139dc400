"""
Pricing rule schema - merchant-authored promotional rules.

Rules are authored elsewhere and read-only here; this module parses
and validates the stored dict/JSON shape into typed dataclasses.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class AdjustmentType(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"
    OVERRIDE = "override"


class RuleType(str, Enum):
    QUANTITY_BASED = "quantity_based"
    TIME_BASED = "time_based"
    CUSTOMER_SEGMENT = "customer_segment"
    BUNDLE = "bundle"
    DYNAMIC = "dynamic"
    CONTRACT = "contract"


class RuleScope(str, Enum):
    GLOBAL = "global"
    PRODUCT = "product"
    CATEGORY = "category"
    CUSTOMER = "customer"
    CUSTOMER_GROUP = "customer_group"


class RuleStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SCHEDULED = "scheduled"
    EXPIRED = "expired"


@dataclass(frozen=True)
class PriceAdjustment:
    """A single price transformation."""
    type: AdjustmentType
    value: float
    target: Optional[str] = None


@dataclass(frozen=True)
class RuleCondition:
    """An extensible tagged condition; parameters depend on the tag."""
    type: str
    parameters: dict = field(default_factory=dict)


@dataclass
class PricingRule:
    """A compiled promotional pricing rule."""
    rule_id: str
    name: str
    type: RuleType
    scope: RuleScope
    status: RuleStatus = RuleStatus.ACTIVE
    priority: int = 0
    conditions: list[RuleCondition] = field(default_factory=list)
    adjustments: list[PriceAdjustment] = field(default_factory=list)
    product_ids: list[str] = field(default_factory=list)
    category_ids: list[str] = field(default_factory=list)
    customer_ids: list[str] = field(default_factory=list)
    customer_group_ids: list[str] = field(default_factory=list)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    minimum_quantity: Optional[int] = None
    maximum_quantity: Optional[int] = None
    minimum_order_amount: Optional[float] = None
    created_at: Optional[datetime] = None
    description: str = ""

    @property
    def is_active(self) -> bool:
        return self.status is RuleStatus.ACTIVE

    def in_window(self, moment: datetime) -> bool:
        """True if moment falls inside [start_date, end_date] (open ends allowed)."""
        if self.start_date and self.start_date > moment:
            return False
        if self.end_date and self.end_date < moment:
            return False
        return True

    @property
    def representative_adjustment(self) -> PriceAdjustment:
        """First adjustment, used to summarise the rule on one audit line."""
        if self.adjustments:
            return self.adjustments[0]
        return PriceAdjustment(type=AdjustmentType.FIXED, value=0.0)

    @classmethod
    def from_dict(cls, data: dict) -> 'PricingRule':
        rule, errors = parse_rule(data)
        if errors:
            raise ValueError("; ".join(errors))
        return rule


def parse_optional_int(value: Any) -> Optional[int]:
    """Parse optional integer."""
    if value is None or str(value).strip() == '':
        return None
    return int(value)


def parse_optional_float(value: Any) -> Optional[float]:
    """Parse optional float."""
    if value is None or str(value).strip() == '':
        return None
    return float(value)


def naive_local(moment: datetime) -> datetime:
    """
    Bring a datetime onto the engine's convention: naive local time.

    Aware values are converted to the local zone before the offset is
    dropped, so they compare cleanly with stored naive dates.
    """
    if moment.tzinfo is None:
        return moment
    return moment.astimezone().replace(tzinfo=None)


def parse_optional_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO date/datetime string (empty = None)."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return naive_local(value)
    text = str(value).strip()
    if text.endswith(('Z', 'z')):
        text = text[:-1] + '+00:00'
    return naive_local(datetime.fromisoformat(text))


def parse_id_list(value: Any) -> list[str]:
    """Accept a list or a comma-separated string of IDs."""
    if not value:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(',') if v.strip()]
    return [str(v) for v in value]


# Known condition tags: canonical parameter name -> (accepted spellings, parser)
CONDITION_PARAMETERS: dict[str, dict[str, tuple[tuple[str, ...], Any]]] = {
    "date_range": {
        "start_date": (("start_date", "startDate"), parse_optional_datetime),
        "end_date": (("end_date", "endDate"), parse_optional_datetime),
    },
    "day_of_week": {
        "days": (("days",), lambda days: [int(d) for d in days]),
    },
    "time_of_day": {
        "start_hour": (("start_hour", "startHour"), int),
        "end_hour": (("end_hour", "endHour"), int),
    },
    "customer_attribute": {
        "attribute": (("attribute",), str),
        "value": (("value",), lambda value: value),
    },
}


def normalize_condition(tag: str, parameters: dict) -> tuple[dict, list[str]]:
    """
    Map a condition's parameters onto canonical names and types.

    Unknown tags pass through untouched. For known tags, every parameter
    is required except date_range, which needs at least one bound.
    Returns (parameters, errors).
    """
    spec = CONDITION_PARAMETERS.get(tag)
    if spec is None:
        return dict(parameters), []

    aliases = {name for names, _ in spec.values() for name in names}
    normalized = {k: v for k, v in parameters.items() if k not in aliases}
    errors = []
    missing = []
    for canonical, (names, parse) in spec.items():
        raw = next((parameters[n] for n in names if parameters.get(n) is not None), None)
        if raw is None:
            missing.append(canonical)
            continue
        try:
            normalized[canonical] = parse(raw)
        except (TypeError, ValueError):
            errors.append(f"{tag} condition has invalid {canonical} {raw!r}")

    if tag == "date_range":
        if len(missing) == len(spec):
            errors.append("date_range condition needs start_date or end_date")
    else:
        errors.extend(f"{tag} condition missing {c}" for c in missing)

    return normalized, errors


def parse_rule(data: dict) -> tuple[Optional[PricingRule], list[str]]:
    """
    Validate and parse a rule from its stored dict form.

    Returns (rule, errors) - rule is None if validation failed.
    """
    errors = []

    rule_id = str(data.get('id') or data.get('rule_id') or '').strip()
    if not rule_id:
        return None, ["id is required"]

    name = data.get('name') or rule_id

    try:
        rule_type = RuleType(str(data.get('type', RuleType.DYNAMIC.value)).lower())
        scope = RuleScope(str(data.get('scope', RuleScope.GLOBAL.value)).lower())
        status = RuleStatus(str(data.get('status', RuleStatus.ACTIVE.value)).lower())
    except ValueError as e:
        return None, [f"{rule_id}: {e}"]

    try:
        priority = int(data.get('priority', 0) or 0)
    except (TypeError, ValueError):
        return None, [f"{rule_id}: priority must be an integer"]

    adjustments = []
    for raw in data.get('adjustments') or []:
        try:
            adjustments.append(PriceAdjustment(
                type=AdjustmentType(str(raw['type']).lower()),
                value=float(raw['value']),
                target=raw.get('target'),
            ))
        except (KeyError, TypeError, ValueError):
            errors.append(f"{rule_id}: invalid adjustment {raw!r}")

    conditions = []
    for raw in data.get('conditions') or []:
        tag = str(raw.get('type', ''))
        parameters, condition_errors = normalize_condition(tag, dict(raw.get('parameters') or {}))
        errors.extend(f"{rule_id}: {e}" for e in condition_errors)
        conditions.append(RuleCondition(type=tag, parameters=parameters))

    dates = {}
    for date_field in ('start_date', 'end_date', 'created_at'):
        try:
            dates[date_field] = parse_optional_datetime(data.get(date_field))
        except ValueError:
            errors.append(f"{rule_id}: {date_field} must be ISO format")

    try:
        minimum_quantity = parse_optional_int(data.get('minimum_quantity'))
        maximum_quantity = parse_optional_int(data.get('maximum_quantity'))
        minimum_order_amount = parse_optional_float(data.get('minimum_order_amount'))
    except ValueError:
        errors.append(f"{rule_id}: quantity and order amount limits must be numeric")

    if errors:
        return None, errors

    return PricingRule(
        rule_id=rule_id,
        name=name,
        type=rule_type,
        scope=scope,
        status=status,
        priority=priority,
        conditions=conditions,
        adjustments=adjustments,
        product_ids=parse_id_list(data.get('product_ids')),
        category_ids=parse_id_list(data.get('category_ids')),
        customer_ids=parse_id_list(data.get('customer_ids')),
        customer_group_ids=parse_id_list(data.get('customer_group_ids')),
        start_date=dates.get('start_date'),
        end_date=dates.get('end_date'),
        minimum_quantity=minimum_quantity,
        maximum_quantity=maximum_quantity,
        minimum_order_amount=minimum_order_amount,
        created_at=dates.get('created_at'),
        description=data.get('description') or "",
    ), []
