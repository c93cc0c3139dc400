"""
Data models for the pricing engine.

Uses dataclasses for structured, type-safe data representation.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..rules.models import AdjustmentType, PriceAdjustment, naive_local
from ..errors import InvalidPriceContext


@dataclass
class PriceContext:
    """Everything known about the request that a pricing layer may use."""
    variant_id: Optional[str] = None
    customer_id: Optional[str] = None
    customer_group_ids: frozenset[str] = field(default_factory=frozenset)
    quantity: int = 1
    date: datetime = field(default_factory=datetime.now)
    cart_total: float = 0.0

    # Used by product-scoped rule eligibility
    product_ids: list[str] = field(default_factory=list)

    # Open bag: apply_loyalty_discount, loyalty_points_to_apply,
    # points_to_money_ratio, customer_attributes
    additional_data: dict[str, Any] = field(default_factory=dict)

    # Promotional rules to skip for this calculation
    exclude_rule_ids: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        self.customer_group_ids = frozenset(self.customer_group_ids or ())
        self.exclude_rule_ids = frozenset(self.exclude_rule_ids or ())
        self.date = naive_local(self.date or datetime.now())
        if self.quantity is None:
            self.quantity = 1
        if self.quantity < 1:
            raise InvalidPriceContext(f"Quantity must be at least 1, got {self.quantity}",
                                      {"quantity": self.quantity})


@dataclass
class AppliedRule:
    """One entry in the pricing audit trail."""
    rule_id: str
    rule_name: str
    adjustment_type: AdjustmentType
    adjustment_value: float
    impact: float  # price before layer - price after layer
    adjustments: list[PriceAdjustment] = field(default_factory=list)

    def describe(self) -> str:
        if self.adjustment_type is AdjustmentType.PERCENTAGE:
            value = f"{self.adjustment_value:g}%"
        else:
            value = f"{self.adjustment_value:.2f}"
        text = f"{self.rule_name} ({self.adjustment_type.value} {value})"
        if len(self.adjustments) > 1:
            text += f" +{len(self.adjustments) - 1} more adjustment(s)"
        return text


@dataclass
class PricingResult:
    """Complete result of a pricing calculation."""
    original_price: float
    final_price: float
    currency: str
    applied_rules: list[AppliedRule] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_applied_rule(self, entry: AppliedRule):
        self.applied_rules.append(entry)

    def add_warning(self, warning: str):
        """Add a result-level warning."""
        if warning not in self.warnings:
            self.warnings.append(warning)

    @property
    def total_discount(self) -> float:
        return round(self.original_price - self.final_price, 2)

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = [f"• Original price = {self.original_price:.2f} {self.currency}"]
        for entry in self.applied_rules:
            lines.append(f"• {entry.describe()} = -{entry.impact:.2f}")
        lines.append(f"• Final price = {self.final_price:.2f} {self.currency}")
        return "\n".join(lines)


@dataclass
class RuleImpact:
    """Preview of one rule's effect against the full calculation."""
    before_rule: PricingResult
    after_rule: PricingResult
    impact: float
    percentage_impact: float


@dataclass
class PriceItem:
    """A single entry of a batch price request."""
    product_id: str
    variant_id: Optional[str] = None
    quantity: Optional[int] = None

    @property
    def key(self) -> str:
        return f"{self.product_id}:{self.variant_id}" if self.variant_id else self.product_id
