"""
Rules API - read-only FastAPI router for promotional rules and impact previews.
"""
from fastapi import APIRouter, Depends, HTTPException
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field
from typing import Optional

from ..engine import PriceContext, PricingError, PricingService
from ..rules.models import PricingRule
from .state import get_service

router = APIRouter(prefix="/api/rules", tags=["rules"])


class AdjustmentResponse(BaseModel):
    type: str
    value: float
    target: Optional[str] = None


class RuleResponse(BaseModel):
    """Response model for a rule."""
    rule_id: str
    name: str
    type: str
    scope: str
    status: str
    priority: int
    adjustments: list[AdjustmentResponse]
    conditions: list[dict]
    product_ids: list[str]
    category_ids: list[str]
    customer_ids: list[str]
    customer_group_ids: list[str]
    start_date: Optional[str]
    end_date: Optional[str]
    minimum_quantity: Optional[int]
    maximum_quantity: Optional[int]
    minimum_order_amount: Optional[float]

    @classmethod
    def from_rule(cls, rule: PricingRule) -> 'RuleResponse':
        return cls(
            rule_id=rule.rule_id,
            name=rule.name,
            type=rule.type.value,
            scope=rule.scope.value,
            status=rule.status.value,
            priority=rule.priority,
            adjustments=[AdjustmentResponse(type=a.type.value, value=a.value, target=a.target)
                         for a in rule.adjustments],
            conditions=[{"type": c.type, "parameters": c.parameters} for c in rule.conditions],
            product_ids=rule.product_ids,
            category_ids=rule.category_ids,
            customer_ids=rule.customer_ids,
            customer_group_ids=rule.customer_group_ids,
            start_date=rule.start_date.isoformat() if rule.start_date else None,
            end_date=rule.end_date.isoformat() if rule.end_date else None,
            minimum_quantity=rule.minimum_quantity,
            maximum_quantity=rule.maximum_quantity,
            minimum_order_amount=rule.minimum_order_amount,
        )


class ImpactRequest(BaseModel):
    """Request model for previewing a rule against a product."""
    product_id: str
    customer_id: Optional[str] = None
    customer_group_ids: list[str] = Field(default_factory=list)
    quantity: int = Field(default=1, ge=1)


# Endpoints

@router.get("", response_model=list[RuleResponse])
async def list_rules(include_inactive: bool = True, service: PricingService = Depends(get_service)):
    """List all pricing rules."""
    return [RuleResponse.from_rule(r) for r in service.pricing_rules.list_rules(include_inactive)]


@router.get("/{rule_id}", response_model=RuleResponse)
async def get_rule(rule_id: str, service: PricingService = Depends(get_service)):
    """Get a single rule."""
    rule = service.pricing_rules.find_by_id(rule_id)
    if not rule:
        raise HTTPException(status_code=404, detail=f"Rule '{rule_id}' not found")
    return RuleResponse.from_rule(rule)


@router.post("/{rule_id}/impact")
async def rule_impact(rule_id: str, req: ImpactRequest, service: PricingService = Depends(get_service)):
    """Preview the price impact of one rule on a product."""
    context = PriceContext(
        customer_id=req.customer_id,
        customer_group_ids=req.customer_group_ids,
        quantity=req.quantity,
    )
    try:
        impact = service.calculate_rule_impact(rule_id, req.product_id, context)
    except PricingError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
    return jsonable_encoder(impact)
