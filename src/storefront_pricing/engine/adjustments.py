"""Price adjustment arithmetic shared by every pricing layer."""
from typing import Iterable

from ..rules.models import AdjustmentType, PriceAdjustment


def apply_adjustment(price: float, adjustment_type: AdjustmentType, value: float) -> float:
    """
    Apply a single adjustment to a running price.

    FIXED and OVERRIDE both set the price outright.
    """
    if adjustment_type is AdjustmentType.PERCENTAGE:
        return price * (1 - value / 100.0)
    if adjustment_type in (AdjustmentType.FIXED, AdjustmentType.OVERRIDE):
        return float(value)
    raise ValueError(f"Unknown adjustment type: {adjustment_type!r}")


def apply_adjustments(price: float, adjustments: Iterable[PriceAdjustment]) -> float:
    """Apply adjustments sequentially, each to the result of the previous one."""
    for adjustment in adjustments:
        price = apply_adjustment(price, adjustment.type, adjustment.value)
    return price
