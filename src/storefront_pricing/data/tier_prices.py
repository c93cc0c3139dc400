"""
Tier price repository - quantity-break override prices.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from ..rules.models import parse_optional_datetime
from .catalog import _clean

logger = logging.getLogger(__name__)

TIER_COLUMNS = [
    'id', 'product_id', 'variant_id', 'quantity_min', 'quantity_max', 'price',
    'customer_group_id', 'start_date', 'end_date',
]


def _to_naive_date(value) -> Optional[datetime]:
    """Parse a tier date onto the naive-local convention; unparseable = None."""
    if _clean(value) is None:
        return None
    try:
        return parse_optional_datetime(value)
    except (TypeError, ValueError):
        return None


@dataclass
class TierPrice:
    id: str
    product_id: str
    quantity_min: int
    price: float
    variant_id: Optional[str] = None
    quantity_max: Optional[int] = None  # None = unbounded
    customer_group_id: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class TierPriceRepository:
    """Quantity-break lookup over a tier price table."""

    def __init__(self, tiers: pd.DataFrame):
        df = tiers.copy()
        for col in TIER_COLUMNS:
            if col not in df.columns:
                df[col] = None

        for col in ('id', 'product_id', 'variant_id', 'customer_group_id'):
            df[col] = df[col].map(lambda v: None if _clean(v) is None else str(v).strip())
        df['quantity_min'] = pd.to_numeric(df['quantity_min'], errors='coerce').fillna(1)
        df['quantity_max'] = pd.to_numeric(df['quantity_max'], errors='coerce')
        df['price'] = pd.to_numeric(df['price'], errors='coerce')
        df['start_date'] = pd.to_datetime(df['start_date'].map(_to_naive_date))
        df['end_date'] = pd.to_datetime(df['end_date'].map(_to_naive_date))
        self.tiers = df.reset_index(drop=True)

    @classmethod
    def from_records(cls, records: list[dict]) -> 'TierPriceRepository':
        return cls(pd.DataFrame(records, columns=None if records else TIER_COLUMNS))

    @classmethod
    def from_csv(cls, path: Path) -> 'TierPriceRepository':
        if not path.exists():
            logger.warning("Tier price file not found at %s; tier pricing disabled", path)
            return cls.from_records([])
        return cls(pd.read_csv(path, dtype={'id': str, 'product_id': str, 'variant_id': str,
                                            'customer_group_id': str}))

    def find_applicable_tier(
        self,
        product_id: str,
        quantity: int,
        variant_id: Optional[str] = None,
        customer_group_ids: Iterable[str] = (),
        as_of: Optional[datetime] = None,
    ) -> Optional[TierPrice]:
        """
        Find the best quantity-break tier.

        Filters by product, quantity bounds (inclusive, null max = unbounded),
        variant when given, group (generic or one of the supplied groups) and
        validity window. Highest quantity_min wins; ties prefer a group tier.
        """
        df = self.tiers
        if df.empty:
            return None

        now = pd.Timestamp(as_of or datetime.now())
        groups = [str(g) for g in customer_group_ids]

        mask = (
            (df['product_id'] == str(product_id)) &
            (df['quantity_min'] <= quantity) &
            (df['quantity_max'].isna() | (df['quantity_max'] >= quantity)) &
            (df['start_date'].isna() | (df['start_date'] <= now)) &
            (df['end_date'].isna() | (df['end_date'] >= now))
        )

        if variant_id:
            mask &= df['variant_id'] == str(variant_id)

        if groups:
            mask &= df['customer_group_id'].isna() | df['customer_group_id'].isin(groups)
        else:
            mask &= df['customer_group_id'].isna()

        matches = df[mask]
        if matches.empty:
            return None

        matches = matches.assign(_has_group=matches['customer_group_id'].notna())
        best = matches.sort_values(
            ['quantity_min', '_has_group'], ascending=[False, False], kind='mergesort'
        ).iloc[0]

        return TierPrice(
            id=best['id'] or f"tier-{best.name}",
            product_id=best['product_id'],
            quantity_min=int(best['quantity_min']),
            price=float(best['price']),
            variant_id=best['variant_id'],
            quantity_max=None if pd.isna(best['quantity_max']) else int(best['quantity_max']),
            customer_group_id=best['customer_group_id'],
            start_date=None if pd.isna(best['start_date']) else best['start_date'].to_pydatetime(),
            end_date=None if pd.isna(best['end_date']) else best['end_date'].to_pydatetime(),
        )
