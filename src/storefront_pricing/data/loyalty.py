"""
Loyalty repository - read-only point balances.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd

from ..errors import EnrichmentUnavailable

logger = logging.getLogger(__name__)

LOYALTY_COLUMNS = ['customer_id', 'current_points', 'lifetime_points']


@dataclass
class LoyaltyPoints:
    customer_id: str
    current_points: int
    lifetime_points: int = 0


class LoyaltyRepository:
    """Point balances indexed by customer."""

    def __init__(self, balances: Optional[pd.DataFrame]):
        self.available = balances is not None
        if balances is None:
            self.balances = pd.DataFrame(columns=LOYALTY_COLUMNS)
            return

        df = balances.copy()
        for col in LOYALTY_COLUMNS:
            if col not in df.columns:
                df[col] = 0
        df['customer_id'] = df['customer_id'].astype(str).str.strip()
        df['current_points'] = pd.to_numeric(df['current_points'], errors='coerce').fillna(0).astype(int)
        df['lifetime_points'] = pd.to_numeric(df['lifetime_points'], errors='coerce').fillna(0).astype(int)
        self.balances = df.drop_duplicates('customer_id', keep='last').set_index('customer_id', drop=False)

    @classmethod
    def from_records(cls, records: list[dict]) -> 'LoyaltyRepository':
        return cls(pd.DataFrame(records, columns=None if records else LOYALTY_COLUMNS))

    @classmethod
    def from_csv(cls, path: Path) -> 'LoyaltyRepository':
        if not path.exists():
            logger.warning("Loyalty file not found at %s; loyalty redemption unavailable", path)
            return cls(None)
        return cls(pd.read_csv(path, dtype={'customer_id': str}))

    def find_customer_points(self, customer_id: str) -> Optional[LoyaltyPoints]:
        if not self.available:
            raise EnrichmentUnavailable("loyalty", "loyalty data source is not configured")

        customer_id = str(customer_id).strip()
        if customer_id not in self.balances.index:
            return None
        row = self.balances.loc[customer_id]
        return LoyaltyPoints(
            customer_id=customer_id,
            current_points=int(row['current_points']),
            lifetime_points=int(row['lifetime_points']),
        )
