"""
Customer price lists - customer/group specific overrides ordered by priority.

Price lists live in a JSON document (they carry ID arrays); the price
rows themselves are a flat table held in a DataFrame.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd

from ..rules.models import AdjustmentType, RuleStatus, parse_id_list, parse_optional_datetime
from .catalog import _clean

logger = logging.getLogger(__name__)

PRICE_COLUMNS = ['id', 'price_list_id', 'product_id', 'variant_id', 'adjustment_type', 'adjustment_value']


@dataclass
class CustomerPriceList:
    id: str
    name: str
    customer_ids: list[str] = field(default_factory=list)
    customer_group_ids: list[str] = field(default_factory=list)
    priority: int = 0
    status: RuleStatus = RuleStatus.ACTIVE
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'CustomerPriceList':
        return cls(
            id=str(data['id']),
            name=data.get('name') or str(data['id']),
            customer_ids=parse_id_list(data.get('customer_ids')),
            customer_group_ids=parse_id_list(data.get('customer_group_ids')),
            priority=int(data.get('priority', 0) or 0),
            status=RuleStatus(str(data.get('status', 'active')).lower()),
            start_date=parse_optional_datetime(data.get('start_date')),
            end_date=parse_optional_datetime(data.get('end_date')),
            created_at=parse_optional_datetime(data.get('created_at')),
        )

    def is_current(self, moment: datetime) -> bool:
        if self.status is not RuleStatus.ACTIVE:
            return False
        if self.start_date and self.start_date > moment:
            return False
        if self.end_date and self.end_date < moment:
            return False
        return True


@dataclass
class CustomerPrice:
    id: str
    price_list_id: str
    product_id: str
    adjustment_type: AdjustmentType
    adjustment_value: float
    variant_id: Optional[str] = None


class CustomerPriceRepository:
    """Lookup of customer-specific price lists and their product prices."""

    def __init__(self, price_lists: list[CustomerPriceList], prices: pd.DataFrame):
        self.price_lists = list(price_lists)

        df = prices.copy()
        for col in PRICE_COLUMNS:
            if col not in df.columns:
                df[col] = None
        for col in ('id', 'price_list_id', 'product_id', 'variant_id'):
            df[col] = df[col].map(lambda v: None if _clean(v) is None else str(v).strip())
        df['adjustment_type'] = df['adjustment_type'].map(lambda v: str(v).strip().lower())
        df['adjustment_value'] = pd.to_numeric(df['adjustment_value'], errors='coerce')
        self.prices = df.reset_index(drop=True)

    @classmethod
    def from_records(cls, price_lists: list[dict], prices: list[dict]) -> 'CustomerPriceRepository':
        return cls(
            [CustomerPriceList.from_dict(d) for d in price_lists],
            pd.DataFrame(prices, columns=None if prices else PRICE_COLUMNS),
        )

    @classmethod
    def from_files(cls, price_lists_json: Path, prices_csv: Path) -> 'CustomerPriceRepository':
        lists = []
        if price_lists_json.exists():
            with open(price_lists_json, 'r', encoding='utf-8') as f:
                lists = json.load(f).get('price_lists', [])
        else:
            logger.warning("Price list file not found at %s", price_lists_json)

        if prices_csv.exists():
            prices = pd.read_csv(prices_csv, dtype={'id': str, 'price_list_id': str,
                                                    'product_id': str, 'variant_id': str})
        else:
            logger.warning("Customer price file not found at %s", prices_csv)
            prices = pd.DataFrame(columns=PRICE_COLUMNS)

        return cls([CustomerPriceList.from_dict(d) for d in lists], prices)

    def find_price_lists_for_customer(
        self,
        customer_id: str,
        customer_group_ids: Iterable[str] = (),
        as_of: Optional[datetime] = None,
    ) -> list[CustomerPriceList]:
        """Active, current lists naming the customer or one of its groups, priority desc, created_at asc."""
        now = as_of or datetime.now()
        groups = set(customer_group_ids or ())

        matched = [
            pl for pl in self.price_lists
            if pl.is_current(now) and (
                customer_id in pl.customer_ids or groups.intersection(pl.customer_group_ids)
            )
        ]
        matched.sort(key=lambda pl: (-pl.priority, pl.created_at or datetime.min))
        return matched

    def find_prices_for_product(
        self,
        product_id: str,
        variant_id: Optional[str] = None,
        price_list_ids: Iterable[str] = (),
    ) -> list[CustomerPrice]:
        """
        Prices for a product, in the order of the given list IDs.

        Within a list a variant-specific row precedes the generic row. With
        no variant requested only generic (null-variant) rows qualify.
        """
        list_order = {list_id: pos for pos, list_id in enumerate(price_list_ids)}
        df = self.prices
        if df.empty or not list_order:
            return []

        mask = (df['product_id'] == str(product_id)) & df['price_list_id'].isin(list(list_order))
        if variant_id:
            mask &= df['variant_id'].isna() | (df['variant_id'] == str(variant_id))
        else:
            mask &= df['variant_id'].isna()

        matches = df[mask]
        if matches.empty:
            return []

        matches = matches.assign(
            _list_rank=matches['price_list_id'].map(list_order),
            _generic=matches['variant_id'].isna(),
        ).sort_values(['_list_rank', '_generic'], kind='mergesort')

        return [
            CustomerPrice(
                id=row['id'] or f"cp-{idx}",
                price_list_id=row['price_list_id'],
                product_id=row['product_id'],
                adjustment_type=AdjustmentType(row['adjustment_type']),
                adjustment_value=float(row['adjustment_value']),
                variant_id=row['variant_id'],
            )
            for idx, row in matches.iterrows()
        ]
