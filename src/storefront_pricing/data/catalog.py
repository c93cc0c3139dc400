"""
Catalog lookup - products and their variants.

Backed by two DataFrames (products, variants) indexed by ID, loaded
either from CSV exports or from in-memory records.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pandas as pd

from ..values import Dimensions, Price

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = ['product_id', 'name', 'category_id', 'currency_code', 'default_variant_id']
VARIANT_COLUMNS = [
    'variant_id', 'product_id', 'sku', 'price', 'sale_price', 'cost', 'currency',
    'is_default', 'weight', 'length', 'width', 'height',
]


@dataclass
class Product:
    product_id: str
    name: str
    category_id: Optional[str] = None
    currency_code: Optional[str] = None
    default_variant_id: Optional[str] = None


@dataclass
class Variant:
    variant_id: str
    product_id: str
    price: Price
    sku: Optional[str] = None
    is_default: bool = False
    dimensions: Optional[Dimensions] = None

    @property
    def effective_price(self) -> float:
        return self.price.effective_price


def _clean(value):
    """Map pandas missing markers to None."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def _optional_float(value) -> Optional[float]:
    value = _clean(value)
    return None if value is None else float(value)


class CatalogRepository:
    """Read-only product/variant lookup."""

    def __init__(self, products: pd.DataFrame, variants: pd.DataFrame, default_currency: str = "USD"):
        self.default_currency = default_currency
        self.products = self._normalize(products, PRODUCT_COLUMNS, 'product_id')
        self.variants = self._normalize(variants, VARIANT_COLUMNS, 'variant_id')

        self.variants['is_default'] = self.variants['is_default'].map(
            lambda v: str(v).strip().lower() in ('true', '1', 'yes') if _clean(v) is not None else False
        )
        for col in ('price', 'sale_price', 'cost', 'weight', 'length', 'width', 'height'):
            self.variants[col] = pd.to_numeric(self.variants[col], errors='coerce')

    @staticmethod
    def _normalize(df: pd.DataFrame, columns: list[str], index: str) -> pd.DataFrame:
        df = df.copy()
        for col in columns:
            if col not in df.columns:
                df[col] = None
        df[index] = df[index].astype(str).str.strip()
        return df.drop_duplicates(index).set_index(index, drop=False)

    @classmethod
    def from_records(cls, products: list[dict], variants: list[dict],
                     default_currency: str = "USD") -> 'CatalogRepository':
        return cls(
            pd.DataFrame(products, columns=None if products else PRODUCT_COLUMNS),
            pd.DataFrame(variants, columns=None if variants else VARIANT_COLUMNS),
            default_currency=default_currency,
        )

    @classmethod
    def from_csv(cls, products_csv: Path, variants_csv: Path,
                 default_currency: str = "USD") -> 'CatalogRepository':
        if not products_csv.exists():
            raise FileNotFoundError(f"Product catalog not found at {products_csv}")
        if not variants_csv.exists():
            raise FileNotFoundError(f"Variant catalog not found at {variants_csv}")

        products = pd.read_csv(products_csv, dtype=str)
        variants = pd.read_csv(variants_csv, dtype={'variant_id': str, 'product_id': str, 'sku': str})
        logger.info("Loaded %d products and %d variants", len(products), len(variants))
        return cls(products, variants, default_currency=default_currency)

    def find_product(self, product_id: str) -> Optional[Product]:
        product_id = str(product_id).strip()
        if product_id not in self.products.index:
            return None
        row = self.products.loc[product_id]
        return Product(
            product_id=product_id,
            name=_clean(row['name']) or product_id,
            category_id=_clean(row['category_id']),
            currency_code=_clean(row['currency_code']),
            default_variant_id=_clean(row['default_variant_id']),
        )

    def find_variant(self, variant_id: str) -> Optional[Variant]:
        variant_id = str(variant_id).strip()
        if variant_id not in self.variants.index:
            return None
        return self._to_variant(self.variants.loc[variant_id])

    def find_default_variant(self, product_id: str) -> Optional[Variant]:
        """The product's declared default variant, else the first flagged is_default."""
        product = self.find_product(product_id)
        if product and product.default_variant_id:
            variant = self.find_variant(product.default_variant_id)
            if variant and variant.product_id == product.product_id:
                return variant

        candidates = self.variants[
            (self.variants['product_id'].astype(str) == str(product_id)) &
            (self.variants['is_default'])
        ]
        if candidates.empty:
            return None
        return self._to_variant(candidates.iloc[0])

    def __len__(self) -> int:
        return len(self.products)

    def _to_variant(self, row: pd.Series) -> Variant:
        product_currency = None
        product_id = str(row['product_id'])
        if product_id in self.products.index:
            product_currency = _clean(self.products.loc[product_id]['currency_code'])

        currency = _clean(row['currency']) or product_currency or self.default_currency
        dimensions = None
        if any(_clean(row[c]) is not None for c in ('weight', 'length', 'width', 'height')):
            dimensions = Dimensions(
                length=_optional_float(row['length']) or 0.0,
                width=_optional_float(row['width']) or 0.0,
                height=_optional_float(row['height']) or 0.0,
                weight=_optional_float(row['weight']) or 0.0,
            )

        return Variant(
            variant_id=str(row['variant_id']),
            product_id=product_id,
            price=Price(
                amount=float(row['price']),
                currency=currency,
                sale_price=_optional_float(row['sale_price']),
                cost=_optional_float(row['cost']),
            ),
            sku=_clean(row['sku']),
            is_default=bool(row['is_default']),
            dimensions=dimensions,
        )
