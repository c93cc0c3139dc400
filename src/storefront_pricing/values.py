"""
Immutable value objects shared by the catalog and the pricing layers.
"""
from dataclasses import dataclass, replace
from typing import Optional

from .errors import CurrencyMismatch


@dataclass(frozen=True)
class Price:
    """A currency-tagged base price with optional sale price and cost."""
    amount: float
    currency: str = "USD"
    sale_price: Optional[float] = None
    cost: Optional[float] = None

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError(f"Price amount cannot be negative: {self.amount}")
        if self.sale_price is not None and self.sale_price < 0:
            raise ValueError(f"Sale price cannot be negative: {self.sale_price}")
        object.__setattr__(self, 'currency', self.currency.upper())

    @property
    def effective_price(self) -> float:
        """Sale price when set and lower than the base amount, else the amount."""
        if self.sale_price is not None and self.sale_price < self.amount:
            return self.sale_price
        return self.amount

    @property
    def discount_percentage(self) -> float:
        """Percentage the sale price takes off the base amount (0 when not on sale)."""
        if self.amount == 0 or self.effective_price >= self.amount:
            return 0.0
        return round((self.amount - self.effective_price) / self.amount * 100, 2)

    @property
    def margin(self) -> Optional[float]:
        if self.cost is None:
            return None
        return self.effective_price - self.cost

    def set_sale_price(self, sale_price: Optional[float]) -> 'Price':
        return replace(self, sale_price=sale_price)

    def update_price(self, amount: float, sale_price: Optional[float] = None,
                     cost: Optional[float] = None) -> 'Price':
        return Price(amount=amount, currency=self.currency, sale_price=sale_price, cost=cost)

    def plus(self, other: 'Price') -> 'Price':
        """Add effective prices; both sides must share a currency."""
        self._check_currency(other)
        return Price(amount=self.effective_price + other.effective_price, currency=self.currency)

    def times(self, quantity: int) -> 'Price':
        return Price(amount=self.effective_price * quantity, currency=self.currency)

    def _check_currency(self, other: 'Price'):
        if other.currency != self.currency:
            raise CurrencyMismatch(self.currency, other.currency)

    @classmethod
    def zero(cls, currency: str = "USD") -> 'Price':
        return cls(amount=0.0, currency=currency)


@dataclass(frozen=True)
class Dimensions:
    """Physical size and weight of a variant."""
    length: float = 0.0
    width: float = 0.0
    height: float = 0.0
    weight: float = 0.0
    unit: str = "cm"
    weight_unit: str = "kg"

    @property
    def volume(self) -> float:
        return self.length * self.width * self.height

    def with_weight(self, weight: float) -> 'Dimensions':
        return replace(self, weight=weight)
