"""
Basket repositories and the pricing-aware wrapper.

The wrapper is composed at construction time around any basket
repository: every mutating call is delegated, then the basket is
re-priced through the pricing service and saved back.
"""
import copy
import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..engine.models import AppliedRule, PriceContext, PriceItem
from ..engine.pricing_engine import PricingService
from ..values import Price

logger = logging.getLogger(__name__)


@dataclass
class BasketItem:
    item_id: str
    product_id: str
    quantity: int
    variant_id: Optional[str] = None
    unit_price: float = 0.0
    line_total: float = 0.0
    applied_rules: list[AppliedRule] = field(default_factory=list)

    @property
    def price_key(self) -> str:
        return PriceItem(self.product_id, self.variant_id).key


@dataclass
class Basket:
    basket_id: str
    currency: str = "USD"
    customer_id: Optional[str] = None
    customer_group_ids: frozenset[str] = field(default_factory=frozenset)
    items: list[BasketItem] = field(default_factory=list)
    subtotal: float = 0.0

    def find_item(self, item_id: str) -> Optional[BasketItem]:
        return next((i for i in self.items if i.item_id == item_id), None)


class InMemoryBasketRepository:
    """Plain basket storage with no pricing knowledge."""

    def __init__(self):
        self._baskets: dict[str, Basket] = {}

    def create(self, currency: str = "USD", customer_id: Optional[str] = None,
               customer_group_ids=()) -> Basket:
        basket = Basket(
            basket_id=str(uuid.uuid4()),
            currency=currency,
            customer_id=customer_id,
            customer_group_ids=frozenset(customer_group_ids),
        )
        self._baskets[basket.basket_id] = basket
        return basket

    def get(self, basket_id: str) -> Optional[Basket]:
        return self._baskets.get(basket_id)

    def _require(self, basket_id: str) -> Basket:
        basket = self.get(basket_id)
        if basket is None:
            raise KeyError(f"Basket not found: {basket_id}")
        return basket

    def add_item(self, basket_id: str, product_id: str, quantity: int = 1,
                 variant_id: Optional[str] = None) -> Basket:
        basket = self._require(basket_id)
        for item in basket.items:
            if item.product_id == product_id and item.variant_id == variant_id:
                item.quantity += quantity
                return basket

        basket.items.append(BasketItem(
            item_id=str(uuid.uuid4()),
            product_id=product_id,
            variant_id=variant_id,
            quantity=quantity,
        ))
        return basket

    def update_item_quantity(self, basket_id: str, item_id: str, quantity: int) -> Basket:
        basket = self._require(basket_id)
        item = basket.find_item(item_id)
        if item is None:
            raise KeyError(f"Basket item not found: {item_id}")
        if quantity <= 0:
            basket.items.remove(item)
        else:
            item.quantity = quantity
        return basket

    def remove_item(self, basket_id: str, item_id: str) -> Basket:
        basket = self._require(basket_id)
        basket.items = [i for i in basket.items if i.item_id != item_id]
        return basket

    def save(self, basket: Basket) -> Basket:
        self._baskets[basket.basket_id] = basket
        return basket


class PricingAwareRepository:
    """
    Decorates a basket repository so totals always reflect current pricing.

    Reads pass straight through; add_item, update_item_quantity and
    remove_item re-price the whole basket after the inner call, and roll
    the change back if pricing fails.
    """

    def __init__(self, repository: InMemoryBasketRepository, pricing_service: PricingService):
        self.repository = repository
        self.pricing_service = pricing_service

    def create(self, currency: str = "USD", customer_id: Optional[str] = None,
               customer_group_ids=()) -> Basket:
        return self.repository.create(currency, customer_id, customer_group_ids)

    def get(self, basket_id: str) -> Optional[Basket]:
        return self.repository.get(basket_id)

    def add_item(self, basket_id: str, product_id: str, quantity: int = 1,
                 variant_id: Optional[str] = None) -> Basket:
        return self._mutate(basket_id, lambda: self.repository.add_item(basket_id, product_id, quantity, variant_id))

    def update_item_quantity(self, basket_id: str, item_id: str, quantity: int) -> Basket:
        return self._mutate(basket_id, lambda: self.repository.update_item_quantity(basket_id, item_id, quantity))

    def remove_item(self, basket_id: str, item_id: str) -> Basket:
        return self._mutate(basket_id, lambda: self.repository.remove_item(basket_id, item_id))

    def _mutate(self, basket_id: str, mutation: Callable[[], Basket]) -> Basket:
        """Run an inner mutation and re-price; if either fails, the stored basket is restored."""
        snapshot = copy.deepcopy(self.repository.get(basket_id))
        try:
            return self.reprice(mutation())
        except Exception:
            if snapshot is not None:
                logger.warning("Basket %s change rolled back", basket_id)
                self.repository.save(snapshot)
            raise

    def reprice(self, basket: Basket) -> Basket:
        """Re-price every line and the subtotal, then persist via the inner repository."""
        if not basket.items:
            basket.subtotal = 0.0
            return self.repository.save(basket)

        context = PriceContext(
            customer_id=basket.customer_id,
            customer_group_ids=basket.customer_group_ids,
            cart_total=basket.subtotal,
            product_ids=[i.product_id for i in basket.items],
        )
        results = self.pricing_service.calculate_prices(
            [PriceItem(i.product_id, i.variant_id, i.quantity) for i in basket.items],
            context,
        )

        subtotal = Price.zero(basket.currency)
        for item in basket.items:
            result = results[item.price_key]
            line = Price(amount=result.final_price, currency=result.currency).times(item.quantity)
            subtotal = subtotal.plus(line)

            item.unit_price = result.final_price
            item.line_total = round(line.amount, 2)
            item.applied_rules = result.applied_rules

        basket.subtotal = round(subtotal.amount, 2)
        logger.debug("Basket %s repriced: %d line(s), subtotal %.2f %s",
                     basket.basket_id, len(basket.items), basket.subtotal, basket.currency)
        return self.repository.save(basket)
