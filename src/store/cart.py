from __future__ import annotations

from collections import Counter
from typing import Optional, Sequence, Tuple

import api.client as client
from api.errors import FetchError
from api.models import CartItem, Product
from utils.logger import get_logger

_logger = get_logger(__name__)


# ---------------------------
# Derived quantities
# ---------------------------
# Pure functions over an explicit snapshot of cart lines. Nothing here is
# cached, callers pass the latest fetched lines every time.


def cart_total(items: Sequence[CartItem]) -> float:
    # prices are floats, totals are kept to whole cents
    return round(sum(item.product.price * item.quantity for item in items), 2)


def items_count(items: Sequence[CartItem]) -> int:
    return sum(item.quantity for item in items)


def line_count(items: Sequence[CartItem]) -> int:
    return len(items)


def is_product_in_cart(items: Sequence[CartItem], product_id: int) -> bool:
    return any(item.product.id == product_id for item in items)


def cart_item_id_for(items: Sequence[CartItem], product_id: int) -> Optional[int]:
    for item in items:
        if item.product.id == product_id:
            return item.id
    return None


def quantity_in_cart_for(items: Sequence[CartItem], product_id: int) -> int:
    """
    Units of the product reserved in the cart, 0 if absent.
    Sums every line for the product in case the server keeps duplicates.
    """
    return sum(item.quantity for item in items if item.product.id == product_id)


def available_quantity(items: Sequence[CartItem], product: Product) -> int:
    return max(0, product.quantity - quantity_in_cart_for(items, product.id))


def can_add(items: Sequence[CartItem], product: Product, qty: int = 1) -> bool:
    """Caller-side check before add_one; the reconciler does not enforce it."""
    return 1 <= qty <= available_quantity(items, product)


# ---------------------------
# Reconciler
# ---------------------------


class CartReconciler:
    """
    Wraps the cart endpoints and keeps the lines of the last completed fetch.

    Mutations never touch `items` directly: each one is followed by a
    refetch, and derived values change only when that refetch resolves.
    The busy flags are advisory; two overlapping adds are not serialized.
    """

    def __init__(self) -> None:
        self.items: Tuple[CartItem, ...] = ()
        self.error: Optional[FetchError] = None
        self._in_flight: Counter = Counter()

    # flags -----------------------------------------------------------------

    @property
    def is_loading(self) -> bool:
        return self._in_flight["load"] > 0

    @property
    def is_adding(self) -> bool:
        return self._in_flight["add"] > 0

    @property
    def is_removing(self) -> bool:
        return self._in_flight["remove"] > 0

    @property
    def is_clearing(self) -> bool:
        return self._in_flight["clear"] > 0

    @property
    def busy(self) -> bool:
        return self.is_adding or self.is_removing or self.is_clearing

    # derived ---------------------------------------------------------------

    @property
    def total(self) -> float:
        return cart_total(self.items)

    @property
    def items_count(self) -> int:
        return items_count(self.items)

    @property
    def line_count(self) -> int:
        return line_count(self.items)

    def is_product_in_cart(self, product_id: int) -> bool:
        return is_product_in_cart(self.items, product_id)

    def cart_item_id_for(self, product_id: int) -> Optional[int]:
        return cart_item_id_for(self.items, product_id)

    def quantity_in_cart_for(self, product_id: int) -> int:
        return quantity_in_cart_for(self.items, product_id)

    def available_quantity(self, product: Product) -> int:
        return available_quantity(self.items, product)

    def can_add(self, product: Product, qty: int = 1) -> bool:
        return can_add(self.items, product, qty)

    # I/O -------------------------------------------------------------------

    async def list_items(self, refresh: bool = False) -> Tuple[CartItem, ...]:
        """Fetch the cart; raises FetchError and keeps it in `error`."""
        self._in_flight["load"] += 1
        try:
            items = await client.list_cart(refresh=refresh)
        except FetchError as e:
            self.error = e
            raise
        finally:
            self._in_flight["load"] -= 1

        self.items = items
        self.error = None
        return items

    async def add_one(self, product_id: int, qty: int = 1) -> CartItem:
        """
        Submit {productId, qty}. Raises MutationError; the caller checks
        stock beforehand with can_add.
        """
        self._in_flight["add"] += 1
        try:
            line = await client.add_to_cart(product_id, qty)
        finally:
            self._in_flight["add"] -= 1
        await self.list_items()
        return line

    async def remove_line(self, cart_item_id: int) -> None:
        """Drop the whole line. There is no per-unit decrement endpoint."""
        self._in_flight["remove"] += 1
        try:
            await client.remove_from_cart(cart_item_id)
        finally:
            self._in_flight["remove"] -= 1
        await self.list_items()

    async def clear(self) -> None:
        self._in_flight["clear"] += 1
        try:
            await client.clear_cart()
        finally:
            self._in_flight["clear"] -= 1
        _logger.info("Cart cleared")
        await self.list_items()
