from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from api.models import CartItem, Product
from store.cart import CartReconciler, available_quantity, quantity_in_cart_for
from store.catalog import CatalogStore


@dataclass(frozen=True)
class Snapshot:
    """The products and cart lines a screen renders from."""

    products: Tuple[Product, ...] = ()
    cart_items: Tuple[CartItem, ...] = ()


@dataclass(frozen=True)
class ProductAvailability:
    product: Product
    in_cart: int
    available: int


def annotate(
    products: Sequence[Product], cart_items: Sequence[CartItem]
) -> List[ProductAvailability]:
    """Pair each product with its reserved and available quantity."""
    return [
        ProductAvailability(
            product=p,
            in_cart=quantity_in_cart_for(cart_items, p.id),
            available=available_quantity(cart_items, p),
        )
        for p in products
    ]


@dataclass
class GlobalState:
    """
    Application state shared by screens.

    Fields:
      - catalog: product reads and admin mutations
      - cart: cart lines and cart mutations
    """

    catalog: CatalogStore = field(default_factory=CatalogStore)
    cart: CartReconciler = field(default_factory=CartReconciler)

    def snapshot(self) -> Snapshot:
        return Snapshot(products=self.catalog.products, cart_items=self.cart.items)

    async def load(self, refresh: bool = False) -> Snapshot:
        """Fetch products and cart. Raises FetchError from either."""
        await self.catalog.list_products(refresh=refresh)
        await self.cart.list_items(refresh=refresh)
        return self.snapshot()
