from __future__ import annotations

from collections import Counter
from typing import Optional, Sequence, Tuple

import api.client as client
from api.errors import FetchError
from api.models import CreateProductRequest, Product


def filter_products(products: Sequence[Product], query: str) -> Sequence[Product]:
    """
    Case-insensitive match on name or category.
    An empty query hands back `products` itself so the list identity holds.
    """
    needle = (query or "").strip().lower()
    if not needle:
        return products
    return tuple(
        p for p in products if needle in p.name.lower() or needle in p.category.lower()
    )


class CatalogStore:
    """
    Product list/detail reads plus the admin mutations.
    `products` is whatever the last completed list fetch returned, in
    server order.
    """

    def __init__(self) -> None:
        self.products: Tuple[Product, ...] = ()
        self.error: Optional[FetchError] = None
        self._in_flight: Counter = Counter()

    @property
    def is_loading(self) -> bool:
        return self._in_flight["load"] > 0

    @property
    def is_creating(self) -> bool:
        return self._in_flight["create"] > 0

    @property
    def is_updating(self) -> bool:
        return self._in_flight["update"] > 0

    @property
    def is_deleting(self) -> bool:
        return self._in_flight["delete"] > 0

    @property
    def busy(self) -> bool:
        return self.is_creating or self.is_updating or self.is_deleting

    def find(self, product_id: int) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    async def list_products(self, refresh: bool = False) -> Tuple[Product, ...]:
        self._in_flight["load"] += 1
        try:
            products = await client.list_products(refresh=refresh)
        except FetchError as e:
            self.error = e
            raise
        finally:
            self._in_flight["load"] -= 1

        self.products = products
        self.error = None
        return products

    async def get_product(self, product_id: int, refresh: bool = False) -> Product:
        """Raises NotFoundError for an unknown id."""
        return await client.get_product(product_id, refresh=refresh)

    async def create(self, request: CreateProductRequest) -> Product:
        self._in_flight["create"] += 1
        try:
            product = await client.create_product(request)
        finally:
            self._in_flight["create"] -= 1
        await self.list_products()
        return product

    async def update(self, product: Product) -> Product:
        self._in_flight["update"] += 1
        try:
            updated = await client.update_product(product)
        finally:
            self._in_flight["update"] -= 1
        await self.list_products()
        return updated

    async def delete(self, product_id: int) -> None:
        self._in_flight["delete"] += 1
        try:
            await client.delete_product(product_id)
        finally:
            self._in_flight["delete"] -= 1
        await self.list_products()
