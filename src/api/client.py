# src/api/client.py
from __future__ import annotations

from typing import Any, Callable, Optional, Tuple

import httpx
from pydantic import ValidationError

from api.cache import QueryCache, Tag
from api.connection import connect
from api.errors import FetchError, MutationError, NotFoundError
from api.models import (
    AddToCartRequest,
    CartItem,
    CartItemList,
    CreateProductRequest,
    Product,
    ProductList,
)
from utils.logger import get_logger

_logger = get_logger(__name__)

_cache = QueryCache()

PRODUCT = "product"
CART = "cart"


def reset_cache() -> None:
    """Forget every cached read; the next reads go to the server."""
    _cache.clear()


def _describe(response: httpx.Response) -> str:
    try:
        detail = response.json()
    except ValueError:
        detail = response.text
    if isinstance(detail, dict):
        detail = detail.get("detail") or detail.get("message") or detail
    return f"{response.status_code} {detail}".strip()


async def _read(
    path: str, parse: Callable[[Any], Any], tags: Tuple[Tag, ...], refresh: bool
) -> Any:
    key = f"GET {path}"
    if not refresh and key in _cache:
        return _cache.get(key)

    try:
        async with connect() as client:
            response = await client.get(path)
    except httpx.HTTPError as e:
        _logger.warning(f"GET {path} failed: {e!r}")
        raise FetchError(f"Could not reach the store: {e}") from e

    if response.status_code == 404:
        raise NotFoundError(f"Nothing found at {path}", 404)
    if response.is_error:
        _logger.warning(f"GET {path} -> {response.status_code}")
        raise FetchError(
            f"Loading {path} failed: {_describe(response)}", response.status_code
        )

    try:
        value = parse(response.json())
    except ValueError as e:  # bad JSON and pydantic.ValidationError alike
        _logger.error(f"GET {path} returned an unexpected payload: {e}")
        raise FetchError(
            f"Unexpected payload from {path}", response.status_code
        ) from e

    _cache.put(key, value, *tags)
    return value


async def _mutate(
    method: str, path: str, body: Optional[dict], invalidates: Tuple[str, ...]
) -> httpx.Response:
    try:
        async with connect() as client:
            response = await client.request(method, path, json=body)
    except httpx.HTTPError as e:
        _logger.error(f"{method} {path} failed: {e!r}")
        raise MutationError(f"Could not reach the store: {e}") from e

    if response.is_error:
        _logger.error(f"{method} {path} -> {_describe(response)}")
        raise MutationError(
            f"{method} {path} failed: {_describe(response)}", response.status_code
        )

    for kind in invalidates:
        _cache.invalidate(kind)
    return response


def _parse_mutation(response: httpx.Response, parse: Callable[[Any], Any]) -> Any:
    try:
        return parse(response.json())
    except ValueError as e:
        raise MutationError(
            "The store accepted the change but answered with an unexpected payload",
            response.status_code,
        ) from e


# ---------------------------
# Products
# ---------------------------


async def list_products(refresh: bool = False) -> Tuple[Product, ...]:
    """
    All products in server order. Repeated calls return the cached tuple
    itself until something invalidates it.
    """
    return await _read(
        "/products",
        lambda data: tuple(ProductList.validate_python(data)),
        ((PRODUCT, None),),
        refresh,
    )


async def get_product(product_id: int, refresh: bool = False) -> Product:
    """Raises NotFoundError when the server has no such product."""
    return await _read(
        f"/products/{product_id}",
        Product.model_validate,
        ((PRODUCT, product_id),),
        refresh,
    )


async def create_product(request: CreateProductRequest) -> Product:
    # cart lines embed product snapshots, so product writes refresh the cart too
    response = await _mutate(
        "POST", "/products", request.model_dump(mode="json"), (PRODUCT, CART)
    )
    product = _parse_mutation(response, Product.model_validate)
    _logger.info(f"Created product {product.id} '{product.name}'")
    return product


async def update_product(product: Product) -> Product:
    response = await _mutate(
        "PUT",
        f"/products/{product.id}",
        product.model_dump(mode="json"),
        (PRODUCT, CART),
    )
    updated = _parse_mutation(response, Product.model_validate)
    _logger.info(f"Updated product {updated.id}")
    return updated


async def delete_product(product_id: int) -> None:
    await _mutate("DELETE", f"/products/{product_id}", None, (PRODUCT, CART))
    _logger.info(f"Deleted product {product_id}")


# ---------------------------
# Cart
# ---------------------------


async def list_cart(refresh: bool = False) -> Tuple[CartItem, ...]:
    return await _read(
        "/cart",
        lambda data: tuple(CartItemList.validate_python(data)),
        ((CART, None),),
        refresh,
    )


async def add_to_cart(product_id: int, quantity: int = 1) -> CartItem:
    """
    POST {productId, quantity}. Whether a second add for the same product
    grows the existing line or opens a new one is up to the server.
    """
    try:
        request = AddToCartRequest(product_id=product_id, quantity=quantity)
    except ValidationError as e:
        raise MutationError(f"Cannot add {quantity} x product {product_id}") from e
    response = await _mutate(
        "POST", "/cart", request.model_dump(by_alias=True), (CART,)
    )
    item = _parse_mutation(response, CartItem.model_validate)
    _logger.debug(f"Added {quantity} x product {product_id} (line {item.id})")
    return item


async def remove_from_cart(item_id: int) -> None:
    """Removes the whole line, whatever its quantity."""
    await _mutate("DELETE", f"/cart/{item_id}", None, (CART,))
    _logger.debug(f"Removed cart line {item_id}")


async def clear_cart() -> None:
    await _mutate("DELETE", "/cart/clear", None, (CART,))
    _logger.debug("Cart cleared")
