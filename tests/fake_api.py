import os
import sys

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

import asyncio
import json
import re
import unittest
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

import httpx

import api.client as client
from api import connection

_PRODUCT_PATH = re.compile(r"^/api/products/(\d+)$")
_CART_LINE_PATH = re.compile(r"^/api/cart/(\d+)$")


def make_product(pid: int, **overrides) -> dict:
    product = {
        "id": pid,
        "name": f"Product {pid}",
        "description": f"Description of product {pid}",
        "price": 10.0 * pid,
        "category": "general",
        "quantity": 5,
        "image_url": None,
    }
    product.update(overrides)
    return product


class FakeStoreApi:
    """
    In-memory stand-in for the storefront REST API, served through
    httpx.MockTransport.

    merge_lines decides what a second add of the same product does: grow
    the existing line (True) or open another one (False).
    """

    def __init__(self, products: Optional[List[dict]] = None, merge_lines=True):
        self.products: Dict[int, dict] = {p["id"]: dict(p) for p in products or []}
        self.lines: List[dict] = []
        self.merge_lines = merge_lines
        self.requests: List[Tuple[str, str, Optional[str]]] = []
        self.failures: Dict[Tuple[str, str], int] = {}
        self.gate: Optional[asyncio.Event] = None
        self.holds: Dict[Tuple[str, str], List[asyncio.Event]] = {}
        self._next_product_id = max(self.products, default=0) + 1
        self._next_line_id = 1

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def fail(self, method: str, path: str, status: int = 500) -> None:
        """Make the next `method path` request answer with `status`."""
        self.failures[(method, "/api" + path)] = status

    def hold(self, method: str, path: str) -> asyncio.Event:
        """
        Park the next unheld `method path` request until the returned event
        is set. Holds queue up in the order they were made.
        """
        event = asyncio.Event()
        self.holds.setdefault((method, "/api" + path), []).append(event)
        return event

    def count(self, method: str, path: str) -> int:
        return sum(1 for m, p, _ in self.requests if (m, p) == (method, "/api" + path))

    def line_json(self, line: dict) -> dict:
        return {
            "id": line["id"],
            "product": self.products[line["product_id"]],
            "quantity": line["quantity"],
            "createdAt": line["createdAt"],
        }

    async def handle(self, request: httpx.Request) -> httpx.Response:
        if self.gate is not None:
            await self.gate.wait()

        method, path = request.method, request.url.path
        held = self.holds.get((method, path))
        if held:
            await held.pop(0).wait()
        self.requests.append((method, path, request.headers.get("content-type")))

        status = self.failures.pop((method, path), None)
        if status is not None:
            return httpx.Response(status, json={"detail": "simulated failure"})

        body = json.loads(request.content) if request.content else None

        if path == "/api/products":
            if method == "GET":
                return httpx.Response(200, json=list(self.products.values()))
            if method == "POST":
                product = dict(body, id=self._next_product_id)
                self._next_product_id += 1
                self.products[product["id"]] = product
                return httpx.Response(201, json=product)

        match = _PRODUCT_PATH.match(path)
        if match:
            pid = int(match.group(1))
            if pid not in self.products:
                return httpx.Response(404, json={"detail": "Product not found"})
            if method == "GET":
                return httpx.Response(200, json=self.products[pid])
            if method == "PUT":
                self.products[pid] = dict(body, id=pid)
                return httpx.Response(200, json=self.products[pid])
            if method == "DELETE":
                del self.products[pid]
                self.lines = [l for l in self.lines if l["product_id"] != pid]
                return httpx.Response(204)

        if path == "/api/cart":
            if method == "GET":
                return httpx.Response(200, json=[self.line_json(l) for l in self.lines])
            if method == "POST":
                return self.add_line(body["productId"], body["quantity"])

        if path == "/api/cart/clear" and method == "DELETE":
            self.lines = []
            return httpx.Response(204)

        match = _CART_LINE_PATH.match(path)
        if match and method == "DELETE":
            line_id = int(match.group(1))
            if not any(l["id"] == line_id for l in self.lines):
                return httpx.Response(404, json={"detail": "Cart item not found"})
            self.lines = [l for l in self.lines if l["id"] != line_id]
            return httpx.Response(204)

        return httpx.Response(405, json={"detail": f"{method} {path} not allowed"})

    def add_line(self, product_id: int, quantity: int) -> httpx.Response:
        product = self.products.get(product_id)
        if product is None:
            return httpx.Response(404, json={"detail": "Product not found"})
        reserved = sum(
            l["quantity"] for l in self.lines if l["product_id"] == product_id
        )
        if reserved + quantity > product["quantity"]:
            return httpx.Response(400, json={"detail": "Not enough stock"})

        existing = next(
            (l for l in self.lines if l["product_id"] == product_id), None
        )
        if existing and self.merge_lines:
            existing["quantity"] += quantity
            return httpx.Response(200, json=self.line_json(existing))

        line = {
            "id": self._next_line_id,
            "product_id": product_id,
            "quantity": quantity,
            "createdAt": datetime(2025, 11, 1, tzinfo=timezone.utc).isoformat(),
        }
        self._next_line_id += 1
        self.lines.append(line)
        return httpx.Response(201, json=self.line_json(line))


class FakeApiTestCase(unittest.IsolatedAsyncioTestCase):
    """Routes the API client to a fresh FakeStoreApi and an empty cache."""

    products: List[dict] = []
    merge_lines = True

    def setUp(self):
        self.api = FakeStoreApi(self.products, merge_lines=self.merge_lines)
        self._orig_base_url = connection.BASE_URL
        connection.BASE_URL = "http://store.test/api"
        connection._transport = self.api.transport()
        client.reset_cache()

    def tearDown(self):
        connection._transport = None
        connection.BASE_URL = self._orig_base_url
        client.reset_cache()
