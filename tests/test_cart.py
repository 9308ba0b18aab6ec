import os
import sys

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

import asyncio
import unittest
from datetime import datetime

from fake_api import FakeApiTestCase, make_product

from api.errors import FetchError, MutationError
from api.models import CartItem, Product
from store import cart as cart_helpers
from store.cart import CartReconciler


def product(pid: int, price: float = 10.0, quantity: int = 5) -> Product:
    return Product(
        id=pid,
        name=f"Product {pid}",
        description="Something to put in a cart",
        price=price,
        category="misc",
        quantity=quantity,
    )


def line(line_id: int, prod: Product, quantity: int) -> CartItem:
    return CartItem(
        id=line_id, product=prod, quantity=quantity, created_at=datetime(2025, 11, 1)
    )


class DerivedQuantityTestCase(unittest.TestCase):
    def setUp(self):
        self.p1 = product(1, price=2.5, quantity=10)
        self.p2 = product(2, price=4.0, quantity=3)
        self.p3 = product(3, price=1.0, quantity=0)
        self.items = (line(11, self.p1, 4), line(12, self.p2, 3))

    def test_totals(self):
        self.assertAlmostEqual(cart_helpers.cart_total(self.items), 2.5 * 4 + 4.0 * 3)
        self.assertEqual(cart_helpers.items_count(self.items), 7)
        self.assertEqual(cart_helpers.line_count(self.items), 2)
        self.assertEqual(cart_helpers.cart_total(()), 0)
        self.assertEqual(cart_helpers.items_count(()), 0)

    def test_totals_are_kept_to_cents(self):
        dime = product(4, price=0.1, quantity=10)
        items = (line(1, dime, 1), line(2, dime, 1), line(3, dime, 1))
        self.assertEqual(cart_helpers.cart_total(items), 0.3)
        self.assertEqual(line(4, dime, 3).line_total, 0.3)

    def test_lookup_by_product(self):
        self.assertTrue(cart_helpers.is_product_in_cart(self.items, 1))
        self.assertFalse(cart_helpers.is_product_in_cart(self.items, 3))
        self.assertEqual(cart_helpers.cart_item_id_for(self.items, 2), 12)
        self.assertIsNone(cart_helpers.cart_item_id_for(self.items, 3))
        self.assertEqual(cart_helpers.quantity_in_cart_for(self.items, 1), 4)
        self.assertEqual(cart_helpers.quantity_in_cart_for(self.items, 3), 0)

    def test_available_quantity(self):
        self.assertEqual(cart_helpers.available_quantity(self.items, self.p1), 6)
        self.assertEqual(cart_helpers.available_quantity(self.items, self.p2), 0)
        self.assertEqual(cart_helpers.available_quantity(self.items, self.p3), 0)
        self.assertEqual(cart_helpers.available_quantity((), self.p1), 10)

    def test_available_quantity_never_negative(self):
        # stock dropped below what the cart still holds
        restocked = product(1, price=2.5, quantity=2)
        stale = (line(11, restocked, 4),)
        self.assertEqual(cart_helpers.available_quantity(stale, restocked), 0)

    def test_available_quantity_matches_formula_for_all_products(self):
        for p in (self.p1, self.p2, self.p3):
            expected = max(
                0, p.quantity - cart_helpers.quantity_in_cart_for(self.items, p.id)
            )
            self.assertEqual(cart_helpers.available_quantity(self.items, p), expected)

    def test_duplicate_lines_are_summed(self):
        items = (line(1, self.p1, 2), line(2, self.p1, 3))
        self.assertEqual(cart_helpers.quantity_in_cart_for(items, 1), 5)
        self.assertEqual(cart_helpers.cart_item_id_for(items, 1), 1)
        self.assertEqual(cart_helpers.available_quantity(items, self.p1), 5)

    def test_can_add(self):
        self.assertTrue(cart_helpers.can_add(self.items, self.p1, 6))
        self.assertFalse(cart_helpers.can_add(self.items, self.p1, 7))
        self.assertFalse(cart_helpers.can_add(self.items, self.p2))
        self.assertFalse(cart_helpers.can_add(self.items, self.p1, 0))


class CartReconcilerTestCase(FakeApiTestCase):
    products = [
        make_product(7, price=12.5, quantity=3),
        make_product(8, price=3.0, quantity=10),
    ]

    async def asyncSetUp(self):
        self.cart = CartReconciler()
        self.p7 = Product.model_validate(self.api.products[7])
        await self.cart.list_items()

    async def test_first_add_creates_a_line(self):
        self.assertEqual(self.cart.quantity_in_cart_for(7), 0)

        await self.cart.add_one(7, 1)

        self.assertEqual(len(self.cart.items), 1)
        self.assertEqual(self.cart.items[0].quantity, 1)
        self.assertTrue(self.cart.is_product_in_cart(7))
        self.assertEqual(self.cart.cart_item_id_for(7), self.cart.items[0].id)
        self.assertEqual(self.cart.available_quantity(self.p7), 2)

    async def test_second_add_against_merging_server(self):
        await self.cart.add_one(7, 1)
        await self.cart.add_one(7, 1)

        self.assertEqual(len(self.cart.items), 1)
        self.assertEqual(self.cart.quantity_in_cart_for(7), 2)
        self.assertEqual(self.cart.available_quantity(self.p7), 1)

    async def test_second_add_against_non_merging_server(self):
        self.api.merge_lines = False
        await self.cart.add_one(7, 1)
        await self.cart.add_one(7, 1)

        self.assertEqual(len(self.cart.items), 2)
        self.assertEqual(self.cart.quantity_in_cart_for(7), 2)
        self.assertEqual(self.cart.available_quantity(self.p7), 1)

    async def test_totals_match_a_fresh_sum_after_each_change(self):
        def fresh_sums():
            items = self.cart.items
            return (
                sum(i.product.price * i.quantity for i in items),
                sum(i.quantity for i in items),
            )

        await self.cart.add_one(7, 2)
        await self.cart.add_one(8, 4)
        total, count = fresh_sums()
        self.assertAlmostEqual(self.cart.total, total)
        self.assertAlmostEqual(self.cart.total, 12.5 * 2 + 3.0 * 4)
        self.assertEqual(self.cart.items_count, count)
        self.assertEqual(self.cart.items_count, 6)

        await self.cart.remove_line(self.cart.cart_item_id_for(8))
        total, count = fresh_sums()
        self.assertAlmostEqual(self.cart.total, total)
        self.assertEqual(self.cart.items_count, count)
        self.assertEqual(self.cart.items_count, 2)

    async def test_remove_line_drops_every_unit(self):
        await self.cart.add_one(7, 3)
        self.assertEqual(self.cart.items_count, 3)

        await self.cart.remove_line(self.cart.cart_item_id_for(7))

        self.assertEqual(self.cart.items, ())
        self.assertEqual(self.cart.total, 0)
        self.assertEqual(self.cart.items_count, 0)
        self.assertFalse(self.cart.is_product_in_cart(7))

    async def test_clear(self):
        await self.cart.add_one(7, 1)
        await self.cart.add_one(8, 2)

        await self.cart.clear()

        self.assertEqual(self.cart.items, ())
        self.assertEqual(self.api.count("DELETE", "/cart/clear"), 1)

    async def test_failed_add_keeps_items_and_raises(self):
        await self.cart.add_one(8, 1)
        before = self.cart.items

        self.api.fail("POST", "/cart", 500)
        with self.assertRaises(MutationError) as ctx:
            await self.cart.add_one(7, 1)

        self.assertEqual(ctx.exception.status_code, 500)
        self.assertIs(self.cart.items, before)
        self.assertFalse(self.cart.is_adding)

    async def test_precondition_is_left_to_the_caller(self):
        # the reconciler submits what it is told, the server rejects it
        self.assertFalse(self.cart.can_add(self.p7, 4))
        with self.assertRaises(MutationError) as ctx:
            await self.cart.add_one(7, 4)
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(self.api.count("POST", "/cart"), 1)

    async def test_failed_remove_and_clear(self):
        await self.cart.add_one(7, 1)

        self.api.fail("DELETE", f"/cart/{self.cart.cart_item_id_for(7)}", 500)
        with self.assertRaises(MutationError):
            await self.cart.remove_line(self.cart.cart_item_id_for(7))

        self.api.fail("DELETE", "/cart/clear", 503)
        with self.assertRaises(MutationError):
            await self.cart.clear()

        self.assertEqual(self.cart.items_count, 1)
        self.assertFalse(self.cart.busy)

    async def test_failed_fetch_sets_error(self):
        self.api.fail("GET", "/cart", 500)
        with self.assertRaises(FetchError):
            await self.cart.list_items(refresh=True)
        self.assertIsInstance(self.cart.error, FetchError)
        self.assertFalse(self.cart.is_loading)

        await self.cart.list_items(refresh=True)
        self.assertIsNone(self.cart.error)

    async def test_in_flight_add_does_not_touch_derived_values(self):
        self.api.gate = asyncio.Event()
        task = asyncio.create_task(self.cart.add_one(7, 1))
        await asyncio.sleep(0)

        self.assertTrue(self.cart.is_adding)
        self.assertTrue(self.cart.busy)
        self.assertEqual(self.cart.quantity_in_cart_for(7), 0)

        self.api.gate.set()
        await task

        self.assertFalse(self.cart.is_adding)
        self.assertEqual(self.cart.quantity_in_cart_for(7), 1)

    async def test_overlapping_adds_keep_flag_until_the_last_settles(self):
        first = self.api.hold("POST", "/cart")
        second = self.api.hold("POST", "/cart")
        tasks = {
            asyncio.create_task(self.cart.add_one(7, 1)),
            asyncio.create_task(self.cart.add_one(8, 1)),
        }
        await asyncio.sleep(0)
        self.assertEqual(self.cart._in_flight["add"], 2)

        first.set()
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        self.assertEqual(len(done), 1)
        self.assertTrue(self.cart.is_adding)
        self.assertTrue(self.cart.busy)

        second.set()
        await asyncio.gather(*pending)
        self.assertFalse(self.cart.is_adding)
        self.assertFalse(self.cart.busy)
        self.assertEqual(self.cart.items_count, 2)

    async def test_loading_flag_while_fetching(self):
        self.api.gate = asyncio.Event()
        task = asyncio.create_task(self.cart.list_items(refresh=True))
        await asyncio.sleep(0)
        self.assertTrue(self.cart.is_loading)

        self.api.gate.set()
        await task
        self.assertFalse(self.cart.is_loading)


if __name__ == "__main__":
    unittest.main()
