import os
import random
import sys
import unittest
from decimal import Decimal

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db.models import Product  # noqa: E402
from shop.cart import Cart  # noqa: E402


def make_product(pid, price, name=None, stock_status="in_stock"):
    return Product(
        id=pid,
        name=name or pid.title(),
        flavor="plain",
        description="",
        price=Decimal(price),
        image_url="",
        stock_status=stock_status,
    )


class CartTestCase(unittest.TestCase):
    def setUp(self):
        self.cart = Cart()
        self.straw = make_product("straw", "25.00", "Strawberry")
        self.choc = make_product("choc", "30.00", "Chocolate")

    def test_add_merges_lines_per_product(self):
        self.cart.add(self.straw)
        self.cart.add(self.choc)
        line = self.cart.add(self.straw)

        self.assertEqual(line.quantity, 2)
        self.assertEqual(len(self.cart), 2)
        self.assertEqual([l.product_id for l in self.cart], ["straw", "choc"])
        self.assertEqual(self.cart.quantity_of("straw"), 2)
        self.assertEqual(self.cart.quantity_of("missing"), 0)

    def test_three_adds_make_one_line_of_three(self):
        ten = make_product("ten", "10.00")
        for _ in range(3):
            self.cart.add(ten)
        self.assertEqual(len(self.cart), 1)
        self.assertEqual(self.cart.lines[0].quantity, 3)
        self.assertEqual(self.cart.total(), Decimal("30.00"))

    def test_random_adds_keep_one_line_per_product(self):
        rng = random.Random(1234)
        products = [make_product(f"p{i}", f"{i}.50") for i in range(5)]
        counts = {}
        for _ in range(200):
            p = rng.choice(products)
            self.cart.add(p)
            counts[p.id] = counts.get(p.id, 0) + 1

        ids = [l.product_id for l in self.cart]
        self.assertEqual(len(ids), len(set(ids)))
        for line in self.cart:
            self.assertEqual(line.quantity, counts[line.product_id])
            self.assertGreaterEqual(line.quantity, 1)
        self.assertEqual(self.cart.count_items(), 200)

    def test_update_quantity_to_zero_or_less_removes(self):
        for qty in (0, -1, -5):
            with self.subTest(qty=qty):
                cart = Cart()
                cart.add(self.straw)
                cart.add(self.choc)
                cart.update_quantity("straw", qty)
                self.assertEqual([l.product_id for l in cart], ["choc"])

    def test_update_quantity_keeps_position_and_price(self):
        self.cart.add(self.straw)
        self.cart.add(self.choc)
        self.cart.update_quantity("straw", 4)

        first = self.cart.lines[0]
        self.assertEqual(first.product_id, "straw")
        self.assertEqual(first.quantity, 4)
        self.assertEqual(first.price, Decimal("25.00"))

    def test_update_and_remove_unknown_product_are_noops(self):
        self.cart.add(self.straw)
        self.cart.update_quantity("missing", 3)
        self.cart.remove("missing")
        self.assertEqual(len(self.cart), 1)
        self.assertEqual(self.cart.quantity_of("straw"), 1)

    def test_total_two_strawberry_one_chocolate(self):
        self.cart.add(self.straw)
        self.cart.add(self.straw)
        self.cart.add(self.choc)
        self.assertEqual(self.cart.total(), Decimal("80.00"))

    def test_total_does_not_depend_on_add_order(self):
        other = Cart()
        other.add(self.choc)
        other.add(self.straw)
        other.add(self.straw)
        self.cart.add(self.straw)
        self.cart.add(self.choc)
        self.cart.add(self.straw)
        self.assertEqual(self.cart.total(), other.total())

    def test_decrement_to_zero_drops_line(self):
        self.cart.add(self.straw)
        self.cart.update_quantity("straw", self.cart.quantity_of("straw") - 1)
        self.assertFalse(self.cart)
        self.assertEqual(self.cart.total(), Decimal("0"))

    def test_price_is_snapshot_from_first_add(self):
        self.cart.add(self.straw)
        repriced = make_product("straw", "40.00", "Strawberry")
        self.cart.add(repriced)

        self.assertEqual(self.cart.lines[0].price, Decimal("25.00"))
        self.assertEqual(self.cart.total(), Decimal("50.00"))

    def test_fractional_prices_are_exact(self):
        vanilla = make_product("van", "22.50")
        for _ in range(3):
            self.cart.add(vanilla)
        self.assertEqual(self.cart.total(), Decimal("67.50"))

    def test_clear_and_order_items(self):
        self.cart.add(self.straw)
        self.cart.add(self.choc)
        items = self.cart.to_order_items()
        self.assertEqual([i.product_name for i in items], ["Strawberry", "Chocolate"])
        self.assertEqual(items[0].price, Decimal("25.00"))

        self.cart.clear()
        self.assertEqual(len(self.cart), 0)
        self.assertEqual(self.cart.count_items(), 0)


if __name__ == "__main__":
    unittest.main()
