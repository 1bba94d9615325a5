import asyncio
import unittest
from decimal import Decimal

from fake_gateway import FakeGateway, product_row

from db.gateway import GatewayError
from db.models import Order, Product
from shop.cart import Cart
from shop.errors import ValidationError
from shop.ordering import OrderForm, OrderWorkflow


def filled_form(**overrides):
    values = dict(
        customer_name="Thandi Kumalo",
        customer_email="thandi@example.com",
        customer_phone="0825550101",
        delivery_address="12 Main Rd, Soweto",
        notes="Ring twice",
    )
    values.update(overrides)
    return OrderForm(**values)


class OrderWorkflowTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.gateway = FakeGateway(
            {
                "products": [
                    product_row("straw", "Strawberry", "25.00", "strawberry"),
                    product_row("choc", "Chocolate", "30.00", "chocolate"),
                ]
            }
        )
        self.straw = Product.from_row(self.gateway.row("products", "straw"))
        self.choc = Product.from_row(self.gateway.row("products", "choc"))
        self.cart = Cart()
        self.workflow = OrderWorkflow(self.gateway, success_seconds=0.05)

    def fill_cart(self):
        self.cart.add(self.straw)
        self.cart.add(self.straw)
        self.cart.add(self.choc)

    async def test_empty_cart_is_rejected_without_a_write(self):
        form = filled_form()
        with self.assertRaises(ValidationError):
            await self.workflow.submit(self.cart, form)
        self.assertEqual(self.gateway.writes(), [])
        self.assertEqual(form.customer_name, "Thandi Kumalo")

    async def test_blank_name_is_rejected_and_cart_kept(self):
        self.fill_cart()
        form = filled_form(customer_name="   ")
        with self.assertRaises(ValidationError) as ctx:
            await self.workflow.submit(self.cart, form)

        self.assertEqual(ctx.exception.fields, ("customer_name",))
        self.assertEqual(self.gateway.writes(), [])
        self.assertEqual(self.cart.total(), Decimal("80.00"))
        self.assertEqual(len(self.cart), 2)

    async def test_every_blank_required_field_is_reported(self):
        self.fill_cart()
        with self.assertRaises(ValidationError) as ctx:
            await self.workflow.submit(self.cart, OrderForm())
        self.assertEqual(
            set(ctx.exception.fields),
            {"customer_name", "customer_email", "customer_phone", "delivery_address"},
        )

    async def test_bad_email_is_rejected(self):
        self.fill_cart()
        with self.assertRaises(ValidationError) as ctx:
            await self.workflow.submit(self.cart, filled_form(customer_email="nope"))
        self.assertEqual(ctx.exception.fields, ("customer_email",))
        self.assertEqual(self.gateway.writes(), [])

    async def test_successful_order_writes_one_pending_row(self):
        self.fill_cart()
        form = filled_form()
        order_id = await self.workflow.submit(self.cart, form)

        writes = self.gateway.writes()
        self.assertEqual(len(writes), 1)
        _, collection, row = writes[0]
        self.assertEqual(collection, "orders")
        self.assertEqual(row["status"], "pending")
        self.assertEqual(row["total_amount"], "80.00")
        self.assertEqual(row["customer_name"], "Thandi Kumalo")
        self.assertEqual(
            row["order_items"],
            [
                {"product_id": "straw", "product_name": "Strawberry", "quantity": 2, "price": "25.00"},
                {"product_id": "choc", "product_name": "Chocolate", "quantity": 1, "price": "30.00"},
            ],
        )

        order = Order.from_row(self.gateway.row("orders", order_id))
        self.assertEqual(order.total_amount, order.items_total)

        # cart and form reset, success shown
        self.assertFalse(self.cart)
        self.assertEqual(form, OrderForm())
        self.assertTrue(self.workflow.succeeded)
        self.assertFalse(self.workflow.submitting)

    async def test_success_flag_resets_after_timeout(self):
        self.fill_cart()
        await self.workflow.submit(self.cart, filled_form())
        self.assertTrue(self.workflow.succeeded)
        await asyncio.sleep(0.15)
        self.assertFalse(self.workflow.succeeded)

    async def test_success_listeners_see_show_and_hide(self):
        seen = []
        self.workflow.on_success_change(seen.append)
        self.fill_cart()
        await self.workflow.submit(self.cart, filled_form())
        self.assertEqual(seen, [True])

        await asyncio.sleep(0.15)
        self.assertEqual(seen, [True, False])

    async def test_new_success_restarts_the_notice(self):
        workflow = OrderWorkflow(self.gateway, success_seconds=0.2)
        seen = []
        workflow.on_success_change(seen.append)
        self.fill_cart()
        await workflow.submit(self.cart, filled_form())
        await asyncio.sleep(0.12)
        self.fill_cart()
        await workflow.submit(self.cart, filled_form())
        await asyncio.sleep(0.12)
        # first timer was replaced, still showing
        self.assertTrue(workflow.succeeded)
        await asyncio.sleep(0.25)
        self.assertEqual(seen, [True, True, False])

    async def test_order_keeps_prices_from_when_items_were_added(self):
        self.fill_cart()
        # price changes in the catalog after the cart was filled
        await self.gateway.update("products", "straw", {"price": "99.00"})
        order_id = await self.workflow.submit(self.cart, filled_form())

        stored = self.gateway.row("orders", order_id)
        self.assertEqual(stored["total_amount"], "80.00")

        # and later catalog changes don't touch the stored order
        await self.gateway.update("products", "choc", {"price": "1.00"})
        order = Order.from_row(self.gateway.row("orders", order_id))
        self.assertEqual(order.order_items[1].price, Decimal("30.00"))
        self.assertEqual(order.total_amount, Decimal("80.00"))

    async def test_gateway_failure_preserves_cart_and_form(self):
        self.fill_cart()
        form = filled_form()
        self.gateway.fail.add("insert")

        with self.assertRaises(GatewayError):
            await self.workflow.submit(self.cart, form)

        self.assertEqual(self.cart.total(), Decimal("80.00"))
        self.assertEqual(form.customer_email, "thandi@example.com")
        self.assertFalse(self.workflow.succeeded)
        self.assertFalse(self.workflow.submitting)
        self.assertEqual(self.gateway.tables["orders"], [])

        # retry succeeds once the backend is back
        self.gateway.fail.clear()
        await self.workflow.submit(self.cart, form)
        self.assertEqual(len(self.gateway.tables["orders"]), 1)

    async def test_second_submit_while_in_flight_is_rejected(self):
        self.fill_cart()
        first = asyncio.create_task(self.workflow.submit(self.cart, filled_form()))
        await asyncio.sleep(0)
        self.assertTrue(self.workflow.submitting)

        with self.assertRaises(ValidationError):
            await self.workflow.submit(self.cart, filled_form())

        await first
        self.assertEqual(len(self.gateway.tables["orders"]), 1)


if __name__ == "__main__":
    unittest.main()
