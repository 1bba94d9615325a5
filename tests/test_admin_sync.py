import asyncio
import unittest
from datetime import timedelta

from fake_gateway import BASE_TIME, FakeGateway, contact_row, order_row, product_row

from shop.admin_sync import AdminSync


def minutes(n):
    return (BASE_TIME + timedelta(minutes=n)).isoformat()


async def yes():
    return True


async def no():
    return False


class AdminSyncTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.gateway = FakeGateway(
            {
                "orders": [
                    order_row("o-old", created_at=minutes(-30)),
                    order_row("o-new", created_at=minutes(-10)),
                ],
                "contact_submissions": [
                    contact_row("c1", created_at=minutes(-20)),
                    contact_row("c2", created_at=minutes(-15)),
                    contact_row("c3", is_read=True, created_at=minutes(-5)),
                ],
                "products": [
                    product_row("straw", "Strawberry", "25.00", created_at=minutes(-60)),
                ],
            }
        )
        self.sync = AdminSync(self.gateway)
        self.notified = []
        self.sync.add_listener(self.notified.append)

    async def test_activate_fetches_newest_first(self):
        await self.sync.activate("orders")
        self.assertEqual([o.id for o in self.sync.orders], ["o-new", "o-old"])
        self.assertEqual(self.notified, ["orders"])
        self.assertFalse(self.sync.loading)

        await self.sync.activate("contacts")
        self.assertEqual(self.sync.active_tab, "contacts")
        self.assertEqual([c.id for c in self.sync.contacts], ["c3", "c2", "c1"])

    async def test_unknown_tab_is_rejected(self):
        with self.assertRaises(ValueError):
            await self.sync.activate("users")

    async def test_status_change_is_written_and_refetched(self):
        await self.sync.activate("orders")
        before = self.gateway.row("orders", "o-old")["updated_at"]

        self.assertTrue(await self.sync.set_order_status("o-old", "delivered"))

        _, collection, row_id, patch = self.gateway.writes()[-1]
        self.assertEqual((collection, row_id), ("orders", "o-old"))
        self.assertEqual(patch["status"], "delivered")
        self.assertGreater(patch["updated_at"], before)

        # the list shown comes from the refetch
        self.assertEqual(self.gateway.calls[-1][0], "select")
        order = next(o for o in self.sync.orders if o.id == "o-old")
        self.assertEqual(order.status, "delivered")

    async def test_delivered_orders_can_move_again(self):
        await self.sync.activate("orders")
        await self.sync.set_order_status("o-old", "delivered")
        self.assertTrue(await self.sync.set_order_status("o-old", "pending"))
        self.assertEqual(self.gateway.row("orders", "o-old")["status"], "pending")

    async def test_unknown_status_is_rejected_without_a_call(self):
        await self.sync.activate("orders")
        with self.assertRaises(ValueError):
            await self.sync.set_order_status("o-old", "shipped")
        with self.assertRaises(ValueError):
            await self.sync.set_stock_status("straw", "plenty")
        self.assertEqual(self.gateway.writes(), [])

    async def test_declined_delete_makes_no_call(self):
        await self.sync.activate("orders")
        self.assertFalse(await self.sync.delete_order("o-old", no))
        self.assertFalse(await self.sync.delete_contact("c1", no))

        self.assertEqual(self.gateway.writes(), [])
        self.assertIn("o-old", [o.id for o in self.sync.orders])

    async def test_confirmed_delete_removes_row(self):
        await self.sync.activate("contacts")
        self.assertTrue(await self.sync.delete_contact("c1", yes))
        self.assertNotIn("c1", [c.id for c in self.sync.contacts])

        self.assertTrue(await self.sync.delete_order("o-new", yes))
        self.assertEqual([o.id for o in self.sync.orders], ["o-old"])

    async def test_mark_read_updates_badge_and_is_idempotent(self):
        await self.sync.activate("contacts")
        self.assertEqual(self.sync.unread_count, 2)
        self.assertEqual(self.sync.tab_label("contacts"), "Messages (2)")

        self.assertTrue(await self.sync.mark_contact_read("c1"))
        self.assertEqual(self.sync.unread_count, 1)

        self.assertTrue(await self.sync.mark_contact_read("c1"))
        self.assertEqual(self.sync.unread_count, 1)
        self.assertIs(self.gateway.row("contact_submissions", "c1")["is_read"], True)

    async def test_stock_change_stamps_updated_at(self):
        await self.sync.activate("products")
        self.assertTrue(await self.sync.set_stock_status("straw", "out_of_stock"))
        _, _, _, patch = self.gateway.writes()[-1]
        self.assertEqual(patch["stock_status"], "out_of_stock")
        self.assertIn("updated_at", patch)
        self.assertEqual(self.sync.products[0].stock_status, "out_of_stock")
        self.assertEqual(self.sync.tab_label("products"), "Products (1)")

    async def test_failed_mutation_leaves_list_untouched(self):
        await self.sync.activate("orders")
        selects = len([c for c in self.gateway.calls if c[0] == "select"])
        self.gateway.fail.add("update")

        self.assertFalse(await self.sync.set_order_status("o-old", "confirmed"))
        self.assertEqual(
            len([c for c in self.gateway.calls if c[0] == "select"]), selects
        )
        self.assertEqual(
            next(o for o in self.sync.orders if o.id == "o-old").status, "pending"
        )

    async def test_failed_change_asks_for_redraw_of_stored_values(self):
        await self.sync.activate("products")
        shown = self.sync.products
        self.notified.clear()
        self.gateway.fail.add("update")

        self.assertFalse(await self.sync.set_stock_status("straw", "out_of_stock"))

        # listeners redraw the same, unchanged list
        self.assertEqual(self.notified, ["products"])
        self.assertIs(self.sync.products, shown)
        self.assertEqual(self.sync.products[0].stock_status, "in_stock")
        self.assertEqual(self.gateway.row("products", "straw")["stock_status"], "in_stock")

    async def test_failed_status_change_redraws_orders_tab(self):
        await self.sync.activate("orders")
        self.notified.clear()
        self.gateway.fail.add("update")

        await self.sync.set_order_status("o-new", "cancelled")
        self.assertEqual(self.notified, ["orders"])
        self.assertEqual(
            [o.status for o in self.sync.orders], ["pending", "pending"]
        )

    async def test_failed_delete_of_missing_row(self):
        await self.sync.activate("orders")
        self.assertFalse(await self.sync.delete_order("o-gone", yes))

    async def test_read_failure_shows_empty_list(self):
        await self.sync.activate("orders")
        self.gateway.fail.add("select")
        await self.sync.refresh()
        self.assertEqual(self.sync.orders, [])
        self.assertEqual(self.sync.tab_label("orders"), "Orders (0)")

    async def test_malformed_rows_are_skipped(self):
        broken = order_row("o-bad", status="lost", created_at=minutes(-1))
        self.gateway.tables["orders"].append(broken)
        await self.sync.activate("orders")
        self.assertEqual([o.id for o in self.sync.orders], ["o-new", "o-old"])

    async def _racing_fetches(self, sync):
        slow, fast = asyncio.Event(), asyncio.Event()
        self.gateway.select_gates = [slow, fast]

        first = asyncio.create_task(sync.fetch("orders"))
        await asyncio.sleep(0)
        self.gateway.tables["orders"].append(order_row("o-newest", created_at=minutes(0)))
        second = asyncio.create_task(sync.fetch("orders"))
        await asyncio.sleep(0)
        self.assertTrue(sync.loading)

        # the later request answers first
        fast.set()
        second_result = await second
        self.assertEqual(len(sync.orders), 3)
        self.assertTrue(sync.loading)
        slow.set()
        first_result = await first
        self.assertFalse(sync.loading)
        return first_result, second_result

    async def test_last_response_wins_by_default(self):
        first, second = await self._racing_fetches(self.sync)
        self.assertTrue(first)
        self.assertTrue(second)
        self.assertEqual(len(self.sync.orders), 2)

    async def test_stale_responses_can_be_discarded(self):
        sync = AdminSync(self.gateway, discard_stale=True)
        first, second = await self._racing_fetches(sync)
        self.assertFalse(first)
        self.assertTrue(second)
        self.assertEqual(len(sync.orders), 3)


if __name__ == "__main__":
    unittest.main()
