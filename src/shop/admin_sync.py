"""
Keeps the admin dashboard's three lists (orders, contacts, products) in step
with the backend.

There is no local patching of rows: every successful mutation is followed by a
full refetch of the tab that owns the row. A failed mutation leaves the list
as it was and listeners are told to redraw it, so controls the user already
changed go back to the stored value. Read failures show up as an empty list.

Fetches are not cancelled. By default whichever response arrives last is what
ends up displayed, even if it was requested first. With ``discard_stale=True``
each fetch is numbered per tab and responses overtaken by a newer request are
dropped instead.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, List, Literal, Sequence

from db.gateway import Gateway, GatewayError, OrderBy
from db.models import (
    ORDER_STATUSES,
    ORDER_TRANSITIONS,
    READ_TRANSITIONS,
    STOCK_STATUSES,
    STOCK_TRANSITIONS,
    ContactSubmission,
    Order,
    Product,
    can_transition,
    utc_now,
)
from utils.logger import get_logger

_logger = get_logger(__name__)

Tab = Literal["orders", "contacts", "products"]
TABS: Sequence[str] = ("orders", "contacts", "products")

_COLLECTIONS: Dict[str, str] = {
    "orders": "orders",
    "contacts": "contact_submissions",
    "products": "products",
}
_PARSERS: Dict[str, Callable[[Dict[str, Any]], Any]] = {
    "orders": Order.from_row,
    "contacts": ContactSubmission.from_row,
    "products": Product.from_row,
}

Confirm = Callable[[], Awaitable[bool]]
SyncListener = Callable[[str], None]


class AdminSync:
    def __init__(self, gateway: Gateway, discard_stale: bool = False):
        self.gateway = gateway
        self.discard_stale = discard_stale
        self.active_tab: Tab = "orders"
        self.orders: List[Order] = []
        self.contacts: List[ContactSubmission] = []
        self.products: List[Product] = []
        self.loading = False
        self._in_flight = 0
        self._seq: Dict[str, int] = {t: 0 for t in TABS}
        self._listeners: List[SyncListener] = []

    def add_listener(self, listener: SyncListener) -> None:
        """``listener(tab)`` runs after each fetch and after a failed change."""
        self._listeners.append(listener)

    # ---------------------------
    # Reads
    # ---------------------------

    async def activate(self, tab: Tab) -> None:
        if tab not in TABS:
            raise ValueError(f"Unknown tab '{tab}'")
        self.active_tab = tab
        await self.fetch(tab)

    async def refresh(self) -> None:
        await self.fetch(self.active_tab)

    async def fetch(self, tab: Tab) -> bool:
        """
        Reload one tab, newest rows first. Returns False if the response was
        dropped for being stale.
        """
        self._seq[tab] += 1
        seq = self._seq[tab]
        self._in_flight += 1
        self.loading = True
        try:
            try:
                rows = await self.gateway.select(
                    _COLLECTIONS[tab], None, OrderBy("created_at", descending=True)
                )
            except GatewayError as e:
                _logger.warning(f"Loading {tab} failed, showing nothing: {e}")
                rows = []
        finally:
            self._in_flight -= 1
            self.loading = self._in_flight > 0

        if self.discard_stale and seq != self._seq[tab]:
            _logger.debug(f"Dropping stale {tab} response #{seq}")
            return False

        records = []
        for row in rows:
            try:
                records.append(_PARSERS[tab](row))
            except (ValueError, TypeError, KeyError) as e:
                _logger.warning(f"Skipping malformed {tab} row {row.get('id')!r}: {e}")
        setattr(self, tab, records)
        self._notify(tab)
        return True

    def _notify(self, tab: str) -> None:
        for listener in list(self._listeners):
            listener(tab)

    @property
    def unread_count(self) -> int:
        """Unread messages in the last fetched contacts list."""
        return sum(1 for c in self.contacts if not c.is_read)

    def tab_label(self, tab: Tab) -> str:
        if tab == "orders":
            return f"Orders ({len(self.orders)})"
        if tab == "contacts":
            return f"Messages ({self.unread_count})"
        return f"Products ({len(self.products)})"

    # ---------------------------
    # Mutations
    # ---------------------------

    async def _mutate(
        self, tab: Tab, what: str, call: Callable[[], Awaitable[None]]
    ) -> bool:
        try:
            await call()
        except GatewayError as e:
            _logger.warning(f"{what} failed: {e}")
            self._notify(tab)
            return False
        _logger.info(what)
        await self.fetch(tab)
        return True

    async def set_order_status(self, order_id: str, status: str) -> bool:
        if status not in ORDER_STATUSES:
            raise ValueError(f"Unknown order status '{status}'")
        current = next((o for o in self.orders if o.id == order_id), None)
        if current and not can_transition(ORDER_TRANSITIONS, current.status, status):
            raise ValueError(f"Order cannot move from {current.status} to {status}")
        patch = {"status": status, "updated_at": utc_now()}
        return await self._mutate(
            "orders",
            f"Order {order_id} set to {status}",
            lambda: self.gateway.update("orders", order_id, patch),
        )

    async def mark_contact_read(self, contact_id: str) -> bool:
        current = next((c for c in self.contacts if c.id == contact_id), None)
        if current and not can_transition(READ_TRANSITIONS, current.is_read, True):
            raise ValueError("Message cannot be marked as read")
        return await self._mutate(
            "contacts",
            f"Message {contact_id} marked as read",
            lambda: self.gateway.update(
                "contact_submissions", contact_id, {"is_read": True}
            ),
        )

    async def set_stock_status(self, product_id: str, status: str) -> bool:
        if status not in STOCK_STATUSES:
            raise ValueError(f"Unknown stock status '{status}'")
        current = next((p for p in self.products if p.id == product_id), None)
        if current and not can_transition(
            STOCK_TRANSITIONS, current.stock_status, status
        ):
            raise ValueError(
                f"Product cannot move from {current.stock_status} to {status}"
            )
        patch = {"stock_status": status, "updated_at": utc_now()}
        return await self._mutate(
            "products",
            f"Product {product_id} set to {status}",
            lambda: self.gateway.update("products", product_id, patch),
        )

    async def delete_order(self, order_id: str, confirm: Confirm) -> bool:
        if not await confirm():
            return False
        return await self._mutate(
            "orders",
            f"Order {order_id} deleted",
            lambda: self.gateway.delete("orders", order_id),
        )

    async def delete_contact(self, contact_id: str, confirm: Confirm) -> bool:
        if not await confirm():
            return False
        return await self._mutate(
            "contacts",
            f"Message {contact_id} deleted",
            lambda: self.gateway.delete("contact_submissions", contact_id),
        )
