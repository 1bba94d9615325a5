# record types for the rows crossing the gateway boundary

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, FrozenSet, Literal, Mapping, Optional, Tuple

StockStatus = Literal["in_stock", "low_stock", "out_of_stock"]
OrderStatus = Literal["pending", "confirmed", "preparing", "delivered", "cancelled"]

STOCK_STATUSES: Tuple[str, ...] = ("in_stock", "low_stock", "out_of_stock")
ORDER_STATUSES: Tuple[str, ...] = (
    "pending",
    "confirmed",
    "preparing",
    "delivered",
    "cancelled",
)

# staff may move between any two states, terminal-looking ones included
ORDER_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    s: frozenset(ORDER_STATUSES) for s in ORDER_STATUSES
}
STOCK_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    s: frozenset(STOCK_STATUSES) for s in STOCK_STATUSES
}
# one-way: there is no "mark unread"
READ_TRANSITIONS: Dict[bool, FrozenSet[bool]] = {
    False: frozenset({True}),
    True: frozenset({True}),
}


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_decimal(val: Any) -> Decimal:
    """Parse a money value coming from a row. Floats go through str()."""
    if isinstance(val, Decimal):
        return val
    if isinstance(val, bool) or val is None:
        raise ValueError(f"Not a money value: {val!r}")
    try:
        return Decimal(str(val))
    except InvalidOperation as e:
        raise ValueError(f"Not a money value: {val!r}") from e


def _to_bool(val: Any) -> bool:
    if isinstance(val, bool):
        return val
    if isinstance(val, int) and val in (0, 1):
        return bool(val)
    raise ValueError(f"Not a boolean: {val!r}")


def _req_str(row: Mapping[str, Any], key: str) -> str:
    val = row.get(key)
    if val is None:
        raise ValueError(f"Missing field '{key}'")
    return str(val)


def _opt_str(row: Mapping[str, Any], key: str) -> str:
    val = row.get(key)
    return "" if val is None else str(val)


def can_transition(table: Mapping, current, new) -> bool:
    return new in table.get(current, frozenset())


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    flavor: str
    description: str
    price: Decimal
    image_url: str
    stock_status: StockStatus
    is_featured: bool = False
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self):
        if self.price < 0:
            raise ValueError("Product price cannot be negative.")
        if self.stock_status not in STOCK_STATUSES:
            raise ValueError(f"Unknown stock status '{self.stock_status}'")

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Product:
        return cls(
            id=_req_str(row, "id"),
            name=_req_str(row, "name"),
            flavor=_opt_str(row, "flavor"),
            description=_opt_str(row, "description"),
            price=to_decimal(row.get("price")),
            image_url=_opt_str(row, "image_url"),
            stock_status=_req_str(row, "stock_status"),  # type: ignore[arg-type]
            is_featured=_to_bool(row.get("is_featured", False)),
            created_at=_opt_str(row, "created_at"),
            updated_at=_opt_str(row, "updated_at"),
        )


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    product_name: str
    quantity: int
    price: Decimal  # unit price at time of order

    def __post_init__(self):
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError("Quantity must be an integer.")
        if self.quantity < 1:
            raise ValueError("Quantity must be at least 1.")
        if self.price < 0:
            raise ValueError("Price cannot be negative.")

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> OrderItem:
        return cls(
            product_id=_req_str(row, "product_id"),
            product_name=_req_str(row, "product_name"),
            quantity=int(row.get("quantity")),
            price=to_decimal(row.get("price")),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": str(self.price),
        }


@dataclass(frozen=True)
class Order:
    id: str
    customer_name: str
    customer_email: str
    customer_phone: str
    delivery_address: str
    order_items: Tuple[OrderItem, ...]
    total_amount: Decimal
    status: OrderStatus = "pending"
    notes: str = ""
    created_at: str = ""
    updated_at: str = ""

    def __post_init__(self):
        if self.status not in ORDER_STATUSES:
            raise ValueError(f"Unknown order status '{self.status}'")

    @property
    def items_total(self) -> Decimal:
        return sum((i.line_total for i in self.order_items), Decimal("0"))

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Order:
        raw_items = row.get("order_items") or []
        if isinstance(raw_items, str):
            raw_items = json.loads(raw_items)
        return cls(
            id=_req_str(row, "id"),
            customer_name=_req_str(row, "customer_name"),
            customer_email=_req_str(row, "customer_email"),
            customer_phone=_opt_str(row, "customer_phone"),
            delivery_address=_req_str(row, "delivery_address"),
            order_items=tuple(OrderItem.from_row(i) for i in raw_items),
            total_amount=to_decimal(row.get("total_amount")),
            status=_req_str(row, "status"),  # type: ignore[arg-type]
            notes=_opt_str(row, "notes"),
            created_at=_opt_str(row, "created_at"),
            updated_at=_opt_str(row, "updated_at"),
        )


@dataclass(frozen=True)
class ContactSubmission:
    id: str
    name: str
    email: str
    phone: str
    message: str
    is_read: bool = False
    created_at: str = ""

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ContactSubmission:
        return cls(
            id=_req_str(row, "id"),
            name=_req_str(row, "name"),
            email=_req_str(row, "email"),
            phone=_opt_str(row, "phone"),
            message=_req_str(row, "message"),
            is_read=_to_bool(row.get("is_read", False)),
            created_at=_opt_str(row, "created_at"),
        )


@dataclass(frozen=True)
class Session:
    user_id: str
    email: str
    access_token: str = field(repr=False)
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now >= self.expires_at


def new_order_row(
    customer_name: str,
    customer_email: str,
    customer_phone: str,
    delivery_address: str,
    items: Tuple[OrderItem, ...],
    total_amount: Decimal,
    notes: str = "",
) -> Dict[str, Any]:
    """
    Build the row for a new order. Status is always "pending" and the total
    must match the items it was computed from.
    """
    if not items:
        raise ValueError("An order needs at least one item.")
    expected = sum((i.line_total for i in items), Decimal("0"))
    if expected != total_amount:
        raise ValueError(f"Order total {total_amount} does not match items {expected}.")
    return {
        "customer_name": customer_name,
        "customer_email": customer_email,
        "customer_phone": customer_phone,
        "delivery_address": delivery_address,
        "order_items": [i.to_row() for i in items],
        "total_amount": str(total_amount),
        "status": "pending",
        "notes": notes,
    }


def new_contact_row(name: str, email: str, phone: str, message: str) -> Dict[str, Any]:
    return {
        "name": name,
        "email": email,
        "phone": phone,
        "message": message,
        "is_read": False,
    }
