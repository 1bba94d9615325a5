"""
Turning a cart and a delivery form into a single order row.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, fields
from typing import Callable, List, Optional

from db.gateway import Gateway, GatewayError
from db.models import new_order_row
from shop.cart import Cart
from shop.errors import ValidationError
from utils.logger import get_logger

_logger = get_logger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+$")


def check_required(form, required: List[str], labels: dict) -> None:
    """Raise ValidationError naming every blank required field."""
    missing = [name for name in required if not str(getattr(form, name)).strip()]
    if missing:
        raise ValidationError(
            "Please fill in: " + ", ".join(labels[m] for m in missing), missing
        )


def check_email(value: str, field_name: str) -> None:
    if not EMAIL_RE.match(value.strip()):
        raise ValidationError("Please enter a valid email address.", [field_name])


@dataclass
class OrderForm:
    customer_name: str = ""
    customer_email: str = ""
    customer_phone: str = ""
    delivery_address: str = ""
    notes: str = ""

    REQUIRED = ["customer_name", "customer_email", "customer_phone", "delivery_address"]
    LABELS = {
        "customer_name": "Full Name",
        "customer_email": "Email Address",
        "customer_phone": "Phone Number",
        "delivery_address": "Delivery Address",
    }

    def validate(self) -> None:
        check_required(self, self.REQUIRED, self.LABELS)
        check_email(self.customer_email, "customer_email")

    def clear(self) -> None:
        for f in fields(self):
            setattr(self, f.name, "")


class SuccessFlag:
    """
    A flag that turns itself off ``seconds`` after being raised. Listeners get
    the new value on every change.
    """

    def __init__(self, seconds: float):
        self.seconds = seconds
        self.value = False
        self._handle: Optional[asyncio.TimerHandle] = None
        self._listeners: List[Callable[[bool], None]] = []

    def add_listener(self, listener: Callable[[bool], None]) -> None:
        self._listeners.append(listener)

    def _set(self, value: bool) -> None:
        self.value = value
        for listener in list(self._listeners):
            listener(value)

    def raise_(self) -> None:
        self.cancel()
        self._handle = asyncio.get_running_loop().call_later(self.seconds, self.lower)
        self._set(True)

    def lower(self) -> None:
        self._handle = None
        self._set(False)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class OrderWorkflow:
    """
    Submits orders. Cart and form are only reset after the gateway accepted the
    order; on failure both are left as they were so the customer can retry.

    ``submitting`` is what the view uses to disable its submit button. Two
    submits that both start before the flag is observed can still create two
    orders.
    """

    def __init__(self, gateway: Gateway, success_seconds: float = 5.0):
        self.gateway = gateway
        self.submitting = False
        self._success = SuccessFlag(success_seconds)

    @property
    def succeeded(self) -> bool:
        return self._success.value

    def on_success_change(self, listener: Callable[[bool], None]) -> None:
        """``listener(succeeded)`` runs when the success notice should show or hide."""
        self._success.add_listener(listener)

    async def submit(self, cart: Cart, form: OrderForm) -> str:
        if self.submitting:
            raise ValidationError("Your order is already being placed.")
        if not cart:
            raise ValidationError(
                "Please add items to your cart before placing an order."
            )
        form.validate()

        # prices come from the cart snapshot, not a fresh catalog read
        items = cart.to_order_items()
        row = new_order_row(
            customer_name=form.customer_name.strip(),
            customer_email=form.customer_email.strip(),
            customer_phone=form.customer_phone.strip(),
            delivery_address=form.delivery_address.strip(),
            items=items,
            total_amount=cart.total(),
            notes=form.notes.strip(),
        )

        self.submitting = True
        try:
            stored = await self.gateway.insert("orders", row)
        except GatewayError as e:
            _logger.error(f"Placing order failed: {e}")
            raise
        finally:
            self.submitting = False

        order_id = str(stored["id"])
        _logger.info(
            f"Order {order_id} placed: {len(items)} line(s), total {row['total_amount']}"
        )
        cart.clear()
        form.clear()
        self._success.raise_()
        return order_id
