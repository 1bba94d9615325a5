from typing import Dict, List

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, HorizontalGroup, Vertical, VerticalScroll
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Input, Label, Rule

from db.gateway import GatewayError
from db.models import Product
from shop.cart import CartLine
from shop.catalog import load_catalog
from shop.errors import ValidationError
from utils.messages import CartChangedMessage, NewOrderMessage
from utils.pure import format_money
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal

# input id -> OrderForm attribute
FORM_INPUTS: Dict[str, str] = {
    "input-name": "customer_name",
    "input-email": "customer_email",
    "input-phone": "customer_phone",
    "input-address": "delivery_address",
    "input-notes": "notes",
}


class CartLineWidget(HorizontalGroup):
    """One cart line with -, + and remove controls."""

    def __init__(self, line: CartLine):
        super().__init__(classes="cart-line")
        self.line = line

    def compose(self) -> ComposeResult:
        yield Label(self.line.name, classes="cart-line-name", markup=False)
        yield Label(f"{format_money(self.line.price)} each", classes="cart-line-price")
        yield Button("-", classes="btn-qty btn-sub-qty")
        yield Label(str(self.line.quantity), classes="cart-line-qty")
        yield Button("+", classes="btn-qty btn-add-qty")
        yield Button("Remove", classes="btn-remove", variant="error")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        cart = self.app.state.cart
        if event.button.has_class("btn-sub-qty"):
            cart.update_quantity(self.line.product_id, self.line.quantity - 1)
        elif event.button.has_class("btn-add-qty"):
            cart.update_quantity(self.line.product_id, self.line.quantity + 1)
        else:
            cart.remove(self.line.product_id)
        self.post_message(CartChangedMessage())


class OrderScreen(BaseScreen):
    """
    Pick products, adjust the cart and send a delivery order.
    Only products that are not out of stock are offered.
    """

    def __init__(self) -> None:
        super().__init__()
        self._products: List[Product] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-order"):
            with Vertical(id="div-products"):
                yield Label("Available Products", classes="section-title")
                yield DataTable(id="table-order-products")
                yield Label("", id="label-no-products")
            with VerticalScroll(id="div-cart"):
                yield Label("Your Cart (0)", id="label-cart-title", classes="section-title")
                yield Vertical(id="div-cart-lines")
                yield Label("Total: R0.00", id="label-cart-total")
                yield Rule(line_style="dashed")
                yield Label("Delivery Details", classes="section-title")
                yield Label("Full Name *")
                yield Input(placeholder="Jane Doe", id="input-name")
                yield Label("Email Address *")
                yield Input(placeholder="jane@example.com", id="input-email")
                yield Label("Phone Number *")
                yield Input(placeholder="082 555 0101", id="input-phone")
                yield Label("Delivery Address *")
                yield Input(placeholder="12 Main Rd, Soweto", id="input-address")
                yield Label("Additional Notes (Optional)")
                yield Input(placeholder="Gate code, delivery times...", id="input-notes")
                yield Button("Place Order", id="btn-submit", variant="primary")
                yield Label(
                    "Order placed successfully! We'll contact you shortly to confirm delivery.",
                    id="label-success",
                    classes="hidden",
                )

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Name", "Flavor", "Price")

        form = self.app.state.order_form
        for input_id, attr in FORM_INPUTS.items():
            self.query_one(f"#{input_id}", Input).value = getattr(form, attr)

        orders = self.app.state.orders
        orders.on_success_change(self._show_success)
        self._show_success(orders.succeeded)

    @on(ScreenResume)
    def handle_resume(self) -> None:
        self.load_products()
        self.handle_cart_change()

    @work(exclusive=True, group="products")
    async def load_products(self) -> None:
        self._products = await load_catalog(self.app.state.gateway, "order")
        table = self.query_one(DataTable)
        table.clear()
        for p in self._products:
            table.add_row(p.name, p.flavor, format_money(p.price), key=p.id)
        self.query_one("#label-no-products", Label).update(
            "" if self._products else "No products available for order at the moment."
        )

    @on(DataTable.RowSelected, "#table-order-products")
    def handle_add_to_cart(self, event: DataTable.RowSelected) -> None:
        product = next((p for p in self._products if p.id == event.row_key.value), None)
        if product is None:
            return
        line = self.app.state.cart.add(product)
        self.notify(f"{product.name} x {line.quantity} in cart.")
        self.post_message(CartChangedMessage())

    @on(CartChangedMessage)
    @work(exclusive=True, group="cart")
    async def handle_cart_change(self) -> None:
        cart = self.app.state.cart
        container = self.query_one("#div-cart-lines", Vertical)
        await container.remove_children()
        if cart:
            await container.mount_all([CartLineWidget(line) for line in cart])
            container.remove_class("no-items")
        else:
            await container.mount(
                Label("Your cart is empty. Add some products to get started!")
            )
            container.add_class("no-items")

        self.query_one("#label-cart-title", Label).update(f"Your Cart ({len(cart)})")
        self.query_one("#label-cart-total", Label).update(
            f"Total: {format_money(cart.total())}"
        )

    @on(Input.Changed)
    def handle_form_input(self, event: Input.Changed) -> None:
        attr = FORM_INPUTS.get(event.input.id or "")
        if attr:
            setattr(self.app.state.order_form, attr, event.value)
            event.input.remove_class("-invalid")

    @on(Button.Pressed, "#btn-submit")
    @work(group="submit")
    async def handle_submit(self) -> None:
        state = self.app.state
        submit_btn = self.query_one("#btn-submit", Button)
        submit_btn.disabled = True
        submit_btn.label = "Placing Order..."
        try:
            order_id = await state.orders.submit(state.cart, state.order_form)
        except ValidationError as e:
            self._mark_invalid(e.fields)
            self.notify(str(e), severity="error")
            return
        except GatewayError:
            await self.app.push_screen_wait(
                DialogModal("Error placing order. Please try again.", tone="error")
            )
            return
        finally:
            submit_btn.disabled = False
            submit_btn.label = "Place Order"

        for input_id in FORM_INPUTS:
            self.query_one(f"#{input_id}", Input).value = ""
        self.post_message(CartChangedMessage())
        self.app.post_message(NewOrderMessage(order_id))

    def _mark_invalid(self, fields) -> None:
        invalid_ids = [i for i, attr in FORM_INPUTS.items() if attr in fields]
        for input_id in invalid_ids:
            self.query_one(f"#{input_id}", Input).add_class("-invalid")
        if invalid_ids:
            self.query_one(f"#{invalid_ids[0]}", Input).focus()

    def _show_success(self, succeeded: bool) -> None:
        self.query_one("#label-success", Label).set_class(not succeeded, "hidden")
