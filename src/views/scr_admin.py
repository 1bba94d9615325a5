from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, Vertical, VerticalScroll
from textual.events import ScreenResume
from textual.message import Message
from textual.widgets import (
    Button,
    ContentSwitcher,
    Input,
    Label,
    LoadingIndicator,
    Markdown,
    Select,
    TabbedContent,
    TabPane,
)

from db.models import (
    ORDER_STATUSES,
    STOCK_STATUSES,
    ContactSubmission,
    Order,
    Product,
    Session,
)
from shop.admin_sync import TABS, AdminSync
from shop.session_gate import GateState, SessionGate
from utils.messages import SessionChangedMessage
from utils.pure import format_money, generate_markdown_table, humanize_status
from views.base_screen import BaseScreen
from views.modal_dialog import ConfirmDeleteModal, DialogModal

EMPTY_STATES = {
    "orders": "No orders yet",
    "contacts": "No contact submissions yet",
    "products": "No products yet. Add products using the database.",
}


class RowAction(Message):
    """A card asks the dashboard to change or delete the row it shows."""

    bubble = True

    def __init__(self, tab: str, row_id: str, action: str, value: str = "") -> None:
        super().__init__()
        self.tab = tab
        self.row_id = row_id
        self.action = action
        self.value = value


class OrderCard(Vertical):
    def __init__(self, order: Order):
        super().__init__(classes="admin-card")
        self.order = order

    def compose(self) -> ComposeResult:
        o = self.order
        details = (
            f"### {o.customer_name}  ·  {o.status.upper()}\n"
            f"{o.created_at}\n\n"
            f"- **Email:** {o.customer_email}\n"
            f"- **Phone:** {o.customer_phone}\n"
            f"- **Address:** {o.delivery_address}\n"
        )
        if o.notes:
            details += f"- **Notes:** {o.notes}\n"
        rows = [
            [i.product_name, i.quantity, format_money(i.line_total)]
            for i in o.order_items
        ]
        details += "\n" + generate_markdown_table(
            ["Item", "Qty", "Line Total"], rows, ["l", "r", "r"]
        )
        details += f"\n\n**Total: {format_money(o.total_amount)}**"
        yield Markdown(details)
        with Horizontal(classes="card-actions"):
            yield Select(
                [(humanize_status(s), s) for s in ORDER_STATUSES],
                value=o.status,
                allow_blank=False,
                classes="select-status",
            )
            yield Button("Delete", classes="btn-delete", variant="error")

    def on_select_changed(self, event: Select.Changed) -> None:
        event.stop()
        if event.value != self.order.status:
            self.post_message(RowAction("orders", self.order.id, "status", str(event.value)))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.post_message(RowAction("orders", self.order.id, "delete"))


class ContactCard(Vertical):
    def __init__(self, contact: ContactSubmission):
        super().__init__(classes="admin-card " + ("read" if contact.is_read else "unread"))
        self.contact = contact

    def compose(self) -> ComposeResult:
        c = self.contact
        badge = "" if c.is_read else "  ·  NEW"
        details = f"### {c.name}{badge}\n{c.created_at}\n\n- **Email:** {c.email}\n"
        if c.phone:
            details += f"- **Phone:** {c.phone}\n"
        details += f"\n**Message:**\n\n{c.message}\n"
        yield Markdown(details)
        with Horizontal(classes="card-actions"):
            if not c.is_read:
                yield Button("Mark as Read", classes="btn-mark-read", variant="primary")
            yield Button("Delete", classes="btn-delete", variant="error")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        action = "read" if event.button.has_class("btn-mark-read") else "delete"
        self.post_message(RowAction("contacts", self.contact.id, action))


class ProductCard(Vertical):
    def __init__(self, product: Product):
        super().__init__(classes="admin-card")
        self.product = product

    def compose(self) -> ComposeResult:
        p = self.product
        featured = "  ·  FEATURED" if p.is_featured else ""
        yield Markdown(
            f"### {p.name}{featured}\n"
            f"{p.flavor}  ·  {format_money(p.price)}\n\n{p.description}\n"
        )
        with Horizontal(classes="card-actions"):
            yield Label("Stock Status:")
            yield Select(
                [(humanize_status(s), s) for s in STOCK_STATUSES],
                value=p.stock_status,
                allow_blank=False,
                classes="select-stock",
            )

    def on_select_changed(self, event: Select.Changed) -> None:
        event.stop()
        if event.value != self.product.stock_status:
            self.post_message(
                RowAction("products", self.product.id, "stock", str(event.value))
            )


CARD_TYPES = {"orders": OrderCard, "contacts": ContactCard, "products": ProductCard}


class AdminScreen(BaseScreen):
    """
    Staff area. Shows the sign in form until there is a session, then the
    dashboard. Follows sign in / sign out / expiry for as long as it is mounted.
    """

    def __init__(self):
        super().__init__()
        self.gate = SessionGate(self.app.state.gateway)
        self.sync = AdminSync(self.app.state.gateway)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with ContentSwitcher(initial="div-resolving", id="switcher-admin"):
            with Container(id="div-resolving"):
                yield LoadingIndicator()
            with Vertical(id="div-auth"):
                with TabbedContent(id="tabs-auth"):
                    with TabPane("Admin Login", id="tab-login"):
                        with Vertical(id="div-login"):
                            yield Label("Email Address")
                            yield Input(
                                placeholder="admin@kumaloyoghurt.com",
                                id="input-login-email",
                            )
                            yield Label("Password")
                            yield Input(
                                placeholder="*********",
                                password=True,
                                id="input-login-pwd",
                            )
                            yield Button("Sign In", id="btn-login", variant="primary")
                    with TabPane("Create Admin Account", id="tab-signup"):
                        with Vertical(id="div-reg"):
                            yield Label("Email Address")
                            yield Input(
                                placeholder="admin@kumaloyoghurt.com",
                                id="input-reg-email",
                            )
                            yield Label("Password (at least 6 characters)")
                            yield Input(
                                placeholder="*********", password=True, id="input-reg-pwd"
                            )
                            yield Button("Create Account", id="btn-reg", variant="primary")
                yield Label("", id="label-auth-error", markup=False)
            with Vertical(id="div-dashboard"):
                with Horizontal(id="hort-dashboard-header"):
                    yield Label("Admin Dashboard", id="label-dashboard-title")
                    yield Label("", id="label-dashboard-user", markup=False)
                    yield Button("Logout", id="btn-logout", variant="error")
                with TabbedContent(id="tabs-dashboard", initial="tab-orders"):
                    for tab in TABS:
                        with TabPane(self.sync.tab_label(tab), id=f"tab-{tab}"):
                            yield VerticalScroll(id=f"list-{tab}")

    def on_mount(self) -> None:
        self.gate.add_listener(self._on_gate_change)
        self.sync.add_listener(self._on_synced)
        self.open_gate()

    def on_unmount(self) -> None:
        self.gate.close()

    @work(exclusive=True, group="gate")
    async def open_gate(self) -> None:
        await self.gate.open()

    # ---------------------------
    # Session gate
    # ---------------------------

    def _on_gate_change(self, state: GateState, session: Optional[Session]) -> None:
        switcher = self.query_one("#switcher-admin", ContentSwitcher)
        if state == "authenticated":
            switcher.current = "div-dashboard"
            self.query_one("#label-dashboard-user", Label).update(
                session.email if session else ""
            )
            self.activate_tab(self._active_tab())
        else:
            switcher.current = "div-auth"
            self.query_one("#input-login-email", Input).focus()
        self.post_message(SessionChangedMessage(state))

    @on(Input.Submitted, "#input-login-pwd")
    def handle_login_enter(self) -> None:
        self.handle_login_submit()

    @on(Input.Submitted, "#input-reg-pwd")
    def handle_registration_enter(self) -> None:
        self.handle_registration_submit()

    def _show_auth_message(self, text: str) -> None:
        self.query_one("#label-auth-error", Label).update(text)

    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True, group="auth")
    async def handle_login_submit(self) -> None:
        email = self.query_one("#input-login-email", Input).value.strip()
        pwd_input = self.query_one("#input-login-pwd", Input)

        if not email or not pwd_input.value:
            self._show_auth_message("Email and password cannot be empty!")
            return

        self._show_auth_message("Please wait...")
        error = await self.gate.sign_in(email, pwd_input.value)
        if error:
            self._show_auth_message(error)
            pwd_input.value = ""
            pwd_input.focus()
            pwd_input.add_class("-invalid")
        else:
            self._show_auth_message("")
            pwd_input.value = ""
            self.notify(f"Welcome back, {email}!")

    @on(Button.Pressed, "#btn-reg")
    @work(exclusive=True, group="auth")
    async def handle_registration_submit(self) -> None:
        email = self.query_one("#input-reg-email", Input).value.strip()
        pwd = self.query_one("#input-reg-pwd", Input).value

        if not email or not pwd:
            self._show_auth_message("Make sure all inputs are filled.")
            return

        error = await self.gate.sign_up(email, pwd)
        if error:
            self._show_auth_message(error)
            return

        self._show_auth_message("Account created! Please sign in.")
        self.query_one("#tabs-auth", TabbedContent).active = "tab-login"
        self.query_one("#input-login-email", Input).value = email
        self.query_one("#input-reg-pwd", Input).value = ""
        self.query_one("#input-login-pwd", Input).focus()

    @on(Button.Pressed, "#btn-logout")
    @work(exclusive=True, group="auth")
    async def handle_logout(self) -> None:
        if not await self.app.push_screen_wait(
            DialogModal(
                "Are you sure you want to log out?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            return
        await self.gate.sign_out()
        self.notify("Logout successful.")

    # ---------------------------
    # Dashboard
    # ---------------------------

    def _active_tab(self) -> str:
        active = self.query_one("#tabs-dashboard", TabbedContent).active
        return active.removeprefix("tab-") if active else "orders"

    @on(TabbedContent.TabActivated, "#tabs-dashboard")
    def handle_tab_activated(self, event: TabbedContent.TabActivated) -> None:
        if self.gate.state == "authenticated":
            self.activate_tab(event.pane.id.removeprefix("tab-"))

    @on(ScreenResume)
    def handle_resume(self) -> None:
        if self.gate.state == "authenticated":
            self.activate_tab(self._active_tab())

    @work(group="fetch")
    async def activate_tab(self, tab: str) -> None:
        tabs = self.query_one("#tabs-dashboard", TabbedContent)
        tabs.loading = True
        try:
            await self.sync.activate(tab)
        finally:
            tabs.loading = self.sync.loading

    def _on_synced(self, tab: str) -> None:
        tabs = self.query_one("#tabs-dashboard", TabbedContent)
        for t in TABS:
            tabs.get_tab(f"tab-{t}").label = self.sync.tab_label(t)
        self.run_worker(self.render_tab(tab), exclusive=True, group=f"render-{tab}")

    async def render_tab(self, tab: str) -> None:
        container = self.query_one(f"#list-{tab}", VerticalScroll)
        await container.remove_children()
        rows = getattr(self.sync, tab)
        if rows:
            await container.mount_all([CARD_TYPES[tab](row) for row in rows])
        else:
            await container.mount(Label(EMPTY_STATES[tab], classes="empty-state"))

    @on(RowAction)
    @work(group="mutate")
    async def handle_row_action(self, event: RowAction) -> None:
        sync = self.sync
        if event.action == "status":
            ok = await sync.set_order_status(event.row_id, event.value)
        elif event.action == "stock":
            ok = await sync.set_stock_status(event.row_id, event.value)
        elif event.action == "read":
            ok = await sync.mark_contact_read(event.row_id)
        else:
            what = "order" if event.tab == "orders" else "contact submission"
            answers = []

            async def confirm() -> bool:
                answers.append(await self.app.push_screen_wait(ConfirmDeleteModal(what)))
                return answers[-1]

            if event.tab == "orders":
                ok = await sync.delete_order(event.row_id, confirm)
            else:
                ok = await sync.delete_contact(event.row_id, confirm)
            if answers == [False]:
                return
        if not ok:
            self.notify("Update failed.", severity="error")
