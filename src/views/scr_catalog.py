from typing import List

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import DataTable, Label, MarkdownViewer, Select

from db.models import Product
from shop.catalog import (
    ALL_FLAVORS,
    can_order,
    facet_values,
    filter_by_flavor,
    load_catalog,
)
from utils.messages import ModeSwitchedMessage
from utils.pure import format_money, generate_markdown_table, humanize_status
from views.base_screen import BaseScreen


class CatalogScreen(BaseScreen):
    """
    Browse every product, newest first, filtered by flavor on the client.
    Out-of-stock products are listed but cannot be ordered.
    """

    # bindings here are only displayed in the footer
    BINDINGS = [
        Binding("enter", "noop", "Order Now", show=True, key_display="⏎"),
    ]

    def __init__(self):
        super().__init__()
        self._products: List[Product] = []
        self._visible: List[Product] = []
        self._flavor = ALL_FLAVORS

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-filter"):
                yield Label("Filter by Flavor:")
                yield Select(
                    [("All", ALL_FLAVORS)],
                    value=ALL_FLAVORS,
                    allow_blank=False,
                    id="select-flavor",
                )
            yield DataTable(id="table-products")
            yield MarkdownViewer(id="md-product", show_table_of_contents=False)

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Name", "Flavor", "Price", "Availability", "")

    def action_noop(self) -> None:
        pass

    @on(ScreenResume)
    @work(exclusive=True)
    async def load_products(self) -> None:
        self._products = await load_catalog(self.app.state.gateway, "browse")

        facets = facet_values(self._products)
        if self._flavor not in facets:
            self._flavor = ALL_FLAVORS
        select = self.query_one("#select-flavor", Select)
        with select.prevent(Select.Changed):
            select.set_options((f.capitalize(), f) for f in facets)
            select.value = self._flavor
        self.render_table()

    @on(Select.Changed, "#select-flavor")
    def handle_flavor_changed(self, event: Select.Changed) -> None:
        if event.value is Select.BLANK:
            return
        self._flavor = str(event.value)
        self.render_table()

    def render_table(self) -> None:
        self._visible = filter_by_flavor(self._products, self._flavor)
        table = self.query_one(DataTable)
        table.clear()
        for p in self._visible:
            table.add_row(
                p.name,
                p.flavor,
                format_money(p.price),
                humanize_status(p.stock_status),
                "Order Now" if can_order(p) else "Out of Stock",
                key=p.id,
            )
        if not self._visible:
            self._render_detail(None)

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        self._render_detail(self._find(event.row_key.value))

    def _find(self, product_id) -> Product | None:
        return next((p for p in self._visible if p.id == product_id), None)

    def _render_detail(self, product: Product | None) -> None:
        viewer = self.query_one("#md-product", MarkdownViewer)
        if product is None:
            viewer.document.update("_No products found for the selected filter._")
            return
        rows = [
            ["Flavor", product.flavor],
            ["Price", format_money(product.price)],
            ["Availability", humanize_status(product.stock_status)],
            ["Featured", "Yes" if product.is_featured else "No"],
        ]
        viewer.document.update(
            f"### {product.name}\n\n{product.description}\n\n"
            + generate_markdown_table(["Attribute", "Value"], rows, ["l", "l"])
        )

    @on(DataTable.RowSelected)
    async def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        product = self._find(event.row_key.value)
        if product is None:
            return
        if not can_order(product):
            self.notify(f"{product.name} is out of stock.", severity="warning")
            return
        self.app.state.cart.add(product)
        self.notify(f"Added {product.name} to your cart.")
        self.app.post_message(ModeSwitchedMessage(self.app.current_mode, "order"))
        await self.app.switch_mode("order")
