from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, MarkdownViewer

from shop.catalog import load_featured
from utils.messages import ModeSwitchedMessage
from utils.pure import format_money, generate_markdown_table, humanize_status
from views.base_screen import BaseScreen

WELCOME_MD = """\
## Fresh yoghurt, delivered

Creamy, small-batch yoghurt made fresh and brought to your door.
Browse the collection, build your order, or send us a message.

"""


class HomeScreen(BaseScreen):
    """
    Landing screen: a short welcome and the featured flavors.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-home", show_table_of_contents=False)
            with Horizontal(id="hort-home-buttons"):
                yield Button("Browse Products", id="btn-browse")
                yield Button("Order Now", id="btn-order", variant="primary")

    @on(ScreenResume)
    @work(exclusive=True)
    async def load_featured(self) -> None:
        featured = await load_featured(self.app.state.gateway)

        md = WELCOME_MD + "### Featured Flavors\n\n"
        if featured:
            rows = [
                [p.name, p.flavor, format_money(p.price), humanize_status(p.stock_status)]
                for p in featured
            ]
            md += generate_markdown_table(
                ["Product", "Flavor", "Price", "Availability"],
                rows,
                ["l", "l", "r", "c"],
            )
        else:
            md += "_No featured products right now._"
        await self.query_one("#md-home", MarkdownViewer).document.update(md)

    @on(Button.Pressed, "#btn-browse")
    async def handle_browse(self) -> None:
        await self._go("catalog")

    @on(Button.Pressed, "#btn-order")
    async def handle_order(self) -> None:
        await self._go("order")

    async def _go(self, mode: str) -> None:
        self.app.post_message(ModeSwitchedMessage(self.app.current_mode, mode))
        await self.app.switch_mode(mode)
