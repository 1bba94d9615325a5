from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from utils.config import Settings, load_settings
from utils.logger import get_logger, route_to_textual
from utils.messages import (
    ModeSwitchedMessage,
    NewOrderMessage,
    QuitRequestedMessage,
    SessionChangedMessage,
)
from utils.state import AppState
from views.scr_admin import AdminScreen
from views.scr_catalog import CatalogScreen
from views.scr_contact import ContactScreen
from views.scr_home import HomeScreen
from views.scr_order import OrderScreen

_logger = get_logger(__name__)


class ShopApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "home": HomeScreen,
        "catalog": CatalogScreen,
        "order": OrderScreen,
        "contact": ContactScreen,
        "admin": AdminScreen,
    }

    SHOP_MODES = {
        "home": "Home",
        "catalog": "Products",
        "order": "Order",
        "contact": "Contact",
        "admin": "Admin",
    }

    CSS_PATH = [
        "styles/index.tcss",
        "styles/catalog.tcss",
        "styles/order.tcss",
        "styles/admin.tcss",
    ]

    TITLE = "Kumalo Yoghurt"

    state: AppState

    def __init__(self, settings: Settings | None = None, state: AppState | None = None):
        super().__init__()
        self.state = state or AppState.from_settings(settings or load_settings())

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        route_to_textual()
        _logger.info(f"Shop started with database {self.state.settings.db_path}")
        await self.switch_mode("home")

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(ModeSwitchedMessage)
    def handle_mode_switched(self, message: ModeSwitchedMessage) -> None:
        _logger.debug(f"Mode {message.old_mode} -> {message.new_mode}")

    @on(NewOrderMessage)
    def handle_new_order(self, message: NewOrderMessage) -> None:
        self.notify(f"Order placed. Your order reference is {message.order_id[:8]}.")

    @on(SessionChangedMessage)
    def handle_session_changed(self, message: SessionChangedMessage) -> None:
        _logger.debug(f"Admin session is now {message.state}")

    @on(QuitRequestedMessage)
    @work
    async def handle_quit(self):
        await self.state.gateway.sign_out()
        self.exit()


def main() -> None:
    app = ShopApp()
    app.run()


if __name__ == "__main__":
    main()
