from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from api.errors import FetchError
from utils.logger import get_logger
from utils.messages import (
    CartChangedMessage,
    CatalogChangedMessage,
    QuitRequestedMessage,
)
from utils.state import GlobalState
from views.base_screen import BaseScreen
from views.scr_admin import AdminScreen
from views.scr_cart import CartScreen
from views.scr_catalog import CatalogScreen

_logger = get_logger(__name__)


class StorefrontApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "catalog": CatalogScreen,
        "cart": CartScreen,
        "admin": AdminScreen,
    }

    MODE_TITLES = {
        "catalog": "Products",
        "cart": "Cart",
        "admin": "Administration",
    }

    CSS_PATH = "views/storefront.tcss"

    state: GlobalState

    def __init__(self):
        super().__init__()
        self.state = GlobalState()

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        await self.switch_mode("catalog")

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    async def refresh_active_screen(self) -> None:
        # messages posted by one screen never reach the others
        if isinstance(self.screen, BaseScreen):
            await self.screen.refresh_state()

    @on(CartChangedMessage)
    async def handle_cart_changed(self):
        await self.refresh_active_screen()

    @on(CatalogChangedMessage)
    @work(exclusive=True, group="catalog-changed")
    async def handle_catalog_changed(self):
        # product writes invalidate the cart too, its lines embed products
        try:
            await self.state.cart.list_items()
        except FetchError as e:
            _logger.warning(f"Cart reload after catalog change failed: {e.message}")
        await self.refresh_active_screen()

    @on(QuitRequestedMessage)
    def handle_quit(self):
        self.exit()


def run() -> None:
    StorefrontApp().run()


if __name__ == "__main__":
    run()
