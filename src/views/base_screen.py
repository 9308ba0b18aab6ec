from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.events import ScreenResume
from textual.screen import Screen
from textual.widgets import Footer, Header, Label, ListItem, ListView, Markdown

from utils.formatting import format_price, markdown_table
from views.modal_dialog import QuitDialogModal


class Sidebar(Container):
    """Mode menu plus a cart summary read from the last fetched cart."""

    def compose(self) -> ComposeResult:
        yield Label("Cart", id="label-info-1")
        yield Markdown("", id="md-cart-summary")
        yield Label("Menu", id="label-info-2")
        yield ListView(
            *[
                ListItem(Label(title), id="list-menu-item-" + mode)
                for mode, title in self.app.MODE_TITLES.items()
            ],
            id="list-menu",
        )

    async def on_mount(self):
        self.highlight_item(self.app.current_mode)
        await self.refresh_summary()

    async def refresh_summary(self) -> None:
        cart = self.app.state.cart
        rows = [
            ["Items", cart.items_count],
            ["Lines", cart.line_count],
            ["Total", format_price(cart.total)],
        ]
        await self.query_one("#md-cart-summary", Markdown).update(
            markdown_table(rows, ["", ""], ["l", "r"])
        )

    async def on_list_view_selected(self, event: ListView.Selected):
        selected_mode = event.item.id.removeprefix("list-menu-item-")
        if self.app.current_mode != selected_mode:
            await self.app.switch_mode(selected_mode)

    def highlight_item(self, mode: str):
        for item in self.query_one("#list-menu", ListView).children:
            item.highlighted = item.id == "list-menu-item-" + mode


class BaseScreen(Screen):
    """
    Inherited by all screens, contains common elements like
    headers, footers, sidebar, and keybindings.
    """

    BINDINGS = [
        Binding("ctrl+q", "quit", "Quit", show=True),
    ]

    def __init__(self):
        super().__init__()

        self.app.title = "Storefront"
        self.sub_title = ""
        for mode, screen_cls in self.app.MODES.items():
            if isinstance(self, screen_cls):
                self.sub_title = self.app.MODE_TITLES[mode]

    def compose(self) -> ComposeResult:
        yield Sidebar()
        yield Header()
        yield Footer(show_command_palette=False)

    @on(ScreenResume)
    async def handle_screen_resume(self):
        await self.refresh_state()

    async def refresh_state(self) -> None:
        """
        Re-derive everything shown from app.state. Called by the app after
        cart or catalog changes; subclasses extend it.
        """
        for sidebar in self.query(Sidebar):
            sidebar.highlight_item(self.app.current_mode)
            await sidebar.refresh_summary()

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal())
