from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.widgets import DataTable, Input, Label, LoadingIndicator

import api.client
from api.errors import FetchError, MutationError
from api.models import Product
from store.catalog import filter_products
from store.window import CatalogWindow
from utils.config import settings
from utils.formatting import format_price
from utils.messages import CartChangedMessage
from utils.state import annotate
from views.base_screen import BaseScreen
from views.modal_prod_detail import ProdDetailModal


class CatalogScreen(BaseScreen):
    """
    Product list rendered a page at a time.
    Reaching the last visible row is the signal to show the next page.
    """

    BINDINGS = [
        Binding("a", "add_one", "Add to Cart", show=True),
        Binding("m", "load_more", "Load More", show=True),
        Binding("f5", "reload", "Reload", show=True),
    ]

    AUTO_FOCUS = "#table-products"

    COLUMNS = ("ID", "Name", "Category", "Price", "Stock", "In Cart", "Available")

    def __init__(self):
        super().__init__()
        self.window = CatalogWindow(page_size=settings.page_size)
        self.query_str = ""
        self._source = None
        self._filtered = ()
        self._filtered_for = ""

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield Input(id="input-filter", placeholder="Filter by name or category...")
        yield LoadingIndicator(id="loading-catalog")
        yield Label("", id="label-catalog-error")
        yield DataTable(id="table-products")
        yield Label("", id="label-window-status")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns(*self.COLUMNS)

        self.query_one("#label-catalog-error").display = False
        self.load_catalog()

    # data ------------------------------------------------------------------

    @work(exclusive=True, group="catalog-load")
    async def load_catalog(self, refresh: bool = False) -> None:
        indicator = self.query_one("#loading-catalog")
        error_label = self.query_one("#label-catalog-error", Label)
        indicator.display = True
        try:
            await self.app.state.load(refresh=refresh)
        except FetchError as e:
            error_label.update(
                f"Could not load products ({e.message}). Press F5 to reload."
            )
            error_label.display = True
            self.query_one(DataTable).display = False
            return
        finally:
            indicator.display = False

        error_label.display = False
        self.query_one(DataTable).display = True
        self.apply_products()

    def apply_products(self) -> None:
        """Window the current (filtered) product list and redraw."""
        source = self.app.state.catalog.products
        if source is not self._source or self._filtered_for != self.query_str:
            self._source = source
            self._filtered_for = self.query_str
            self._filtered = filter_products(source, self.query_str)
        self.window.sync(self._filtered)
        self.render_rows()

    def render_rows(self) -> None:
        table = self.query_one(DataTable)
        cursor_row = table.cursor_row
        table.clear()
        rows = annotate(self.window.visible, self.app.state.cart.items)
        for row in rows:
            p = row.product
            table.add_row(
                p.id,
                p.name,
                p.category,
                format_price(p.price),
                p.quantity if p.in_stock else "out",
                row.in_cart,
                row.available,
                key=str(p.id),
            )
        if rows:
            table.move_cursor(row=min(cursor_row, len(rows) - 1))
        self.update_status()

    def update_status(self) -> None:
        status = self.query_one("#label-window-status", Label)
        if self.window.total == 0:
            status.update(
                "No products match." if self.query_str else "No products yet."
            )
        elif self.window.fully_loaded:
            status.update(f"All products loaded ({self.window.total}).")
        else:
            status.update(
                f"Showing {self.window.visible_count} of {self.window.total}. "
                "Scroll down for more."
            )

    def highlighted_product(self) -> Product | None:
        table = self.query_one(DataTable)
        if not table.row_count:
            return None
        visible = self.window.visible
        if table.cursor_row >= len(visible):
            return None
        return visible[table.cursor_row]

    # events ----------------------------------------------------------------

    def on_input_changed(self, message: Input.Changed) -> None:
        if message.input.id == "input-filter":
            self.query_str = message.value
            self.apply_products()

    @on(Input.Submitted, "#input-filter")
    def handle_filter_submitted(self) -> None:
        # a and m only reach the screen once the table has focus
        self.query_one(DataTable).focus()

    @on(DataTable.RowHighlighted)
    def handle_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.cursor_row >= event.data_table.row_count - 1:
            self.action_load_more()

    @on(DataTable.RowSelected)
    def handle_row_selected(self) -> None:
        self.action_view_product()

    async def refresh_state(self) -> None:
        await super().refresh_state()
        self.apply_products()

    # actions ---------------------------------------------------------------

    def action_load_more(self) -> None:
        if self.app.state.catalog.is_loading:
            return
        if self.window.load_more():
            self.render_rows()

    def action_reload(self) -> None:
        api.client.reset_cache()
        self.load_catalog(refresh=True)

    @work()
    async def action_view_product(self) -> None:
        product = self.highlighted_product()
        if product is None:
            return
        if await self.app.push_screen_wait(ProdDetailModal(product.id)):
            self.app.post_message(CartChangedMessage())
        self.apply_products()

    @work(exclusive=True, group="cart-add")
    async def action_add_one(self) -> None:
        product = self.highlighted_product()
        cart = self.app.state.cart
        if product is None or cart.is_adding:
            return
        if not cart.can_add(product):
            self.notify(
                f"No more {product.name} available to add.", severity="warning"
            )
            return

        try:
            await cart.add_one(product.id)
        except MutationError as e:
            self.notify(f"Could not add to cart: {e.message}", severity="error")
            return
        except FetchError as e:
            self.notify(f"Cart reload failed: {e.message}", severity="warning")
            return

        self.notify(f"{product.name} added to cart.")
        self.app.post_message(CartChangedMessage())
