from __future__ import annotations

from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, DataTable, Label, MarkdownViewer

import api.client
from api.errors import FetchError, MutationError
from api.models import Product
from utils.formatting import format_price, product_markdown
from utils.messages import CatalogChangedMessage
from views.base_screen import BaseScreen
from views.modal_dialog import ConfirmDialogModal
from views.modal_product_form import ProductFormModal


class AdminScreen(BaseScreen):
    """
    Product administration: create, edit and delete.
    """

    BINDINGS = [
        Binding("n", "new_product", "New", show=True),
        Binding("e", "edit_product", "Edit", show=True),
        Binding("delete", "delete_product", "Delete", show=True),
        Binding("f5", "reload", "Reload", show=True),
    ]

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Label("", id="label-admin-error")
            yield DataTable(id="table-admin-products")
            yield MarkdownViewer(id="md-prod", show_table_of_contents=False)
            with Horizontal(id="hort-controls"):
                yield Button("New Product", id="btn-new", variant="success")
                yield Button("Edit", id="btn-edit", variant="primary")
                yield Button("Delete", id="btn-delete", variant="error")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Category", "Price", "Stock")
        self.query_one("#label-admin-error").display = False
        self.load_products()

    @work(exclusive=True, group="admin-load")
    async def load_products(self, refresh: bool = False) -> None:
        error_label = self.query_one("#label-admin-error", Label)
        try:
            await self.app.state.catalog.list_products(refresh=refresh)
        except FetchError as e:
            error_label.update(
                f"Could not load products ({e.message}). Press F5 to reload."
            )
            error_label.display = True
            return
        error_label.display = False
        await self.refresh_state()

    async def refresh_state(self) -> None:
        await super().refresh_state()
        catalog = self.app.state.catalog

        table = self.query_one(DataTable)
        cursor_row = table.cursor_row
        table.clear()
        for p in catalog.products:
            table.add_row(
                p.id,
                p.name,
                p.category,
                format_price(p.price),
                p.quantity,
                key=str(p.id),
            )
        if catalog.products:
            table.move_cursor(row=min(cursor_row, len(catalog.products) - 1))

        self.update_buttons()
        await self.render_selected()

    def update_buttons(self) -> None:
        catalog = self.app.state.catalog
        nothing_selected = self.selected_product() is None
        self.query_one("#btn-new").disabled = catalog.is_creating
        self.query_one("#btn-edit").disabled = nothing_selected or catalog.is_updating
        self.query_one("#btn-delete").disabled = (
            nothing_selected or catalog.is_deleting
        )

    def selected_product(self) -> Optional[Product]:
        table = self.query_one(DataTable)
        products = self.app.state.catalog.products
        if not table.row_count or table.cursor_row >= len(products):
            return None
        return products[table.cursor_row]

    async def render_selected(self) -> None:
        prod = self.selected_product()
        viewer = self.query_one("#md-prod", MarkdownViewer)
        if prod is None:
            await viewer.document.update("### No product selected")
            return
        cart = self.app.state.cart
        await viewer.document.update(
            product_markdown(
                prod, cart.quantity_in_cart_for(prod.id), cart.available_quantity(prod)
            )
        )

    @on(DataTable.RowHighlighted)
    async def handle_row_highlighted(self) -> None:
        self.update_buttons()
        await self.render_selected()

    @on(Button.Pressed, "#btn-new")
    def handle_new(self) -> None:
        self.action_new_product()

    @on(Button.Pressed, "#btn-edit")
    def handle_edit(self) -> None:
        self.action_edit_product()

    @on(Button.Pressed, "#btn-delete")
    def handle_delete(self) -> None:
        self.action_delete_product()

    def action_reload(self) -> None:
        api.client.reset_cache()
        self.load_products(refresh=True)

    @work()
    async def action_new_product(self) -> None:
        saved = await self.app.push_screen_wait(ProductFormModal())
        if saved:
            self.notify(f"Product '{saved.name}' created.")
        self.app.post_message(CatalogChangedMessage())

    @work()
    async def action_edit_product(self) -> None:
        prod = self.selected_product()
        if prod is None:
            return
        saved = await self.app.push_screen_wait(ProductFormModal(prod))
        if saved:
            self.notify(f"Product '{saved.name}' updated.")
        self.app.post_message(CatalogChangedMessage())

    @work()
    async def action_delete_product(self) -> None:
        prod = self.selected_product()
        if prod is None:
            return
        if not await self.app.push_screen_wait(
            ConfirmDialogModal(
                f"Delete '{prod.name}'? This cannot be undone.", "Delete"
            )
        ):
            return

        self.query_one("#btn-delete").disabled = True
        try:
            await self.app.state.catalog.delete(prod.id)
        except MutationError as e:
            self.notify(f"Delete failed: {e.message}", severity="error")
        except FetchError as e:
            self.notify(f"Deleted, but reload failed: {e.message}", severity="warning")
        else:
            self.notify(f"Product '{prod.name}' deleted.")
        self.app.post_message(CatalogChangedMessage())
