from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer

from api.errors import FetchError, MutationError, NotFoundError
from api.models import Product
from utils.formatting import product_markdown
from utils.logger import get_logger
from utils.messages import CartChangedMessage

_logger = get_logger(__name__)


class ProdDetailModal(ModalScreen[bool]):
    """
    Product detail plus add/remove from cart.
    Dismisses with True if the cart changed, False if not.
    """

    CSS = """
    #input-order-qty {
        width: 10;
    }
    #btn-sub-qty, #btn-add-qty {
        min-width: 4;
    }
    """

    order_qty = reactive(1)

    def __init__(self, product_id: int) -> None:
        super().__init__()

        self._product_id = product_id
        self._prod: Optional[Product] = None
        self._cart_changed = False

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer("Loading...", show_table_of_contents=False)
            with Vertical(id="vert-order"):
                yield Label("Order Quantity")
                with Horizontal():
                    yield Button("-", id="btn-sub-qty")
                    yield Input(value="1", id="input-order-qty", type="integer")
                    yield Button("+", id="btn-add-qty")
                yield Label("", id="label-availability")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Add to Cart", id="btn-addcart", variant="primary")
                yield Button(
                    "Remove from Cart", id="btn-removecart", variant="error"
                )
            yield Button("Go Back", id="btn-back")

    def on_mount(self):
        self.query_one("#btn-removecart").display = False
        self.query_one("#btn-back").display = False
        self.load_product()

    @work(exclusive=True)
    async def load_product(self) -> None:
        try:
            self._prod = await self.app.state.catalog.get_product(self._product_id)
            await self.app.state.cart.list_items()
        except NotFoundError:
            await self.show_missing("Product not found. It may have been removed.")
            return
        except FetchError as e:
            await self.show_missing(f"Could not load the product: {e.message}")
            return

        await self.render_product()
        self.query_one("#input-order-qty").focus()

    async def show_missing(self, message: str) -> None:
        await self.query_one(MarkdownViewer).document.update(f"### {message}")
        self.query_one("#vert-order").display = False
        self.query_one("#btn-back").display = True
        self.query_one("#btn-back").focus()

    async def render_product(self) -> None:
        cart = self.app.state.cart
        prod = self._prod
        in_cart = cart.quantity_in_cart_for(prod.id)
        available = cart.available_quantity(prod)

        await self.query_one(MarkdownViewer).document.update(
            product_markdown(prod, in_cart, available)
        )

        addcart = self.query_one("#btn-addcart", Button)
        self.update_addcart()
        if not prod.in_stock:
            addcart.label = "Out of Stock"
            addcart.variant = "warning"
        elif available < 1:
            addcart.label = "Maximum in Cart"
            addcart.variant = "warning"
        else:
            addcart.label = "Add to Cart"
            addcart.variant = "primary"

        self.query_one("#btn-removecart").display = cart.is_product_in_cart(prod.id)
        self.query_one("#label-availability", Label).update(
            f"In cart: {in_cart}  Can add: {available}"
        )
        self.query_one("#input-order-qty", Input).validators = [
            Number(minimum=1, maximum=max(available, 1))
        ]
        self.order_qty = max(1, min(self.order_qty, available))
        self.watch_order_qty(self.order_qty)

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(self._cart_changed)

    def update_addcart(self, qty_ok: bool = True) -> None:
        cart = self.app.state.cart
        self.query_one("#btn-addcart", Button).disabled = (
            not qty_ok or cart.available_quantity(self._prod) < 1 or cart.is_adding
        )

    def on_input_changed(self, message: Input.Changed) -> None:
        if message.input.id != "input-order-qty" or not self._prod:
            return
        # a rejected quantity must not be submitted as the previous one
        qty_ok = bool(message.value) and message.input.is_valid
        if qty_ok and self.focused == message.input:
            self.order_qty = int(message.value)
        self.update_addcart(qty_ok)

    def watch_order_qty(self, qty: int):
        if not self._prod:
            return
        available = self.app.state.cart.available_quantity(self._prod)
        self.query_one("#btn-sub-qty").disabled = qty <= 1
        self.query_one("#btn-add-qty").disabled = qty >= available
        self.query_one("#input-order-qty", Input).value = str(qty)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self):
        self.order_qty += 1

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self):
        self.order_qty = max(1, self.order_qty - 1)

    @on(Button.Pressed, "#btn-quit")
    @on(Button.Pressed, "#btn-back")
    def handle_quit(self):
        self.dismiss(self._cart_changed)

    @on(Button.Pressed, "#btn-addcart")
    @work(exclusive=True)
    async def handle_addcart(self):
        cart = self.app.state.cart
        if not cart.can_add(self._prod, self.order_qty):
            self.notify("Not enough stock for that quantity.", severity="warning")
            return

        button = self.query_one("#btn-addcart", Button)
        button.disabled = True
        try:
            await cart.add_one(self._prod.id, self.order_qty)
        except MutationError as e:
            self.notify(f"Could not add to cart: {e.message}", severity="error")
        except FetchError as e:
            _logger.warning(f"Cart reload after add failed: {e.message}")
            self.notify("Added, but the cart could not be reloaded.", severity="warning")
            self._cart_changed = True
        else:
            self._cart_changed = True
            self.notify(f"Added {self.order_qty} x {self._prod.name} to cart.")
            self.app.post_message(CartChangedMessage())
        await self.render_product()

    @on(Button.Pressed, "#btn-removecart")
    @work(exclusive=True)
    async def handle_removecart(self):
        cart = self.app.state.cart
        item_id = cart.cart_item_id_for(self._prod.id)
        if item_id is None:
            return

        self.query_one("#btn-removecart", Button).disabled = True
        try:
            await cart.remove_line(item_id)
        except MutationError as e:
            self.notify(f"Could not remove from cart: {e.message}", severity="error")
        except FetchError as e:
            _logger.warning(f"Cart reload after remove failed: {e.message}")
            self._cart_changed = True
        else:
            self._cart_changed = True
            self.notify(f"{self._prod.name} removed from cart.")
            self.app.post_message(CartChangedMessage())
        self.query_one("#btn-removecart", Button).disabled = False
        await self.render_product()
