from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, HorizontalGroup, VerticalScroll
from textual.message import Message
from textual.widgets import Button, Label, LoadingIndicator, Rule

from api.errors import FetchError, MutationError
from api.models import CartItem
from utils.formatting import format_price
from utils.logger import get_logger
from utils.messages import CartChangedMessage
from views.base_screen import BaseScreen
from views.modal_dialog import ConfirmDialogModal
from views.modal_prod_detail import ProdDetailModal

_logger = get_logger(__name__)


class CartLineActionMessage(Message):
    bubble = True

    def __init__(self, item: CartItem, action: str) -> None:
        super().__init__()
        self.item = item
        self.action = action


class CartLineActionLabel(Label):
    def __init__(self, item: CartItem, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.item = item

    def action_details(self):
        self.post_message(CartLineActionMessage(self.item, "details"))

    def action_add(self):
        self.post_message(CartLineActionMessage(self.item, "add"))

    def action_remove(self):
        self.post_message(CartLineActionMessage(self.item, "remove"))


class CartLineWidget(HorizontalGroup):
    """
    One cart line. "Remove" drops the whole line: the API has no way to
    take away a single unit.
    """

    def __init__(self, item: CartItem, available: int):
        super().__init__()
        self.item = item
        self.available = available

    def compose(self):
        item = self.item
        with Container(id="div-cart-item-group"):
            with Container(classes="div-item"):
                yield Label(item.product.name, classes="label-item-name")
                yield Label(format_price(item.product.price), classes="label-item-price")
                yield Label(f"x {item.quantity}", classes="label-item-qty")
                yield Label(format_price(item.line_total), classes="label-item-total")
            with Container(classes="div-actions"):
                yield CartLineActionLabel(item, "[@click=details()]Details[/]")
                if self.available > 0:
                    yield CartLineActionLabel(item, "[@click=add()]+1[/]")
                else:
                    yield Label("max", classes="label-item-max")
                yield CartLineActionLabel(item, "[@click=remove()]Remove[/]")


class CartScreen(BaseScreen):
    """
    cart lines, totals and cart-wide actions
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield LoadingIndicator(id="loading-cart")
        yield Label("", id="label-cart-message")
        yield VerticalScroll(id="vertscroll-content")
        yield Label("", id="label-cart-count")
        yield Label("Total Cart Value: $0.00", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart", variant="error")
            yield Button("Refresh", id="btn-refresh")
            yield Button("Continue Shopping", id="btn-continue")
            # checkout is not wired to anything yet
            yield Button("Checkout", id="btn-checkout", variant="primary")

    def on_mount(self):
        self.load_cart()

    @on(Button.Pressed, "#btn-refresh")
    def handle_refresh(self):
        self.load_cart(refresh=True)

    @work(exclusive=True, group="cart-load")
    async def load_cart(self, refresh: bool = False) -> None:
        """Fetch the cart and redraw. exclusive, else lines could mount twice"""
        message = self.query_one("#label-cart-message", Label)
        self.query_one("#loading-cart").display = True
        try:
            await self.app.state.cart.list_items(refresh=refresh)
            if not self.app.state.catalog.products:
                await self.app.state.catalog.list_products()
        except FetchError as e:
            message.update(f"Could not load the cart ({e.message}). Press Refresh.")
            message.display = True
            return
        finally:
            self.query_one("#loading-cart").display = False
        await self.refresh_state()

    async def refresh_state(self) -> None:
        await super().refresh_state()
        self.render_cart()

    @work(exclusive=True, group="cart-render")
    async def render_cart(self) -> None:
        cart = self.app.state.cart
        content = self.query_one("#vertscroll-content")
        message = self.query_one("#label-cart-message", Label)

        await content.remove_children()
        await content.mount_all(
            [
                CartLineWidget(item, cart.available_quantity(item.product))
                for item in cart.items
            ]
        )

        if not cart.items:
            message.update("Your cart is empty. Add products from the catalog.")
            message.display = True
        else:
            message.display = False

        self.query_one("#label-cart-count", Label).update(
            f"Items: {cart.items_count}  Lines: {cart.line_count}"
        )
        self.query_one("#label-cart-total", Label).update(
            f"Total Cart Value: {format_price(cart.total)}"
        )
        self.query_one("#btn-clear-cart").disabled = not cart.items or cart.busy
        self.query_one("#btn-checkout").disabled = not cart.items

    @on(CartLineActionMessage)
    @work()
    async def handle_line_action(self, message: CartLineActionMessage):
        cart = self.app.state.cart
        item = message.item
        if cart.busy:
            self.notify("Still updating the cart...", severity="warning")
            return

        try:
            if message.action == "details":
                if not await self.app.push_screen_wait(ProdDetailModal(item.product.id)):
                    return
            elif message.action == "add":
                if not cart.can_add(item.product):
                    self.notify("No more stock for this product.", severity="warning")
                    return
                await cart.add_one(item.product.id)
            elif message.action == "remove":
                await cart.remove_line(item.id)
                self.notify(f"{item.product.name} removed from cart.")
        except MutationError as e:
            self.notify(f"Cart update failed: {e.message}", severity="error")
            return
        except FetchError as e:
            _logger.warning(f"Cart reload failed: {e.message}")
            self.notify("Cart changed but could not be reloaded.", severity="warning")

        self.app.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        cart = self.app.state.cart
        if not cart.items:
            self.notify("Cart is empty.", severity="warning")
            return

        if not await self.app.push_screen_wait(
            ConfirmDialogModal("Do you really want to remove all items from cart?")
        ):
            return

        self.query_one("#btn-clear-cart").disabled = True
        try:
            await cart.clear()
        except MutationError as e:
            self.notify(f"Could not clear the cart: {e.message}", severity="error")
        except FetchError as e:
            _logger.warning(f"Cart reload after clear failed: {e.message}")
        else:
            self.notify("Cart cleared.")
        self.app.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-continue")
    async def handle_continue(self) -> None:
        await self.app.switch_mode("catalog")
