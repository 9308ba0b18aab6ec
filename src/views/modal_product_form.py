from typing import Optional

from pydantic import ValidationError
from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.validation import Length, Number
from textual.widgets import Button, Input, Label

from api.errors import FetchError, MutationError
from api.models import CreateProductRequest, Product

# form field -> (label, input type, validators)
FIELDS = {
    "name": ("Name", "text", [Length(minimum=2)]),
    "description": ("Description", "text", [Length(minimum=10)]),
    "price": ("Price ($)", "number", [Number(minimum=0.0)]),
    "category": ("Category", "text", [Length(minimum=2)]),
    "quantity": ("Stock", "integer", [Number(minimum=0)]),
    "image_url": ("Image URL (optional)", "text", []),
}


class ProductFormModal(ModalScreen[Optional[Product]]):
    """
    Create or edit a product. Submits itself, stays open when the server
    rejects the change, dismisses with the saved product or None.
    """

    def __init__(self, product: Optional[Product] = None) -> None:
        super().__init__()
        self._product = product

    def compose(self) -> ComposeResult:
        with Vertical(id="div-product-form"):
            yield Label(
                f"Edit {self._product.name}" if self._product else "New Product",
                id="label-form-title",
            )
            for field, (caption, input_type, validators) in FIELDS.items():
                yield Label(caption)
                yield Input(id=f"input-{field}", type=input_type, validators=validators)
            yield Label("", id="label-form-error")
            with Horizontal():
                yield Button("Cancel", id="btn-cancel")
                yield Button(
                    "Save" if self._product else "Create",
                    id="btn-save",
                    variant="success",
                )

    def on_mount(self):
        if self._product:
            values = self._product.model_dump()
            for field in FIELDS:
                value = values.get(field)
                self.query_one(f"#input-{field}", Input).value = (
                    "" if value is None else str(value)
                )
        self.query_one("#input-name").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    def read_form(self) -> CreateProductRequest:
        """Raises pydantic.ValidationError for bad input."""
        raw = {f: self.query_one(f"#input-{f}", Input).value.strip() for f in FIELDS}
        raw["image_url"] = raw["image_url"] or None
        return CreateProductRequest.model_validate(raw)

    @on(Button.Pressed, "#btn-cancel")
    def handle_cancel(self):
        self.dismiss(None)

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True)
    async def handle_save(self):
        error_label = self.query_one("#label-form-error", Label)
        try:
            request = self.read_form()
        except ValidationError as e:
            first = e.errors()[0]
            field = str(first["loc"][0]) if first["loc"] else ""
            error_label.update(f"{FIELDS.get(field, (field,))[0]}: {first['msg']}")
            if field in FIELDS:
                self.query_one(f"#input-{field}", Input).focus()
            return

        catalog = self.app.state.catalog
        save_btn = self.query_one("#btn-save", Button)
        save_btn.disabled = True
        try:
            if self._product:
                saved = await catalog.update(request.with_id(self._product.id))
            else:
                saved = await catalog.create(request)
        except MutationError as e:
            error_label.update(f"Save failed: {e.message}")
            self.notify("Product was not saved.", severity="error")
            save_btn.disabled = False
            return
        except FetchError:
            self.notify("Saved, but the product list could not be reloaded.")
            self.dismiss(None)
            return

        self.dismiss(saved)
