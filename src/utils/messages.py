from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired after any cart mutation settles (add, remove, clear).
    Screens re-derive quantities from app.state.cart.items.

    Post it at App level when it comes from a modal.
    """

    bubble = True


class CatalogChangedMessage(Message):
    """
    Fired after an admin create/update/delete, or a reload.
    The catalog screen resets its window when the product list changes.
    """

    bubble = True
