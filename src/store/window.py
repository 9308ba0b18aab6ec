from typing import Sequence

from api.models import Product


class CatalogWindow:
    """
    Growing prefix of an already fetched product list.

    Starts at one page, grows by one page per load_more() and resets to the
    first page whenever it is handed a different list object. It never
    fetches anything itself.
    """

    def __init__(self, page_size: int = 12, products: Sequence[Product] = ()) -> None:
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.page_size = page_size
        self._products: Sequence[Product] = ()
        self.visible_count = 0
        self.reset(products)

    @property
    def products(self) -> Sequence[Product]:
        return self._products

    @property
    def total(self) -> int:
        return len(self._products)

    @property
    def visible(self) -> Sequence[Product]:
        return self._products[: self.visible_count]

    @property
    def fully_loaded(self) -> bool:
        return self.visible_count >= len(self._products)

    def reset(self, products: Sequence[Product]) -> None:
        self._products = products
        self.visible_count = min(self.page_size, len(products))

    def sync(self, products: Sequence[Product]) -> bool:
        """Reset if `products` is not the list currently windowed."""
        if products is self._products:
            return False
        self.reset(products)
        return True

    def load_more(self) -> bool:
        """Show the next page. Returns False once everything is visible."""
        if self.fully_loaded:
            return False
        self.visible_count = min(self.visible_count + self.page_size, self.total)
        return True
